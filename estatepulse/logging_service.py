"""Structured runtime logging for EstatePulse.

Every page action writes one ``SystemLog`` row. Skipped privileged commands
are written with ``result="denied"`` so they can be audited from the console.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
from uuid import uuid4

from flask import current_app

from .extensions import db
from .models import SystemLog

LEVELS = ("info", "warn", "error")
RESULTS = ("success", "warn", "error", "denied")
COMPONENTS = (
    "Enrollment",
    "Insights",
    "Logging",
    "Portfolio",
    "Reports",
    "Search",
    "Session",
    "Settings",
)
MAX_FEED_SIZE = 500


@dataclass(frozen=True)
class LogQuery:
    """Console/feed filter; unknown values are dropped rather than rejected."""

    level: Optional[str] = None
    component: Optional[str] = None
    result: Optional[str] = None
    search: Optional[str] = None
    limit: int = 50

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "LogQuery":
        try:
            limit = int(args.get("limit") or 50)
        except ValueError:
            limit = 50
        level = args.get("level") or None
        result = args.get("result") or None
        return cls(
            level=level if level in LEVELS else None,
            component=args.get("component") or None,
            result=result if result in RESULTS else None,
            search=(args.get("search") or "").strip() or None,
            limit=max(1, min(limit, MAX_FEED_SIZE)),
        )


class LogManager:
    """Write portfolio activity to the SystemLog table and read it back."""

    def __init__(self) -> None:
        self.app = None

    def init_app(self, app) -> None:
        self.app = app

    def _config(self, key: str, default):
        return (self.app or current_app).config.get(key, default)

    def record(
        self,
        *,
        component: str,
        action: str,
        level: str = "info",
        result: str = "success",
        title: str,
        user_summary: str,
        technical_details: str,
    ) -> SystemLog:
        """Persist one entry and trim the table to ``LOG_RETENTION`` rows."""
        if level not in LEVELS:
            raise ValueError(f"Unsupported level '{level}'")

        entry = SystemLog(
            component=component,
            action=action,
            level=level,
            result=result,
            title=title,
            user_summary=user_summary,
            technical_details=technical_details,
            correlation_id=str(uuid4()),
            environment=self._config("ENVIRONMENT", "development"),
        )
        db.session.add(entry)
        self._trim(self._config("LOG_RETENTION", 200))
        db.session.commit()
        return entry

    def denied(self, *, component: str, action: str, role: str, target: str) -> SystemLog:
        """Record a privileged action that was silently skipped."""
        return self.record(
            component=component,
            action=action,
            level="warn",
            result="denied",
            title="Privileged action skipped",
            user_summary=f"A {role.lower()} session attempted '{action}'; nothing was changed.",
            technical_details=f"{component.lower()}.{action} ignored for role={role} target={target}.",
        )

    def _trim(self, retention: int) -> None:
        db.session.flush()
        excess = SystemLog.query.count() - retention
        if excess <= 0:
            return
        oldest = (
            SystemLog.query.with_entities(SystemLog.id)
            .order_by(SystemLog.timestamp, SystemLog.id)
            .limit(excess)
        )
        SystemLog.query.filter(SystemLog.id.in_([row.id for row in oldest])).delete(
            synchronize_session=False
        )

    def fetch(self, query: LogQuery) -> list[dict[str, str]]:
        """Entries matching ``query``, newest first."""
        rows = SystemLog.query.order_by(SystemLog.timestamp.desc(), SystemLog.id.desc())
        if query.level:
            rows = rows.filter_by(level=query.level)
        if query.component:
            rows = rows.filter_by(component=query.component)
        if query.result:
            rows = rows.filter_by(result=query.result)
        if query.search:
            pattern = f"%{query.search}%"
            rows = rows.filter(
                SystemLog.title.ilike(pattern)
                | SystemLog.user_summary.ilike(pattern)
                | SystemLog.technical_details.ilike(pattern)
            )
        return [entry.serialize() for entry in rows.limit(query.limit).all()]


log_manager = LogManager()
