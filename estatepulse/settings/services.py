"""Timezone handling for report dates and log timestamps."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..extensions import db
from .models import AppSettings

AVAILABLE_TIMEZONES: tuple[tuple[str, str], ...] = (
    ("UTC", "Coordinated Universal Time"),
    ("Asia/Kolkata", "India Standard Time"),
    ("Asia/Dubai", "Gulf Standard Time"),
    ("Asia/Singapore", "Singapore Time"),
    ("Europe/London", "Greenwich Mean Time"),
    ("Europe/Berlin", "Central European Time"),
    ("America/New_York", "Eastern Time - US & Canada"),
    ("America/Los_Angeles", "Pacific Time - US & Canada"),
    ("Australia/Sydney", "Australian Eastern Time"),
)

_timezone_cache: dict[str, ZoneInfo] = {}


@dataclass(frozen=True)
class TimezoneOption:
    """Simple representation of a selectable timezone."""

    value: str
    label: str
    offset: str

    @property
    def display_label(self) -> str:
        return f"{self.label} ({self.offset})"


def _resolve_zoneinfo(name: str) -> ZoneInfo:
    """Return a ZoneInfo instance, falling back to UTC for unknown names."""

    zone = _timezone_cache.get(name)
    if zone:
        return zone
    try:
        zone = ZoneInfo(name)
    except ZoneInfoNotFoundError:
        zone = ZoneInfo("UTC")
    _timezone_cache[name] = zone
    return zone


def _format_offset(delta: timedelta | None) -> str:
    if delta is None:
        return "UTC+00:00"
    minutes = int(delta.total_seconds() // 60)
    sign = "+" if minutes >= 0 else "-"
    hours, remainder = divmod(abs(minutes), 60)
    return f"UTC{sign}{hours:02d}:{remainder:02d}"


def get_app_settings() -> AppSettings:
    """Return the persisted settings row, creating it with defaults when missing."""

    settings = AppSettings.query.first()
    if settings is None:
        settings = AppSettings(timezone="UTC")
        db.session.add(settings)
        db.session.commit()
    elif not settings.timezone:
        settings.timezone = "UTC"
        db.session.commit()
    return settings


def get_active_timezone() -> ZoneInfo:
    """Return the ZoneInfo for the configured timezone."""

    return _resolve_zoneinfo(get_app_settings().timezone or "UTC")


def set_timezone(choice: str) -> AppSettings:
    """Persist a new timezone selection; unsupported names become UTC."""

    valid_names = {value for value, _ in AVAILABLE_TIMEZONES}
    settings = get_app_settings()
    settings.timezone = choice if choice in valid_names else "UTC"
    db.session.add(settings)
    db.session.commit()
    return settings


def get_timezone_options() -> list[TimezoneOption]:
    """Return curated timezone options for the settings page."""

    now_utc = datetime.now(timezone.utc)
    return [
        TimezoneOption(
            value=value,
            label=label,
            offset=_format_offset(now_utc.astimezone(_resolve_zoneinfo(value)).utcoffset()),
        )
        for value, label in AVAILABLE_TIMEZONES
    ]


def describe_timezone(name: str | None) -> str:
    """Return a friendly label for the selected timezone."""

    name = name or "UTC"
    label = dict(AVAILABLE_TIMEZONES).get(name, name)
    offset = _format_offset(
        datetime.now(timezone.utc).astimezone(_resolve_zoneinfo(name)).utcoffset()
    )
    return f"{label} ({offset})"


def convert_to_active_timezone(value: datetime) -> datetime:
    """Convert a datetime (naive values are taken as UTC) to the configured timezone."""

    if not isinstance(value, datetime):
        raise TypeError("Datetime objects are required for timezone conversion")

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(get_active_timezone())


def format_local_date(value: datetime) -> str:
    """Render a timestamp as M/D/YYYY in the configured timezone."""

    localized = convert_to_active_timezone(value)
    return f"{localized.month}/{localized.day}/{localized.year}"
