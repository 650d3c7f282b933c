"""JSON codec for the project collection and the blob stores that hold it.

The whole collection is kept as a single JSON document under one key. Field
names are camelCase so a document exported from the browser build loads
unchanged.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol

from ..extensions import db
from ..models import StoredBlob
from .models import EnquiryStatus, Instrument, InstrumentType, Interaction, Project


class PortfolioDecodeError(ValueError):
    """Raised when a stored document cannot be turned back into projects."""


class BlobStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def put(self, key: str, value: str) -> None: ...


class MemoryBlobStore:
    """Dictionary-backed store, used outside of an application context."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.values: dict[str, str] = dict(initial or {})
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def put(self, key: str, value: str) -> None:
        self.values[key] = value
        self.writes += 1


class DatabaseBlobStore:
    """Store blobs as rows of the stored_blob table."""

    def get(self, key: str) -> Optional[str]:
        row = db.session.get(StoredBlob, key)
        return row.value if row else None

    def put(self, key: str, value: str) -> None:
        row = db.session.get(StoredBlob, key)
        if row is None:
            row = StoredBlob(storage_key=key, value=value)
        else:
            row.value = value
        db.session.add(row)
        db.session.commit()


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _parse_timestamp(value: str) -> datetime:
    # browser timestamps end in "Z"
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def interaction_to_dict(interaction: Interaction) -> dict[str, Any]:
    return {
        "id": interaction.id,
        "agentName": interaction.agent_name,
        "agentPhone": interaction.agent_phone,
        "customerName": interaction.customer_name,
        "customerPhone": interaction.customer_phone,
        "offeredRate": interaction.offered_rate,
        "date": _format_timestamp(interaction.date),
        "status": interaction.status.value,
        "notes": interaction.notes,
    }


def instrument_to_dict(instrument: Instrument) -> dict[str, Any]:
    return {
        "id": instrument.id,
        "projectId": instrument.project_id,
        "number": instrument.number,
        "type": instrument.type.value,
        "baseRate": instrument.base_rate,
        "interactions": [interaction_to_dict(item) for item in instrument.interactions],
    }


def project_to_dict(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "location": project.location,
        "description": project.description,
        "instruments": [instrument_to_dict(unit) for unit in project.instruments],
        "createdAt": _format_timestamp(project.created_at),
    }


def _interaction_from_dict(data: dict[str, Any]) -> Interaction:
    return Interaction(
        id=str(data["id"]),
        agent_name=data.get("agentName", ""),
        agent_phone=data.get("agentPhone", ""),
        customer_name=data.get("customerName", ""),
        customer_phone=data.get("customerPhone", ""),
        offered_rate=float(data.get("offeredRate") or 0),
        status=EnquiryStatus(data["status"]),
        date=_parse_timestamp(data["date"]),
        notes=data.get("notes") or "",
    )


def _instrument_from_dict(data: dict[str, Any]) -> Instrument:
    return Instrument(
        id=str(data["id"]),
        project_id=str(data.get("projectId", "")),
        number=data.get("number", ""),
        type=InstrumentType(data["type"]),
        base_rate=float(data.get("baseRate") or 0),
        interactions=tuple(_interaction_from_dict(item) for item in data.get("interactions", [])),
    )


def _project_from_dict(data: dict[str, Any]) -> Project:
    return Project(
        id=str(data["id"]),
        name=data.get("name", ""),
        location=data.get("location", ""),
        description=data.get("description", ""),
        created_at=_parse_timestamp(data["createdAt"]),
        instruments=tuple(_instrument_from_dict(item) for item in data.get("instruments", [])),
    )


def serialize_projects(projects: Iterable[Project]) -> str:
    return json.dumps([project_to_dict(project) for project in projects])


def deserialize_projects(text: str) -> list[Project]:
    """Parse a stored document back into projects."""

    try:
        payload = json.loads(text)
        if not isinstance(payload, list):
            raise TypeError(f"expected a list, got {type(payload).__name__}")
        return [_project_from_dict(item) for item in payload]
    except (TypeError, ValueError, KeyError, AttributeError) as exc:
        raise PortfolioDecodeError(f"Stored portfolio is malformed: {exc}") from exc


def load_projects(store: BlobStore, key: str) -> list[Project]:
    """Read the collection; a missing key yields an empty collection."""

    text = store.get(key)
    if text is None:
        return []
    return deserialize_projects(text)


def save_projects(store: BlobStore, key: str, projects: Iterable[Project]) -> None:
    store.put(key, serialize_projects(projects))
