"""Tests for the JSON codec and blob stores."""

from __future__ import annotations

import json

import pytest

from estatepulse.portfolio.models import EnquiryStatus, InstrumentType
from estatepulse.portfolio.services import add_instrument, log_interaction
from estatepulse.portfolio.store import (
    DatabaseBlobStore,
    MemoryBlobStore,
    PortfolioDecodeError,
    deserialize_projects,
    load_projects,
    save_projects,
    serialize_projects,
)


def test_round_trip_reproduces_the_collection(state_factory):
    state = state_factory()
    project = state.create_project(name="Lakeview", location="Pune", description="Phase 1")
    unit = add_instrument(state, project.id, number="#A1", instrument_type=InstrumentType.HOUSE, base_rate=7250.75)
    log_interaction(
        state,
        project.id,
        unit.id,
        agent_name="Agent Alex",
        agent_phone="9876543210",
        customer_name="Priya",
        customer_phone="9988776655",
        offered_rate=7000,
        status=EnquiryStatus.BOOKED,
        notes="Wants corner unit",
    )

    assert deserialize_projects(serialize_projects(state.projects)) == list(state.projects)


def test_missing_key_is_an_empty_collection():
    assert load_projects(MemoryBlobStore(), "estate_projects") == []


@pytest.mark.parametrize("text", ["not json", "{}", '[{"name": "no id"}]', '[{"id": "1", "createdAt": "x"}]'])
def test_malformed_documents_raise_decode_error(text):
    with pytest.raises(PortfolioDecodeError):
        deserialize_projects(text)


def test_browser_document_loads_unchanged():
    """Blobs written by the browser build use camelCase keys and Z timestamps."""

    document = json.dumps(
        [
            {
                "id": "p1",
                "name": "Lakeview",
                "location": "Pune",
                "description": "",
                "createdAt": "2024-05-01T09:00:00.000Z",
                "instruments": [
                    {
                        "id": "u1",
                        "projectId": "p1",
                        "number": "#A1",
                        "type": "PLOT",
                        "baseRate": 5000,
                        "interactions": [
                            {
                                "id": "i1",
                                "agentName": "Agent Alex",
                                "agentPhone": "9876543210",
                                "customerName": "Priya",
                                "customerPhone": "9988776655",
                                "offeredRate": 4900,
                                "date": "2024-05-02T10:30:00.000Z",
                                "status": "SOLD",
                            }
                        ],
                    }
                ],
            }
        ]
    )

    (project,) = deserialize_projects(document)

    assert project.instruments[0].current_status == "SOLD"
    assert project.instruments[0].interactions[0].notes == ""
    assert project.created_at.year == 2024


def test_database_store_overwrites_the_same_key(app, state_factory):
    state = state_factory()
    state.create_project(name="Lakeview", location="Pune")

    with app.app_context():
        store = DatabaseBlobStore()
        assert store.get("estate_projects") is None
        save_projects(store, "estate_projects", state.projects)
        save_projects(store, "estate_projects", ())

        assert load_projects(store, "estate_projects") == []
