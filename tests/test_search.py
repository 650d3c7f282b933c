"""Tests for portfolio search."""

from __future__ import annotations

from estatepulse.portfolio.models import InstrumentType
from estatepulse.portfolio.search import MatchKind, search_portfolio
from estatepulse.portfolio.services import add_instrument, log_interaction


def _portfolio(state):
    lakeview = state.create_project(name="Lakeview", location="Pune")
    plot = add_instrument(state, lakeview.id, number="#A1", instrument_type=InstrumentType.PLOT, base_rate=5000)
    log_interaction(
        state,
        lakeview.id,
        plot.id,
        agent_name="Agent Alex",
        agent_phone="9876543210",
        customer_name="Priya Sharma",
        customer_phone="9988776655",
    )
    hilltop = state.create_project(name="Hilltop Greens", location="Lake Road, Nashik")
    add_instrument(state, hilltop.id, number="LK-7", instrument_type=InstrumentType.HOUSE, base_rate=0)
    return state.projects


def test_blank_query_returns_nothing(state_factory):
    projects = _portfolio(state_factory())

    assert search_portfolio(projects, "") == []
    assert search_portfolio(projects, "   ") == []


def test_phone_substring_finds_the_interaction(state_factory):
    """A fragment of a customer phone points at the right project and unit."""

    projects = _portfolio(state_factory())

    results = search_portfolio(projects, "887766")

    assert len(results) == 1
    result = results[0]
    assert result.kind is MatchKind.INTERACTION
    assert result.project.name == "Lakeview"
    assert result.instrument.number == "#A1"
    assert result.interaction.customer_name == "Priya Sharma"


def test_matches_are_case_insensitive_and_in_traversal_order(state_factory):
    """Projects come first, then their units, then interactions, project by project."""

    projects = _portfolio(state_factory())

    results = search_portfolio(projects, "LAKE")

    # Hilltop was created last so it is first in the collection
    assert [(result.kind, result.project.name) for result in results] == [
        (MatchKind.PROJECT, "Hilltop Greens"),
        (MatchKind.PROJECT, "Lakeview"),
    ]


def test_unit_number_and_agent_name_match(state_factory):
    projects = _portfolio(state_factory())

    unit_hits = search_portfolio(projects, "lk-")
    agent_hits = search_portfolio(projects, "alex")

    assert [result.kind for result in unit_hits] == [MatchKind.UNIT]
    assert unit_hits[0].instrument.number == "LK-7"
    assert [result.kind for result in agent_hits] == [MatchKind.INTERACTION]


def test_surrounding_spaces_are_part_of_the_query(state_factory):
    projects = _portfolio(state_factory())

    leading = search_portfolio(projects, " alex")

    assert [result.kind for result in leading] == [MatchKind.INTERACTION]
    assert leading[0].interaction.agent_name == "Agent Alex"
    assert search_portfolio(projects, "alex ") == []
