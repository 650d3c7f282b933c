"""Tests for the AI insight wrapper."""

from __future__ import annotations

from estatepulse.insights import (
    FALLBACK_INSIGHT,
    GeminiInsightProvider,
    InsightStatus,
    build_insight_prompt,
    generate_insight,
)
from estatepulse.portfolio.models import InstrumentType
from estatepulse.portfolio.services import add_instrument, log_interaction


class _Provider:
    def __init__(self, *, text="Bundle plots with early-bird pricing.", error=None):
        self.text = text
        self.error = error

    def generate(self, prompt):
        if self.error:
            raise self.error
        return self.text


def _project(state):
    project = state.create_project(name="Lakeview", location="Pune")
    unit = add_instrument(state, project.id, number="#A1", instrument_type=InstrumentType.PLOT, base_rate=1)
    add_instrument(state, project.id, number="#A2", instrument_type=InstrumentType.PLOT, base_rate=1)
    log_interaction(
        state, project.id, unit.id,
        agent_name="a", agent_phone="1", customer_name="c", customer_phone="2",
    )
    return state.find_project(project.id)


def test_prompt_mentions_project_counts(state_factory):
    prompt = build_insight_prompt(_project(state_factory()))

    assert "Lakeview in Pune" in prompt
    assert "2 total units" in prompt
    assert "1 client interactions" in prompt
    assert "under 120 words" in prompt


def test_successful_provider_settles_with_its_text(state_factory):
    insight = generate_insight(_project(state_factory()), _Provider())

    assert insight.status is InsightStatus.SETTLED
    assert insight.text == "Bundle plots with early-bird pricing."
    assert insight.error is None


def test_provider_failure_maps_to_fallback(state_factory):
    insight = generate_insight(_project(state_factory()), _Provider(error=TimeoutError("slow")))

    assert insight.status is InsightStatus.FAILED
    assert insight.text == FALLBACK_INSIGHT
    assert "TimeoutError" in insight.error


def test_gemini_provider_without_key_falls_back(state_factory):
    provider = GeminiInsightProvider(api_key="", model_name="gemini-2.5-flash")

    insight = generate_insight(_project(state_factory()), provider)

    assert insight.status is InsightStatus.FAILED
    assert insight.to_dict()["text"] == FALLBACK_INSIGHT
