"""Generative sales-strategy summaries for a project.

The portfolio code only sees ``InsightProvider``: a prompt goes in, text comes
out or an exception is raised. Any failure becomes ``FALLBACK_INSIGHT``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol

import google.generativeai as genai

if TYPE_CHECKING:
    from .portfolio.models import Project

FALLBACK_INSIGHT = "AI insight service currently unavailable."


class InsightUnavailable(RuntimeError):
    """Raised when the provider cannot produce any text."""


class InsightStatus(str, Enum):
    PENDING = "pending"
    SETTLED = "settled"
    FAILED = "failed"


class InsightProvider(Protocol):
    def generate(self, prompt: str) -> str: ...


class GeminiInsightProvider:
    """Provider backed by Google's Gemini models."""

    def __init__(self, *, api_key: str, model_name: str) -> None:
        self.api_key = api_key
        self.model_name = model_name

    def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise InsightUnavailable("Gemini API key not configured")
        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(self.model_name)
        response = model.generate_content(prompt)
        text = getattr(response, "text", "") or ""
        if not text.strip():
            raise InsightUnavailable("Gemini returned an empty response")
        return text


@dataclass
class InsightRequest:
    """One insight request and its outcome."""

    project_id: str
    prompt: str
    status: InsightStatus = InsightStatus.PENDING
    text: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "project_id": self.project_id,
            "status": self.status.value,
            "text": self.text,
        }


def build_insight_prompt(project: Project) -> str:
    return (
        "Perform a high-level real estate market analysis for project: "
        f"{project.name} in {project.location}. "
        f"Stats: {len(project.instruments)} total units, "
        f"{project.interaction_count} client interactions. "
        "Recommend a sales strategy. Concise, under 120 words."
    )


def generate_insight(project: Project, provider: InsightProvider) -> InsightRequest:
    """Ask the provider for a strategy summary; failures settle on the fallback text."""

    request = InsightRequest(project_id=project.id, prompt=build_insight_prompt(project))
    try:
        request.text = provider.generate(request.prompt)
    except Exception as exc:  # noqa: BLE001 - any provider failure maps to the fallback
        request.status = InsightStatus.FAILED
        request.text = FALLBACK_INSIGHT
        request.error = f"{exc.__class__.__name__}: {exc}"
    else:
        request.status = InsightStatus.SETTLED
    return request
