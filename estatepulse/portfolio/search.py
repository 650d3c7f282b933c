"""Substring search across projects, units and interactions."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .models import Instrument, Interaction, Project


class MatchKind(str, Enum):
    PROJECT = "PROJECT"
    UNIT = "UNIT"
    INTERACTION = "INTERACTION"


@dataclass(frozen=True)
class SearchResult:
    kind: MatchKind
    project: Project
    instrument: Optional[Instrument] = None
    interaction: Optional[Interaction] = None


def _contains(needle: str, *haystacks: str) -> bool:
    return any(needle in (value or "").lower() for value in haystacks)


def search_portfolio(projects: Iterable[Project], query: str) -> list[SearchResult]:
    """Return matches in project, unit, interaction traversal order.

    A blank query returns nothing rather than everything. Non-blank queries
    are matched as typed, surrounding spaces included.
    """

    if not (query or "").strip():
        return []
    needle = query.lower()

    results: list[SearchResult] = []
    for project in projects:
        if _contains(needle, project.name, project.location):
            results.append(SearchResult(MatchKind.PROJECT, project))
        for unit in project.instruments:
            if _contains(needle, unit.number):
                results.append(SearchResult(MatchKind.UNIT, project, unit))
            for interaction in unit.interactions:
                if _contains(
                    needle,
                    interaction.customer_name,
                    interaction.customer_phone,
                    interaction.agent_name,
                    interaction.agent_phone,
                ):
                    results.append(SearchResult(MatchKind.INTERACTION, project, unit, interaction))
    return results
