"""State container and commands for the project portfolio.

``PortfolioState`` is the only writer of the project collection. It holds the
collection and the session user, and writes the whole collection back to its
blob store after every successful mutation. Commands that only touch units or
interactions build an updated project and hand it to ``replace_project``;
their permission checks happen here, before the record is built.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Callable, Iterable, Optional
from uuid import uuid4

from .models import (
    AVAILABLE,
    EnquiryStatus,
    Instrument,
    InstrumentType,
    Interaction,
    Project,
    User,
)
from .store import BlobStore, save_projects


def _now() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid4())


class PortfolioState:
    """Owns the project collection and persists it on every change."""

    def __init__(
        self,
        store: BlobStore,
        *,
        key: str,
        user: User,
        projects: Iterable[Project] = (),
        clock: Callable[[], datetime] = _now,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.store = store
        self.key = key
        self.user = user
        self._projects: tuple[Project, ...] = tuple(projects)
        self.clock = clock
        self.id_factory = id_factory

    @property
    def projects(self) -> tuple[Project, ...]:
        return self._projects

    def find_project(self, project_id: str) -> Optional[Project]:
        return next((project for project in self._projects if project.id == project_id), None)

    def _commit(self, projects: Iterable[Project]) -> None:
        self._projects = tuple(projects)
        save_projects(self.store, self.key, self._projects)

    def create_project(self, *, name: str, location: str, description: str = "") -> Optional[Project]:
        """Prepend a new project. Returns None when the session is not privileged."""

        if not self.user.is_privileged:
            return None
        project = Project(
            id=self.id_factory(),
            name=name,
            location=location,
            description=description,
            created_at=self.clock(),
        )
        self._commit((project, *self._projects))
        return project

    def delete_project(self, project_id: str) -> bool:
        """Remove a project with all of its units and interactions."""

        if not self.user.is_privileged:
            return False
        remaining = [project for project in self._projects if project.id != project_id]
        if len(remaining) == len(self._projects):
            return False
        self._commit(remaining)
        return True

    def replace_project(self, updated: Project) -> bool:
        """Swap in ``updated`` for the project with the same id."""

        if self.find_project(updated.id) is None:
            return False
        self._commit(updated if project.id == updated.id else project for project in self._projects)
        return True

    def require_project(self, project_id: str) -> Project:
        project = self.find_project(project_id)
        if project is None:
            raise LookupError(f"Project {project_id} not found")
        return project


def _require_instrument(project: Project, instrument_id: str) -> Instrument:
    instrument = project.find_instrument(instrument_id)
    if instrument is None:
        raise LookupError(f"Unit {instrument_id} not found in project {project.id}")
    return instrument


def _with_instrument(project: Project, instrument: Instrument) -> Project:
    return replace(
        project,
        instruments=tuple(
            instrument if unit.id == instrument.id else unit for unit in project.instruments
        ),
    )


def add_instrument(
    state: PortfolioState,
    project_id: str,
    *,
    number: str,
    instrument_type: InstrumentType,
    base_rate: float,
) -> Optional[Instrument]:
    """Append a unit to a project. Privileged sessions only."""

    if not state.user.is_privileged:
        return None
    project = state.require_project(project_id)
    instrument = Instrument(
        id=state.id_factory(),
        project_id=project.id,
        number=number,
        type=instrument_type,
        base_rate=base_rate,
    )
    state.replace_project(replace(project, instruments=(*project.instruments, instrument)))
    return instrument


def log_interaction(
    state: PortfolioState,
    project_id: str,
    instrument_id: str,
    *,
    agent_name: str,
    agent_phone: str,
    customer_name: str,
    customer_phone: str,
    offered_rate: float = 0.0,
    status: EnquiryStatus = EnquiryStatus.ACTIVE,
    notes: str = "",
) -> Interaction:
    """Prepend a new interaction to a unit. Any role may do this."""

    project = state.require_project(project_id)
    instrument = _require_instrument(project, instrument_id)
    interaction = Interaction(
        id=state.id_factory(),
        agent_name=agent_name,
        agent_phone=agent_phone,
        customer_name=customer_name,
        customer_phone=customer_phone,
        offered_rate=offered_rate,
        status=status,
        date=state.clock(),
        notes=notes,
    )
    updated = replace(instrument, interactions=(interaction, *instrument.interactions))
    state.replace_project(_with_instrument(project, updated))
    return interaction


def set_interaction_status(
    state: PortfolioState,
    project_id: str,
    instrument_id: str,
    interaction_id: str,
    status: EnquiryStatus,
) -> bool:
    """Set any status on an interaction; there is no forward-only rule and no lock on SOLD."""

    if not state.user.is_privileged:
        return False
    project = state.require_project(project_id)
    instrument = _require_instrument(project, instrument_id)
    if not any(item.id == interaction_id for item in instrument.interactions):
        raise LookupError(f"Interaction {interaction_id} not found")
    updated = replace(
        instrument,
        interactions=tuple(
            replace(item, status=status) if item.id == interaction_id else item
            for item in instrument.interactions
        ),
    )
    return state.replace_project(_with_instrument(project, updated))


def delete_interaction(
    state: PortfolioState, project_id: str, instrument_id: str, interaction_id: str
) -> bool:
    """Remove one interaction from a unit. Privileged sessions only."""

    if not state.user.is_privileged:
        return False
    project = state.require_project(project_id)
    instrument = _require_instrument(project, instrument_id)
    remaining = tuple(item for item in instrument.interactions if item.id != interaction_id)
    if len(remaining) == len(instrument.interactions):
        raise LookupError(f"Interaction {interaction_id} not found")
    return state.replace_project(_with_instrument(project, replace(instrument, interactions=remaining)))


def units_for_project(projects: Iterable[Project], project_id: Optional[str]) -> list[Instrument]:
    """Units offered by the enrollment unit selector for the chosen project."""

    if not project_id:
        return []
    project = next((item for item in projects if item.id == project_id), None)
    return list(project.instruments) if project else []


def enroll(
    state: PortfolioState,
    *,
    project_id: str,
    unit_id: str,
    **fields,
) -> Optional[Interaction]:
    """Log an interaction from the enrollment panel.

    Both a project and a unit must be selected; otherwise nothing happens.
    """

    if not project_id or not unit_id or state.find_project(project_id) is None:
        return None
    return log_interaction(state, project_id, unit_id, **fields)


@dataclass(frozen=True)
class ProjectStats:
    total_units: int
    total_interactions: int
    average_offered_rate: float
    unit_status_counts: dict[str, int]


def project_stats(project: Project) -> ProjectStats:
    """Headline numbers for the detail view."""

    interactions = [item for unit in project.instruments for item in unit.interactions]
    average = (
        sum(item.offered_rate for item in interactions) / len(interactions)
        if interactions
        else 0.0
    )
    counts = {status.value: 0 for status in EnquiryStatus}
    counts[AVAILABLE] = 0
    for unit in project.instruments:
        counts[unit.current_status] += 1
    return ProjectStats(
        total_units=len(project.instruments),
        total_interactions=len(interactions),
        average_offered_rate=average,
        unit_status_counts=counts,
    )


def parse_rate(value: object) -> float:
    """Convert a submitted rate; blank input counts as zero."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return 0.0
    try:
        rate = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("Rates must be numeric.") from exc
    if not math.isfinite(rate):
        raise ValueError("Rates must be numeric.")
    if rate < 0:
        raise ValueError("Rates cannot be negative.")
    return rate


def format_rate(value: float) -> str:
    """Render a rate without a trailing ``.0`` for whole numbers."""

    return str(int(value)) if float(value).is_integer() else str(value)
