"""Plain records describing projects, units and customer interactions."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

AVAILABLE = "AVAILABLE"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"


class InstrumentType(str, Enum):
    PLOT = "PLOT"
    FLAT = "FLAT"
    HOUSE = "HOUSE"


class EnquiryStatus(str, Enum):
    ACTIVE = "ACTIVE"
    BOOKED = "BOOKED"
    SOLD = "SOLD"


@dataclass(frozen=True)
class Interaction:
    """A logged customer enquiry against a unit."""

    id: str
    agent_name: str
    agent_phone: str
    customer_name: str
    customer_phone: str
    offered_rate: float
    status: EnquiryStatus
    date: datetime
    notes: str = ""


@dataclass(frozen=True)
class Instrument:
    """A sellable unit. Interactions are stored newest first."""

    id: str
    project_id: str
    number: str
    type: InstrumentType
    base_rate: float
    interactions: tuple[Interaction, ...] = ()

    @property
    def latest_interaction(self) -> Optional[Interaction]:
        return self.interactions[0] if self.interactions else None

    @property
    def current_status(self) -> str:
        """Status of the most recent interaction, or AVAILABLE when there is none."""

        latest = self.latest_interaction
        return latest.status.value if latest else AVAILABLE


@dataclass(frozen=True)
class Project:
    """A development holding an ordered list of units."""

    id: str
    name: str
    location: str
    description: str
    created_at: datetime
    instruments: tuple[Instrument, ...] = ()

    def find_instrument(self, instrument_id: str) -> Optional[Instrument]:
        return next((unit for unit in self.instruments if unit.id == instrument_id), None)

    @property
    def interaction_count(self) -> int:
        return sum(len(unit.interactions) for unit in self.instruments)


@dataclass(frozen=True)
class User:
    """Session identity; never persisted."""

    name: str
    role: UserRole
    phone: Optional[str] = None

    @property
    def is_privileged(self) -> bool:
        return self.role is UserRole.ADMIN


SESSION_PROFILES: dict[UserRole, User] = {
    UserRole.ADMIN: User(name="Admin User", role=UserRole.ADMIN, phone="1234567890"),
    UserRole.EDITOR: User(name="Agent Alex", role=UserRole.EDITOR, phone="9876543210"),
}


def user_for_role(role: UserRole | str) -> User:
    """Return the session profile for a role name; unknown names map to EDITOR."""

    if isinstance(role, UserRole):
        return SESSION_PROFILES[role]
    try:
        return SESSION_PROFILES[UserRole(str(role).strip().upper())]
    except ValueError:
        return SESSION_PROFILES[UserRole.EDITOR]
