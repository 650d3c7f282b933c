from __future__ import annotations

from datetime import UTC, datetime
from itertools import count
from pathlib import Path
import sys

import pytest
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from estatepulse import create_app
from estatepulse.config import Config
from estatepulse.extensions import db
from estatepulse.portfolio.models import UserRole, user_for_role
from estatepulse.portfolio.services import PortfolioState
from estatepulse.portfolio.store import MemoryBlobStore


class TestingConfig(Config):
    """Configuration tuned for isolated unit tests."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }
    DEFAULT_ROLE = "EDITOR"
    GEMINI_API_KEY = ""


class StubInsightProvider:
    """Insight provider that returns canned text or raises."""

    def __init__(self, text: str = "Focus on corner plots.", error: Exception | None = None):
        self.text = text
        self.error = error
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture()
def app():
    """Create a Flask app instance backed by an in-memory database."""

    application = create_app(TestingConfig)
    application.extensions["insight_provider"] = StubInsightProvider()
    yield application
    with application.app_context():
        db.drop_all()
        db.session.remove()


@pytest.fixture()
def client(app):
    """Provide a Flask test client for request assertions."""

    return app.test_client()


@pytest.fixture()
def admin_client(client):
    """A test client whose session holds the ADMIN role."""

    with client.session_transaction() as session:
        session["role"] = UserRole.ADMIN.value
    return client


def make_state(role: UserRole = UserRole.ADMIN, store: MemoryBlobStore | None = None, projects=()):
    """Build a state container with predictable ids and timestamps."""

    sequence = count(1)
    ticks = count(0)
    return PortfolioState(
        store if store is not None else MemoryBlobStore(),
        key="estate_projects",
        user=user_for_role(role),
        projects=projects,
        clock=lambda: datetime(2024, 5, 1, 9, 0, next(ticks), tzinfo=UTC),
        id_factory=lambda: f"id-{next(sequence)}",
    )


@pytest.fixture()
def state_factory():
    """Expose ``make_state`` to tests."""

    return make_state
