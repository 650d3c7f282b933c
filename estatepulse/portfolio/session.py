"""Per-request wiring of the session user and the portfolio state."""
from __future__ import annotations

from flask import current_app, g, request, session

from ..logging_service import log_manager
from .models import User, UserRole, user_for_role
from .services import PortfolioState
from .store import DatabaseBlobStore, PortfolioDecodeError, load_projects

_TRUTHY = {"1", "true", "yes", "on"}


def current_user() -> User:
    """Return the session user, starting from the configured default role."""

    role = session.get("role") or current_app.config.get("DEFAULT_ROLE", UserRole.EDITOR.value)
    return user_for_role(role)


def set_role(role: UserRole) -> User:
    session["role"] = role.value
    g.pop("portfolio_state", None)
    return user_for_role(role)


def toggle_role() -> User:
    user = current_user()
    return set_role(UserRole.EDITOR if user.is_privileged else UserRole.ADMIN)


def elevate_from_request() -> None:
    """Grant the ADMIN role when the startup query parameter is present."""

    param = current_app.config.get("ADMIN_QUERY_PARAM", "admin")
    value = request.args.get(param)
    if value is None or value.strip().lower() not in _TRUTHY:
        return
    if current_user().is_privileged:
        return
    set_role(UserRole.ADMIN)
    log_manager.record(
        component="Session",
        action="elevate",
        title="Session elevated",
        user_summary="Administrative access granted from the start-up link.",
        technical_details=f"session.elevate_from_request matched ?{param}={value} on {request.path}.",
    )


def get_portfolio_state() -> PortfolioState:
    """Load the project collection once per request."""

    state = g.get("portfolio_state")
    if state is not None:
        return state

    store = DatabaseBlobStore()
    key = current_app.config.get("STORAGE_KEY", "estate_projects")
    try:
        projects = load_projects(store, key)
    except PortfolioDecodeError as exc:
        log_manager.record(
            component="Portfolio",
            action="load",
            level="warn",
            result="warn",
            title="Stored portfolio unreadable",
            user_summary="Saved project data could not be read; starting from an empty portfolio.",
            technical_details=f"session.get_portfolio_state failed to decode key={key}: {exc}",
        )
        projects = []

    state = PortfolioState(store, key=key, user=current_user(), projects=projects)
    g.portfolio_state = state
    return state
