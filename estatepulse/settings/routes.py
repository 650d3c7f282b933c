"""HTTP routes for managing global system settings."""
from __future__ import annotations

from flask import render_template, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..logging_service import log_manager
from . import bp
from .services import (
    describe_timezone,
    get_app_settings,
    get_timezone_options,
    set_timezone,
)


@bp.route("/", methods=["GET", "POST"])
def preferences():
    """Display and update the timezone used for report and log dates."""

    feedback: dict[str, str] | None = None
    settings = get_app_settings()
    timezone_options = get_timezone_options()

    if request.method == "POST":
        requested_timezone = request.form.get("timezone", "")

        if requested_timezone not in {option.value for option in timezone_options}:
            feedback = {
                "type": "error",
                "message": "Select a timezone from the list before saving.",
            }
        else:
            try:
                settings = set_timezone(requested_timezone)
            except SQLAlchemyError as exc:
                db.session.rollback()
                log_manager.record(
                    component="Settings",
                    action="update-timezone",
                    level="error",
                    result="error",
                    title="Timezone update failed",
                    user_summary="The system could not save the new timezone. Try again shortly.",
                    technical_details=(
                        "settings.set_timezone raised"
                        f" {exc.__class__.__name__}: {exc}"
                    ),
                )
                feedback = {
                    "type": "error",
                    "message": "We were unable to update the timezone. Refresh the page and try again.",
                }
            else:
                timezone_label = describe_timezone(settings.timezone)
                log_manager.record(
                    component="Settings",
                    action="update-timezone",
                    title="Timezone updated",
                    user_summary=f"Report dates now use {timezone_label}.",
                    technical_details=f"settings.set_timezone persisted timezone={settings.timezone}",
                )
                feedback = {
                    "type": "success",
                    "message": f"Timezone updated to {timezone_label}.",
                }
    else:
        log_manager.record(
            component="Settings",
            action="view-settings",
            title="Settings viewed",
            user_summary="System settings page opened.",
            technical_details="settings.preferences rendered the timezone selector.",
        )

    return render_template(
        "settings/system.html",
        title="EstatePulse - Settings",
        settings=settings,
        timezone_options=timezone_options,
        timezone_label=describe_timezone(settings.timezone),
        feedback=feedback,
        active_nav="settings",
    )
