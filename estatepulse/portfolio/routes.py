"""Routes for the project list, detail, search, export and JSON API."""
from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import TypeVar

from flask import (
    Response,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)

from ..insights import InsightRequest, InsightStatus, generate_insight
from ..logging_service import log_manager
from ..settings.services import format_local_date
from . import bp
from .models import EnquiryStatus, InstrumentType, Project
from .report import build_report_rows, render_report, report_filename
from .search import search_portfolio
from .services import (
    add_instrument,
    delete_interaction,
    enroll,
    format_rate,
    log_interaction,
    parse_rate,
    project_stats,
    set_interaction_status,
    units_for_project,
)
from .session import current_user, get_portfolio_state, toggle_role
from .store import instrument_to_dict, interaction_to_dict, project_to_dict

E = TypeVar("E", bound=Enum)

INTERACTION_FIELDS = ("agent_name", "agent_phone", "customer_name", "customer_phone")


def _json_response(payload: dict[str, object], *, status: int = 200):
    """Return a JSON response with a consistent structure."""

    response = jsonify(payload)
    response.status_code = status
    return response


def _json_error(message: str, *, status: int = 400):
    return _json_response({"success": False, "message": message}, status=status)


def _parse_choice(enum_cls: type[E], value: object, default: E, label: str) -> E:
    if value in (None, ""):
        return default
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError as exc:
        raise ValueError(f"Unknown {label} '{value}'.") from exc


def _parse_interaction_fields(data) -> dict[str, object]:
    """Validate the fields shared by the enrollment and unit history forms."""

    fields: dict[str, object] = {name: (data.get(name) or "").strip() for name in INTERACTION_FIELDS}
    missing = [name.replace("_", " ") for name, value in fields.items() if not value]
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}.")
    fields["offered_rate"] = parse_rate(data.get("offered_rate"))
    fields["status"] = _parse_choice(
        EnquiryStatus, data.get("status"), EnquiryStatus.ACTIVE, "enquiry status"
    )
    fields["notes"] = (data.get("notes") or "").strip()
    return fields


def _serialize_project(project: Project) -> dict[str, object]:
    payload = project_to_dict(project)
    stats = project_stats(project)
    payload["stats"] = {
        "totalUnits": stats.total_units,
        "totalInteractions": stats.total_interactions,
        "averageOfferedRate": stats.average_offered_rate,
        "unitStatusCounts": stats.unit_status_counts,
    }
    for unit_payload, unit in zip(payload["instruments"], project.instruments):
        unit_payload["currentStatus"] = unit.current_status
    return payload


def _not_found(project_id: str):
    log_manager.record(
        component="Portfolio",
        action="not-found",
        level="warn",
        result="warn",
        title="Project not found",
        user_summary="A project page was requested for a project that does not exist.",
        technical_details=f"portfolio lookup failed for project_id={project_id}.",
    )
    return (
        render_template(
            "portfolio/not_found.html",
            title="EstatePulse - Not Found",
            project_id=project_id,
            active_nav="projects",
        ),
        404,
    )


def _deny(action: str, target: str) -> None:
    log_manager.denied(
        component="Portfolio", action=action, role=current_user().role.value, target=target
    )


def _json_object() -> dict | None:
    """Return the request body when it is a JSON object, else None."""

    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    return payload if isinstance(payload, dict) else None


def _render_detail(project: Project, insight: InsightRequest | None = None):
    return render_template(
        "portfolio/detail.html",
        title=f"EstatePulse - {project.name}",
        project=project,
        stats=project_stats(project),
        instrument_types=list(InstrumentType),
        statuses=list(EnquiryStatus),
        insight=insight,
        format_rate=format_rate,
        format_date=format_local_date,
        active_nav="projects",
    )


def _run_insight(project: Project) -> InsightRequest:
    """Ask the configured provider for a strategy summary and log the outcome."""

    insight = generate_insight(project, current_app.extensions["insight_provider"])
    if insight.status is InsightStatus.FAILED:
        log_manager.record(
            component="Insights",
            action="generate",
            level="error",
            result="error",
            title="AI insight failed",
            user_summary="The insight service was unavailable; showed the fallback message.",
            technical_details=f"insights.generate_insight failed for {project.id}: {insight.error}",
        )
    else:
        log_manager.record(
            component="Insights",
            action="generate",
            title="AI insight generated",
            user_summary=f"Generated a sales strategy for '{project.name}'.",
            technical_details=f"insights.generate_insight settled for {project.id}.",
        )
    return insight


@bp.route("/")
def index():
    """Project list with the enrollment panel."""

    state = get_portfolio_state()
    selected_project = request.args.get("project", "")
    units = units_for_project(state.projects, selected_project)

    log_manager.record(
        component="Portfolio",
        action="view",
        title="Project list opened",
        user_summary=f"Listed {len(state.projects)} projects.",
        technical_details=(
            f"portfolio.index rendered {len(state.projects)} projects and"
            f" {len(units)} units for project={selected_project or '-'}."
        ),
    )
    return render_template(
        "portfolio/index.html",
        title="EstatePulse - Projects",
        projects=state.projects,
        stats={project.id: project_stats(project) for project in state.projects},
        selected_project=selected_project,
        units=units,
        statuses=list(EnquiryStatus),
        active_nav="projects",
    )


@bp.post("/projects")
def create_project():
    """Create a project from the admin modal."""

    state = get_portfolio_state()
    name = (request.form.get("name") or "").strip()
    location = (request.form.get("location") or "").strip()
    description = (request.form.get("description") or "").strip()

    if not state.user.is_privileged:
        _deny("create-project", name or "-")
        return redirect(url_for("portfolio.index"))
    if not name or not location:
        flash("A project needs both a name and a location.", "error")
        return redirect(url_for("portfolio.index"))

    project = state.create_project(name=name, location=location, description=description)
    log_manager.record(
        component="Portfolio",
        action="create-project",
        title="Project created",
        user_summary=f"Added project '{project.name}' in {project.location}.",
        technical_details=f"portfolio.create_project stored project {project.id}.",
    )
    flash(f"Project '{project.name}' created.", "success")
    return redirect(url_for("portfolio.index"))


@bp.post("/projects/<project_id>/delete")
def delete_project(project_id: str):
    """Delete a project with all its units and interactions."""

    state = get_portfolio_state()
    if not state.user.is_privileged:
        _deny("delete-project", project_id)
        return redirect(url_for("portfolio.index"))

    project = state.find_project(project_id)
    if project is None or not state.delete_project(project_id):
        flash("Project not found.", "error")
        return redirect(url_for("portfolio.index"))

    log_manager.record(
        component="Portfolio",
        action="delete-project",
        title="Project deleted",
        user_summary=(
            f"Removed '{project.name}' with {len(project.instruments)} units and"
            f" {project.interaction_count} interactions."
        ),
        technical_details=f"portfolio.delete_project removed project {project_id}.",
    )
    flash(f"Project '{project.name}' deleted.", "success")
    return redirect(url_for("portfolio.index"))


@bp.post("/enrollments")
def submit_enrollment():
    """Log an interaction from the enrollment panel."""

    state = get_portfolio_state()
    project_id = request.form.get("project_id", "")
    unit_id = request.form.get("unit_id", "")

    try:
        fields = _parse_interaction_fields(request.form)
        interaction = enroll(state, project_id=project_id, unit_id=unit_id, **fields)
    except ValueError as exc:
        flash(str(exc), "error")
        return redirect(url_for("portfolio.index", project=project_id))
    except LookupError:
        flash("The selected unit no longer exists.", "error")
        return redirect(url_for("portfolio.index", project=project_id))

    if interaction is None:
        flash("Select a project and a unit before submitting.", "error")
        return redirect(url_for("portfolio.index", project=project_id))

    log_manager.record(
        component="Enrollment",
        action="enroll",
        title="Interaction recorded",
        user_summary=(
            f"{interaction.agent_name} logged {interaction.customer_name}"
            f" as {interaction.status.value}."
        ),
        technical_details=(
            f"portfolio.submit_enrollment prepended interaction {interaction.id}"
            f" to unit {unit_id} in project {project_id}."
        ),
    )
    flash("Interaction Recorded!", "success")
    return redirect(url_for("portfolio.index"))


@bp.route("/project/<project_id>")
def project_detail(project_id: str):
    """Units, current statuses and interaction history for one project."""

    state = get_portfolio_state()
    project = state.find_project(project_id)
    if project is None:
        return _not_found(project_id)

    log_manager.record(
        component="Portfolio",
        action="view-project",
        title="Project opened",
        user_summary=f"Opened '{project.name}'.",
        technical_details=f"portfolio.project_detail rendered project {project_id}.",
    )
    return _render_detail(project)


@bp.post("/project/<project_id>/insight")
def project_insight(project_id: str):
    """Render the detail page with a generated sales strategy, or the fallback text."""

    project = get_portfolio_state().find_project(project_id)
    if project is None:
        return _not_found(project_id)
    return _render_detail(project, insight=_run_insight(project))


@bp.post("/project/<project_id>/instruments")
def create_instrument(project_id: str):
    """Add a unit to a project."""

    state = get_portfolio_state()
    if not state.user.is_privileged:
        _deny("create-unit", project_id)
        return redirect(url_for("portfolio.project_detail", project_id=project_id))

    number = (request.form.get("number") or "").strip()
    try:
        if not number:
            raise ValueError("A unit number is required.")
        instrument_type = _parse_choice(
            InstrumentType, request.form.get("type"), InstrumentType.PLOT, "unit type"
        )
        instrument = add_instrument(
            state,
            project_id,
            number=number,
            instrument_type=instrument_type,
            base_rate=parse_rate(request.form.get("base_rate")),
        )
    except LookupError:
        return _not_found(project_id)
    except ValueError as exc:
        flash(str(exc), "error")
        return redirect(url_for("portfolio.project_detail", project_id=project_id))

    log_manager.record(
        component="Portfolio",
        action="create-unit",
        title="Unit added",
        user_summary=f"Added {instrument.type.value} {instrument.number}.",
        technical_details=f"portfolio.create_instrument appended unit {instrument.id} to {project_id}.",
    )
    flash(f"Unit {instrument.number} added.", "success")
    return redirect(url_for("portfolio.project_detail", project_id=project_id))


@bp.post("/project/<project_id>/instruments/<instrument_id>/interactions")
def create_interaction(project_id: str, instrument_id: str):
    """Log an interaction from a unit's history panel."""

    state = get_portfolio_state()
    try:
        fields = _parse_interaction_fields(request.form)
        interaction = log_interaction(state, project_id, instrument_id, **fields)
    except LookupError:
        return _not_found(project_id)
    except ValueError as exc:
        flash(str(exc), "error")
        return redirect(url_for("portfolio.project_detail", project_id=project_id))

    log_manager.record(
        component="Enrollment",
        action="log-interaction",
        title="Interaction recorded",
        user_summary=f"Logged {interaction.customer_name} against a unit.",
        technical_details=(
            f"portfolio.create_interaction prepended {interaction.id} to unit {instrument_id}."
        ),
    )
    flash("Interaction Recorded!", "success")
    return redirect(url_for("portfolio.project_detail", project_id=project_id))


@bp.post("/project/<project_id>/instruments/<instrument_id>/interactions/<interaction_id>/status")
def update_interaction_status(project_id: str, instrument_id: str, interaction_id: str):
    """Set an interaction to any enquiry status."""

    state = get_portfolio_state()
    if not state.user.is_privileged:
        _deny("update-status", interaction_id)
        return redirect(url_for("portfolio.project_detail", project_id=project_id))

    try:
        status = _parse_choice(EnquiryStatus, request.form.get("status"), None, "enquiry status")
        if status is None:
            raise ValueError("Choose a status.")
        set_interaction_status(state, project_id, instrument_id, interaction_id, status)
    except LookupError:
        return _not_found(project_id)
    except ValueError as exc:
        flash(str(exc), "error")
        return redirect(url_for("portfolio.project_detail", project_id=project_id))

    log_manager.record(
        component="Portfolio",
        action="update-status",
        title="Enquiry status changed",
        user_summary=f"Interaction marked {status.value}.",
        technical_details=f"portfolio.update_interaction_status set {interaction_id} to {status.value}.",
    )
    return redirect(url_for("portfolio.project_detail", project_id=project_id))


@bp.post("/project/<project_id>/instruments/<instrument_id>/interactions/<interaction_id>/delete")
def remove_interaction(project_id: str, instrument_id: str, interaction_id: str):
    """Delete a customer entry from a unit."""

    state = get_portfolio_state()
    if not state.user.is_privileged:
        _deny("delete-interaction", interaction_id)
        return redirect(url_for("portfolio.project_detail", project_id=project_id))

    try:
        delete_interaction(state, project_id, instrument_id, interaction_id)
    except LookupError:
        return _not_found(project_id)

    log_manager.record(
        component="Portfolio",
        action="delete-interaction",
        title="Interaction deleted",
        user_summary="A customer entry was removed.",
        technical_details=f"portfolio.remove_interaction dropped {interaction_id} from unit {instrument_id}.",
    )
    flash("Customer entry deleted.", "success")
    return redirect(url_for("portfolio.project_detail", project_id=project_id))


@bp.route("/search")
def search():
    """Search customers, agents, phones and unit numbers."""

    state = get_portfolio_state()
    query = request.args.get("q", "")
    results = search_portfolio(state.projects, query)

    if query.strip():
        log_manager.record(
            component="Search",
            action="search",
            title="Portfolio searched",
            user_summary=f"Search for '{query.strip()}' returned {len(results)} matches.",
            technical_details=f"portfolio.search scanned {len(state.projects)} projects.",
        )
    return render_template(
        "portfolio/search.html",
        title="EstatePulse - Search",
        query=query,
        results=results,
        format_rate=format_rate,
        format_date=format_local_date,
        active_nav="search",
    )


@bp.route("/export")
def export_report():
    """Download the flattened CSV report."""

    state = get_portfolio_state()
    rows = build_report_rows(state.projects, format_date=format_local_date)
    filename = report_filename(datetime.now(UTC).date())

    log_manager.record(
        component="Reports",
        action="export",
        title="Report exported",
        user_summary=f"Exported {len(rows) - 1} report rows.",
        technical_details=f"portfolio.export_report built {filename}.",
    )
    return Response(
        render_report(rows),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@bp.post("/session/role")
def switch_role():
    """Toggle between the admin and editor roles."""

    user = toggle_role()
    log_manager.record(
        component="Session",
        action="toggle-role",
        title="Role switched",
        user_summary=f"Now working as {user.name} ({user.role.value}).",
        technical_details=f"session.toggle_role set role={user.role.value}.",
    )
    return redirect(request.referrer or url_for("portfolio.index"))


@bp.route("/api/projects", methods=["GET", "POST"])
def api_projects():
    """List projects or create one."""

    state = get_portfolio_state()
    if request.method == "GET":
        user = state.user
        return jsonify(
            {
                "success": True,
                "user": {"name": user.name, "role": user.role.value, "phone": user.phone},
                "projects": [_serialize_project(project) for project in state.projects],
            }
        )

    payload = _json_object()
    if payload is None:
        return _json_error("Expected a JSON object.")
    name = (payload.get("name") or "").strip()
    location = (payload.get("location") or "").strip()

    if not state.user.is_privileged:
        _deny("create-project", name or "-")
        return jsonify({"success": True, "applied": False})
    if not name or not location:
        return _json_error("A project needs both a name and a location.")

    project = state.create_project(
        name=name, location=location, description=(payload.get("description") or "").strip()
    )
    log_manager.record(
        component="Portfolio",
        action="create-project",
        title="Project created",
        user_summary=f"Added project '{project.name}' in {project.location}.",
        technical_details=f"portfolio.api_projects stored project {project.id}.",
    )
    return _json_response(
        {"success": True, "applied": True, "project": _serialize_project(project)}, status=201
    )


@bp.delete("/api/projects/<project_id>")
def api_delete_project(project_id: str):
    state = get_portfolio_state()
    if not state.user.is_privileged:
        _deny("delete-project", project_id)
        return jsonify({"success": True, "applied": False})
    if not state.delete_project(project_id):
        return _json_error("Project not found.", status=404)

    log_manager.record(
        component="Portfolio",
        action="delete-project",
        title="Project deleted",
        user_summary="A project was removed through the API.",
        technical_details=f"portfolio.api_delete_project removed project {project_id}.",
    )
    return jsonify({"success": True, "applied": True, "project_id": project_id})


@bp.get("/api/projects/<project_id>/units")
def api_units(project_id: str):
    """Units available to the enrollment unit selector."""

    state = get_portfolio_state()
    units = units_for_project(state.projects, project_id)
    return jsonify({"success": True, "units": [instrument_to_dict(unit) for unit in units]})


@bp.patch("/api/projects/<project_id>/instruments/<instrument_id>/interactions/<interaction_id>")
def api_interaction_status(project_id: str, instrument_id: str, interaction_id: str):
    """Set an interaction's status from JSON."""

    state = get_portfolio_state()
    if not state.user.is_privileged:
        _deny("update-status", interaction_id)
        return jsonify({"success": True, "applied": False})

    payload = _json_object()
    if payload is None:
        return _json_error("Expected a JSON object.")
    try:
        status = _parse_choice(EnquiryStatus, payload.get("status"), None, "enquiry status")
        if status is None:
            raise ValueError("Choose a status.")
        set_interaction_status(state, project_id, instrument_id, interaction_id, status)
    except LookupError as exc:
        return _json_error(str(exc), status=404)
    except ValueError as exc:
        return _json_error(str(exc))

    interaction = next(
        item
        for item in state.require_project(project_id).find_instrument(instrument_id).interactions
        if item.id == interaction_id
    )
    log_manager.record(
        component="Portfolio",
        action="update-status",
        title="Enquiry status changed",
        user_summary=f"Interaction marked {status.value}.",
        technical_details=f"portfolio.api_interaction_status set {interaction_id} to {status.value}.",
    )
    return jsonify({"success": True, "applied": True, "interaction": interaction_to_dict(interaction)})


@bp.get("/api/search")
def api_search():
    state = get_portfolio_state()
    results = search_portfolio(state.projects, request.args.get("q", ""))
    return jsonify(
        {
            "success": True,
            "results": [
                {
                    "kind": result.kind.value,
                    "projectId": result.project.id,
                    "projectName": result.project.name,
                    "instrumentId": result.instrument.id if result.instrument else None,
                    "unitNumber": result.instrument.number if result.instrument else None,
                    "interaction": (
                        interaction_to_dict(result.interaction) if result.interaction else None
                    ),
                }
                for result in results
            ],
        }
    )


@bp.post("/api/projects/<project_id>/insight")
def api_project_insight(project_id: str):
    """Generate a sales-strategy summary; provider failures return the fallback text."""

    state = get_portfolio_state()
    project = state.find_project(project_id)
    if project is None:
        return _json_error("Project not found.", status=404)

    insight = _run_insight(project)
    return jsonify({"success": insight.status is InsightStatus.SETTLED, "insight": insight.to_dict()})
