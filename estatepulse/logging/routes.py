"""Routes for reviewing the structured application log."""
from __future__ import annotations

from flask import jsonify, render_template, request

from ..logging_service import LogQuery, log_manager
from . import bp


@bp.route("/")
def console():
    """Log console; accepts the same filters as the feed."""
    query = LogQuery.from_args(request.args)
    log_manager.record(
        component="Logging",
        action="view",
        title="Logging console accessed",
        user_summary="Log console opened for review.",
        technical_details=f"logging.console rendered with {query}.",
    )
    return render_template(
        "logs/console.html",
        title="EstatePulse - Logs",
        logs=log_manager.fetch(query),
        query=query,
        active_nav="logs",
    )


@bp.route("/feed")
def feed():
    logs = log_manager.fetch(LogQuery.from_args(request.args))
    return jsonify({"logs": logs, "count": len(logs)})
