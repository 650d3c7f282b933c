"""Application factory for EstatePulse."""
from __future__ import annotations

from flask import Flask

from .config import Config
from .extensions import db
from .logging_service import COMPONENTS, LEVELS, RESULTS, log_manager


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__, static_folder="static", template_folder="templates")
    app.config.from_object(config_class)

    db.init_app(app)
    log_manager.init_app(app)

    with app.app_context():
        db.create_all()

    from .insights import GeminiInsightProvider
    from .logging import bp as logging_bp
    from .portfolio import bp as portfolio_bp
    from .portfolio.session import current_user, elevate_from_request
    from .settings import bp as settings_bp
    from .settings import routes as settings_routes  # noqa: F401

    app.extensions["insight_provider"] = GeminiInsightProvider(
        api_key=app.config.get("GEMINI_API_KEY", ""),
        model_name=app.config.get("INSIGHT_MODEL", "gemini-2.5-flash"),
    )

    app.register_blueprint(portfolio_bp)
    app.register_blueprint(settings_bp, url_prefix="/settings")
    app.register_blueprint(logging_bp, url_prefix="/logs")

    app.before_request(elevate_from_request)

    @app.context_processor
    def inject_globals() -> dict[str, object]:
        """Inject shared template variables."""
        return {
            "environment": app.config.get("ENVIRONMENT", "development"),
            "log_levels": LEVELS,
            "log_results": RESULTS,
            "log_components": COMPONENTS,
            "current_user": current_user(),
        }

    return app
