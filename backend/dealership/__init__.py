# backend/dealership/__init__.py
from flask import Flask, current_app, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.inventory import inventory_bp
    from .routes.sales import sales_bp
    from .routes.workshop import workshop_bp
    from .routes.reports import reports_bp
    from .routes.personnel import personnel_bp
    from .routes.notifications import notifications_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(workshop_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(personnel_bp)
    app.register_blueprint(notifications_bp)

    # Business-day rollover: the first request on a new date archives the
    # previous day before anything else touches the counters.
    auto_close_state = {"checked_on": None}

    @app.before_request
    def auto_close_previous_day():
        if not current_app.config.get("AUTO_CLOSE_ON_STARTUP"):
            return None
        if request.endpoint in (None, "static", "system.health", "system.version"):
            return None

        from .services import closing_service
        from .time_utils import business_today

        today = business_today()
        if auto_close_state["checked_on"] == today:
            return None

        closing_service.auto_close_if_due(today)
        auto_close_state["checked_on"] = today
        return None

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
