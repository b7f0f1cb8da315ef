# backend/cuemaster/__init__.py
import atexit
import os

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Snapshot sync: one registry per app, one HallSync per hall
    from .services.hall_data import SYNC_EXTENSION_KEY
    from .services.sync_service import SyncRegistry

    cache_dir = app.config.get("CUEMASTER_CACHE_DIR") or os.path.join(app.instance_path, "cache")
    registry = SyncRegistry(
        app,
        cache_dir=cache_dir,
        debounce_seconds=float(app.config.get("SYNC_DEBOUNCE_SECONDS", 1.5)),
    )
    app.extensions[SYNC_EXTENSION_KEY] = registry
    atexit.register(registry.flush_all)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.sessions import sessions_bp
    from .routes.transactions import transactions_bp
    from .routes.debts import debts_bp
    from .routes.audit import audit_bp
    from .routes.reports import reports_bp
    from .routes.settings import settings_bp
    from .routes.attendance import attendance_bp
    from .routes.players import players_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(sessions_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(debts_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(attendance_bp)
    app.register_blueprint(players_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Staff-Id, X-Hall-Id"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
