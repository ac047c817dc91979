# backend/poultrydesk/__init__.py
from __future__ import annotations

import os

from flask import Flask, request

from .broadcast import BroadcastHub
from .config import Config
from .extensions import db, migrate, sock



def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    if not app.config.get("REPORTS_OUTPUT_DIR"):
        app.config["REPORTS_OUTPUT_DIR"] = os.path.join(app.instance_path, "reports")

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    sock.init_app(app)

    # One hub per app; owns every live connection
    app.extensions["broadcast_hub"] = BroadcastHub()

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.flocks import flocks_bp
    from .routes.sales import sales_bp
    from .routes.expenses import expenses_bp
    from .routes.production import production_bp
    from .routes.inventory import inventory_bp
    from .routes.vaccinations import vaccinations_bp
    from .routes.budgets import budgets_bp
    from .routes.finances import finances_bp
    from .routes.reports import reports_bp
    from .routes.notifications import notifications_bp
    from .routes.live import live_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(flocks_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(production_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(vaccinations_bp)
    app.register_blueprint(budgets_bp)
    app.register_blueprint(finances_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(live_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in set(app.config.get("CORS_ALLOWED_ORIGINS") or ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
