# backend/simdesk/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.getLogger("simdesk").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Auth change stream and the cached collections that follow it
    from .services.auth_service import AuthEventBus, EXTENSION_KEY as AUTH_EVENTS_KEY
    from .services.app_store import AppStore, EXTENSION_KEY as APP_STORE_KEY
    from .services.row_store import SqlRowStore

    auth_events = AuthEventBus()
    store = AppStore(SqlRowStore())
    auth_events.subscribe(store.handle_auth_event)
    app.extensions[AUTH_EVENTS_KEY] = auth_events
    app.extensions[APP_STORE_KEY] = store

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.catalog import catalog_bp
    from .routes.customers import customers_bp
    from .routes.sales import sales_bp
    from .routes.cashflow import cashflow_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(cashflow_bp)
    app.register_blueprint(reports_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
