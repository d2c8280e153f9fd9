# backend/martpos/__init__.py
import logging
import os
from typing import Mapping, Optional

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def _instance_path(app: Flask, value: str) -> str:
    # Relative file locations live under instance/, like the SQLite database
    if os.path.isabs(value):
        return value
    return os.path.join(app.instance_path, value)


def create_app(config: Optional[Mapping] = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    app.config["DATA_FILE"] = _instance_path(app, app.config["DATA_FILE"])
    app.config["UPLOAD_FOLDER"] = _instance_path(app, app.config["UPLOAD_FOLDER"])

    # app.logger is the "martpos" logger; service module loggers propagate to it
    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.categories import categories_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(reports_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = app.config["CORS_ALLOWED_ORIGINS"]
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
