# backend/pantry/__init__.py
import logging

from flask import Flask, jsonify, request

from .config import Config
from .extensions import db, migrate


def _configure_logging(app: Flask) -> None:
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    if not app.debug and not app.testing and not app.logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
        app.logger.addHandler(handler)


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)

    # Models must be imported before Alembic reads the metadata
    from . import models  # noqa: F401

    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.orders import orders_bp
    from .routes.users import users_bp
    from .routes.products import products_bp
    from .routes.admin import admin_bp
    from .routes.feedback import feedback_bp

    for blueprint in (system_bp, auth_bp, orders_bp, users_bp, products_bp, admin_bp, feedback_bp):
        app.register_blueprint(blueprint)

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({"error": "Not found", "code": "NOT_FOUND"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return jsonify({"error": "Method not allowed", "code": "METHOD_NOT_ALLOWED"}), 405

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            # Kiosk and vendor screens send the identity header on every call
            response.headers["Access-Control-Allow-Headers"] = (
                f"{app.config['IDENTITY_HEADER']}, Content-Type"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    from .cli import register_commands
    register_commands(app)

    return app
