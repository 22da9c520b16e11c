# backend/casastock/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate, enable_sqlite_foreign_keys


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    with app.app_context():
        enable_sqlite_foreign_keys(db.engine)

    # Payment gateway client (tests replace it with a fake)
    from .services.razorpay_client import RazorpayClient
    app.extensions["razorpay"] = RazorpayClient.from_config(app.config)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.batches import batches_bp
    from .routes.products import products_bp
    from .routes.orders import orders_bp
    from .routes.expenses import expenses_bp
    from .routes.capital import capital_bp
    from .routes.reports import reports_bp
    from .routes.profile import profile_bp
    from .routes.uploads import uploads_bp
    from .routes.catalog import catalog_bp
    from .routes.subscriptions import subscriptions_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(batches_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(capital_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(subscriptions_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
