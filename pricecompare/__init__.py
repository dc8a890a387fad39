"""
pricecompare/__init__.py

Flask application factory for the Procurement Price-Comparison service.

- JSON REST API only; every route except login/logout/health requires a credential.
- UI is never trusted: role checks and the comparison lifecycle are enforced server-side.
- SQLite for development, any SQLAlchemy URL (PostgreSQL) in production.
"""

from __future__ import annotations

import logging

import click
from flask import Flask

from .extensions import db, login_manager, migrate
from .errors import register_error_handlers


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("pricecompare").setLevel(level)


def create_app(config_object: object | str | None = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object or "pricecompare.config.Config")

    if not app.config.get("SECRET_KEY"):
        raise RuntimeError("SECRET_KEY is not set. Configure it in the environment before starting the service.")

    _configure_logging(app)
    app.json.sort_keys = app.config.get("JSON_SORT_KEYS", False)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Registers the request loader / unauthorized handler on login_manager.
    from . import security  # noqa: F401

    register_error_handlers(app)

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.users import users_bp
    from .blueprints.vendors import vendors_bp
    from .blueprints.items import items_bp
    from .blueprints.settings import settings_bp
    from .blueprints.comparisons import comparisons_bp
    from .blueprints.attachments import attachments_bp
    from .blueprints.audit import audit_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(vendors_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(comparisons_bp)
    app.register_blueprint(attachments_bp)
    app.register_blueprint(audit_bp)

    # ----------------------------------------------------------------------
    # Startup: tables + default admin + default settings
    # ----------------------------------------------------------------------
    if app.config.get("SEED_ON_STARTUP"):
        with app.app_context():
            from .seed import ensure_default_admin, ensure_default_settings

            db.create_all()
            ensure_default_admin()
            ensure_default_settings()

    _register_cli(app)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def _register_cli(app: Flask) -> None:
    @app.cli.command("seed-admin")
    def seed_admin_command():
        """Create the default admin account if no admin exists."""
        from .seed import ensure_default_admin

        db.create_all()
        admin = ensure_default_admin()
        if admin is None:
            click.echo("No admin created (an admin exists or ADMIN_PASSWORD is not set).")
        else:
            click.echo(f"Admin user created: {admin.username}")

    @app.cli.command("init-settings")
    def init_settings_command():
        """Create the default settings row if it does not exist."""
        from .seed import ensure_default_settings

        db.create_all()
        record = ensure_default_settings()
        click.echo(f"Settings ready for {record.company_name}.")

    @app.cli.command("reset-comparisons")
    @click.confirmation_option(prompt="This deletes ALL comparison data. Continue?")
    def reset_comparisons_command():
        """Delete all comparisons, rows, vendor links and comparison attachments."""
        from .seed import reset_comparisons

        counts = reset_comparisons()
        for name, count in counts.items():
            click.echo(f"Deleted {count} {name}.")
