"""
gatepal/__init__.py

Flask application factory for the GatePal Super Admin console.

Requirements:
- Society records live behind a DirectoryService (local database or the
  GatePal REST backend); the blueprints never talk to a backend directly.
- SQLite is used for development, any SQLAlchemy URL works (migrations via
  Flask-Migrate).
- UI is never trusted; server-side access control is enforced.

Navigation:
- Sidebar contains one section (Console) with Dashboard, Societies and
  Society Admins.
Items are filtered for visibility, BUT all permissions are enforced server-side.
"""

from __future__ import annotations

import click
from flask import Flask, redirect, url_for
from flask_login import current_user

from .directory import init_directory
from .editor import init_editor_state
from .extensions import csrf, db, login_manager, migrate
from .models import User
from .utils import society_row_class

# Blueprint imports kept inside create_app() where possible to reduce import side effects.


# -------------------------------------------------------------------
# NAVIGATION STRUCTURE (UI visibility only; security enforced in routes)
# -------------------------------------------------------------------

NAV_SECTIONS = [
    {
        "key": "console",
        "label": "Console",
        "auth_required": True,
        "items": [
            {"label": "Dashboard", "endpoint": "dashboard.index", "super_admin_only": True},
            {"label": "Societies", "endpoint": "societies.list_societies", "super_admin_only": True},
            {"label": "Society Admins", "endpoint": "society_admins.list_admins", "super_admin_only": True},
        ],
    },
]


def create_app(config_object: str | object = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Flask's default handler sits on this logger; module loggers
    # (gatepal.directory.*, gatepal.editor.*) propagate to it.
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message_category = "info"

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Load user for Flask-Login."""
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    # Society records and open editors
    init_directory(app)
    init_editor_state(app)

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.dashboard import dashboard_bp
    from .blueprints.societies import societies_bp
    from .blueprints.society_admins import society_admins_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(societies_bp)
    app.register_blueprint(society_admins_bp)

    # ----------------------------------------------------------------------
    # Context globals (navigation)
    # ----------------------------------------------------------------------
    @app.context_processor
    def inject_globals():
        """
        Inject navigation filtered by user.

        SECURITY NOTE:
        - This only filters visibility. Routes enforce permissions.
        """
        visible_sections = []

        for section in NAV_SECTIONS:
            if section.get("auth_required", False) and not current_user.is_authenticated:
                continue

            visible_items = [
                item
                for item in section.get("items", [])
                if not item.get("super_admin_only", False) or current_user.is_super_admin
            ]

            if visible_items:
                visible_sections.append(
                    {"key": section["key"], "label": section["label"], "items": visible_items}
                )

        return {
            "config": app.config,
            "nav_sections": visible_sections,
            "society_row_class": society_row_class,
        }

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("seed-locations")
    def seed_locations_command():
        """Seed default country / city options."""
        from .seed import seed_default_locations

        added = seed_default_locations()
        click.echo(f"Default locations seeded ({added} added).")

    # ----------------------------------------------------------------------
    # Home
    # ----------------------------------------------------------------------
    @app.route("/")
    def index():
        """Home: redirect to dashboard or login."""
        if current_user.is_authenticated:
            return redirect(url_for("dashboard.index"))
        return redirect(url_for("auth.login"))

    app.logger.debug("GatePal console created (directory backend: %s)", app.config.get("DIRECTORY_BACKEND"))
    return app
