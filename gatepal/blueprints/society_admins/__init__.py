"""Society admins blueprint package."""

from .routes import society_admins_bp  # noqa: F401
