"""
gatepal/security.py

Access control for the Super Admin console.

Rules:
- Every console page requires login (Flask-Login redirects to /auth/login).
- Only users with the super_admin role may use the console; any other
  authenticated user gets a 403 page.
- The UI is never trusted: every route checks server-side.

IMPORTANT:
- Decorators must preserve wrapped function metadata to avoid Flask endpoint
  collisions, so functools.wraps is used.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Tuple

from flask import render_template
from flask_login import current_user


def _forbidden() -> Tuple[str, int]:
    """Render a consistent 403 page."""
    return render_template("errors/403.html"), 403


def is_super_admin() -> bool:
    """Return True if current user is authenticated and a super admin."""
    return bool(current_user.is_authenticated and getattr(current_user, "is_super_admin", False))


def super_admin_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator: super-admin only.

    Use below @login_required so anonymous users are sent to the login page
    rather than shown a 403.
    """
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        if not is_super_admin():
            return _forbidden()
        return view_func(*args, **kwargs)

    return wrapper
