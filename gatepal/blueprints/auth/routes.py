"""
Authentication Routes

Provides:
- /auth/login
- /auth/logout
- /auth/seed-admin (first system bootstrap)

Rules:
- Users sign in with email + password.
- Only active users may log in.
- The bootstrap page creates the first super admin and is closed as soon as
  any user exists.
"""

import logging

from flask import (
    Blueprint,
    render_template,
    redirect,
    url_for,
    flash,
    request,
)
from flask_login import (
    login_user,
    logout_user,
    login_required,
    current_user,
)

from ...extensions import db
from ...models import User

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

MIN_PASSWORD_LENGTH = 8


def _safe_next_url(raw_next: str | None) -> str:
    """Only allow local paths as post-login redirects."""
    if not raw_next or not raw_next.startswith("/") or raw_next.startswith("//"):
        return url_for("dashboard.index")
    return raw_next


# ============================================================
# LOGIN
# ============================================================

@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    """
    Authenticate a user.

    Logic:
    - Only active users may log in
    - Credentials validated via password hash
    """

    if current_user.is_authenticated:
        return redirect(url_for("dashboard.index"))

    if request.method == "POST":
        email = request.form.get("email", "").strip().lower()
        password = request.form.get("password", "")

        if not email or not password:
            flash("Please enter your email and password.", "danger")
            return render_template("auth/login.html", email=email)

        user = User.query.filter_by(email=email).first()

        if not user or not user.check_password(password):
            logger.info("Failed login for %s", email)
            flash("Invalid email or password.", "danger")
            return render_template("auth/login.html", email=email)

        if not user.is_active:
            flash("This account is inactive.", "danger")
            return render_template("auth/login.html", email=email)

        login_user(user)
        flash("Welcome back!", "success")

        return redirect(_safe_next_url(request.args.get("next")))

    return render_template("auth/login.html", email="")


# ============================================================
# LOGOUT
# ============================================================

@auth_bp.route("/logout")
@login_required
def logout():
    """Log out the current user."""
    logout_user()
    flash("You have been signed out.", "info")
    return redirect(url_for("auth.login"))


# ============================================================
# SEED FIRST ADMIN (BOOTSTRAP)
# ============================================================

@auth_bp.route("/seed-admin", methods=["GET", "POST"])
def seed_admin():
    """
    Bootstrap the FIRST super admin of the console.

    Safety Rules:
    - If ANY user already exists -> block
    """

    if User.query.count() > 0:
        flash("A user already exists.", "warning")
        return redirect(url_for("auth.login"))

    if request.method == "POST":
        name = request.form.get("name", "").strip()
        email = request.form.get("email", "").strip().lower()
        password = request.form.get("password", "")

        if not email or not password:
            flash("Email and password are required.", "danger")
            return render_template("auth/seed_admin.html", name=name, email=email)

        if len(password) < MIN_PASSWORD_LENGTH:
            flash(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.", "danger")
            return render_template("auth/seed_admin.html", name=name, email=email)

        user = User(
            email=email,
            name=name or None,
            role="super_admin",
            is_active=True,
        )
        user.set_password(password)

        db.session.add(user)
        db.session.commit()
        logger.info("Bootstrap super admin %s created", email)

        flash("Super admin created. Please sign in.", "success")
        return redirect(url_for("auth.login"))

    return render_template("auth/seed_admin.html", name="", email="")
