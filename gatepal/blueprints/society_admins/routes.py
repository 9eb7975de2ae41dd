"""
Society Admin Management (Super Admin only).

Provides:
- /society-admins/                                        list + search, active/inactive counts
- /society-admins/new                                     add an admin to a society
- /society-admins/<society_id>/<admin_id>/edit            edit name / email / mobile
- /society-admins/<society_id>/<admin_id>/toggle-status   Active <-> Inactive
- /society-admins/<society_id>/<admin_id>/delete          remove

Rules:
- UI never trusted: fields are validated server-side.
- Admins are embedded in society records, so every change drops the cached
  copy of that society.
"""

from __future__ import annotations

import logging

from flask import (
    Blueprint,
    abort,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import login_required

from ...directory import DirectoryError, SocietyNotFound, get_directory
from ...editor import get_record_cache
from ...editor.validation import EMAIL_RE
from ...security import super_admin_required

logger = logging.getLogger(__name__)

society_admins_bp = Blueprint(
    "society_admins",
    __name__,
    url_prefix="/society-admins",
)


def _admin_form_fields() -> dict:
    return {
        "name": (request.form.get("name") or "").strip(),
        "email": (request.form.get("email") or "").strip(),
        "mobile": (request.form.get("mobile") or "").strip(),
    }


def _admin_form_error(fields: dict) -> str | None:
    """First problem with posted admin fields, or None."""
    if not all(fields.values()):
        return "Please fill in all fields"
    if not EMAIL_RE.match(fields["email"]):
        return "Please enter a valid email address."
    if not fields["mobile"].isdigit() or len(fields["mobile"]) != 10:
        return "Phone number must be exactly 10 digits."
    return None


def _find_admin(society_id: str, admin_id: str):
    try:
        admins = get_directory().list_admins(society_id)
    except SocietyNotFound:
        abort(404)
    except DirectoryError as exc:
        flash(exc.message or "Failed to load admins. Please try again.", "danger")
        abort(redirect(url_for("society_admins.list_admins")))
    for admin in admins:
        if admin.id == admin_id:
            return admin
    abort(404)


# ---------------------------------------------------------------------
# LIST
# ---------------------------------------------------------------------

@society_admins_bp.route("/")
@login_required
@super_admin_required
def list_admins():
    query = (request.args.get("q") or "").strip()

    try:
        admins = get_directory().all_admins()
    except DirectoryError as exc:
        flash(exc.message, "danger")
        admins = []

    active_count = sum(1 for a in admins if a.status == "Active")
    needle = query.lower()
    filtered = [
        a for a in admins
        if not needle
        or needle in a.name.lower()
        or needle in a.email.lower()
        or needle in a.society_name.lower()
    ]

    return render_template(
        "society_admins/list.html",
        admins=filtered,
        query=query,
        total_count=len(admins),
        active_count=active_count,
        inactive_count=len(admins) - active_count,
    )


# ---------------------------------------------------------------------
# CREATE
# ---------------------------------------------------------------------

@society_admins_bp.route("/new", methods=["GET", "POST"])
@login_required
@super_admin_required
def create_admin():
    try:
        societies = get_directory().list_societies()
    except DirectoryError as exc:
        flash(exc.message, "danger")
        return redirect(url_for("society_admins.list_admins"))

    societies = sorted(societies, key=lambda s: s.society_name.lower())
    fields = {"name": "", "email": "", "mobile": ""}
    society_id = request.args.get("society_id") or ""

    if request.method == "POST":
        fields = _admin_form_fields()
        society_id = (request.form.get("society_id") or "").strip()

        error = _admin_form_error(fields)
        if error is None and not any(s.id == society_id for s in societies):
            error = "Please select a valid society"

        if error:
            flash(error, "danger")
        else:
            try:
                created = get_directory().create_admin(society_id, fields)
            except DirectoryError as exc:
                flash(exc.message or "Failed to add admin. Please try again.", "danger")
            else:
                get_record_cache().remove(society_id)
                logger.info("Society admin %s added to %s", created.id, society_id)
                flash(f"Admin added to {created.society_name} successfully", "success")
                return redirect(url_for("society_admins.list_admins"))

    return render_template(
        "society_admins/form.html",
        mode="create",
        societies=societies,
        society_id=society_id,
        admin=None,
        fields=fields,
    )


# ---------------------------------------------------------------------
# EDIT
# ---------------------------------------------------------------------

@society_admins_bp.route("/<society_id>/<admin_id>/edit", methods=["GET", "POST"])
@login_required
@super_admin_required
def edit_admin(society_id: str, admin_id: str):
    admin = _find_admin(society_id, admin_id)
    fields = {"name": admin.name, "email": admin.email, "mobile": admin.mobile}

    if request.method == "POST":
        fields = _admin_form_fields()
        error = _admin_form_error(fields)
        if error:
            flash(error, "danger")
        else:
            try:
                get_directory().update_admin(society_id, admin_id, fields)
            except DirectoryError as exc:
                flash(exc.message or "Failed to update admin. Please try again.", "danger")
            else:
                get_record_cache().remove(society_id)
                flash("Admin updated successfully", "success")
                return redirect(url_for("society_admins.list_admins"))

    return render_template(
        "society_admins/form.html",
        mode="edit",
        societies=[],
        society_id=society_id,
        admin=admin,
        fields=fields,
    )


# ---------------------------------------------------------------------
# STATUS / DELETE
# ---------------------------------------------------------------------

@society_admins_bp.route("/<society_id>/<admin_id>/toggle-status", methods=["POST"])
@login_required
@super_admin_required
def toggle_admin_status(society_id: str, admin_id: str):
    try:
        updated = get_directory().toggle_admin_status(society_id, admin_id)
    except SocietyNotFound:
        abort(404)
    except DirectoryError as exc:
        flash(exc.message or "Failed to update admin status. Please try again.", "danger")
    else:
        get_record_cache().remove(society_id)
        flash(f"Admin {'activated' if updated.status == 'Active' else 'deactivated'}", "success")

    return redirect(url_for("society_admins.list_admins"))


@society_admins_bp.route("/<society_id>/<admin_id>/delete", methods=["POST"])
@login_required
@super_admin_required
def delete_admin(society_id: str, admin_id: str):
    try:
        get_directory().delete_admin(society_id, admin_id)
    except SocietyNotFound:
        abort(404)
    except DirectoryError as exc:
        flash(exc.message or "Failed to remove admin. Please try again.", "danger")
    else:
        get_record_cache().remove(society_id)
        flash("Admin removed successfully", "success")

    return redirect(url_for("society_admins.list_admins"))
