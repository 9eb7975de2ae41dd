"""
Dashboard

Headline numbers for the Super Admin: total / active societies, society
admins, total units, and the five most recently created societies.
"""

from flask import Blueprint, flash, render_template
from flask_login import login_required

from ...directory import DirectoryError, get_directory
from ...editor import get_record_cache
from ...security import super_admin_required

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")

RECENT_LIMIT = 5


@dashboard_bp.route("/")
@login_required
@super_admin_required
def index():
    try:
        societies = get_directory().list_societies()
    except DirectoryError as exc:
        flash(exc.message, "danger")
        societies = []
    else:
        get_record_cache().replace_all(societies)

    stats = {
        "total_societies": len(societies),
        "active_societies": sum(1 for s in societies if s.status == "Active"),
        "society_admins": sum(len(s.society_admins) for s in societies),
        "total_units": sum(s.total_units for s in societies),
    }
    recent = sorted(societies, key=lambda s: s.created_at or "", reverse=True)[:RECENT_LIMIT]

    return render_template("dashboard/index.html", stats=stats, recent=recent)
