"""
Society management routes (Super Admin only).

Provides:
- /societies/                     list with search, status filter, sort, paging
- /societies/export.csv           CSV of the filtered list
- /societies/<id>                 detail
- /societies/<id>/toggle-status   Active <-> Inactive
- /societies/<id>/suspend         mark Suspended

Records come from the configured DirectoryService; every listing refreshes the
process-local RecordCache so the editor can open without another fetch.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date

from flask import (
    Blueprint,
    Response,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import login_required

from ...directory import DirectoryError, SocietyNotFound, get_directory
from ...editor import get_record_cache
from ...records import SOCIETY_STATUSES
from ...security import super_admin_required
from ...utils import (
    CSV_HEADER,
    DEFAULT_SORT,
    SORT_KEYS,
    filter_societies,
    paginate,
    society_csv_row,
    sort_societies,
)

logger = logging.getLogger(__name__)

societies_bp = Blueprint("societies", __name__, url_prefix="/societies")


def _parse_page(value: str | None) -> int:
    try:
        return max(1, int(value or 1))
    except ValueError:
        return 1


def _list_args() -> dict:
    sort = (request.args.get("sort") or DEFAULT_SORT).strip()
    direction = (request.args.get("direction") or "asc").strip().lower()
    status = (request.args.get("status") or "all").strip()
    return {
        "q": (request.args.get("q") or "").strip(),
        "status": status if status in SOCIETY_STATUSES else "all",
        "sort": sort if sort in SORT_KEYS else DEFAULT_SORT,
        "direction": "desc" if direction == "desc" else "asc",
    }


def _load_societies():
    """All societies from the directory (empty list + flash on failure)."""
    try:
        societies = get_directory().list_societies()
    except DirectoryError as exc:
        flash(exc.message, "danger")
        return []
    get_record_cache().replace_all(societies)
    return societies


def _safe_back_url() -> str:
    raw = request.form.get("next") or ""
    if raw.startswith("/") and not raw.startswith("//"):
        return raw
    return url_for("societies.list_societies")


# ---------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------
@societies_bp.route("/")
@login_required
@super_admin_required
def list_societies():
    args = _list_args()
    societies = _load_societies()

    filtered = filter_societies(societies, args["q"], args["status"])
    ordered = sort_societies(filtered, args["sort"], args["direction"])
    page = paginate(ordered, _parse_page(request.args.get("page")), current_app.config["SOCIETIES_PER_PAGE"])

    return render_template(
        "societies/list.html",
        page=page,
        total_count=len(societies),
        filtered_count=len(filtered),
        statuses=SOCIETY_STATUSES,
        args=args,
    )


@societies_bp.route("/export.csv")
@login_required
@super_admin_required
def export_societies():
    args = _list_args()
    filtered = sort_societies(
        filter_societies(_load_societies(), args["q"], args["status"]),
        args["sort"],
        args["direction"],
    )

    if not filtered:
        flash("There are no societies to export.", "danger")
        return redirect(url_for("societies.list_societies", **args))

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow(CSV_HEADER)
    for society in filtered:
        writer.writerow(society_csv_row(society))

    filename = f"societies-{date.today().isoformat()}.csv"
    return Response(
        buffer.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# ---------------------------------------------------------------------
# Detail
# ---------------------------------------------------------------------
@societies_bp.route("/<society_id>")
@login_required
@super_admin_required
def society_detail(society_id: str):
    cache = get_record_cache()
    society = cache.get(society_id)

    if society is None:
        try:
            society = get_directory().get_society(society_id)
        except DirectoryError as exc:
            flash(exc.message, "danger")
            return redirect(url_for("societies.list_societies"))
        if society is None:
            abort(404)
        cache.put(society)

    return render_template("societies/detail.html", society=society)


# ---------------------------------------------------------------------
# Status actions
# ---------------------------------------------------------------------
@societies_bp.route("/<society_id>/toggle-status", methods=["POST"])
@login_required
@super_admin_required
def toggle_status(society_id: str):
    try:
        updated = get_directory().toggle_society_status(society_id)
    except SocietyNotFound:
        abort(404)
    except DirectoryError as exc:
        flash(exc.message or "Failed to update society status. Please try again.", "danger")
        return redirect(_safe_back_url())

    get_record_cache().put(updated)
    logger.info("Society %s status set to %s", society_id, updated.status)
    if updated.status == "Active":
        flash("Society activated successfully", "success")
    else:
        flash("Society deactivated successfully", "success")
    return redirect(_safe_back_url())


@societies_bp.route("/<society_id>/suspend", methods=["POST"])
@login_required
@super_admin_required
def suspend(society_id: str):
    try:
        updated = get_directory().suspend_society(society_id)
    except SocietyNotFound:
        abort(404)
    except DirectoryError as exc:
        flash(exc.message or "Failed to suspend society. Please try again.", "danger")
        return redirect(_safe_back_url())

    get_record_cache().put(updated)
    logger.info("Society %s suspended", society_id)
    flash("Society suspended successfully", "success")
    return redirect(_safe_back_url())
