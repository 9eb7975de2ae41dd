"""
Society editor routes (create / edit, tabbed).

Flow:
- GET /societies/new or /societies/<id>/edit builds a SocietyEditor, runs its
  one-time initialization and registers it in the EditorStore under a token.
- GET /societies/editor/<token> renders the active tab.
- POST /societies/editor/<token> first applies the posted inputs of the
  rendered tab, then runs one action (navigation, add/remove rows, locate,
  submit, cancel) and redirects back (post/redirect/get).

Action buttons post `action` as "<name>[:<arg>[:<arg>]]", for example
"remove_gate:exit:1" or "goto:engagement".
"""

from __future__ import annotations

import logging

from flask import abort, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from ...directory import get_directory
from ...editor import (
    TABS,
    ReportedGeolocation,
    SocietyEditor,
    get_editor_store,
    get_record_cache,
)
from ...editor.draft import BASIC_FIELDS, ENGAGEMENT_FIELDS, READ_ONLY_FIELDS, digits_only
from ...notifications import FlashNotifier
from ...records import ADMIN_STATUSES, SOCIETY_STATUSES
from ...security import super_admin_required
from ...utils import get_location_options
from .routes import societies_bp

logger = logging.getLogger(__name__)

TAB_LABELS = {
    "basic": "Basic Info",
    "structure": "Structure",
    "gates": "Gates",
    "admins": "Admins",
    "engagement": "Engagement",
}


def _owner_id() -> str:
    return str(current_user.id)


def _open_editor(society_id: str | None):
    editor = SocietyEditor(
        society_id,
        directory=get_directory(),
        notifier=FlashNotifier(),
        cache=get_record_cache(),
        acting_user=current_user.display_name(),
        owner_id=_owner_id(),
    )
    editor.initialize()

    if editor.redirect_reason:
        flash(editor.redirect_reason, "danger")
        return redirect(url_for("societies.list_societies"))

    token = get_editor_store().open(editor)
    logger.debug("Editor %s opened for %s", token, society_id or "new society")
    return redirect(url_for("societies.society_editor", token=token))


def _load_editor(token: str) -> SocietyEditor:
    editor = get_editor_store().get(token, owner_id=_owner_id())
    if editor is None:
        abort(404)
    return editor


# ---------------------------------------------------------------------
# Posted inputs -> draft
# ---------------------------------------------------------------------
def _apply_scalar_fields(editor: SocietyEditor, tab: str, form) -> None:
    names = BASIC_FIELDS if tab == "basic" else ENGAGEMENT_FIELDS
    values = {n: form[n] for n in names if n in form and n not in READ_ONLY_FIELDS}
    editor.set_fields(tab, values)


def _apply_structure(editor: SocietyEditor, form) -> None:
    for i, wing in enumerate(list(editor.draft.wings)):
        name = form.get(f"wing-{i}-name")
        if name is not None and name != wing.name:
            editor.update_wing_name(i, name)

        for j, unit in enumerate(list(wing.units)):
            number = form.get(f"wing-{i}-unit-{j}")
            if number is not None and number != unit.number:
                editor.update_unit_number(i, j, number)

        total = form.get(f"wing-{i}-total_units")
        if total is not None and int(digits_only(total) or 0) != wing.total_units:
            editor.resize_wing_units(i, total)


def _apply_gates(editor: SocietyEditor, form) -> None:
    for direction in ("entry", "exit"):
        for i, gate in enumerate(list(editor.draft.gates(direction))):
            name = form.get(f"gate-{direction}-{i}")
            if name is not None and name != gate.name:
                editor.update_gate(direction, i, name)


def _apply_admins(editor: SocietyEditor, form) -> None:
    for i, admin in enumerate(list(editor.draft.admins)):
        for field in ("name", "mobile", "email", "status"):
            value = form.get(f"admin-{i}-{field}")
            if value is not None and value != getattr(admin, field):
                editor.update_admin(i, field, value)


def apply_posted_inputs(editor: SocietyEditor, form) -> None:
    """Copy the rendered tab's inputs into the draft through the mutators."""
    tab = form.get("tab")
    if tab in ("basic", "engagement"):
        _apply_scalar_fields(editor, tab, form)
    elif tab == "structure":
        _apply_structure(editor, form)
    elif tab == "gates":
        _apply_gates(editor, form)
    elif tab == "admins":
        _apply_admins(editor, form)


# ---------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------
def run_action(editor: SocietyEditor, action: str, args: list[str], form) -> None:
    if action == "save_fields":
        return
    if action == "next":
        editor.next()
    elif action == "previous":
        editor.previous()
    elif action == "goto":
        editor.go_to(args[0])
    elif action == "add_wing":
        editor.add_wing()
    elif action == "remove_wing":
        editor.remove_wing(int(args[0]))
    elif action == "toggle_wing":
        editor.toggle_wing_expanded(int(args[0]))
    elif action == "add_gate":
        editor.add_gate(args[0])
    elif action == "remove_gate":
        editor.remove_gate(args[0], int(args[1]))
    elif action == "add_admin":
        editor.add_admin()
    elif action == "remove_admin":
        editor.remove_admin(int(args[0]))
    elif action == "locate":
        provider = None if form.get("geo_unsupported") else ReportedGeolocation.from_form(form)
        editor.request_location(skip_if_filled=form.get("skip_if_filled") == "1", provider=provider)
    else:
        raise ValueError(f"Unknown editor action: {action!r}")


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------
@societies_bp.route("/new")
@login_required
@super_admin_required
def new_society():
    return _open_editor(None)


@societies_bp.route("/<society_id>/edit")
@login_required
@super_admin_required
def edit_society(society_id: str):
    return _open_editor(society_id)


@societies_bp.route("/editor/<token>", methods=["GET", "POST"])
@login_required
@super_admin_required
def society_editor(token: str):
    editor = _load_editor(token)
    store = get_editor_store()

    if request.method == "POST":
        action, *args = (request.form.get("action") or "save_fields").split(":")

        with editor.lock:
            # Another request may have saved or cancelled while this one waited.
            if not editor.mounted:
                abort(404)

            if action == "cancel":
                store.discard(token)
                if editor.is_edit_mode:
                    return redirect(url_for("societies.society_detail", society_id=editor.society_id))
                return redirect(url_for("societies.list_societies"))

            try:
                apply_posted_inputs(editor, request.form)
                if action == "submit":
                    saved = editor.submit()
                    if saved is not None:
                        store.discard(token)
                        return redirect(url_for("societies.society_detail", society_id=saved.id))
                else:
                    run_action(editor, action, args, request.form)
            except (IndexError, ValueError) as exc:
                logger.warning("Rejected editor request %s: %s", token, exc)
                abort(400)

        return redirect(url_for("societies.society_editor", token=token))

    locations = get_location_options()
    country = editor.draft.fields.country
    if country and country not in locations:
        locations[country] = []
    cities = list(locations.get(country, []))
    if editor.draft.fields.city and editor.draft.fields.city not in cities:
        cities.append(editor.draft.fields.city)

    return render_template(
        "societies/form.html",
        editor=editor,
        token=token,
        draft=editor.draft,
        fields=editor.draft.fields,
        errors=editor.errors,
        tabs=TABS,
        tab_labels=TAB_LABELS,
        countries=sorted(locations),
        cities=cities,
        statuses=SOCIETY_STATUSES,
        admin_statuses=ADMIN_STATUSES,
    )
