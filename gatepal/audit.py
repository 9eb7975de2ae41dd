"""
gatepal/audit.py

Audit trail for changes made through the database directory backend.

Each entry records the acting console user (email snapshot), the entity type
and id, the action and JSON snapshots of the row before and after the change.

IMPORTANT:
- Entries are only ADDED to the current SQLAlchemy session; the directory
  backend owns the transaction (flush -> log_action -> commit).
- Society snapshots also carry child counts, since wings, gates and admins
  live in their own tables and would otherwise be invisible in the trail.
- Outside a request (CLI, directory tests) entries are written without user
  and IP.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from flask import has_request_context, request
from flask_login import current_user

from .extensions import db
from .models import AuditLog

Snapshot = Dict[str, Optional[str]]

AUDIT_ACTIONS = ("CREATE", "UPDATE", "DELETE", "TOGGLE", "SUSPEND")


def _as_text(value: Any) -> Optional[str]:
    # Decimal, date and datetime all have a stable str()
    return None if value is None else str(value)


def serialize_model(instance: Any) -> Snapshot:
    """Column values of a model instance as strings (relationships excluded)."""
    return {column.name: _as_text(getattr(instance, column.name)) for column in instance.__table__.columns}


def society_snapshot(society: Any) -> Snapshot:
    """serialize_model() of a Society plus wing/unit/gate/admin counts."""
    data = serialize_model(society)
    data["wing_count"] = str(len(society.wings))
    data["unit_count"] = str(sum(len(wing.units) for wing in society.wings))
    data["entry_gate_count"] = str(len(society.gates_for("entry")))
    data["exit_gate_count"] = str(len(society.gates_for("exit")))
    data["admin_count"] = str(len(society.admins))
    return data


def _acting_user():
    if has_request_context() and current_user.is_authenticated:
        return current_user
    return None


def log_action(
    entity: Any,
    action: str,
    *,
    before: Optional[Snapshot] = None,
    after: Optional[Snapshot] = None,
) -> AuditLog:
    """Add an AuditLog entry for a flushed entity and return it."""
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action: {action!r}")

    entity_id = getattr(entity, "id", None)
    if entity_id is None:
        raise ValueError("log_action entity must have an id (flush first).")

    user = _acting_user()
    entry = AuditLog(
        user_id=user.id if user else None,
        username_snapshot=user.email if user else None,
        entity_type=type(entity).__name__,
        entity_id=str(entity_id),
        action=action,
        before_data=json.dumps(before, ensure_ascii=False) if before else None,
        after_data=json.dumps(after, ensure_ascii=False) if after else None,
        ip_address=request.remote_addr if has_request_context() else None,
    )
    db.session.add(entry)
    return entry
