"""
gatepal/directory/database.py

Directory backend stored in this console's own database (Flask-SQLAlchemy).

The backend is the source of truth for canonical ids, PINs and timestamps:
- create: every id is issued here (ids sent by the editor are provisional).
- update: child rows (wings, units, gates, admins) keep their id when the
  incoming id already belongs to this society; other ids are reissued.

Transaction pattern (same as every mutating route):
    flush -> log_action(...) -> commit
Any SQLAlchemy failure is rolled back and surfaced as DirectoryError.
"""

from __future__ import annotations

import logging
import random
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from .. import models
from ..audit import log_action, serialize_model, society_snapshot
from ..extensions import db
from ..records import (
    ADMIN_STATUSES,
    Gate,
    Society,
    SocietyAdmin,
    Unit,
    VehicleLimits,
    Wing,
    normalize_status,
)
from . import DirectoryError, DirectoryService, SocietyNotFound

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


def _iso_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.isoformat(timespec="milliseconds") + "Z"


def _iso_date(value: Optional[date]) -> str:
    return value.isoformat() if value else ""


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


# ---------------------------------------------------------------------
# Model -> record
# ---------------------------------------------------------------------
def admin_to_record(admin: models.SocietyAdmin, society: models.Society) -> SocietyAdmin:
    return SocietyAdmin(
        id=admin.id,
        name=admin.name,
        mobile=admin.mobile,
        email=admin.email,
        status=admin.status or "Active",
        society_id=society.id,
        society_name=society.society_name,
        created_at=_iso_datetime(admin.created_at),
    )


def society_to_record(society: models.Society) -> Society:
    """Canonical record for a Society row (children included)."""
    wings = [
        Wing(
            id=wing.id,
            name=wing.name,
            total_units=wing.total_units,
            units=[Unit(id=unit.id, number=unit.number) for unit in wing.units],
        )
        for wing in society.wings
    ]

    return Society(
        id=society.id,
        society_name=society.society_name,
        society_pin=society.society_pin,
        address=society.address,
        city=society.city or "",
        country=society.country or "",
        latitude=society.latitude,
        longitude=society.longitude,
        status=normalize_status(society.status),
        maintenance_due_date=society.maintenance_due_date,
        notes=society.notes,
        wings=wings,
        entry_gates=[Gate(id=g.id, name=g.name) for g in society.gates_for("entry")],
        exit_gates=[Gate(id=g.id, name=g.name) for g in society.gates_for("exit")],
        society_admins=[admin_to_record(a, society) for a in society.admins],
        engagement_start_date=_iso_date(society.engagement_start_date),
        engagement_end_date=_iso_date(society.engagement_end_date),
        base_rate=Decimal(str(society.base_rate or "0.00")),
        gst=Decimal(str(society.gst or "0.00")),
        rate_incl_gst=Decimal(str(society.rate_incl_gst or "0.00")),
        vehicle_limits=VehicleLimits(
            two_wheelers_per_unit=society.two_wheelers_per_unit or 0,
            four_wheelers_per_unit=society.four_wheelers_per_unit or 0,
            other_vehicles_per_unit=society.other_vehicles_per_unit or 0,
        ),
        created_by=society.created_by or "System",
        last_updated_by=society.last_updated_by or "System",
        created_at=_iso_datetime(society.created_at),
        updated_at=_iso_datetime(society.updated_at),
    )


# ---------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------
class DatabaseDirectory(DirectoryService):
    """Directory backed by the societies / wings / units / gates tables."""

    # -----------------------------
    # Queries
    # -----------------------------
    def _query(self):
        return models.Society.query.options(
            selectinload(models.Society.wings).selectinload(models.Wing.units),
            selectinload(models.Society.gates),
            selectinload(models.Society.admins),
        )

    def _load(self, society_id: str) -> models.Society:
        society = self._query().filter(models.Society.id == society_id).first()
        if society is None:
            raise SocietyNotFound("Society not found.", status_code=404)
        return society

    def list_societies(self) -> List[Society]:
        rows = self._query().order_by(models.Society.created_at.desc(), models.Society.id.asc()).all()
        return [society_to_record(row) for row in rows]

    def get_society(self, society_id: str) -> Optional[Society]:
        society = self._query().filter(models.Society.id == society_id).first()
        return society_to_record(society) if society else None

    # -----------------------------
    # Society mutations
    # -----------------------------
    def create_society(self, record: Society) -> Society:
        society = models.Society(id=_new_id(), society_pin=self._issue_pin(record.society_pin))
        self._apply(society, record, existing_children=False)
        society.created_by = record.created_by
        society.last_updated_by = record.last_updated_by

        return self._commit(
            society,
            "CREATE",
            before=None,
            add=True,
            fallback="Failed to create society",
        )

    def update_society(self, society_id: str, record: Society) -> Society:
        society = self._load(society_id)
        before_snapshot = society_snapshot(society)

        self._apply(society, record, existing_children=True)
        society.last_updated_by = record.last_updated_by
        society.updated_at = datetime.utcnow()

        return self._commit(society, "UPDATE", before=before_snapshot, fallback="Failed to update society")

    def toggle_society_status(self, society_id: str) -> Society:
        society = self._load(society_id)
        before_snapshot = society_snapshot(society)

        society.status = "Inactive" if society.status == "Active" else "Active"
        society.updated_at = datetime.utcnow()

        return self._commit(
            society, "TOGGLE", before=before_snapshot, fallback="Failed to update society status"
        )

    def suspend_society(self, society_id: str) -> Society:
        society = self._load(society_id)
        before_snapshot = society_snapshot(society)

        society.status = "Suspended"
        society.updated_at = datetime.utcnow()

        return self._commit(society, "SUSPEND", before=before_snapshot, fallback="Failed to suspend society")

    def _commit(self, society, action, *, before, fallback, add=False) -> Society:
        """add -> flush -> audit -> commit, then echo the canonical record."""
        try:
            if add:
                db.session.add(society)
            db.session.flush()
            log_action(society, action, before=before, after=society_snapshot(society))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Society %s failed for %s", action, society.id)
            raise DirectoryError(fallback) from exc

        logger.info("Society %s %s", society.id, action)
        return society_to_record(self._load(society.id))

    def _issue_pin(self, requested: Optional[str]) -> str:
        """Keep the requested 6-digit PIN when unused, otherwise issue a fresh one."""
        candidate = (requested or "").strip()
        while not (candidate.isdigit() and len(candidate) == 6) or self._pin_in_use(candidate):
            candidate = str(random.randint(100000, 999999))
        return candidate

    def _pin_in_use(self, pin: str) -> bool:
        return models.Society.query.filter_by(society_pin=pin).first() is not None

    def _apply(self, society: models.Society, record: Society, *, existing_children: bool) -> None:
        society.society_name = record.society_name
        society.address = record.address
        society.city = record.city or None
        society.country = record.country or None
        society.latitude = record.latitude
        society.longitude = record.longitude
        society.status = normalize_status(record.status)
        society.maintenance_due_date = record.maintenance_due_date
        society.notes = record.notes or None
        society.engagement_start_date = _parse_date(record.engagement_start_date)
        society.engagement_end_date = _parse_date(record.engagement_end_date)
        society.base_rate = record.base_rate
        society.recalc_rates()

        limits = record.vehicle_limits or VehicleLimits()
        society.two_wheelers_per_unit = limits.two_wheelers_per_unit
        society.four_wheelers_per_unit = limits.four_wheelers_per_unit
        society.other_vehicles_per_unit = limits.other_vehicles_per_unit

        current_wings = {w.id: w for w in society.wings} if existing_children else {}
        wings = []
        for position, wing in enumerate(record.wings):
            row = current_wings.get(wing.id) or models.Wing(id=_new_id())
            row.name = wing.name
            row.total_units = wing.total_units
            row.position = position
            self._apply_units(row, wing.units, existing_children=wing.id in current_wings)
            wings.append(row)
        society.wings = wings

        current_gates = {g.id: g for g in society.gates} if existing_children else {}
        gates = []
        for direction, source in (("entry", record.entry_gates), ("exit", record.exit_gates)):
            for position, gate in enumerate(source):
                row = current_gates.get(gate.id) or models.Gate(id=_new_id())
                row.direction = direction
                row.name = gate.name
                row.position = position
                gates.append(row)
        society.gates = gates

        current_admins = {a.id: a for a in society.admins} if existing_children else {}
        admins = []
        for position, admin in enumerate(record.society_admins):
            row = current_admins.get(admin.id) or models.SocietyAdmin(id=_new_id(), status="Active")
            row.name = admin.name
            row.email = admin.email
            row.mobile = admin.mobile
            if admin.status in ADMIN_STATUSES:
                row.status = admin.status
            row.position = position
            admins.append(row)
        society.admins = admins

    @staticmethod
    def _apply_units(wing: models.Wing, units: Iterable[Unit], *, existing_children: bool) -> None:
        current = {u.id: u for u in wing.units} if existing_children else {}
        rows = []
        for position, unit in enumerate(units):
            row = current.get(unit.id) or models.Unit(id=_new_id())
            row.number = unit.number
            row.position = position
            rows.append(row)
        wing.units = rows

    # -----------------------------
    # Society admins
    # -----------------------------
    def _load_admin(self, society: models.Society, admin_id: str) -> models.SocietyAdmin:
        for admin in society.admins:
            if admin.id == admin_id:
                return admin
        raise SocietyNotFound("Society admin not found.", status_code=404)

    def _ensure_unique_email(self, society: models.Society, email: str, exclude_id: Optional[str] = None):
        normalized = email.strip().lower()
        for admin in society.admins:
            if admin.id != exclude_id and admin.email.strip().lower() == normalized:
                raise DirectoryError("An admin with this email already exists for this society.", 409)

    def list_admins(self, society_id: str) -> List[SocietyAdmin]:
        society = self._load(society_id)
        return [admin_to_record(a, society) for a in society.admins]

    def create_admin(self, society_id: str, fields: Dict[str, str]) -> SocietyAdmin:
        society = self._load(society_id)
        self._ensure_unique_email(society, fields["email"])

        admin = models.SocietyAdmin(
            id=_new_id(),
            name=fields["name"],
            email=fields["email"],
            mobile=fields["mobile"],
            status="Active",
            position=len(society.admins),
        )
        society.admins.append(admin)
        return self._commit_admin(society, admin, "CREATE", before=None, fallback="Failed to create society admin")

    def update_admin(self, society_id: str, admin_id: str, fields: Dict[str, str]) -> SocietyAdmin:
        society = self._load(society_id)
        admin = self._load_admin(society, admin_id)
        before_snapshot = serialize_model(admin)

        if "email" in fields:
            self._ensure_unique_email(society, fields["email"], exclude_id=admin.id)
        for key in ("name", "email", "mobile"):
            if key in fields:
                setattr(admin, key, fields[key])

        return self._commit_admin(
            society, admin, "UPDATE", before=before_snapshot, fallback="Failed to update society admin"
        )

    def toggle_admin_status(self, society_id: str, admin_id: str) -> SocietyAdmin:
        society = self._load(society_id)
        admin = self._load_admin(society, admin_id)
        before_snapshot = serialize_model(admin)

        admin.status = "Inactive" if admin.status == "Active" else "Active"

        return self._commit_admin(
            society, admin, "TOGGLE", before=before_snapshot, fallback="Failed to update society admin status"
        )

    def delete_admin(self, society_id: str, admin_id: str) -> None:
        society = self._load(society_id)
        admin = self._load_admin(society, admin_id)
        before_snapshot = serialize_model(admin)

        try:
            log_action(admin, "DELETE", before=before_snapshot, after=None)
            society.admins.remove(admin)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Deleting society admin %s failed", admin_id)
            raise DirectoryError("Failed to delete society admin") from exc

        logger.info("Society admin %s deleted from %s", admin_id, society_id)

    def _commit_admin(self, society, admin, action, *, before, fallback) -> SocietyAdmin:
        try:
            db.session.flush()
            log_action(admin, action, before=before, after=serialize_model(admin))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Society admin %s failed for %s", action, admin.id)
            raise DirectoryError(fallback) from exc

        return admin_to_record(admin, society)
