"""
gatepal/editor/assembler.py

Builds the canonical record handed to the directory on submit.

Rules:
- every string is trimmed;
- gates with a blank name are dropped;
- admins missing name, email or mobile are dropped, the rest are linked to
  the society id and name;
- gst / rate_incl_gst are recomputed from the final base rate (2 places);
- units are clipped to the wing's total;
- created_at comes from the original record when editing, updated_at is now.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Optional

from ..records import (
    Gate,
    Society,
    SocietyAdmin,
    Unit,
    VehicleLimits,
    Wing,
    parse_decimal,
    rate_breakdown,
    utcnow_iso,
)
from .draft import (
    MAX_TOTAL_UNITS,
    UNIT_NAME_MAX_LENGTH,
    WING_NAME_MAX_LENGTH,
    Draft,
    digits_only,
    new_id,
    sanitize_name,
)


def _optional_float(value: str) -> Optional[float]:
    parsed = parse_decimal(value)
    return float(parsed) if parsed is not None else None


def _limit(value: str) -> int:
    digits = digits_only(value)
    return int(digits) if digits else 0


def assemble_record(
    draft: Draft,
    *,
    original: Optional[Society] = None,
    acting_user: str = "Admin",
    now: Callable[[], str] = utcnow_iso,
) -> Society:
    """Canonical record for a validated draft."""
    f = draft.fields
    timestamp = now()

    society_id = draft.id or new_id("soc")
    society_name = f.society_name.strip()

    wings = []
    for wing in draft.wings:
        units = [
            Unit(id=unit.id, number=sanitize_name(unit.number.strip(), UNIT_NAME_MAX_LENGTH))
            for unit in wing.units[:MAX_TOTAL_UNITS]
        ]
        desired = min(max(wing.total_units or 0, 0), MAX_TOTAL_UNITS, len(units))
        units = units[:desired]
        wings.append(
            Wing(
                id=wing.id,
                name=sanitize_name(wing.name.strip(), WING_NAME_MAX_LENGTH),
                total_units=len(units),
                units=units,
            )
        )

    entry_gates = [Gate(id=g.id, name=g.name.strip()) for g in draft.entry_gates if g.name.strip()]
    exit_gates = [Gate(id=g.id, name=g.name.strip()) for g in draft.exit_gates if g.name.strip()]

    admins = []
    for admin in draft.admins:
        name, email, mobile = admin.name.strip(), admin.email.strip(), admin.mobile.strip()
        if not (name and email and mobile):
            continue
        admins.append(
            SocietyAdmin(
                id=admin.id,
                name=name,
                mobile=mobile,
                email=email,
                status=admin.status,
                society_id=society_id,
                society_name=society_name,
                created_at=admin.created_at or timestamp,
            )
        )

    base_rate = parse_decimal(f.base_rate)
    if base_rate is None:
        base_rate = Decimal("0")
    gst, rate_incl_gst = rate_breakdown(base_rate)

    maintenance_day = digits_only(f.maintenance_due_date)
    notes = f.notes.strip()

    return Society(
        id=society_id,
        society_name=society_name,
        society_pin=f.society_pin.strip(),
        address=f.address.strip(),
        city=f.city.strip(),
        country=f.country.strip(),
        latitude=_optional_float(f.latitude),
        longitude=_optional_float(f.longitude),
        status=f.status.strip(),
        maintenance_due_date=int(maintenance_day) if maintenance_day else None,
        notes=notes or None,
        wings=wings,
        entry_gates=entry_gates,
        exit_gates=exit_gates,
        society_admins=admins,
        engagement_start_date=f.engagement_start_date.strip(),
        engagement_end_date=f.engagement_end_date.strip(),
        base_rate=base_rate,
        gst=gst,
        rate_incl_gst=rate_incl_gst,
        vehicle_limits=VehicleLimits(
            two_wheelers_per_unit=_limit(f.two_wheelers_per_unit),
            four_wheelers_per_unit=_limit(f.four_wheelers_per_unit),
            other_vehicles_per_unit=_limit(f.other_vehicles_per_unit),
        ),
        created_by=original.created_by if original else acting_user,
        last_updated_by=acting_user,
        created_at=original.created_at if original and original.created_at else timestamp,
        updated_at=timestamp,
    )
