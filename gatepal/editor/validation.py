"""
gatepal/editor/validation.py

Per-tab validation rules of the society editor.

Each validator returns the complete error set of its tab as
{error_key: message}; an empty dict means the tab is valid. Validators never
raise and never mutate the draft. Error keys are hierarchical:

    basic.<field>
    structure.general
    structure.wings.<wingId>.name | .total_units | .units.<unitId>
    gates.<direction>.general
    gates.<direction>.<gateId>.name
    admins.general
    admins.<adminId>.name | .mobile | .email
    engagement.<field>
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Optional

from ..records import MAX_BASE_RATE, SOCIETY_STATUSES, parse_decimal
from .draft import (
    ADDRESS_MAX_LENGTH,
    ADMIN_NAME_MAX_LENGTH,
    GATE_NAME_MAX_LENGTH,
    MAX_TOTAL_UNITS,
    NOTES_MAX_LENGTH,
    SOCIETY_NAME_MAX_LENGTH,
    UNIT_NAME_MAX_LENGTH,
    VEHICLE_LIMIT_FIELDS,
    WING_NAME_MAX_LENGTH,
    Draft,
    digits_only,
    is_printable_ascii,
)

Errors = Dict[str, str]

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")

CHARSET_MESSAGE = "{label} can include only letters, numbers, spaces, and special characters."


def _parse_int(value: str) -> Optional[int]:
    raw = value.strip()
    if not _INTEGER_RE.match(raw):
        return None
    return int(raw)


def parse_iso_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def _name_error(value: str, label: str, max_length: int) -> Optional[str]:
    """Common rule for names: required, max length, printable ASCII."""
    trimmed = value.strip()
    if not trimmed:
        return f"{label} is required."
    if len(trimmed) > max_length:
        return f"{label} cannot exceed {max_length} characters."
    if not is_printable_ascii(trimmed):
        return CHARSET_MESSAGE.format(label=label)
    return None


# ---------------------------------------------------------------------
# Tabs
# ---------------------------------------------------------------------
def validate_basic(draft: Draft) -> Errors:
    f = draft.fields
    errors: Errors = {}

    message = _name_error(f.society_name, "Society name", SOCIETY_NAME_MAX_LENGTH)
    if message:
        errors["basic.society_name"] = message

    if not f.address.strip():
        errors["basic.address"] = "Address is required."
    elif len(f.address) > ADDRESS_MAX_LENGTH:
        errors["basic.address"] = f"Address cannot exceed {ADDRESS_MAX_LENGTH} characters."

    if not f.city.strip():
        errors["basic.city"] = "City is required."

    if f.notes and len(f.notes) > NOTES_MAX_LENGTH:
        errors["basic.notes"] = f"Notes cannot exceed {NOTES_MAX_LENGTH} characters."

    if not f.country.strip():
        errors["basic.country"] = "Country is required."

    if not f.status.strip():
        errors["basic.status"] = "Status is required."
    elif f.status not in SOCIETY_STATUSES:
        errors["basic.status"] = "Select a valid status."

    if not f.maintenance_due_date.strip():
        errors["basic.maintenance_due_date"] = "Maintenance due date is required."
    else:
        day = _parse_int(f.maintenance_due_date)
        if day is None or day < 1 or day > 30:
            errors["basic.maintenance_due_date"] = "Select a valid day between 1 and 30."

    if f.latitude.strip():
        latitude = parse_decimal(f.latitude)
        if latitude is None or latitude < -90 or latitude > 90:
            errors["basic.latitude"] = "Enter a valid latitude."

    if f.longitude.strip():
        longitude = parse_decimal(f.longitude)
        if longitude is None or longitude < -180 or longitude > 180:
            errors["basic.longitude"] = "Enter a valid longitude."

    for name in VEHICLE_LIMIT_FIELDS:
        raw = getattr(f, name).strip()
        if raw and digits_only(raw) != raw:
            errors[f"basic.{name}"] = "Enter a whole number of 0 or more."

    return errors


def validate_structure(draft: Draft) -> Errors:
    errors: Errors = {}

    if not draft.wings:
        errors["structure.general"] = "Add at least one wing."

    for wing in draft.wings:
        wing_key = f"structure.wings.{wing.id}"

        message = _name_error(wing.name, "Wing name", WING_NAME_MAX_LENGTH)
        if message:
            errors[f"{wing_key}.name"] = message

        if not wing.total_units or wing.total_units <= 0:
            errors[f"{wing_key}.total_units"] = "Total units must be greater than 0."
        elif wing.total_units > MAX_TOTAL_UNITS:
            errors[f"{wing_key}.total_units"] = f"Total units cannot exceed {MAX_TOTAL_UNITS}."

        for unit in wing.units:
            message = _name_error(unit.number, "Unit number", UNIT_NAME_MAX_LENGTH)
            if message:
                errors[f"{wing_key}.units.{unit.id}"] = message

    return errors


def validate_gates(draft: Draft) -> Errors:
    """
    Each direction needs at least one gate with a name.

    Blank gates next to a named gate are accepted here; they are dropped when
    the record is assembled.
    """
    errors: Errors = {}

    for direction in ("entry", "exit"):
        label = f"{direction.capitalize()} gate name"
        gates = draft.gates(direction)

        if not gates:
            errors[f"gates.{direction}.general"] = f"Add at least one {direction} gate."
            continue

        has_named_gate = any(gate.name.strip() for gate in gates)
        for gate in gates:
            key = f"gates.{direction}.{gate.id}.name"
            if not gate.name.strip():
                if not has_named_gate:
                    errors[key] = f"{label} is required."
                continue
            message = _name_error(gate.name, label, GATE_NAME_MAX_LENGTH)
            if message:
                errors[key] = message

    return errors


def validate_admins(draft: Draft) -> Errors:
    errors: Errors = {}

    if not draft.admins:
        errors["admins.general"] = "Add at least one society admin."

    mobile_numbers = set()
    email_addresses = set()

    for admin in draft.admins:
        admin_key = f"admins.{admin.id}"

        name = admin.name.strip()
        if not name:
            errors[f"{admin_key}.name"] = "Admin name is required."
        elif len(name) > ADMIN_NAME_MAX_LENGTH:
            errors[f"{admin_key}.name"] = f"Admin name cannot exceed {ADMIN_NAME_MAX_LENGTH} characters."

        mobile = admin.mobile.strip()
        if not mobile:
            errors[f"{admin_key}.mobile"] = "Phone number is required."
        elif not mobile.isdigit():
            errors[f"{admin_key}.mobile"] = "Phone number can only contain numbers."
        elif len(mobile) != 10:
            errors[f"{admin_key}.mobile"] = "Phone number must be exactly 10 digits."
        elif mobile in mobile_numbers:
            errors[f"{admin_key}.mobile"] = "This phone number is already used by another admin in this form."
        else:
            mobile_numbers.add(mobile)

        email = admin.email.strip()
        if not email:
            errors[f"{admin_key}.email"] = "Admin email is required."
        elif not EMAIL_RE.match(email):
            errors[f"{admin_key}.email"] = "Please enter a valid email address."
        elif email.lower() in email_addresses:
            errors[f"{admin_key}.email"] = "This email is already used by another admin in this form."
        else:
            email_addresses.add(email.lower())

    return errors


def validate_engagement(draft: Draft) -> Errors:
    f = draft.fields
    errors: Errors = {}

    start_raw = f.engagement_start_date.strip()
    end_raw = f.engagement_end_date.strip()

    start = parse_iso_date(start_raw) if start_raw else None
    end = parse_iso_date(end_raw) if end_raw else None

    if not start_raw:
        errors["engagement.engagement_start_date"] = "Engagement start date is required."
    elif start is None:
        errors["engagement.engagement_start_date"] = "Enter a valid start date."

    if not end_raw:
        errors["engagement.engagement_end_date"] = "Engagement end date is required."
    elif end is None:
        errors["engagement.engagement_end_date"] = "Enter a valid end date."

    if start and end and start > end:
        errors["engagement.engagement_end_date"] = "End date must be after start date."

    if not f.base_rate.strip():
        errors["engagement.base_rate"] = "Base rate is required."
    else:
        base = parse_decimal(f.base_rate)
        if base is None or base <= Decimal("0"):
            errors["engagement.base_rate"] = "Enter a valid base rate greater than 0."
        elif base > MAX_BASE_RATE:
            errors["engagement.base_rate"] = f"Base rate cannot exceed {MAX_BASE_RATE}."

    return errors


VALIDATORS: Dict[str, Callable[[Draft], Errors]] = {
    "basic": validate_basic,
    "structure": validate_structure,
    "gates": validate_gates,
    "admins": validate_admins,
    "engagement": validate_engagement,
}


def validate_tab(draft: Draft, tab: str) -> Errors:
    try:
        validator = VALIDATORS[tab]
    except KeyError:
        raise ValueError(f"Unknown tab: {tab!r}") from None
    return validator(draft)
