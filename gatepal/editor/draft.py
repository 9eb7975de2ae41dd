"""
gatepal/editor/draft.py

Editable draft of a society record.

Form fields are kept as the raw strings the user typed (so they can be shown
back and validated later); wings, units, gates and admins are mutable objects
with synthetic ids. A draft is either built from defaults (create mode) or
deep-cloned from a canonical record (edit mode), so editing it never touches
the cached record.
"""

from __future__ import annotations

import random
import re
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from ..records import Society, VehicleLimits

TABS = ("basic", "structure", "gates", "admins", "engagement")
GATE_DIRECTIONS = ("entry", "exit")

GATE_NAME_MAX_LENGTH = 100
WING_NAME_MAX_LENGTH = 100
UNIT_NAME_MAX_LENGTH = 110
MAX_TOTAL_UNITS = 999
SOCIETY_NAME_MAX_LENGTH = 255
ADDRESS_MAX_LENGTH = 1000
NOTES_MAX_LENGTH = 5000
ADMIN_NAME_MAX_LENGTH = 100
ADMIN_MOBILE_MAX_LENGTH = 10

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E]")
_NON_DIGIT = re.compile(r"\D")


def sanitize_printable_ascii(value: Optional[str]) -> str:
    return _NON_PRINTABLE.sub("", value or "")


def is_printable_ascii(value: str) -> bool:
    return _NON_PRINTABLE.search(value) is None


def sanitize_name(value: Optional[str], max_length: int) -> str:
    """Strip non-printable-ASCII characters and clip."""
    return sanitize_printable_ascii(value)[:max_length]


def digits_only(value) -> str:
    return _NON_DIGIT.sub("", "" if value is None else str(value))


def new_id(prefix: str) -> str:
    """Synthetic id, unique within the process."""
    return f"{prefix}-{uuid.uuid4().hex}"


def generate_pin() -> str:
    """Non-authoritative 6-digit PIN shown while creating a society."""
    return str(random.randint(100000, 999999))


# ---------------------------------------------------------------------
# Draft elements
# ---------------------------------------------------------------------
@dataclass
class DraftUnit:
    id: str
    number: str


@dataclass
class DraftWing:
    id: str
    name: str = ""
    total_units: int = 0
    units: List[DraftUnit] = field(default_factory=list)
    # unit-editing panel open in the UI
    expanded: bool = False


@dataclass
class DraftGate:
    id: str
    name: str = ""


@dataclass
class DraftAdmin:
    id: str
    name: str = ""
    mobile: str = ""
    email: str = ""
    status: str = "Active"
    created_at: str = ""


@dataclass
class DraftFields:
    """Scalar form fields of the basic and engagement tabs (raw strings)."""

    society_name: str = ""
    address: str = ""
    city: str = ""
    country: str = ""
    latitude: str = ""
    longitude: str = ""
    status: str = "Active"
    society_pin: str = ""
    maintenance_due_date: str = ""
    notes: str = ""
    two_wheelers_per_unit: str = "0"
    four_wheelers_per_unit: str = "0"
    other_vehicles_per_unit: str = "0"
    engagement_start_date: str = ""
    engagement_end_date: str = ""
    base_rate: str = ""
    gst: str = ""
    rate_incl_gst: str = ""


BASIC_FIELDS = (
    "society_name",
    "address",
    "city",
    "country",
    "latitude",
    "longitude",
    "status",
    "society_pin",
    "maintenance_due_date",
    "notes",
    "two_wheelers_per_unit",
    "four_wheelers_per_unit",
    "other_vehicles_per_unit",
)
ENGAGEMENT_FIELDS = (
    "engagement_start_date",
    "engagement_end_date",
    "base_rate",
    "gst",
    "rate_incl_gst",
)
TAB_FIELDS = {"basic": BASIC_FIELDS, "engagement": ENGAGEMENT_FIELDS}

# Display-only: the PIN is issued by the directory, GST values are derived.
READ_ONLY_FIELDS = frozenset({"society_pin", "gst", "rate_incl_gst"})

VEHICLE_LIMIT_FIELDS = ("two_wheelers_per_unit", "four_wheelers_per_unit", "other_vehicles_per_unit")


@dataclass
class Draft:
    """In-memory editable copy of a society."""

    id: Optional[str] = None
    fields: DraftFields = field(default_factory=DraftFields)
    wings: List[DraftWing] = field(default_factory=list)
    entry_gates: List[DraftGate] = field(default_factory=list)
    exit_gates: List[DraftGate] = field(default_factory=list)
    admins: List[DraftAdmin] = field(default_factory=list)

    def gates(self, direction: str) -> List[DraftGate]:
        if direction == "entry":
            return self.entry_gates
        if direction == "exit":
            return self.exit_gates
        raise ValueError(f"Unknown gate direction: {direction!r}")


# ---------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------
def blank_draft() -> Draft:
    """Draft before initialization: one blank gate in each direction."""
    return Draft(
        entry_gates=[DraftGate(id=new_id("entry"))],
        exit_gates=[DraftGate(id=new_id("exit"))],
    )


def default_draft(pin: str) -> Draft:
    draft = blank_draft()
    draft.fields.society_pin = pin
    return draft


def _format_number(value) -> str:
    return "" if value is None else str(value)


def draft_from_record(record: Society) -> Draft:
    """
    Editable clone of a canonical record.

    Names are sanitized and clipped, unit lists are clipped to the wing total
    (and to MAX_TOTAL_UNITS), empty gate lists get a blank placeholder.
    """
    wings = []
    for wing in record.wings:
        units = [
            DraftUnit(id=unit.id, number=sanitize_name(unit.number, UNIT_NAME_MAX_LENGTH))
            for unit in wing.units[:MAX_TOTAL_UNITS]
        ]
        total = min(wing.total_units if wing.total_units is not None else len(units), len(units), MAX_TOTAL_UNITS)
        wings.append(
            DraftWing(
                id=wing.id,
                name=sanitize_name(wing.name, WING_NAME_MAX_LENGTH),
                total_units=total,
                units=units[:total],
            )
        )

    def gates(source, direction: str) -> List[DraftGate]:
        if not source:
            return [DraftGate(id=new_id(direction))]
        return [DraftGate(id=g.id, name=sanitize_name(g.name, GATE_NAME_MAX_LENGTH)) for g in source]

    limits = record.vehicle_limits or VehicleLimits()

    return Draft(
        id=record.id,
        fields=DraftFields(
            society_name=sanitize_name(record.society_name, SOCIETY_NAME_MAX_LENGTH),
            address=(record.address or "")[:ADDRESS_MAX_LENGTH],
            city=record.city or "",
            country=record.country or "",
            latitude=_format_number(record.latitude),
            longitude=_format_number(record.longitude),
            status=record.status,
            society_pin=record.society_pin,
            maintenance_due_date=_format_number(record.maintenance_due_date),
            notes=(record.notes or "")[:NOTES_MAX_LENGTH],
            two_wheelers_per_unit=str(limits.two_wheelers_per_unit or 0),
            four_wheelers_per_unit=str(limits.four_wheelers_per_unit or 0),
            other_vehicles_per_unit=str(limits.other_vehicles_per_unit or 0),
            engagement_start_date=record.engagement_start_date or "",
            engagement_end_date=record.engagement_end_date or "",
            base_rate=_format_number(record.base_rate),
            gst=_format_number(record.gst),
            rate_incl_gst=_format_number(record.rate_incl_gst),
        ),
        wings=wings,
        entry_gates=gates(record.entry_gates, "entry"),
        exit_gates=gates(record.exit_gates, "exit"),
        admins=[
            DraftAdmin(
                id=a.id,
                name=a.name,
                mobile=a.mobile,
                email=a.email,
                status=a.status,
                created_at=a.created_at,
            )
            for a in record.society_admins
        ],
    )
