"""
gatepal/records.py

Canonical society records as returned by the directory backends.

These are plain dataclasses, independent of Flask and SQLAlchemy, so the same
shapes flow through the database backend, the REST client and the editor.

IMPORTANT:
- Money values are Decimal and always rounded to 2 places (ROUND_HALF_UP).
- GST is a fixed 18% of the base rate; gst/rate_incl_gst are derived and are
  never edited independently.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

SOCIETY_STATUSES = ("Active", "Inactive", "Trial", "Suspended")
ADMIN_STATUSES = ("Active", "Inactive")

GST_RATE = Decimal("0.18")

# Society.base_rate is Numeric(12, 2)
MAX_BASE_RATE = Decimal("9999999999.99")


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def money(x: Decimal) -> Decimal:
    """Round to 2 places; values too large for the decimal context become 0.00."""
    try:
        return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return Decimal("0.00")


def parse_decimal(value: Any) -> Optional[Decimal]:
    """Parse decimal from user input (accepts comma or dot). None when empty/invalid."""
    if value is None:
        return None
    raw = str(value).strip().replace(",", ".")
    if raw == "":
        return None
    try:
        parsed = Decimal(raw)
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def rate_breakdown(base_rate: Decimal) -> tuple[Decimal, Decimal]:
    """Return (gst, rate_incl_gst) for a base rate, both rounded to 2 places."""
    if abs(base_rate) > MAX_BASE_RATE:
        base_rate = Decimal("0")
    gst = money(base_rate * GST_RATE)
    return gst, money(base_rate + gst)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_status(value: Optional[str]) -> str:
    """Map a status string case-insensitively; unknown values become Active."""
    normalized = (value or "").strip().lower()
    for status in SOCIETY_STATUSES:
        if status.lower() == normalized:
            return status
    return "Active"


# ---------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------
@dataclass
class Unit:
    id: str
    number: str


@dataclass
class Wing:
    id: str
    name: str
    total_units: int = 0
    units: List[Unit] = field(default_factory=list)


@dataclass
class Gate:
    id: str
    name: str


@dataclass
class SocietyAdmin:
    """Delegate user scoped to one society."""

    id: str
    name: str
    mobile: str
    email: str
    status: str = "Active"
    society_id: str = ""
    society_name: str = ""
    created_at: str = ""


@dataclass
class VehicleLimits:
    two_wheelers_per_unit: int = 0
    four_wheelers_per_unit: int = 0
    other_vehicles_per_unit: int = 0


@dataclass
class Society:
    """A residential complex managed by GatePal."""

    id: str
    society_name: str
    society_pin: str
    address: str
    city: str = ""
    country: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str = "Active"
    maintenance_due_date: Optional[int] = None
    notes: Optional[str] = None
    wings: List[Wing] = field(default_factory=list)
    entry_gates: List[Gate] = field(default_factory=list)
    exit_gates: List[Gate] = field(default_factory=list)
    society_admins: List[SocietyAdmin] = field(default_factory=list)
    engagement_start_date: str = ""
    engagement_end_date: str = ""
    base_rate: Decimal = Decimal("0.00")
    gst: Decimal = Decimal("0.00")
    rate_incl_gst: Decimal = Decimal("0.00")
    vehicle_limits: Optional[VehicleLimits] = None
    created_by: str = "System"
    last_updated_by: str = "System"
    created_at: str = ""
    updated_at: str = ""

    @property
    def total_wings(self) -> int:
        return len(self.wings)

    @property
    def total_units(self) -> int:
        return sum(wing.total_units for wing in self.wings)

    def clone(self) -> "Society":
        """Deep copy, so callers may mutate the result freely."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly snapshot (Decimals as strings)."""
        data = asdict(self)
        for key in ("base_rate", "gst", "rate_incl_gst"):
            data[key] = str(data[key])
        data["total_wings"] = self.total_wings
        return data
