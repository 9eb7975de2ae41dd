"""
gatepal/directory/remote.py

Directory backend talking to the GatePal backend REST API (httpx).

Wire shape (owned by the backend; mapped here):
- Every response wraps its payload in {"data": ...}.
- Error responses carry {"message": "..."}; that message is preferred over
  the static fallback for each call.
- API societies use `_id`, `structure` (wings with `wingName` and
  `units[].unitNumber`) and an `engagement` block with `startDate`, `endDate`,
  `baseRate`, `gst`, `total`.

Normalization fills ids the API left out, maps status case-insensitively
(unknown -> Active), formats dates as YYYY-MM-DD and derives gst/total when
the API did not send them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from ..records import (
    Gate,
    Society,
    SocietyAdmin,
    Unit,
    VehicleLimits,
    Wing,
    normalize_status,
    parse_decimal,
    rate_breakdown,
    utcnow_iso,
)
from . import DirectoryError, DirectoryService, SocietyNotFound

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------
def format_date_input(value: Any) -> str:
    """ISO date (YYYY-MM-DD) from an API timestamp; empty string when invalid."""
    if not value:
        return ""
    raw = str(value).strip()
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return ""
    return parsed.date().isoformat()


def _decimal_or(value: Any, default: Decimal) -> Decimal:
    parsed = parse_decimal(value)
    return default if parsed is None else parsed


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def normalize_society_admin(society_id: str, society_name: str, admin: Dict[str, Any]) -> SocietyAdmin:
    name = admin.get("name") or ""
    email = admin.get("email") or ""
    return SocietyAdmin(
        id=admin.get("_id") or f"{society_id}-admin-{email or name}",
        name=name,
        mobile=admin.get("mobile") or "",
        email=email,
        status="Inactive" if (admin.get("status") or "").lower() == "inactive" else "Active",
        society_id=society_id,
        society_name=society_name,
        created_at=admin.get("createdAt") or utcnow_iso(),
    )


def normalize_society(payload: Dict[str, Any]) -> Society:
    """Canonical record from an API society document."""
    society_id = str(payload.get("_id") or "")
    society_name = payload.get("societyName") or ""

    wings = []
    for wing in payload.get("structure") or []:
        wing_name = wing.get("wingName") or ""
        units = [
            Unit(
                id=unit.get("_id") or f"{society_id}-unit-{unit.get('unitNumber', '')}",
                number=unit.get("unitNumber") or "",
            )
            for unit in wing.get("units") or []
        ]
        total_units = wing.get("totalUnits")
        wings.append(
            Wing(
                id=wing.get("_id") or f"{society_id}-wing-{wing_name}",
                name=wing_name,
                total_units=int(total_units) if total_units is not None else len(units),
                units=units,
            )
        )

    def gates(key: str, prefix: str) -> List[Gate]:
        return [
            Gate(id=gate.get("_id") or f"{society_id}-{prefix}-{gate.get('name', '')}", name=gate.get("name") or "")
            for gate in payload.get(key) or []
        ]

    engagement = payload.get("engagement") or {}
    base_rate = _decimal_or(engagement.get("baseRate"), Decimal("0"))
    derived_gst, _ = rate_breakdown(base_rate)
    gst = _decimal_or(engagement.get("gst"), derived_gst)
    total = _decimal_or(engagement.get("total"), base_rate + gst)

    limits = payload.get("vehicleLimits")
    vehicle_limits = None
    if limits:
        vehicle_limits = VehicleLimits(
            two_wheelers_per_unit=_int_or_none(limits.get("twoWheelersPerUnit")) or 0,
            four_wheelers_per_unit=_int_or_none(limits.get("fourWheelersPerUnit")) or 0,
            other_vehicles_per_unit=_int_or_none(limits.get("otherVehiclesPerUnit")) or 0,
        )

    admins = []
    for admin in payload.get("societyAdmins") or []:
        normalized = normalize_society_admin(society_id, society_name, admin)
        if not admin.get("createdAt") and payload.get("createdAt"):
            normalized.created_at = payload["createdAt"]
        admins.append(normalized)

    return Society(
        id=society_id,
        society_name=society_name,
        society_pin=str(payload.get("societyPin") or ""),
        address=payload.get("address") or "",
        city=payload.get("city") or "",
        country=payload.get("country") or "",
        latitude=_float_or_none(payload.get("latitude")),
        longitude=_float_or_none(payload.get("longitude")),
        status=normalize_status(payload.get("status")),
        maintenance_due_date=_int_or_none(payload.get("maintenanceDueDate")),
        notes=payload.get("notes"),
        wings=wings,
        entry_gates=gates("entryGates", "entry"),
        exit_gates=gates("exitGates", "exit"),
        society_admins=admins,
        engagement_start_date=format_date_input(engagement.get("startDate")),
        engagement_end_date=format_date_input(engagement.get("endDate")),
        base_rate=base_rate,
        gst=gst,
        rate_incl_gst=total,
        vehicle_limits=vehicle_limits,
        created_by=payload.get("createdBy") or "System",
        last_updated_by=payload.get("lastUpdatedBy") or "System",
        created_at=payload.get("createdAt") or utcnow_iso(),
        updated_at=payload.get("updatedAt") or utcnow_iso(),
    )


def build_society_payload(society: Society) -> Dict[str, Any]:
    """Request body for create/update. Blank gates and incomplete admins are dropped."""
    payload: Dict[str, Any] = {
        "societyName": society.society_name,
        "societyPin": society.society_pin,
        "address": society.address,
        "city": society.city or "",
        "country": society.country or "",
        "status": society.status,
        "maintenanceDueDate": society.maintenance_due_date or 1,
        "structure": [
            {
                "wingName": wing.name,
                "totalUnits": wing.total_units,
                "units": [{"unitNumber": unit.number} for unit in wing.units],
            }
            for wing in society.wings
        ],
        "entryGates": [{"name": g.name} for g in society.entry_gates if g.name],
        "exitGates": [{"name": g.name} for g in society.exit_gates if g.name],
        "societyAdmins": [
            {"name": a.name, "mobile": a.mobile, "email": a.email}
            for a in society.society_admins
            if a.name and a.email and a.mobile
        ],
        "engagement": {
            "startDate": society.engagement_start_date,
            "endDate": society.engagement_end_date,
            "baseRate": float(society.base_rate),
            "gst": float(society.gst),
            "total": float(society.rate_incl_gst),
        },
    }
    if society.latitude is not None:
        payload["latitude"] = society.latitude
    if society.longitude is not None:
        payload["longitude"] = society.longitude
    if society.notes:
        payload["notes"] = society.notes
    if society.vehicle_limits is not None:
        payload["vehicleLimits"] = {
            "twoWheelersPerUnit": society.vehicle_limits.two_wheelers_per_unit,
            "fourWheelersPerUnit": society.vehicle_limits.four_wheelers_per_unit,
            "otherVehiclesPerUnit": society.vehicle_limits.other_vehicles_per_unit,
        }
    return payload


def extract_error_message(error: Exception, fallback: str) -> str:
    """Server-supplied message when the response has one, else the fallback."""
    if isinstance(error, httpx.HTTPStatusError):
        try:
            body = error.response.json()
        except ValueError:
            return fallback
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    return fallback


# ---------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------
class RemoteDirectory(DirectoryService):
    """REST client for the GatePal backend."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def _request(self, method: str, path: str, fallback: str, **kwargs) -> Any:
        """Perform a call and return the parsed body; raise DirectoryError on failure."""
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = extract_error_message(exc, fallback)
            status = exc.response.status_code
            logger.warning("%s %s failed with %s: %s", method, path, status, message)
            if status == 404:
                raise SocietyNotFound(message, status_code=404) from exc
            raise DirectoryError(message, status_code=status) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise DirectoryError(fallback) from exc

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise DirectoryError(fallback) from exc

    @staticmethod
    def _data(body: Any) -> Any:
        return body.get("data") if isinstance(body, dict) else None

    def _society_call(self, method: str, path: str, fallback: str, invalid: str, **kwargs) -> Society:
        data = self._data(self._request(method, path, fallback, **kwargs))
        if not data:
            raise DirectoryError(invalid)
        return normalize_society(data)

    # -----------------------------
    # Societies
    # -----------------------------
    def list_societies(self) -> List[Society]:
        body = self._request("GET", "/society/get-all-societies", "Failed to load societies")
        return [normalize_society(item) for item in self._data(body) or []]

    def get_society(self, society_id: str) -> Optional[Society]:
        try:
            body = self._request("GET", f"/society/{society_id}", "Failed to fetch society")
        except SocietyNotFound:
            return None
        data = self._data(body)
        return normalize_society(data) if data else None

    def create_society(self, record: Society) -> Society:
        return self._society_call(
            "POST",
            "/society/create-society",
            "Failed to create society",
            "Invalid response from server while creating society",
            json=build_society_payload(record),
        )

    def update_society(self, society_id: str, record: Society) -> Society:
        return self._society_call(
            "PUT",
            f"/society/{society_id}",
            "Failed to update society",
            "Invalid response from server while updating society",
            json=build_society_payload(record),
        )

    def toggle_society_status(self, society_id: str) -> Society:
        return self._society_call(
            "PATCH",
            f"/society/{society_id}/toggle-status",
            "Failed to update society status",
            "Invalid response from server while toggling society status",
        )

    def suspend_society(self, society_id: str) -> Society:
        return self._society_call(
            "PATCH",
            f"/society/{society_id}/suspend",
            "Failed to suspend society",
            "Invalid response from server while suspending society",
        )

    # -----------------------------
    # Society admins
    # -----------------------------
    def _admin_call(self, method: str, path: str, fallback: str, invalid: str, **kwargs) -> SocietyAdmin:
        data = self._data(self._request(method, path, fallback, **kwargs))
        if not data or not data.get("admin"):
            raise DirectoryError(invalid)
        return normalize_society_admin(data.get("societyId", ""), data.get("societyName", ""), data["admin"])

    def list_admins(self, society_id: str) -> List[SocietyAdmin]:
        data = self._data(self._request("GET", f"/society-admin/{society_id}", "Failed to fetch society admins"))
        if not data:
            raise DirectoryError("Invalid response from server while fetching society admins")
        return [
            normalize_society_admin(data.get("societyId", society_id), data.get("societyName", ""), admin)
            for admin in data.get("admins") or []
        ]

    def create_admin(self, society_id: str, fields: Dict[str, str]) -> SocietyAdmin:
        return self._admin_call(
            "POST",
            f"/society-admin/{society_id}",
            "Failed to create society admin",
            "Invalid response from server while creating society admin",
            json=fields,
        )

    def update_admin(self, society_id: str, admin_id: str, fields: Dict[str, str]) -> SocietyAdmin:
        return self._admin_call(
            "PUT",
            f"/society-admin/{society_id}/{admin_id}",
            "Failed to update society admin",
            "Invalid response from server while updating society admin",
            json=fields,
        )

    def toggle_admin_status(self, society_id: str, admin_id: str) -> SocietyAdmin:
        return self._admin_call(
            "PATCH",
            f"/society-admin/{society_id}/{admin_id}/toggle-status",
            "Failed to update society admin status",
            "Invalid response from server while toggling society admin status",
        )

    def delete_admin(self, society_id: str, admin_id: str) -> None:
        self._request("DELETE", f"/society-admin/{society_id}/{admin_id}", "Failed to delete society admin")
