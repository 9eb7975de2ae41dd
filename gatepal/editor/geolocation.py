"""
gatepal/editor/geolocation.py

Geolocation provider used to prefill a society's coordinates.

The console renders server-side, so the reading is taken by the browser
(navigator.geolocation) and posted back; ReportedGeolocation replays that
report to the editor. Browser error codes follow the W3C Geolocation API:
1 = permission denied, 2 = position unavailable, 3 = timeout.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Mapping, Optional

from ..records import parse_decimal

PERMISSION_DENIED = "permission_denied"
UNAVAILABLE = "unavailable"
TIMEOUT = "timeout"
OTHER = "other"

FAILURE_MESSAGES = {
    PERMISSION_DENIED: "Location permission denied. Enter coordinates manually.",
    UNAVAILABLE: "Location unavailable. Try again or enter manually.",
    TIMEOUT: "Fetching location timed out. Try again.",
    OTHER: "Unable to fetch current location.",
}
NOT_SUPPORTED_MESSAGE = "Geolocation is not supported by this browser."

REQUEST_TIMEOUT_SECONDS = 10
MAXIMUM_AGE_SECONDS = 60

_BROWSER_ERROR_CODES = {"1": PERMISSION_DENIED, "2": UNAVAILABLE, "3": TIMEOUT}


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float


class GeolocationError(Exception):
    """The provider could not produce a reading."""

    def __init__(self, reason: str):
        if reason not in FAILURE_MESSAGES:
            reason = OTHER
        super().__init__(reason)
        self.reason = reason

    @property
    def message(self) -> str:
        return failure_message(self.reason)


def failure_message(reason: str) -> str:
    return FAILURE_MESSAGES.get(reason, FAILURE_MESSAGES[OTHER])


class GeolocationProvider(abc.ABC):
    @abc.abstractmethod
    def get_current_position(self, *, timeout: float, maximum_age: float) -> Position:
        """Single reading; raise GeolocationError on failure."""


class ReportedGeolocation(GeolocationProvider):
    """Replays a reading (or failure) reported by the browser."""

    def __init__(self, position: Optional[Position] = None, reason: Optional[str] = None):
        self.position = position
        self.reason = reason

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> "ReportedGeolocation":
        """
        Build from posted fields: geo_latitude / geo_longitude on success,
        geo_error_code (browser code) on failure.
        """
        code = (form.get("geo_error_code") or "").strip()
        if code:
            return cls(reason=_BROWSER_ERROR_CODES.get(code, OTHER))

        latitude = parse_decimal(form.get("geo_latitude"))
        longitude = parse_decimal(form.get("geo_longitude"))
        if latitude is None or longitude is None:
            return cls(reason=OTHER)
        return cls(position=Position(float(latitude), float(longitude)))

    def get_current_position(self, *, timeout: float, maximum_age: float) -> Position:
        if self.position is None:
            raise GeolocationError(self.reason or OTHER)
        return self.position
