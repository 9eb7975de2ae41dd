"""
Helpers shared by the console blueprints:
- society list filtering / sorting / paging (works on canonical records, so it
  is the same for every directory backend);
- CSV export rows;
- location options for the editor dropdowns;
- society_row_class: CSS class for list rows by status.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from .models import City, Country
from .records import Society


SORT_KEYS = {
    "name": lambda s: (s.society_name or "").lower(),
    "pin": lambda s: s.society_pin or "",
    "status": lambda s: s.status or "",
    "city": lambda s: (s.city or "").lower(),
    "created": lambda s: s.created_at or "",
    "updated": lambda s: s.updated_at or "",
}
DEFAULT_SORT = "name"

CSV_HEADER = [
    "Society Name",
    "Society PIN",
    "Address",
    "City",
    "Country",
    "Status",
    "Engagement Start",
    "Engagement End",
    "Maintenance Due Date",
    "Base Rate",
    "GST",
    "Rate Incl GST",
    "Latitude",
    "Longitude",
    "Notes",
]


def society_row_class(status: str) -> str:
    status = (status or "").strip()
    if status == "Inactive":
        return "row-inactive"
    if status == "Suspended":
        return "row-suspended"
    if status == "Trial":
        return "row-trial"
    return ""


def filter_societies(societies: Iterable[Society], query: str = "", status: str = "all") -> List[Society]:
    """Case-insensitive search on name, address and PIN plus an exact status filter."""
    query = (query or "").strip().lower()
    status = (status or "all").strip()

    result = []
    for society in societies:
        if query and not (
            query in (society.society_name or "").lower()
            or query in (society.address or "").lower()
            or query in (society.society_pin or "").lower()
        ):
            continue
        if status != "all" and society.status != status:
            continue
        result.append(society)
    return result


def sort_societies(societies: Iterable[Society], sort: str = DEFAULT_SORT, direction: str = "asc") -> List[Society]:
    key = SORT_KEYS.get(sort, SORT_KEYS[DEFAULT_SORT])
    return sorted(societies, key=key, reverse=(direction == "desc"))


@dataclass
class Page:
    items: Sequence
    page: int
    per_page: int
    total: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page)) if self.per_page else 1

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


def paginate(items: Sequence, page: int, per_page: int) -> Page:
    """Slice a list into a Page; out-of-range pages are clamped."""
    total = len(items)
    per_page = max(1, per_page)
    last_page = max(1, math.ceil(total / per_page))
    page = min(max(1, page), last_page)
    start = (page - 1) * per_page
    return Page(items=items[start:start + per_page], page=page, per_page=per_page, total=total)


def society_csv_row(society: Society) -> list:
    def blank(value):
        return "" if value is None else value

    return [
        society.society_name,
        society.society_pin,
        society.address,
        blank(society.city),
        blank(society.country),
        society.status,
        blank(society.engagement_start_date),
        blank(society.engagement_end_date),
        blank(society.maintenance_due_date),
        society.base_rate,
        society.gst,
        society.rate_incl_gst,
        blank(society.latitude),
        blank(society.longitude),
        blank(society.notes),
    ]


def get_location_options() -> Dict[str, List[str]]:
    """
    Return {country name: [city names]} for active countries and cities.

    Used to populate the country / city dropdowns of the editor.
    """
    countries = Country.query.filter_by(is_active=True).order_by(Country.name.asc()).all()
    options: Dict[str, List[str]] = {}
    for country in countries:
        cities = (
            City.query
            .filter_by(country_id=country.id, is_active=True)
            .order_by(City.name.asc())
            .all()
        )
        options[country.name] = [c.name for c in cities]
    return options
