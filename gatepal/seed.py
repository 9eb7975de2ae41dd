"""
gatepal/seed.py

Seed the country / city options offered by the society editor.

Rules:
- Safe to run multiple times (idempotent): existing countries and cities are
  kept, missing ones are added.
- Existing rows are never deactivated or renamed here.
"""

from __future__ import annotations

from .extensions import db
from .models import City, Country


DEFAULT_LOCATIONS = [
    # code, country name, cities
    (
        "IN",
        "India",
        [
            "Ahmedabad",
            "Bengaluru",
            "Chennai",
            "Delhi",
            "Hyderabad",
            "Kolkata",
            "Mumbai",
            "Noida",
            "Gurugram",
            "Pune",
        ],
    ),
    ("AE", "United Arab Emirates", ["Abu Dhabi", "Dubai", "Sharjah"]),
    ("US", "United States", ["Chicago", "New York", "San Francisco"]),
    ("GB", "United Kingdom", ["Birmingham", "London", "Manchester"]),
]


def seed_default_locations() -> int:
    """
    Insert missing countries and cities. Returns the number of rows added.
    """
    added = 0

    for code, name, cities in DEFAULT_LOCATIONS:
        country = Country.query.filter_by(code=code).first()
        if country is None:
            country = Country(code=code, name=name, is_active=True)
            db.session.add(country)
            db.session.flush()
            added += 1

        existing = {c.name for c in City.query.filter_by(country_id=country.id).all()}
        for city_name in cities:
            if city_name in existing:
                continue
            db.session.add(City(country_id=country.id, name=city_name, is_active=True))
            added += 1

    db.session.commit()
    return added
