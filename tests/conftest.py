from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from config import TestingConfig
from gatepal import create_app
from gatepal.directory import DirectoryError, DirectoryService, SocietyNotFound
from gatepal.editor import RecordCache, SocietyEditor
from gatepal.extensions import db
from gatepal.models import User
from gatepal.records import Gate, Society, SocietyAdmin, Unit, VehicleLimits, Wing

FIXED_NOW = "2025-02-01T10:00:00.000Z"

SUPER_ADMIN_EMAIL = "root@gatepal.test"
SUPER_ADMIN_PASSWORD = "s3cret-pass"


# ---------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------
def _make_society(society_id: str = "soc-1", **overrides) -> Society:
    society = Society(
        id=society_id,
        society_name="Green Meadows",
        society_pin="123456",
        address="12 Park Road",
        city="Pune",
        country="India",
        latitude=18.52,
        longitude=73.85,
        status="Active",
        maintenance_due_date=5,
        notes="Gated community",
        wings=[
            Wing(
                id="wing-a",
                name="A",
                total_units=2,
                units=[Unit(id="unit-a1", number="A-101"), Unit(id="unit-a2", number="A-102")],
            )
        ],
        entry_gates=[Gate(id="entry-1", name="Main Gate")],
        exit_gates=[Gate(id="exit-1", name="Back Gate")],
        society_admins=[
            SocietyAdmin(
                id="admin-1",
                name="Asha Rao",
                mobile="9876543210",
                email="asha@example.com",
                society_id=society_id,
                society_name="Green Meadows",
                created_at="2024-01-01T00:00:00.000Z",
            )
        ],
        engagement_start_date="2024-01-01",
        engagement_end_date="2024-12-31",
        base_rate=Decimal("1000.00"),
        gst=Decimal("180.00"),
        rate_incl_gst=Decimal("1180.00"),
        vehicle_limits=VehicleLimits(2, 1, 0),
        created_by="Root",
        last_updated_by="Root",
        created_at="2024-01-01T00:00:00.000Z",
        updated_at="2024-01-01T00:00:00.000Z",
    )
    for key, value in overrides.items():
        setattr(society, key, value)
    return society


@pytest.fixture
def make_society():
    return _make_society


# ---------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------
class FakeDirectory(DirectoryService):
    """In-memory directory. Set `fail_with` to make every call raise it."""

    def __init__(self, societies=()):
        self.societies: Dict[str, Society] = {s.id: s.clone() for s in societies}
        self.calls: List[str] = []
        self.fail_with: Optional[DirectoryError] = None
        self.on_call = None

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if self.on_call is not None:
            self.on_call(name)
        if self.fail_with is not None:
            raise self.fail_with

    def _get(self, society_id: str) -> Society:
        try:
            return self.societies[society_id]
        except KeyError:
            raise SocietyNotFound("Society not found.", 404) from None

    def list_societies(self):
        self._enter("list")
        return [s.clone() for s in self.societies.values()]

    def get_society(self, society_id):
        self._enter("get")
        society = self.societies.get(society_id)
        return society.clone() if society else None

    def create_society(self, record):
        self._enter("create")
        self.societies[record.id] = record.clone()
        return record.clone()

    def update_society(self, society_id, record):
        self._enter("update")
        self._get(society_id)
        self.societies[society_id] = record.clone()
        return record.clone()

    def toggle_society_status(self, society_id):
        self._enter("toggle")
        society = self._get(society_id)
        society.status = "Inactive" if society.status == "Active" else "Active"
        return society.clone()

    def suspend_society(self, society_id):
        self._enter("suspend")
        society = self._get(society_id)
        society.status = "Suspended"
        return society.clone()

    def list_admins(self, society_id):
        self._enter("list_admins")
        return list(self._get(society_id).society_admins)

    def create_admin(self, society_id, fields):
        self._enter("create_admin")
        society = self._get(society_id)
        admin = SocietyAdmin(
            id=f"admin-{len(society.society_admins) + 1}",
            society_id=society_id,
            society_name=society.society_name,
            **fields,
        )
        society.society_admins.append(admin)
        return admin

    def update_admin(self, society_id, admin_id, fields):
        self._enter("update_admin")
        admin = next(a for a in self._get(society_id).society_admins if a.id == admin_id)
        for key, value in fields.items():
            setattr(admin, key, value)
        return admin

    def toggle_admin_status(self, society_id, admin_id):
        self._enter("toggle_admin")
        admin = next(a for a in self._get(society_id).society_admins if a.id == admin_id)
        admin.status = "Inactive" if admin.status == "Active" else "Active"
        return admin

    def delete_admin(self, society_id, admin_id):
        self._enter("delete_admin")
        society = self._get(society_id)
        society.society_admins = [a for a in society.society_admins if a.id != admin_id]


class RecordingNotifier:
    def __init__(self):
        self.successes: List[str] = []
        self.errors: List[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def cache():
    return RecordCache()


@pytest.fixture
def editor_factory(directory, notifier, cache):
    def build(society_id=None, **kwargs):
        kwargs.setdefault("pin_factory", lambda: "654321")
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        kwargs.setdefault("acting_user", "Root")
        kwargs.setdefault("cache", cache)
        return SocietyEditor(
            society_id,
            directory=directory,
            notifier=notifier,
            **kwargs,
        )

    return build


@pytest.fixture
def new_editor(editor_factory):
    editor = editor_factory()
    editor.initialize()
    return editor


def _fill_valid_draft(editor: SocietyEditor) -> SocietyEditor:
    editor.set_fields(
        "basic",
        {
            "society_name": "Green Meadows",
            "address": "12 Park Road",
            "country": "India",
            "city": "Pune",
            "maintenance_due_date": "5",
        },
    )
    editor.add_wing()
    editor.update_wing_name(0, "A")
    editor.resize_wing_units(0, "3")
    editor.update_gate("entry", 0, "Main Gate")
    editor.update_gate("exit", 0, "Back Gate")
    editor.add_admin()
    editor.update_admin(0, "name", "Asha Rao")
    editor.update_admin(0, "mobile", "9876543210")
    editor.update_admin(0, "email", "asha@example.com")
    editor.set_fields(
        "engagement",
        {
            "engagement_start_date": "2025-01-01",
            "engagement_end_date": "2025-12-31",
            "base_rate": "1000",
        },
    )
    return editor


@pytest.fixture
def fill_valid_draft():
    return _fill_valid_draft


# ---------------------------------------------------------------------
# Flask app
# ---------------------------------------------------------------------
@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def create_user(app, email=SUPER_ADMIN_EMAIL, password=SUPER_ADMIN_PASSWORD, role="super_admin", name="Root"):
    with app.app_context():
        user = User(email=email, name=name, role=role, is_active=True)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user.id


def login(client, email=SUPER_ADMIN_EMAIL, password=SUPER_ADMIN_PASSWORD):
    return client.post("/auth/login", data={"email": email, "password": password})


@pytest.fixture
def logged_in_client(app, client):
    create_user(app)
    response = login(client)
    assert response.status_code == 302
    return client
