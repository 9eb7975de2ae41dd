"""
GatePal Super Admin – Domain Models

Tables owned by the console:
- User: super admin login accounts
- Country / City: location options for the society form
- AuditLog: who changed which entity, with before/after snapshots

Tables used by the database directory backend (DIRECTORY_BACKEND=database):
- Society, Wing, Unit, Gate, SocietyAdmin

IMPORTANT:
- UI is never trusted. Society records reach these tables only through
  gatepal.directory.database, after the editor validated every tab.
- String primary keys for society data: ids are shared with the editor and the
  REST backend, which use opaque string ids.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .extensions import db
from .records import money, rate_breakdown


def _to_decimal(value) -> Decimal:
    """Convert Numeric/None to Decimal safely."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value))


# ---------------------------------------------------------------------
# Console users
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    """Console login user."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # super_admin: full console access; admin: sign-in only (society scoped apps)
    role = db.Column(db.String(20), nullable=False, default="super_admin", index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_super_admin(self) -> bool:
        return self.role == "super_admin"

    def display_name(self) -> str:
        return self.name or "Super Admin"

    def __repr__(self):
        return f"<User {self.email}>"


# ---------------------------------------------------------------------
# Location options
# ---------------------------------------------------------------------
class Country(db.Model):
    __tablename__ = "countries"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(8), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class City(db.Model):
    __tablename__ = "cities"

    id = db.Column(db.Integer, primary_key=True)

    country_id = db.Column(
        db.Integer,
        db.ForeignKey("countries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = db.Column(db.String(120), nullable=False)
    is_active = db.Column(db.Boolean, default=True)

    country = db.relationship(
        "Country",
        backref=db.backref("cities", lazy=True, cascade="all, delete-orphan"),
    )

    __table_args__ = (db.UniqueConstraint("country_id", "name", name="uq_country_city"),)


# ---------------------------------------------------------------------
# Societies (database directory backend)
# ---------------------------------------------------------------------
class Society(db.Model):
    """Residential complex with wings, gates, admins and engagement pricing."""

    __tablename__ = "societies"

    id = db.Column(db.String(64), primary_key=True)

    society_name = db.Column(db.String(255), nullable=False, index=True)
    society_pin = db.Column(db.String(12), nullable=False, index=True)

    address = db.Column(db.Text, nullable=False)
    city = db.Column(db.String(120), nullable=True)
    country = db.Column(db.String(120), nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="Active", index=True)
    maintenance_due_date = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    engagement_start_date = db.Column(db.Date, nullable=True)
    engagement_end_date = db.Column(db.Date, nullable=True)

    base_rate = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    gst = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    rate_incl_gst = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    two_wheelers_per_unit = db.Column(db.Integer, nullable=False, default=0)
    four_wheelers_per_unit = db.Column(db.Integer, nullable=False, default=0)
    other_vehicles_per_unit = db.Column(db.Integer, nullable=False, default=0)

    created_by = db.Column(db.String(120), nullable=True)
    last_updated_by = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    wings = db.relationship(
        "Wing",
        back_populates="society",
        order_by="Wing.position",
        cascade="all, delete-orphan",
    )

    gates = db.relationship(
        "Gate",
        back_populates="society",
        order_by="Gate.position",
        cascade="all, delete-orphan",
    )

    admins = db.relationship(
        "SocietyAdmin",
        back_populates="society",
        order_by="SocietyAdmin.position",
        cascade="all, delete-orphan",
    )

    def gates_for(self, direction: str) -> list["Gate"]:
        return [g for g in self.gates if g.direction == direction]

    def recalc_rates(self):
        """Recompute GST and the GST-inclusive rate from base_rate."""
        base = money(_to_decimal(self.base_rate))
        self.base_rate = base
        self.gst, self.rate_incl_gst = rate_breakdown(base)

    def __repr__(self):
        return f"<Society {self.society_name}>"


class Wing(db.Model):
    __tablename__ = "wings"

    id = db.Column(db.String(64), primary_key=True)

    society_id = db.Column(
        db.String(64),
        db.ForeignKey("societies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = db.Column(db.String(100), nullable=False)
    total_units = db.Column(db.Integer, nullable=False, default=0)
    position = db.Column(db.Integer, nullable=False, default=0)

    society = db.relationship("Society", back_populates="wings")

    units = db.relationship(
        "Unit",
        back_populates="wing",
        order_by="Unit.position",
        cascade="all, delete-orphan",
    )


class Unit(db.Model):
    __tablename__ = "units"

    id = db.Column(db.String(64), primary_key=True)

    wing_id = db.Column(
        db.String(64),
        db.ForeignKey("wings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    number = db.Column(db.String(110), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    wing = db.relationship("Wing", back_populates="units")


class Gate(db.Model):
    __tablename__ = "gates"

    id = db.Column(db.String(64), primary_key=True)

    society_id = db.Column(
        db.String(64),
        db.ForeignKey("societies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # "entry" / "exit"
    direction = db.Column(db.String(10), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    society = db.relationship("Society", back_populates="gates")


class SocietyAdmin(db.Model):
    """Delegate user scoped to one society."""

    __tablename__ = "society_admins"

    id = db.Column(db.String(64), primary_key=True)

    society_id = db.Column(
        db.String(64),
        db.ForeignKey("societies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    mobile = db.Column(db.String(10), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="Active", index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    society = db.relationship("Society", back_populates="admins")

    def __repr__(self):
        return f"<SocietyAdmin {self.email}>"


class AuditLog(db.Model):
    """Audit trail for console mutations."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    username_snapshot = db.Column(db.String(255), nullable=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.String(64), nullable=False, index=True)

    action = db.Column(db.String(20), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
