from datetime import datetime

from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db
from progress import compute_progress
from statuses import (
    AccountStatus,
    BinStatus,
    BinType,
    RouteStatus,
    UserRole,
    VisitStatus,
    Zone,
)


def _enum(enum_cls):
    # Store the wire value ("in-progress"), not the member name.
    return db.Enum(
        enum_cls,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda e: [m.value for m in e],
    )


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    username = db.Column(db.String(30), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    phone_no = db.Column(db.String(10))
    address = db.Column(db.String(255))

    role = db.Column(_enum(UserRole), default=UserRole.COLLECTOR, nullable=False)
    account_status = db.Column(
        _enum(AccountStatus), default=AccountStatus.ACTIVE, nullable=False
    )
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    credit_points = db.Column(db.Integer, default=0, nullable=False)

    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def summary(self):
        """Compact form embedded in route payloads."""
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "username": self.username,
            "email": self.email,
            "phoneNo": self.phone_no,
        }

    def to_dict(self):
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "username": self.username,
            "email": self.email,
            "phoneNo": self.phone_no,
            "address": self.address,
            "role": self.role.value,
            "accountStatus": self.account_status.value,
            "isActive": self.is_active,
            "creditPoints": self.credit_points,
            "lastLogin": _iso(self.last_login),
            "createdAt": _iso(self.created_at),
        }


class Bin(db.Model):
    __tablename__ = "bins"

    id = db.Column(db.Integer, primary_key=True)
    bin_code = db.Column(db.String(32), unique=True, nullable=False)

    location = db.Column(db.String(255), nullable=False)
    zone = db.Column(_enum(Zone), nullable=False)
    bin_type = db.Column(_enum(BinType), nullable=False)
    capacity = db.Column(db.Float, nullable=False)  # kg

    weight = db.Column(db.Float, default=0, nullable=False)
    fill_level = db.Column(db.Float, default=0, nullable=False)  # 0-100
    status = db.Column(_enum(BinStatus), default=BinStatus.ACTIVE, nullable=False)

    latitude = db.Column(db.Float)
    longitude = db.Column(db.Float)

    last_collection = db.Column(db.DateTime)
    notes = db.Column(db.String(500))

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    owner = db.relationship(
        "User",
        foreign_keys=[owner_id],
        backref=db.backref("owned_bins", lazy=True),
    )

    @property
    def is_nearly_full(self):
        return self.fill_level >= 80

    @property
    def needs_collection(self):
        return self.fill_level >= 85 or self.status == BinStatus.FULL

    def summary(self):
        return {
            "id": self.id,
            "binId": self.bin_code,
            "location": self.location,
            "zone": self.zone.value,
            "binType": self.bin_type.value,
            "fillLevel": self.fill_level,
            "coordinates": {"lat": self.latitude, "lng": self.longitude},
        }

    def to_dict(self):
        return {
            "id": self.id,
            "binId": self.bin_code,
            "location": self.location,
            "zone": self.zone.value,
            "binType": self.bin_type.value,
            "capacity": self.capacity,
            "weight": self.weight,
            "fillLevel": self.fill_level,
            "status": self.status.value,
            "coordinates": {"lat": self.latitude, "lng": self.longitude},
            "lastCollection": _iso(self.last_collection),
            "notes": self.notes,
            "ownerId": self.owner_id,
            "isNearlyFull": self.is_nearly_full,
            "needsCollection": self.needs_collection,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Route(db.Model):
    __tablename__ = "routes"

    id = db.Column(db.Integer, primary_key=True)
    route_name = db.Column(db.String(100), unique=True, nullable=False)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    assigned_to_id = db.Column(db.Integer, db.ForeignKey("users.id"))

    scheduled_date = db.Column(db.Date, nullable=False)
    scheduled_time = db.Column(db.String(16), nullable=False)

    status = db.Column(
        _enum(RouteStatus), default=RouteStatus.SCHEDULED, nullable=False
    )
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    notes = db.Column(db.String(500))

    # Pre-route safety checklist as confirmed by the collector
    checklist = db.Column(db.JSON)

    # Filled in on completion
    bins_collected = db.Column(db.Integer, default=0, nullable=False)
    waste_collected = db.Column(db.Float, default=0, nullable=False)
    recyclable_waste = db.Column(db.Float, default=0, nullable=False)
    efficiency = db.Column(db.Integer, default=0, nullable=False)
    duration_minutes = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    assigned_to = db.relationship(
        "User",
        foreign_keys=[assigned_to_id],
        backref=db.backref("assigned_routes", lazy=True),
    )
    created_by = db.relationship("User", foreign_keys=[created_by_id])

    def progress(self):
        return compute_progress(stop.status for stop in self.stops)

    def to_dict(self):
        data = {
            "id": self.id,
            "routeName": self.route_name,
            "assignedTo": self.assigned_to.summary() if self.assigned_to else None,
            "createdBy": self.created_by.summary() if self.created_by else None,
            "scheduledDate": _iso(self.scheduled_date),
            "scheduledTime": self.scheduled_time,
            "status": self.status.value,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "notes": self.notes,
            "preRouteChecklist": self.checklist,
            "bins": [stop.to_dict() for stop in self.stops],
            "binsCollected": self.bins_collected,
            "wasteCollected": self.waste_collected,
            "recyclableWaste": self.recyclable_waste,
            "efficiency": self.efficiency,
            "durationMinutes": self.duration_minutes,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        data.update(self.progress())
        return data


class RouteStop(db.Model):
    """One bin's place and outcome within one route."""

    __tablename__ = "route_stops"

    id = db.Column(db.Integer, primary_key=True)

    route_id = db.Column(
        db.Integer,
        db.ForeignKey("routes.id"),
        nullable=False
    )
    bin_id = db.Column(
        db.Integer,
        db.ForeignKey("bins.id"),
        nullable=False
    )

    order_index = db.Column(db.Integer, nullable=False)
    status = db.Column(
        _enum(VisitStatus), default=VisitStatus.PENDING, nullable=False
    )

    collected_at = db.Column(db.DateTime)
    skip_reason = db.Column(db.Text)
    notes = db.Column(db.String(500))
    photo_url = db.Column(db.String(255))

    fill_level_at_collection = db.Column(db.Float)
    actual_weight = db.Column(db.Float)

    route = db.relationship(
        "Route",
        backref=db.backref(
            "stops",
            order_by="RouteStop.order_index",
            cascade="all, delete-orphan",
            lazy=True
        ),
    )

    bin = db.relationship(
        "Bin",
        backref=db.backref("route_stops", lazy=True)
    )

    def to_dict(self):
        return {
            "bin": self.bin.summary() if self.bin else {"id": self.bin_id},
            "order": self.order_index,
            "status": self.status.value,
            "collectedAt": _iso(self.collected_at),
            "reason": self.skip_reason,
            "notes": self.notes,
            "photoUrl": self.photo_url,
            "fillLevelAtCollection": self.fill_level_at_collection,
            "actualWeight": self.actual_weight,
        }
