"""
Closed status vocabularies shared by the models, the workflow and the API.

Values are the exact strings used on the wire.
"""
import enum

from errors import ValidationError


class RouteStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class VisitStatus(str, enum.Enum):
    PENDING = "pending"
    COLLECTED = "collected"
    SKIPPED = "skipped"


class BinStatus(str, enum.Enum):
    ACTIVE = "active"
    FULL = "full"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"


class BinType(str, enum.Enum):
    GENERAL = "General Waste"
    RECYCLABLE = "Recyclable"
    ORGANIC = "Organic"
    HAZARDOUS = "Hazardous"


class Zone(str, enum.Enum):
    A = "Zone A"
    B = "Zone B"
    C = "Zone C"
    D = "Zone D"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    COLLECTOR = "collector"
    USER = "user"
    RESIDENT = "resident"


class AccountStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    PENDING = "pending"


class Urgency(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ISSUE = "issue"


def parse_enum(enum_cls, value, field):
    """Coerce a wire string into ``enum_cls`` or raise a ValidationError."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field}. Must be one of: {allowed}")
