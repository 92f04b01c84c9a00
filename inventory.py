"""
Bin asset rules that apply outside of any route.

Covers bin registration, field updates, fill-level readings, and the
collection-urgency classification used by dashboards.
"""
import logging
from datetime import datetime

from errors import ConflictError, ValidationError
from extensions import db
from models import Bin
from statuses import BinStatus, BinType, Urgency, Zone, parse_enum
from validation import require_number, require_text

logger = logging.getLogger(__name__)

FULL_THRESHOLD = 90
PENDING_THRESHOLD = 50
PENDING_FILL_FLOOR = 85
DEFAULT_PENDING_WEIGHT = 75


def derive_collection_urgency(bin_obj):
    """Classify a bin as pending, completed or issue for collection display."""
    if bin_obj.status in (BinStatus.MAINTENANCE, BinStatus.INACTIVE):
        return Urgency.ISSUE
    if bin_obj.fill_level >= PENDING_THRESHOLD or bin_obj.status == BinStatus.FULL:
        return Urgency.PENDING
    return Urgency.COMPLETED


def next_bin_code():
    n = Bin.query.count() + 1
    while True:
        code = f"BIN{n:03d}"
        if not Bin.query.filter_by(bin_code=code).first():
            return code
        n += 1


def _apply_coordinates(bin_obj, coords):
    if coords is None:
        return
    if not isinstance(coords, dict):
        raise ValidationError("coordinates must be an object with lat and lng")
    if coords.get("lat") is not None:
        bin_obj.latitude = require_number(coords["lat"], "Latitude", -90, 90)
    if coords.get("lng") is not None:
        bin_obj.longitude = require_number(coords["lng"], "Longitude", -180, 180)


def create_bin(data, creator=None, owner=None):
    bin_code = data.get("binId") or ""
    if not isinstance(bin_code, str):
        raise ValidationError("Bin ID must be text")
    bin_code = bin_code.strip() or next_bin_code()
    if Bin.query.filter_by(bin_code=bin_code).first():
        raise ValidationError("Bin ID already exists")

    bin_obj = Bin(
        bin_code=bin_code,
        location=require_text(data.get("location"), "Location", max_length=255),
        zone=parse_enum(Zone, data.get("zone"), "zone"),
        bin_type=parse_enum(BinType, data.get("binType"), "bin type"),
        capacity=require_number(data.get("capacity"), "Capacity", minimum=1),
        weight=require_number(data.get("weight", 0), "Weight", minimum=0),
        fill_level=require_number(data.get("fillLevel", 0), "Fill level", 0, 100),
        status=parse_enum(BinStatus, data.get("status", "active"), "status"),
        notes=data.get("notes"),
        created_by_id=creator.id if creator else None,
        owner=owner,
    )
    _apply_coordinates(bin_obj, data.get("coordinates"))

    db.session.add(bin_obj)
    logger.info("Registered bin %s at %s", bin_obj.bin_code, bin_obj.location)
    return bin_obj


def update_bin(bin_obj, data):
    """
    Apply a partial update to a bin.

    ``collectionStatus`` carries a collector's recorded outcome and is routed
    through apply_collection_outcome; every other key maps onto a field.
    """
    if "location" in data:
        bin_obj.location = require_text(data["location"], "Location", max_length=255)
    if "zone" in data:
        bin_obj.zone = parse_enum(Zone, data["zone"], "zone")
    if "binType" in data:
        bin_obj.bin_type = parse_enum(BinType, data["binType"], "bin type")
    if "capacity" in data:
        bin_obj.capacity = require_number(data["capacity"], "Capacity", minimum=1)
    if "status" in data:
        bin_obj.status = parse_enum(BinStatus, data["status"], "status")
    if "weight" in data:
        bin_obj.weight = require_number(data["weight"], "Weight", minimum=0)
    if "fillLevel" in data:
        bin_obj.fill_level = require_number(data["fillLevel"], "Fill level", 0, 100)
    if "notes" in data:
        notes = data["notes"]
        if notes is not None and len(str(notes)) > 500:
            raise ValidationError("Notes cannot exceed 500 characters")
        bin_obj.notes = notes
    _apply_coordinates(bin_obj, data.get("coordinates"))

    if data.get("collectionStatus") is not None:
        apply_collection_outcome(bin_obj, data["collectionStatus"], data.get("complaint"))

    return bin_obj


def update_fill_level(bin_obj, fill_level, weight=None):
    if fill_level is None:
        raise ValidationError("Fill level is required")
    bin_obj.fill_level = require_number(fill_level, "Fill level", 0, 100)
    if weight is not None:
        bin_obj.weight = require_number(weight, "Weight", minimum=0)

    if bin_obj.fill_level >= FULL_THRESHOLD:
        bin_obj.status = BinStatus.FULL
    elif bin_obj.status == BinStatus.FULL:
        bin_obj.status = BinStatus.ACTIVE
    return bin_obj


def apply_collection_outcome(bin_obj, outcome, complaint=None, now=None):
    """
    Record a collector's outcome for a bin.

    ``completed`` empties the bin. ``issue`` puts it into maintenance and
    keeps the trimmed complaint as its notes. ``pending`` on a bin that reads
    under half full lifts it to PENDING_FILL_FLOOR, keeping a positive weight
    or falling back to DEFAULT_PENDING_WEIGHT; the bin then counts as full
    from PENDING_FILL_FLOOR up and active below it.
    """
    outcome = parse_enum(Urgency, outcome, "collection status")

    if outcome == Urgency.COMPLETED:
        bin_obj.fill_level = 0
        bin_obj.weight = 0
        bin_obj.status = BinStatus.ACTIVE
        bin_obj.last_collection = now or datetime.utcnow()
    elif outcome == Urgency.ISSUE:
        if complaint is not None and not isinstance(complaint, str):
            raise ValidationError("Complaint must be text")
        bin_obj.status = BinStatus.MAINTENANCE
        if complaint and complaint.strip():
            bin_obj.notes = complaint.strip()[:500]
    else:
        if bin_obj.fill_level < PENDING_THRESHOLD:
            bin_obj.fill_level = PENDING_FILL_FLOOR
            bin_obj.weight = bin_obj.weight if bin_obj.weight and bin_obj.weight > 0 else DEFAULT_PENDING_WEIGHT
        bin_obj.status = (
            BinStatus.FULL if bin_obj.fill_level >= PENDING_FILL_FLOOR else BinStatus.ACTIVE
        )

    logger.info("Bin %s marked %s", bin_obj.bin_code, outcome.value)
    return bin_obj


def ensure_bin_deletable(bin_obj):
    if bin_obj.route_stops:
        raise ConflictError("Bin is part of one or more routes and cannot be deleted")
