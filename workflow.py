"""
Collection workflow for routes and their bin stops.

Route lifecycle
───────────────
  scheduled ──start──▶ in-progress ──complete──▶ completed
      │                     │
      └──────cancel─────────┴────────▶ cancelled

Each stop moves once, from pending to collected or skipped. A route can only
be completed when no stop is pending.

Functions here mutate model objects and add new ones to the session; the
calling view owns the commit.
"""
import logging
from datetime import datetime, time

from credit import earn_points
from errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from extensions import db
from inventory import apply_collection_outcome
from models import Bin, Route, RouteStop, User
from progress import round_half_up
from statuses import BinType, RouteStatus, Urgency, UserRole, VisitStatus
from validation import parse_date, parse_id, require_number

logger = logging.getLogger(__name__)

ROUTE_TRANSITIONS = {
    RouteStatus.SCHEDULED: {RouteStatus.IN_PROGRESS, RouteStatus.CANCELLED},
    RouteStatus.IN_PROGRESS: {RouteStatus.COMPLETED, RouteStatus.CANCELLED},
    RouteStatus.COMPLETED: set(),
    RouteStatus.CANCELLED: set(),
}

PRE_ROUTE_CHECKLIST = [
    {"itemId": "vehicle_inspection", "label": "Vehicle inspection completed"},
    {"itemId": "safety_equipment", "label": "Safety equipment on board"},
    {"itemId": "containers_loaded", "label": "Collection containers loaded"},
    {"itemId": "route_reviewed", "label": "Route reviewed"},
    {"itemId": "communication_device", "label": "Communication device functional"},
]

REQUIRED_FIELDS_MESSAGE = (
    "Please provide all required fields (routeName, bins, scheduledDate, scheduledTime)"
)


def transition_route(route, target, message=None):
    if target not in ROUTE_TRANSITIONS[route.status]:
        raise ConflictError(
            message
            or f"Cannot change route status from {route.status.value} to {target.value}"
        )
    logger.info("Route %s: %s -> %s", route.id, route.status.value, target.value)
    route.status = target


def _require_assigned_collector(route, actor):
    if route.assigned_to_id is None or route.assigned_to_id != actor.id:
        logger.warning("User %s acted on route %s assigned to %s",
                       actor.id, route.id, route.assigned_to_id)
        raise ForbiddenError("This route is not assigned to you")


def _require_in_progress(route, action):
    if route.status != RouteStatus.IN_PROGRESS:
        raise ConflictError(f"Route must be in-progress to {action}")


# ---------- Route administration ----------

def resolve_collector(collector_id):
    if collector_id in (None, ""):
        raise ValidationError("Collector ID is required")
    user = db.session.get(User, parse_id(collector_id, "Collector ID"))
    if user is None:
        raise ValidationError("Collector not found")
    if user.role != UserRole.COLLECTOR:
        raise ValidationError("User must have collector role")
    return user


def build_stops(bins):
    """Turn ``[{binId, order}]`` into pending RouteStop objects."""
    if not isinstance(bins, list) or not bins:
        raise ValidationError("At least one bin is required")

    stops = []
    seen = set()
    for i, item in enumerate(bins):
        if not isinstance(item, dict) or item.get("binId") in (None, ""):
            raise ValidationError("Each bin entry needs a binId")
        bin_id = parse_id(item["binId"], "binId")
        if bin_id in seen:
            raise ValidationError(f"Bin {bin_id} appears more than once")
        seen.add(bin_id)

        order = item.get("order", i + 1)
        order = int(require_number(order, "Bin order", minimum=1))
        stops.append((bin_id, order))

    found = {b.id: b for b in Bin.query.filter(Bin.id.in_(seen)).all()}
    if len(found) != len(seen):
        raise ValidationError("One or more bins not found")

    return [
        RouteStop(bin=found[bin_id], order_index=order, status=VisitStatus.PENDING)
        for bin_id, order in stops
    ]


def create_route(creator, route_name, bins, scheduled_date, scheduled_time,
                 assigned_to=None, notes=None):
    name = route_name.strip() if isinstance(route_name, str) else ""

    errors = []
    if not name:
        errors.append("Route name is required")
    if not bins:
        errors.append("At least one bin is required")
    if not scheduled_date:
        errors.append("Scheduled date is required")
    if not scheduled_time or not str(scheduled_time).strip():
        errors.append("Scheduled time is required")
    if errors:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE, errors=errors)

    if len(name) > 100:
        raise ValidationError("Route name cannot exceed 100 characters")
    if Route.query.filter_by(route_name=name).first():
        raise ValidationError("Route name already exists")

    # Lookups first: autoflush must never see a half-built route.
    day = parse_date(scheduled_date)
    collector = resolve_collector(assigned_to) if assigned_to else None
    stops = build_stops(bins)

    route = Route(
        route_name=name,
        created_by=creator,
        assigned_to=collector,
        scheduled_date=day,
        scheduled_time=str(scheduled_time).strip(),
        status=RouteStatus.SCHEDULED,
        notes=notes or "",
    )
    route.stops = stops

    db.session.add(route)
    logger.info("Created route '%s' with %d bins", name, len(route.stops))
    return route


def update_route(route, data):
    if route.status in (RouteStatus.IN_PROGRESS, RouteStatus.COMPLETED):
        raise ConflictError("Cannot update route that is in-progress or completed")

    if data.get("routeName") is not None:
        name = data["routeName"].strip() if isinstance(data["routeName"], str) else ""
        if not name:
            raise ValidationError("Route name is required")
        if len(name) > 100:
            raise ValidationError("Route name cannot exceed 100 characters")
        clash = Route.query.filter(Route.route_name == name, Route.id != route.id).first()
        if clash:
            raise ValidationError("Route name already exists")
        route.route_name = name
    if data.get("bins") is not None:
        # The old stops are orphaned mid-swap; flushing then would null their route_id
        with db.session.no_autoflush:
            route.stops = build_stops(data["bins"])
    if data.get("scheduledDate"):
        route.scheduled_date = parse_date(data["scheduledDate"])
    if data.get("scheduledTime"):
        route.scheduled_time = str(data["scheduledTime"]).strip()
    if "notes" in data:
        route.notes = data["notes"]
    return route


def assign_collector(route, collector_id):
    collector = resolve_collector(collector_id)
    if route.status in (RouteStatus.COMPLETED, RouteStatus.CANCELLED):
        raise ConflictError(f"Cannot assign a collector to a {route.status.value} route")
    route.assigned_to = collector
    logger.info("Route %s assigned to collector %s", route.id, collector.id)
    return route


def cancel_route(route, reason=None):
    transition_route(
        route,
        RouteStatus.CANCELLED,
        message="Only scheduled or in-progress routes can be cancelled",
    )
    if reason:
        route.notes = reason
    return route


def ensure_route_deletable(route):
    if route.status == RouteStatus.IN_PROGRESS:
        raise ConflictError("Cannot delete a route that is in progress")


# ---------- Collector workflow ----------

def validate_checklist(payload, now=None):
    """
    Check a pre-route checklist confirmation and return the record to store.

    Every fixed item must be present and checked.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        raise ValidationError("Pre-route checklist must contain a list of items")

    checked = {}
    for item in payload["items"]:
        if not isinstance(item, dict):
            raise ValidationError("Pre-route checklist items must be objects")
        checked[item.get("itemId")] = item.get("checked") is True

    missing = [i["label"] for i in PRE_ROUTE_CHECKLIST if not checked.get(i["itemId"])]
    if missing:
        raise ValidationError(
            "All pre-route checklist items must be checked before starting",
            errors=missing,
        )

    return {
        "completed": True,
        "completedAt": payload.get("completedAt") or (now or datetime.utcnow()).isoformat(),
        "items": [
            {"itemId": i["itemId"], "label": i["label"], "checked": True}
            for i in PRE_ROUTE_CHECKLIST
        ],
    }


def start_route(route, actor, checklist=None, now=None):
    now = now or datetime.utcnow()
    _require_assigned_collector(route, actor)
    if route.status != RouteStatus.SCHEDULED:
        raise ConflictError("Route is not in scheduled status")

    record = validate_checklist(checklist, now) if checklist is not None else None

    transition_route(route, RouteStatus.IN_PROGRESS)
    route.started_at = now
    if record:
        route.checklist = record
    return route


def find_stop(route, bin_id):
    bin_obj = db.session.get(Bin, parse_id(bin_id, "Bin ID"))
    if bin_obj is None:
        raise NotFoundError("Bin not found")
    for stop in route.stops:
        if stop.bin_id == bin_obj.id:
            return stop
    raise NotFoundError("Bin not found in this route")


def _require_pending(stop):
    if stop.status != VisitStatus.PENDING:
        logger.warning("Bin %s on route %s already %s",
                       stop.bin_id, stop.route_id, stop.status.value)
        raise ConflictError(f"Bin already {stop.status.value}")


def collect_bin(route, bin_id, actor, notes=None, actual_weight=None,
                photo_url=None, now=None):
    """
    Mark a pending stop collected and empty the bin.

    Returns ``(stop, points_awarded)``; points go to the bin's resident owner
    when the collector recorded a weight.
    """
    now = now or datetime.utcnow()
    _require_assigned_collector(route, actor)
    _require_in_progress(route, "collect bins")
    if actual_weight is not None:
        if isinstance(actual_weight, bool) or not isinstance(actual_weight, (int, float)) \
                or actual_weight < 0:
            raise ValidationError("Actual weight must be a non-negative number")

    stop = find_stop(route, bin_id)
    _require_pending(stop)

    bin_obj = stop.bin
    stop.status = VisitStatus.COLLECTED
    stop.collected_at = now
    stop.fill_level_at_collection = bin_obj.fill_level
    stop.actual_weight = actual_weight
    if notes:
        stop.notes = notes
    if photo_url:
        stop.photo_url = photo_url

    points = 0
    if bin_obj.owner is not None and actual_weight:
        points = earn_points(
            bin_obj.owner, actual_weight,
            recyclable=bin_obj.bin_type == BinType.RECYCLABLE,
        )

    apply_collection_outcome(bin_obj, Urgency.COMPLETED, now=now)
    logger.info("Route %s: collected bin %s", route.id, bin_obj.bin_code)
    return stop, points


def require_skip_reason(reason):
    if not isinstance(reason, str) or not reason.strip():
        raise ValidationError("Reason is required for skipping a bin")
    return reason


def skip_bin(route, bin_id, actor, reason):
    require_skip_reason(reason)

    _require_assigned_collector(route, actor)
    _require_in_progress(route, "skip bins")

    stop = find_stop(route, bin_id)
    _require_pending(stop)

    stop.status = VisitStatus.SKIPPED
    stop.skip_reason = reason
    logger.info("Route %s: skipped bin %s", route.id, stop.bin.bin_code)
    return stop


def completion_analytics(route, now):
    collected = [s for s in route.stops if s.status == VisitStatus.COLLECTED]

    waste = 0.0
    recyclable = 0.0
    for stop in collected:
        if stop.actual_weight is not None:
            amount = stop.actual_weight
        else:
            fill = stop.fill_level_at_collection
            if fill is None:
                fill = stop.bin.fill_level
            amount = fill / 100 * stop.bin.capacity
        waste += amount
        if stop.bin.bin_type == BinType.RECYCLABLE:
            recyclable += amount

    total = len(route.stops)
    started = route.started_at or datetime.combine(route.scheduled_date, time())
    return {
        "binsCollected": len(collected),
        "wasteCollected": round_half_up(waste),
        "recyclableWaste": round_half_up(recyclable),
        "efficiency": round_half_up(100 * len(collected) / total) if total else 0,
        "durationMinutes": round_half_up((now - started).total_seconds() / 60),
    }


def complete_route(route, actor, now=None):
    now = now or datetime.utcnow()
    _require_assigned_collector(route, actor)
    _require_in_progress(route, "complete")

    progress = route.progress()
    if progress["pendingBins"]:
        raise ConflictError(
            "All bins must be collected or skipped before completing the route",
            data=progress,
        )

    analytics = completion_analytics(route, now)
    transition_route(route, RouteStatus.COMPLETED)
    route.completed_at = now
    route.bins_collected = analytics["binsCollected"]
    route.waste_collected = analytics["wasteCollected"]
    route.recyclable_waste = analytics["recyclableWaste"]
    route.efficiency = analytics["efficiency"]
    route.duration_minutes = analytics["durationMinutes"]
    return analytics
