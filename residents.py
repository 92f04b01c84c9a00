"""
Read-only views of a resident's own bins: upcoming collections, skipped
visits since the last pickup, and collection history.
"""
from models import Bin, Route, RouteStop
from statuses import RouteStatus, VisitStatus

OPEN_ROUTE_STATUSES = (RouteStatus.SCHEDULED, RouteStatus.IN_PROGRESS)


def _collector_name(route):
    return route.assigned_to.full_name if route.assigned_to else None


def _open_stops(bin_obj):
    stops = [s for s in bin_obj.route_stops if s.route.status in OPEN_ROUTE_STATUSES]
    return sorted(stops, key=lambda s: (s.route.scheduled_date, s.route.scheduled_time))


def schedule_info(bin_obj):
    """The next open route this bin sits on, or ``isScheduled: False``."""
    stops = _open_stops(bin_obj)
    if not stops:
        return {"isScheduled": False}
    stop = stops[0]
    return {
        "isScheduled": True,
        "routeName": stop.route.route_name,
        "scheduledDate": stop.route.scheduled_date.isoformat(),
        "scheduledTime": stop.route.scheduled_time,
        "routeStatus": stop.route.status.value,
        "collectorName": _collector_name(stop.route),
        "binStatus": stop.status.value,
    }


def skipped_incidents(bin_obj):
    """Skips on completed routes that happened after the bin was last emptied."""
    incidents = []
    for stop in bin_obj.route_stops:
        route = stop.route
        if stop.status != VisitStatus.SKIPPED or route.status != RouteStatus.COMPLETED:
            continue
        when = route.completed_at or route.started_at
        if bin_obj.last_collection and when and when <= bin_obj.last_collection:
            continue
        incidents.append({
            "routeId": route.id,
            "routeName": route.route_name,
            "reason": stop.skip_reason,
            "date": when.isoformat() if when else None,
            "collectorName": _collector_name(route),
        })
    return sorted(incidents, key=lambda i: i["date"] or "", reverse=True)


def resident_bins(owner):
    bins = Bin.query.filter_by(owner_id=owner.id).order_by(Bin.created_at.desc()).all()
    result = []
    for bin_obj in bins:
        data = bin_obj.to_dict()
        data["scheduleInfo"] = schedule_info(bin_obj)
        data["skippedIncidents"] = skipped_incidents(bin_obj)
        result.append(data)
    return result


def upcoming_collections(bin_obj):
    return [
        {
            "routeId": stop.route.id,
            "routeName": stop.route.route_name,
            "scheduledDate": stop.route.scheduled_date.isoformat(),
            "scheduledTime": stop.route.scheduled_time,
            "status": stop.route.status.value,
            "collectorName": _collector_name(stop.route),
            "binStatus": stop.status.value,
        }
        for stop in _open_stops(bin_obj)
    ]


def collection_history(owner):
    """Collected visits to the owner's bins, newest first."""
    stops = (
        RouteStop.query.join(Bin, RouteStop.bin_id == Bin.id)
        .join(Route, RouteStop.route_id == Route.id)
        .filter(Bin.owner_id == owner.id, RouteStop.status == VisitStatus.COLLECTED)
        .order_by(RouteStop.collected_at.desc())
        .all()
    )
    return [
        {
            "binId": stop.bin.bin_code,
            "binLocation": stop.bin.location,
            "binType": stop.bin.bin_type.value,
            "binCapacity": stop.bin.capacity,
            "collectedAt": stop.collected_at.isoformat() if stop.collected_at else None,
            "collectorName": _collector_name(stop.route),
            "weight": stop.actual_weight,
            "fillLevelAtCollection": stop.fill_level_at_collection,
            "routeName": stop.route.route_name,
            "routeId": stop.route.id,
        }
        for stop in stops
    ]
