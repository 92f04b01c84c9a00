"""
Admin analytics over completed routes and the bin inventory.

Every figure is computed on request from the stored route and bin rows.
Percentages and averages use the same half-up rounding as route progress.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy import func

from errors import ValidationError
from extensions import db
from models import Bin, Route, User
from progress import round_half_up
from stats import bin_stats, route_stats
from statuses import BinStatus, BinType, RouteStatus, UserRole

logger = logging.getLogger(__name__)

TREND_PERIODS = ("daily", "weekly", "monthly")
ROUTE_PERFORMANCE_LIMIT = 10


def _completed_routes():
    return Route.query.filter(Route.status == RouteStatus.COMPLETED)


def kpis():
    completed = _completed_routes().all()
    waste = sum(r.waste_collected or 0 for r in completed)
    recyclable = sum(r.recyclable_waste or 0 for r in completed)
    timed = [r.duration_minutes for r in completed if r.duration_minutes is not None]

    routes = route_stats()
    bins = bin_stats()
    active_collectors = User.query.filter(
        User.role == UserRole.COLLECTOR, User.is_active.is_(True)
    ).count()

    return {
        "totalUsers": db.session.query(func.count(User.id)).scalar(),
        "totalRoutes": routes["totalRoutes"],
        "totalBins": bins["total"],
        "totalCollections": sum(r.bins_collected or 0 for r in completed),
        "totalWasteCollected": round(waste, 2),
        "collectionEfficiency": (
            round_half_up(sum(r.efficiency for r in completed) / len(completed))
            if completed else 0
        ),
        "recyclingRate": round_half_up(100 * recyclable / waste) if waste else 0,
        "avgCompletionTime": round_half_up(sum(timed) / len(timed)) if timed else 0,
        "activeCollectors": active_collectors,
        "unassignedRoutes": routes["unassignedRoutes"],
        "fullBins": bins["full"],
        "maintenanceBins": bins["maintenance"],
    }


def _window_totals(start, end):
    routes = _completed_routes().filter(
        Route.completed_at >= start, Route.completed_at < end
    ).all()
    return {
        "collections": sum(r.bins_collected or 0 for r in routes),
        "wasteCollected": round(sum(r.waste_collected or 0 for r in routes), 2),
    }


def collection_trends(period="weekly", now=None):
    """
    Collections and waste per window, oldest first.

    daily: the last 7 calendar days. weekly: four rolling 7-day windows
    ending now. monthly: the last 6 calendar months.
    """
    if period not in TREND_PERIODS:
        raise ValidationError("Invalid period. Must be one of: " + ", ".join(TREND_PERIODS))
    now = now or datetime.utcnow()
    today = datetime(now.year, now.month, now.day)
    data = []

    if period == "daily":
        for i in range(6, -1, -1):
            start = today - timedelta(days=i)
            entry = {"date": start.date().isoformat()}
            entry.update(_window_totals(start, start + timedelta(days=1)))
            data.append(entry)
    elif period == "weekly":
        for i in range(3, -1, -1):
            end = now - timedelta(days=7 * i)
            entry = {"week": f"Week {4 - i}"}
            entry.update(_window_totals(end - timedelta(days=7), end))
            data.append(entry)
    else:
        for i in range(5, -1, -1):
            year, month = divmod(now.year * 12 + now.month - 1 - i, 12)
            start = datetime(year, month + 1, 1)
            ny, nm = divmod(year * 12 + month + 1, 12)
            entry = {"month": start.strftime("%b")}
            entry.update(_window_totals(start, datetime(ny, nm + 1, 1)))
            data.append(entry)

    return data


def waste_distribution():
    """Estimated weight on hand per bin type, from fill level and capacity."""
    bins = Bin.query.filter(
        Bin.status.in_([BinStatus.ACTIVE, BinStatus.FULL, BinStatus.MAINTENANCE])
    ).all()

    weights = {t: 0.0 for t in BinType}
    for bin_obj in bins:
        weights[bin_obj.bin_type] += (bin_obj.fill_level or 0) / 100 * (bin_obj.capacity or 0)

    total = sum(weights.values())
    if not total:
        return []
    return [
        {
            "type": t.value,
            "weight": round_half_up(w),
            "percentage": round_half_up(100 * w / total),
        }
        for t, w in weights.items()
    ]


def route_performance(limit=ROUTE_PERFORMANCE_LIMIT):
    routes = (
        _completed_routes()
        .order_by(Route.efficiency.desc(), Route.completed_at.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "routeId": r.id,
            "routeName": r.route_name,
            "collector": r.assigned_to.full_name if r.assigned_to else "Unassigned",
            "efficiency": r.efficiency or 0,
            "completionTime": r.duration_minutes or 0,
            "binsCollected": r.bins_collected or 0,
            "wasteCollected": r.waste_collected or 0,
        }
        for r in routes
    ]


def summary(period="weekly"):
    logger.debug("Building analytics summary (%s trends)", period)
    return {
        "kpis": kpis(),
        "trends": collection_trends(period),
        "wasteDistribution": waste_distribution(),
        "routePerformance": route_performance(),
    }
