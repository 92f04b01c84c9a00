"""
Dashboard aggregates over routes, users and bins.
"""
from collections import Counter

from sqlalchemy import func, or_

from extensions import db
from inventory import derive_collection_urgency
from models import Bin, Route, User
from statuses import AccountStatus, BinStatus, RouteStatus, Urgency, UserRole


def _count_by(column):
    rows = db.session.query(column, func.count()).group_by(column).all()
    return {key: n for key, n in rows}


def route_stats():
    by_status = _count_by(Route.status)
    unassigned = Route.query.filter(
        Route.assigned_to_id.is_(None),
        Route.status == RouteStatus.SCHEDULED,
    ).count()

    return {
        "totalRoutes": sum(by_status.values()),
        "scheduledRoutes": by_status.get(RouteStatus.SCHEDULED, 0),
        "inProgressRoutes": by_status.get(RouteStatus.IN_PROGRESS, 0),
        "completedRoutes": by_status.get(RouteStatus.COMPLETED, 0),
        "cancelledRoutes": by_status.get(RouteStatus.CANCELLED, 0),
        "unassignedRoutes": unassigned,
    }


def user_stats():
    by_role = _count_by(User.role)
    by_status = _count_by(User.account_status)

    return {
        "total": sum(by_role.values()),
        "admins": by_role.get(UserRole.ADMIN, 0),
        "collectors": by_role.get(UserRole.COLLECTOR, 0),
        "users": by_role.get(UserRole.USER, 0),
        "residents": by_role.get(UserRole.RESIDENT, 0),
        "active": by_status.get(AccountStatus.ACTIVE, 0),
        "suspended": by_status.get(AccountStatus.SUSPENDED, 0),
        "pending": by_status.get(AccountStatus.PENDING, 0),
    }


def bin_stats():
    by_status = _count_by(Bin.status)
    by_type = _count_by(Bin.bin_type)
    by_zone = _count_by(Bin.zone)
    average = db.session.query(func.avg(Bin.fill_level)).scalar()
    needing = Bin.query.filter(
        or_(Bin.fill_level >= 85, Bin.status == BinStatus.FULL)
    ).count()
    urgency = Counter(derive_collection_urgency(b) for b in Bin.query.all())

    return {
        "total": sum(by_status.values()),
        "active": by_status.get(BinStatus.ACTIVE, 0),
        "full": by_status.get(BinStatus.FULL, 0),
        "maintenance": by_status.get(BinStatus.MAINTENANCE, 0),
        "inactive": by_status.get(BinStatus.INACTIVE, 0),
        "needingCollection": needing,
        "averageFillLevel": round(average or 0, 2),
        "byType": {k.value: n for k, n in by_type.items()},
        "byZone": {k.value: n for k, n in by_zone.items()},
        "urgency": {u.value: urgency.get(u, 0) for u in Urgency},
    }
