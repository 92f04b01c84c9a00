from flask import Blueprint, request

from analytics import (
    collection_trends,
    kpis,
    route_performance,
    summary,
    waste_distribution,
)
from auth import roles_required
from routes import ok
from statuses import UserRole

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.route("", methods=["GET"])
@roles_required(UserRole.ADMIN)
def get_analytics():
    return ok(summary(request.args.get("period", "weekly")))


@analytics_bp.route("/kpis", methods=["GET"])
@roles_required(UserRole.ADMIN)
def get_kpis():
    return ok(kpis())


@analytics_bp.route("/trends", methods=["GET"])
@roles_required(UserRole.ADMIN)
def get_collection_trends():
    return ok(collection_trends(request.args.get("period", "weekly")))


@analytics_bp.route("/waste-distribution", methods=["GET"])
@roles_required(UserRole.ADMIN)
def get_waste_distribution():
    return ok(waste_distribution())


@analytics_bp.route("/route-performance", methods=["GET"])
@roles_required(UserRole.ADMIN)
def get_route_performance():
    return ok(route_performance())
