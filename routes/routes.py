import logging

from flask import Blueprint, g, request

import workflow
from auth import login_required, roles_required
from errors import ForbiddenError, NotFoundError
from extensions import db
from models import Route
from routes import json_body, ok, paginate
from stats import route_stats
from statuses import RouteStatus, UserRole, parse_enum
from validation import parse_date, parse_id

logger = logging.getLogger(__name__)

routes_bp = Blueprint("routes", __name__, url_prefix="/api/routes")


def get_route_or_404(route_id):
    route = db.session.get(Route, route_id)
    if route is None:
        raise NotFoundError("Route not found")
    return route


def _filtered_routes(base):
    query = base
    status = request.args.get("status")
    if status:
        query = query.filter(Route.status == parse_enum(RouteStatus, status, "status"))
    assigned = request.args.get("assignedTo")
    if assigned:
        query = query.filter(Route.assigned_to_id == parse_id(assigned, "assignedTo"))
    if request.args.get("startDate"):
        query = query.filter(Route.scheduled_date >= parse_date(request.args["startDate"], "startDate"))
    if request.args.get("endDate"):
        query = query.filter(Route.scheduled_date <= parse_date(request.args["endDate"], "endDate"))
    search = request.args.get("search")
    if search:
        query = query.filter(Route.route_name.ilike(f"%{search}%"))
    return query


# ---------- Admin: route management ----------

@routes_bp.route("", methods=["POST"])
@roles_required(UserRole.ADMIN)
def create_route():
    data = json_body()
    route = workflow.create_route(
        creator=g.current_user,
        route_name=data.get("routeName"),
        bins=data.get("bins"),
        scheduled_date=data.get("scheduledDate"),
        scheduled_time=data.get("scheduledTime"),
        assigned_to=data.get("assignedTo"),
        notes=data.get("notes"),
    )
    db.session.commit()
    return ok({"route": route.to_dict()}, "Route created successfully", 201)


@routes_bp.route("", methods=["GET"])
@roles_required(UserRole.ADMIN)
def list_routes():
    query = _filtered_routes(Route.query).order_by(
        Route.scheduled_date.desc(), Route.created_at.desc()
    )
    routes, pagination = paginate(query)
    return ok({"routes": [r.to_dict() for r in routes], "pagination": pagination})


@routes_bp.route("/stats", methods=["GET"])
@roles_required(UserRole.ADMIN)
def get_route_stats():
    return ok({"stats": route_stats()})


@routes_bp.route("/<int:route_id>", methods=["GET"])
@roles_required(UserRole.ADMIN)
def get_route(route_id):
    return ok({"route": get_route_or_404(route_id).to_dict()})


@routes_bp.route("/<int:route_id>", methods=["PUT"])
@roles_required(UserRole.ADMIN)
def update_route(route_id):
    route = workflow.update_route(get_route_or_404(route_id), json_body())
    db.session.commit()
    return ok({"route": route.to_dict()}, "Route updated successfully")


@routes_bp.route("/<int:route_id>", methods=["DELETE"])
@roles_required(UserRole.ADMIN)
def delete_route(route_id):
    route = get_route_or_404(route_id)
    workflow.ensure_route_deletable(route)
    db.session.delete(route)
    db.session.commit()
    logger.info("Deleted route %s", route_id)
    return ok(message="Route deleted successfully")


@routes_bp.route("/<int:route_id>/assign", methods=["PUT"])
@roles_required(UserRole.ADMIN)
def assign_collector(route_id):
    route = get_route_or_404(route_id)
    workflow.assign_collector(route, json_body().get("collectorId"))
    db.session.commit()
    return ok({"route": route.to_dict()}, "Collector assigned successfully")


@routes_bp.route("/<int:route_id>/cancel", methods=["PUT"])
@roles_required(UserRole.ADMIN)
def cancel_route(route_id):
    route = get_route_or_404(route_id)
    workflow.cancel_route(route, json_body().get("reason"))
    db.session.commit()
    return ok({"route": route.to_dict()}, "Route cancelled successfully")


# ---------- Collector views ----------

@routes_bp.route("/collector/<int:collector_id>", methods=["GET"])
@login_required
def collector_routes(collector_id):
    user = g.current_user
    if user.role != UserRole.ADMIN and user.id != collector_id:
        raise ForbiddenError("You can only view your own routes")

    query = _filtered_routes(Route.query.filter(Route.assigned_to_id == collector_id))
    routes = query.order_by(Route.scheduled_date, Route.scheduled_time).all()
    return ok({"routes": [r.to_dict() for r in routes]})


@routes_bp.route("/my-routes", methods=["GET"])
@roles_required(UserRole.COLLECTOR)
def my_routes():
    query = _filtered_routes(Route.query.filter(Route.assigned_to_id == g.current_user.id))
    routes = query.order_by(Route.scheduled_date, Route.scheduled_time).all()
    return ok({"routes": [r.to_dict() for r in routes]})
