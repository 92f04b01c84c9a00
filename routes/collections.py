"""
Collector-facing collection workflow endpoints.

Every call is one atomic step of the route lifecycle: start, collect or
skip a bin, complete. Progress is a read-only view over the same route.
"""
from flask import Blueprint, g

import workflow
from auth import login_required, roles_required
from errors import ForbiddenError, ValidationError
from extensions import db
from routes import json_body, ok
from routes.routes import get_route_or_404
from statuses import UserRole

collections_bp = Blueprint("collections", __name__, url_prefix="/api/collections")


def _route_from_body(data):
    route_id = data.get("routeId")
    if route_id in (None, ""):
        raise ValidationError("routeId is required")
    try:
        return get_route_or_404(int(route_id))
    except (TypeError, ValueError):
        raise ValidationError("routeId must be a valid id")


@collections_bp.route("/routes/<int:route_id>/start", methods=["PUT"])
@roles_required(UserRole.COLLECTOR)
def start_route(route_id):
    route = get_route_or_404(route_id)
    workflow.start_route(route, g.current_user, json_body().get("preRouteChecklist"))
    db.session.commit()
    return ok({"route": route.to_dict()}, "Route started successfully")


@collections_bp.route("/routes/<int:route_id>/complete", methods=["PUT"])
@roles_required(UserRole.COLLECTOR)
def complete_route(route_id):
    route = get_route_or_404(route_id)
    analytics = workflow.complete_route(route, g.current_user)
    db.session.commit()
    return ok(
        {"route": route.to_dict(), "analytics": analytics},
        "Route completed successfully",
    )


@collections_bp.route("/bins/<int:bin_id>/collect", methods=["PUT"])
@roles_required(UserRole.COLLECTOR)
def collect_bin(bin_id):
    data = json_body()
    route = _route_from_body(data)
    stop, points = workflow.collect_bin(
        route,
        bin_id,
        g.current_user,
        notes=data.get("notes"),
        actual_weight=data.get("actualWeight"),
        photo_url=data.get("photoUrl"),
    )
    db.session.commit()
    return ok(
        {
            "bin": stop.bin.to_dict(),
            "stop": stop.to_dict(),
            "route": route.to_dict(),
            "pointsAwarded": points,
        },
        "Bin collected successfully",
    )


@collections_bp.route("/bins/<int:bin_id>/skip", methods=["PUT"])
@roles_required(UserRole.COLLECTOR)
def skip_bin(bin_id):
    data = json_body()
    reason = workflow.require_skip_reason(data.get("reason"))

    route = _route_from_body(data)
    stop = workflow.skip_bin(route, bin_id, g.current_user, reason)
    db.session.commit()
    return ok(
        {"bin": stop.bin.to_dict(), "stop": stop.to_dict(), "route": route.to_dict()},
        "Bin skipped successfully",
    )


@collections_bp.route("/routes/<int:route_id>/progress", methods=["GET"])
@login_required
def route_progress(route_id):
    route = get_route_or_404(route_id)
    user = g.current_user
    if user.role != UserRole.ADMIN and route.assigned_to_id != user.id:
        raise ForbiddenError("This route is not assigned to you")

    data = route.progress()
    data["route"] = route.to_dict()
    return ok(data)


@collections_bp.route("/checklist", methods=["GET"])
@login_required
def checklist():
    items = [dict(item, checked=False) for item in workflow.PRE_ROUTE_CHECKLIST]
    return ok({"items": items})
