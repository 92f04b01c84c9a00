import logging

from flask import Blueprint, g, request
from sqlalchemy import or_

from auth import login_required, roles_required
from credit import redeem_points
from errors import ConflictError, NotFoundError, ValidationError
from extensions import db
from models import Bin, Route, User
from routes import json_body, ok, paginate
from stats import user_stats
from statuses import AccountStatus, RouteStatus, UserRole, VisitStatus, parse_enum
from validation import require_text, validate_phone

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")

ASSIGNABLE_ROLES = (UserRole.USER, UserRole.ADMIN, UserRole.COLLECTOR, UserRole.RESIDENT)


def get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _not_self(user, action):
    if user.id == g.current_user.id:
        raise ConflictError(f"You cannot {action}")


def _activity(user):
    routes = Route.query.filter(Route.assigned_to_id == user.id).all()
    return {
        "routesAssigned": len(routes),
        "routesCompleted": sum(1 for r in routes if r.status == RouteStatus.COMPLETED),
        "binsCollected": sum(
            1 for r in routes for s in r.stops if s.status == VisitStatus.COLLECTED
        ),
    }


# ---------- Credit points (any signed-in user) ----------

@users_bp.route("/me/credit-points", methods=["GET"])
@login_required
def my_credit_points():
    return ok({"creditPoints": g.current_user.credit_points})


@users_bp.route("/me/credit-points/redeem", methods=["POST"])
@roles_required(UserRole.RESIDENT)
def redeem_my_points():
    result = redeem_points(g.current_user, json_body().get("points"))
    db.session.commit()
    return ok(result, "Credit points redeemed")


# ---------- Admin: user management ----------

@users_bp.route("", methods=["GET"])
@roles_required(UserRole.ADMIN)
def list_users():
    query = User.query
    if request.args.get("role"):
        query = query.filter(User.role == parse_enum(UserRole, request.args["role"], "role"))
    if request.args.get("status"):
        query = query.filter(
            User.account_status == parse_enum(AccountStatus, request.args["status"], "status")
        )
    search = request.args.get("search")
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            User.username.ilike(pattern),
            User.email.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
        ))

    users, pagination = paginate(query.order_by(User.created_at.desc()))
    return ok({
        "users": [u.to_dict() for u in users],
        "pagination": pagination,
        "stats": user_stats(),
    })


@users_bp.route("/stats", methods=["GET"])
@roles_required(UserRole.ADMIN)
def get_user_stats():
    return ok({"stats": user_stats()})


@users_bp.route("/<int:user_id>", methods=["GET"])
@roles_required(UserRole.ADMIN)
def get_user(user_id):
    user = get_user_or_404(user_id)
    return ok({"user": user.to_dict(), "activityStats": _activity(user)})


@users_bp.route("/<int:user_id>", methods=["PUT"])
@roles_required(UserRole.ADMIN)
def update_user(user_id):
    user = get_user_or_404(user_id)
    data = json_body()

    if "firstName" in data:
        user.first_name = require_text(data["firstName"], "First name", max_length=50)
    if "lastName" in data:
        user.last_name = require_text(data["lastName"], "Last name", max_length=50)
    if "phoneNo" in data:
        user.phone_no = validate_phone(data["phoneNo"])
    if "address" in data:
        user.address = data["address"]

    db.session.commit()
    return ok({"user": user.to_dict()}, "User updated successfully")


@users_bp.route("/<int:user_id>/role", methods=["PUT"])
@roles_required(UserRole.ADMIN)
def update_user_role(user_id):
    role = json_body().get("role")
    if not isinstance(role, str) or role not in {r.value for r in ASSIGNABLE_ROLES}:
        raise ValidationError("Invalid role. Must be user, admin, collector or resident")

    user = get_user_or_404(user_id)
    _not_self(user, "change your own role")
    user.role = UserRole(role)
    db.session.commit()
    logger.info("User %s role set to %s", user.id, role)
    return ok({"user": user.to_dict()}, "User role updated successfully")


@users_bp.route("/<int:user_id>/status", methods=["PUT"])
@roles_required(UserRole.ADMIN)
def update_user_status(user_id):
    status = parse_enum(AccountStatus, json_body().get("status"), "status")

    user = get_user_or_404(user_id)
    _not_self(user, "change your own account status")
    user.account_status = status
    user.is_active = status == AccountStatus.ACTIVE
    db.session.commit()
    logger.info("User %s account status set to %s", user.id, status.value)
    return ok({"user": user.to_dict()}, f"User {status.value} successfully")


@users_bp.route("/<int:user_id>", methods=["DELETE"])
@roles_required(UserRole.ADMIN)
def delete_user(user_id):
    user = get_user_or_404(user_id)
    _not_self(user, "delete your own account")

    active = Route.query.filter(
        Route.assigned_to_id == user.id,
        Route.status == RouteStatus.IN_PROGRESS,
    ).count()
    if active:
        raise ConflictError("User has a route in progress and cannot be deleted")

    # Detach the user's routes and bins before removing them
    Route.query.filter(Route.assigned_to_id == user.id).update({"assigned_to_id": None})
    Route.query.filter(Route.created_by_id == user.id).update({"created_by_id": None})
    Bin.query.filter(Bin.owner_id == user.id).update({"owner_id": None})
    Bin.query.filter(Bin.created_by_id == user.id).update({"created_by_id": None})

    db.session.delete(user)
    db.session.commit()
    logger.info("Deleted user %s", user_id)
    return ok(message="User deleted successfully")
