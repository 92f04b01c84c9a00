import logging

from flask import Blueprint, g, request
from sqlalchemy import or_

from auth import login_required, roles_required
from errors import NotFoundError
from extensions import db
from inventory import (
    create_bin as register_bin,
    derive_collection_urgency,
    ensure_bin_deletable,
    update_bin as apply_bin_update,
    update_fill_level,
)
from models import Bin
from residents import collection_history, resident_bins, upcoming_collections
from routes import json_body, ok
from stats import bin_stats
from statuses import BinStatus, BinType, UserRole, Zone, parse_enum

logger = logging.getLogger(__name__)

bins_bp = Blueprint("bins", __name__, url_prefix="/api/bins")


def get_bin_or_404(bin_id):
    bin_obj = db.session.get(Bin, bin_id)
    if bin_obj is None:
        raise NotFoundError("Bin not found")
    return bin_obj


def _bin_payload(bin_obj):
    data = bin_obj.to_dict()
    data["collectionUrgency"] = derive_collection_urgency(bin_obj).value
    return data


@bins_bp.route("", methods=["GET"])
@login_required
def list_bins():
    query = Bin.query
    if request.args.get("zone"):
        query = query.filter(Bin.zone == parse_enum(Zone, request.args["zone"], "zone"))
    if request.args.get("binType"):
        query = query.filter(
            Bin.bin_type == parse_enum(BinType, request.args["binType"], "bin type")
        )
    if request.args.get("status"):
        query = query.filter(
            Bin.status == parse_enum(BinStatus, request.args["status"], "status")
        )
    search = request.args.get("search")
    if search:
        query = query.filter(
            or_(Bin.bin_code.ilike(f"%{search}%"), Bin.location.ilike(f"%{search}%"))
        )
    if g.current_user.role == UserRole.RESIDENT:
        query = query.filter(Bin.owner_id == g.current_user.id)

    bins = query.order_by(Bin.created_at.desc()).all()
    return ok({"bins": [_bin_payload(b) for b in bins], "count": len(bins)})


@bins_bp.route("/stats", methods=["GET"])
@login_required
def get_bin_stats():
    return ok({"stats": bin_stats()})


@bins_bp.route("/resident/my-bins", methods=["GET"])
@roles_required(UserRole.RESIDENT)
def get_resident_bins():
    bins = resident_bins(g.current_user)
    return ok({"bins": bins, "count": len(bins)})


@bins_bp.route("/resident/<int:bin_id>/schedule", methods=["GET"])
@roles_required(UserRole.RESIDENT)
def get_resident_bin_schedule(bin_id):
    bin_obj = Bin.query.filter_by(id=bin_id, owner_id=g.current_user.id).first()
    if bin_obj is None:
        raise NotFoundError("Bin not found or you do not have access to this bin")
    return ok({
        "bin": {
            "id": bin_obj.id,
            "binId": bin_obj.bin_code,
            "location": bin_obj.location,
            "zone": bin_obj.zone.value,
        },
        "upcomingCollections": upcoming_collections(bin_obj),
    })


@bins_bp.route("/resident/collection-history", methods=["GET"])
@roles_required(UserRole.RESIDENT)
def get_resident_collection_history():
    history = collection_history(g.current_user)
    return ok({"history": history, "count": len(history)})


@bins_bp.route("/<int:bin_id>", methods=["GET"])
@login_required
def get_bin(bin_id):
    return ok({"bin": _bin_payload(get_bin_or_404(bin_id))})


@bins_bp.route("", methods=["POST"])
@login_required
def create_bin():
    user = g.current_user
    # Residents register bins they own
    owner = user if user.role == UserRole.RESIDENT else None
    bin_obj = register_bin(json_body(), creator=user, owner=owner)
    db.session.commit()
    return ok({"bin": _bin_payload(bin_obj)}, "Bin created successfully", 201)


@bins_bp.route("/<int:bin_id>", methods=["PUT"])
@roles_required(UserRole.ADMIN, UserRole.COLLECTOR)
def update_bin(bin_id):
    bin_obj = apply_bin_update(get_bin_or_404(bin_id), json_body())
    db.session.commit()
    return ok({"bin": _bin_payload(bin_obj)}, "Bin updated successfully")


@bins_bp.route("/<int:bin_id>/fill-level", methods=["PUT"])
@roles_required(UserRole.ADMIN, UserRole.COLLECTOR)
def set_fill_level(bin_id):
    data = json_body()
    bin_obj = update_fill_level(get_bin_or_404(bin_id), data.get("fillLevel"), data.get("weight"))
    db.session.commit()
    return ok({"bin": _bin_payload(bin_obj)}, "Bin fill level updated")


@bins_bp.route("/<int:bin_id>", methods=["DELETE"])
@roles_required(UserRole.ADMIN)
def delete_bin(bin_id):
    bin_obj = get_bin_or_404(bin_id)
    ensure_bin_deletable(bin_obj)
    db.session.delete(bin_obj)
    db.session.commit()
    logger.info("Deleted bin %s", bin_obj.bin_code)
    return ok(message="Bin deleted successfully")
