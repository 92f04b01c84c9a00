from datetime import datetime

from flask import Blueprint, jsonify

from auth import roles_required
from inventory import derive_collection_urgency
from models import Bin
from routes import ok
from stats import bin_stats, route_stats, user_stats
from statuses import Urgency, UserRole

api_bp = Blueprint("api", __name__)


# ---------- Dashboard API ----------

@api_bp.route("/api/dashboard")
@roles_required(UserRole.ADMIN)
def dashboard():
    """
    Admin dashboard summary.

    Bins waiting for collection are listed fullest first.
    """
    pending = [
        b for b in Bin.query.order_by(Bin.fill_level.desc()).all()
        if derive_collection_urgency(b) == Urgency.PENDING
    ]

    return ok(
        {
            "routes": route_stats(),
            "users": user_stats(),
            "bins": bin_stats(),
            "pendingBins": [
                {
                    "id": b.id,
                    "binId": b.bin_code,
                    "location": b.location,
                    "fillLevel": b.fill_level,
                    "status": b.status.value,
                }
                for b in pending
            ],
        }
    )


# ---------- Health Check ----------

@api_bp.route("/api/health")
def health_check():
    return jsonify(
        {
            "status": "ok",
            "timestamp": datetime.utcnow().isoformat(),
        }
    )
