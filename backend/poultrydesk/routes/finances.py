# Overview: Flask API routes for flock finances; period roll-ups and stored snapshots.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import finance_service
from ..services.finance_service import FinanceError
from ..services.periods import parse_range
from ..validation import ValidationError, NotFoundError
from poultrydesk.time_utils import to_utc_z, utcnow


finances_bp = Blueprint("finances", __name__, url_prefix="/api/finances")


def _payload(rows, start, end) -> dict:
    return {
        "period_start": to_utc_z(start),
        "period_end": to_utc_z(end),
        "flocks": [r.to_dict() for r in rows],
        "summary": finance_service.summarize(rows),
    }


@finances_bp.get("/period/<kind>")
@require_auth
def period_financials_route(kind: str):
    """
    Current day / week / month / year for every active flock.

    Recomputes and stores a snapshot per flock on every call.
    """
    try:
        now = utcnow()
        rows = finance_service.get_period_financials(g.user_id, kind, now=now)
        start, end = finance_service.period_bounds(kind, now)
        return jsonify(_payload(rows, start, end)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to compute period financials")
        return jsonify({"error": "Internal server error"}), 500


@finances_bp.get("/range")
@require_auth
def range_financials_route():
    try:
        start, end = parse_range(request.args.get("start"), request.args.get("end"))
        rows = finance_service.get_range_financials(g.user_id, start, end)
        return jsonify(_payload(rows, start, end)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to compute range financials")
        return jsonify({"error": "Internal server error"}), 500


@finances_bp.post("/flocks/<int:flock_id>/snapshot")
@require_auth
def snapshot_flock_route(flock_id: int):
    """Body: {"period": "month"} or {"start": ..., "end": ...}"""
    data = request.get_json(silent=True) or {}
    try:
        if data.get("period"):
            start, end = finance_service.period_bounds(data["period"])
        else:
            start, end = parse_range(data.get("start"), data.get("end"))
        row = finance_service.snapshot_flock(g.user_id, flock_id, start, end)
        return jsonify({"snapshot": row.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except FinanceError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to snapshot flock financials")
        return jsonify({"error": "Internal server error"}), 500


@finances_bp.get("/snapshots")
@require_auth
def list_snapshots_route():
    rows = finance_service.list_snapshots(g.user_id, flock_id=request.args.get("flock_id", type=int))
    return jsonify({"snapshots": [r.to_dict() for r in rows]}), 200


@finances_bp.delete("/flocks/<int:flock_id>/snapshots")
@require_auth
def delete_snapshots_route(flock_id: int):
    try:
        count = finance_service.delete_snapshots(g.user_id, flock_id)
        return jsonify({"deleted": count}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
