# Overview: Flask API routes for flocks; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import flock_service
from ..validation import ValidationError, ConflictError, NotFoundError


flocks_bp = Blueprint("flocks", __name__, url_prefix="/api/flocks")


@flocks_bp.get("/")
@require_auth
def list_flocks_route():
    flocks = flock_service.list_flocks(g.user_id, status=request.args.get("status"))
    return jsonify({"flocks": [f.to_dict() for f in flocks]}), 200


@flocks_bp.post("/")
@require_auth
def create_flock_route():
    try:
        flock = flock_service.create_flock(g.user_id, request.get_json(silent=True) or {})
        return jsonify({"flock": flock.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create flock")
        return jsonify({"error": "Internal server error"}), 500


@flocks_bp.get("/<int:flock_id>")
@require_auth
def get_flock_route(flock_id: int):
    """Flock with cached metrics and recent egg counts (7 records / 28 records)."""
    try:
        flock = flock_service.get_flock(g.user_id, flock_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    recent = flock_service.recent_egg_counts(flock, 28)
    return jsonify({
        "flock": flock.to_dict(),
        "egg_production_7_days": recent[:7],
        "egg_production_4_weeks": recent,
    }), 200


@flocks_bp.put("/<int:flock_id>")
@require_auth
def update_flock_route(flock_id: int):
    try:
        flock = flock_service.update_flock(g.user_id, flock_id, request.get_json(silent=True) or {})
        return jsonify({"flock": flock.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update flock")
        return jsonify({"error": "Internal server error"}), 500


@flocks_bp.delete("/<int:flock_id>")
@require_auth
def delete_flock_route(flock_id: int):
    try:
        flock_service.delete_flock(g.user_id, flock_id)
        return jsonify({"deleted": True, "id": flock_id}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete flock")
        return jsonify({"error": "Internal server error"}), 500
