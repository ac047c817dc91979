# Overview: Flask API routes for inventory; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import inventory_service
from ..validation import ValidationError, NotFoundError


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/")
@require_auth
def list_inventory_route():
    low_stock_only = request.args.get("low_stock", "false").lower() == "true"
    items = inventory_service.list_items(
        g.user_id,
        flock_id=request.args.get("flock_id", type=int),
        low_stock_only=low_stock_only,
    )
    return jsonify({
        "items": [i.to_dict() for i in items],
        "total_value_cents": sum(i.value_cents for i in items),
    }), 200


@inventory_bp.post("/")
@require_auth
def create_inventory_route():
    try:
        item = inventory_service.create_item(g.user_id, request.get_json(silent=True) or {})
        return jsonify({"item": item.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:item_id>")
@require_auth
def get_inventory_route(item_id: int):
    try:
        item = inventory_service.get_item(g.user_id, item_id)
        return jsonify({"item": item.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@inventory_bp.put("/<int:item_id>")
@require_auth
def update_inventory_route(item_id: int):
    try:
        item = inventory_service.update_item(g.user_id, item_id, request.get_json(silent=True) or {})
        return jsonify({"item": item.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/<int:item_id>")
@require_auth
def delete_inventory_route(item_id: int):
    try:
        inventory_service.delete_item(g.user_id, item_id)
        return jsonify({"deleted": True, "id": item_id}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete inventory item")
        return jsonify({"error": "Internal server error"}), 500
