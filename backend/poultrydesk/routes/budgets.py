# Overview: Flask API routes for monthly flock budgets and budget-vs-actual.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import budget_service
from ..validation import ValidationError, ConflictError, NotFoundError


budgets_bp = Blueprint("budgets", __name__, url_prefix="/api/budgets")


@budgets_bp.get("/")
@require_auth
def list_budgets_route():
    budgets = budget_service.list_budgets(
        g.user_id,
        flock_id=request.args.get("flock_id", type=int),
        year=request.args.get("year", type=int),
        month=request.args.get("month", type=int),
    )
    return jsonify({"budgets": [b.to_dict() for b in budgets]}), 200


@budgets_bp.post("/")
@require_auth
def create_budget_route():
    try:
        budget = budget_service.create_budget(g.user_id, request.get_json(silent=True) or {})
        return jsonify({"budget": budget.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create budget")
        return jsonify({"error": "Internal server error"}), 500


@budgets_bp.get("/variance")
@require_auth
def budget_variance_route():
    """?year=&month= (default: current month)"""
    try:
        result = budget_service.budget_vs_actual(
            g.user_id,
            year=request.args.get("year", type=int),
            month=request.args.get("month", type=int),
        )
        return jsonify(result), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@budgets_bp.get("/<int:budget_id>")
@require_auth
def get_budget_route(budget_id: int):
    try:
        return jsonify({"budget": budget_service.get_budget(g.user_id, budget_id).to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@budgets_bp.put("/<int:budget_id>")
@require_auth
def update_budget_route(budget_id: int):
    try:
        budget = budget_service.update_budget(g.user_id, budget_id, request.get_json(silent=True) or {})
        return jsonify({"budget": budget.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update budget")
        return jsonify({"error": "Internal server error"}), 500


@budgets_bp.delete("/<int:budget_id>")
@require_auth
def delete_budget_route(budget_id: int):
    try:
        budget_service.delete_budget(g.user_id, budget_id)
        return jsonify({"deleted": True, "id": budget_id}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
