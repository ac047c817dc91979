# Overview: Shared CRUD routes for flock records (sales, expenses, egg production).

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import records_service
from ..services.records_service import RecordKind, RecordError
from ..validation import ValidationError, NotFoundError
from poultrydesk.time_utils import parse_iso_datetime


def _optional_datetime(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name} date format. Use ISO-8601.")


def register_record_routes(bp: Blueprint, kind: RecordKind, item_key: str, list_key: str) -> None:
    """
    Attach list/create/get/update/delete routes for one record kind.

    GET    /            ?flock_id=&start=&end=
    POST   /
    GET    /<id>
    PUT    /<id>
    DELETE /<id>
    """

    @bp.get("/")
    @require_auth
    def list_route():
        try:
            records = records_service.list_records(
                kind,
                g.user_id,
                flock_id=request.args.get("flock_id", type=int),
                start=_optional_datetime("start"),
                end=_optional_datetime("end"),
            )
            return jsonify({list_key: [r.to_dict() for r in records]}), 200
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except Exception:
            current_app.logger.exception("Failed to list %s", list_key)
            return jsonify({"error": "Internal server error"}), 500

    @bp.post("/")
    @require_auth
    def create_route():
        try:
            record = records_service.create_record(kind, g.user_id, request.get_json(silent=True) or {})
            return jsonify({item_key: record.to_dict()}), 201
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except RecordError as e:
            return jsonify({"error": str(e)}), 400
        except Exception:
            current_app.logger.exception("Failed to create %s", item_key)
            return jsonify({"error": "Internal server error"}), 500

    @bp.get("/<int:record_id>")
    @require_auth
    def get_route(record_id: int):
        try:
            record = records_service.get_record(kind, g.user_id, record_id)
            return jsonify({item_key: record.to_dict()}), 200
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404

    @bp.put("/<int:record_id>")
    @require_auth
    def update_route(record_id: int):
        try:
            record = records_service.update_record(
                kind, g.user_id, record_id, request.get_json(silent=True) or {}
            )
            return jsonify({item_key: record.to_dict()}), 200
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except Exception:
            current_app.logger.exception("Failed to update %s", item_key)
            return jsonify({"error": "Internal server error"}), 500

    @bp.delete("/<int:record_id>")
    @require_auth
    def delete_route(record_id: int):
        try:
            records_service.delete_record(kind, g.user_id, record_id)
            return jsonify({"deleted": True, "id": record_id}), 200
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except Exception:
            current_app.logger.exception("Failed to delete %s", item_key)
            return jsonify({"error": "Internal server error"}), 500
