# Overview: Flask API routes for notifications; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import notification_service
from ..validation import NotFoundError


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("/")
@require_auth
def list_notifications_route():
    unread_only = request.args.get("unread", "false").lower() == "true"
    items = notification_service.list_notifications(g.user_id, unread_only=unread_only)
    return jsonify({
        "notifications": [n.to_dict() for n in items],
        "unread_count": notification_service.unread_count(g.user_id),
    }), 200


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    try:
        notification = notification_service.mark_read(g.user_id, notification_id)
        return jsonify({"notification": notification.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@notifications_bp.post("/read-all")
@require_auth
def mark_all_read_route():
    count = notification_service.mark_all_read(g.user_id)
    return jsonify({"updated": count}), 200


@notifications_bp.delete("/<int:notification_id>")
@require_auth
def delete_notification_route(notification_id: int):
    try:
        notification_service.delete_notification(g.user_id, notification_id)
        return jsonify({"deleted": True, "id": notification_id}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
