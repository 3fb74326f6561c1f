# Overview: Flask API routes for operator notifications.

from flask import Blueprint, request, jsonify

from ..services import notification_service
from ..decorators import require_auth


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("/")
@require_auth
def list_notifications_route():
    unread_only = request.args.get("unread", "").lower() in ("1", "true", "yes")
    items = notification_service.list_notifications(unread_only=unread_only)
    return jsonify({
        "notifications": [n.to_dict() for n in items],
        "unread_count": notification_service.unread_count(),
    }), 200


@notifications_bp.post("/read-all")
@require_auth
def mark_all_read_route():
    updated = notification_service.mark_all_read()
    return jsonify({"updated": updated}), 200


@notifications_bp.delete("/<int:notification_id>")
@require_auth
def delete_notification_route(notification_id: int):
    if not notification_service.delete_notification(notification_id):
        return jsonify({"error": "Notification not found"}), 404
    return "", 204
