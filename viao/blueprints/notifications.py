"""Notifications blueprint — /api/notifications

- GET  /api/notifications?limit=N  — newest first, with unread count
- POST /api/notifications          — {"ids": [...]} or {"markAll": true}
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from viao.services import notification_service

notifications_bp = Blueprint(
    "notifications", __name__, url_prefix="/api/notifications"
)


@notifications_bp.route("")
@login_required
def list_notifications():
    limit = request.args.get("limit", 50, type=int)
    notifications, unread = notification_service.list_notifications(
        current_user.id, limit
    )
    return jsonify({
        "notifications": [n.to_dict() for n in notifications],
        "unreadCount": unread,
    })


@notifications_bp.route("", methods=["POST"])
@login_required
def mark_notifications():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid payload"}), 400

    ids = data.get("ids")
    mark_all = data.get("markAll", False)
    if ids is not None and (
        not isinstance(ids, list) or not all(isinstance(i, str) for i in ids)
    ):
        return jsonify({"error": "Invalid payload"}), 400
    if not isinstance(mark_all, bool):
        return jsonify({"error": "Invalid payload"}), 400

    read_at = notification_service.mark_read(
        current_user.id, ids=ids, mark_all=mark_all
    )
    return jsonify({"success": True, "readAt": read_at.isoformat()})
