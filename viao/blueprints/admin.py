"""Admin blueprint — /api/admin/*

Revenue analytics for the admin console.

Routes:
- GET /api/admin/billing?q=&from=&to=&page=&pageSize=
"""

from flask import Blueprint, current_app, jsonify, request

from viao.decorators import admin_required
from viao.services.boost_service import billing_summary, parse_date_range

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _iso(value):
    return value.isoformat() if value else None


@admin_bp.route("/billing")
@admin_required
def billing():
    """Paginated boost receipts plus all-time and date-range revenue totals."""
    date_from, date_to = parse_date_range(
        request.args.get("from"), request.args.get("to")
    )
    summary = billing_summary(
        q=request.args.get("q", ""),
        date_from=date_from,
        date_to=date_to,
        page=request.args.get("page", 1, type=int) or 1,
        page_size=request.args.get("pageSize", 25, type=int) or 25,
    )

    organizers = summary["organizers"]
    receipts = []
    for r in summary["receipts"]:
        org = organizers.get(r.organizer_id)
        receipts.append({
            "id": r.id,
            "createdAt": _iso(r.created_at),
            "level": r.level,
            "amount": r.amount,
            "currency": r.currency,
            "boostUntil": _iso(r.boost_until),
            "eventTitle": r.event_title,
            "eventId": r.event_id,
            "organizerId": r.organizer_id,
            "organizer": (
                {"id": org.id, "name": org.name, "email": org.email}
                if org else None
            ),
        })

    totals = summary["totals"]
    return jsonify({
        "page": summary["page"],
        "pageSize": summary["page_size"],
        "total": summary["total"],
        "currency": current_app.config["BOOST_CURRENCY"],
        "totals": {
            "allTime": totals["all_time"],
            "range": totals["range"],
        },
        "receipts": receipts,
    })
