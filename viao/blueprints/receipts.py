"""Receipts blueprint — /api/receipts

Organizer-facing list of boost purchases, with links to the
Stripe-hosted receipt and invoice PDF when Stripe still has them.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user

from viao.decorators import organizer_required
from viao.services.boost_service import list_receipts, parse_date_range
from viao.services.stripe_service import lookup_receipt_urls

logger = logging.getLogger(__name__)

receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/receipts")


def _iso(value):
    return value.isoformat() if value else None


@receipts_bp.route("")
@organizer_required
def receipts():
    """GET /api/receipts?from=YYYY-MM-DD&to=YYYY-MM-DD"""
    date_from, date_to = parse_date_range(
        request.args.get("from"), request.args.get("to")
    )
    rows = list_receipts(current_user.id, date_from, date_to)

    payload = []
    for r in rows:
        receipt_url, receipt_pdf_url = lookup_receipt_urls(r.checkout)
        payload.append({
            "id": r.id,
            "createdAt": _iso(r.created_at),
            "level": r.level,
            "amount": r.amount,
            "currency": r.currency,
            "boostUntil": _iso(r.boost_until),
            "eventTitle": r.event_title,
            "eventId": r.event_id,
            "boostCheckoutId": r.boost_checkout_id,
            "receiptUrl": receipt_url,
            "receiptPdfUrl": receipt_pdf_url,
        })

    return jsonify({"receipts": payload})
