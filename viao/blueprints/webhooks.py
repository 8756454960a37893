"""Webhooks blueprint — /api/stripe/webhook

Receives Stripe webhook events. CSRF-exempt.
Raw body is required for signature verification.
"""

import logging

from flask import Blueprint, request, jsonify

from viao.services.stripe_service import (
    handle_webhook_event,
    is_stripe_configured,
    verify_webhook_signature,
)

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/stripe")


@webhooks_bp.route("/webhook", methods=["POST"])
def stripe_webhook():
    """Receive and process Stripe webhook events.

    1. Get raw body (required for signature verification)
    2. Verify signature with STRIPE_WEBHOOK_SECRET
    3. Pass to handle_webhook_event (idempotent via stripe_events table)
    4. Return 200 to acknowledge receipt

    CSRF is exempted for this blueprint in create_app().
    """
    if not is_stripe_configured():
        return jsonify({"error": "Stripe is not configured"}), 500

    payload = request.get_data(as_text=True)
    sig_header = request.headers.get("Stripe-Signature")

    if not sig_header:
        logger.warning("Webhook received without Stripe-Signature header")
        return jsonify({"error": "Missing signature"}), 400

    # --- Verify signature ---
    try:
        event = verify_webhook_signature(payload, sig_header)
    except Exception as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        return jsonify({"error": "Invalid signature"}), 400

    # --- Process event (idempotent) ---
    success, message = handle_webhook_event(event)

    if success:
        return jsonify({"status": message}), 200
    else:
        logger.error(f"Webhook processing failed: {message}")
        return jsonify({"error": message}), 500
