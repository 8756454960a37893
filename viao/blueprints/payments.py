"""Payments blueprint — /api/stripe/*

Boost checkout and the redirect targets Stripe sends the browser back to.

Routes:
- POST /api/stripe/checkout  — create a boost Checkout Session, return its URL
- GET  /api/stripe/success   — verify the paid session and apply the boost once
- GET  /api/stripe/cancel    — customer backed out of Stripe Checkout
"""

import logging

import stripe
from flask import Blueprint, current_app, jsonify, redirect, request
from flask_login import current_user

from viao.decorators import organizer_required
from viao.extensions import db, limiter
from viao.models.event import Event
from viao.services.boost_service import BASIC, PREMIUM
from viao.services.site_config import boosting_enabled
from viao.services.stripe_service import (
    create_boost_checkout,
    is_stripe_configured,
    reconcile_boost_session,
)
from viao.services.url_service import build_redirect, resolve_public_origin

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__, url_prefix="/api/stripe")


def _public_origin():
    return resolve_public_origin(request, current_app.config)


# ──────────────────────────────────────────────
# POST /api/stripe/checkout
# ──────────────────────────────────────────────

@payments_bp.route("/checkout", methods=["POST"])
@limiter.limit("10 per minute")
@organizer_required
def checkout():
    """Start a boost purchase for one of the caller's events.

    Body: {"eventId": "...", "level": 1 | 2}  (level defaults to 1)
    Returns {"url": "<stripe checkout url>"}.
    """
    if not boosting_enabled():
        return jsonify({"error": "Boosting is currently disabled"}), 403
    if not is_stripe_configured():
        return jsonify({"error": "Stripe is not configured"}), 500

    data = request.get_json(silent=True) or {}
    event_id = data.get("eventId")
    level = data.get("level", BASIC)
    if not isinstance(event_id, str) or not event_id or level not in (BASIC, PREMIUM):
        return jsonify({"error": "Invalid request"}), 400

    event = db.session.get(Event, event_id)
    if event is None:
        return jsonify({"error": "Not found"}), 404
    if event.organizer_id != current_user.id:
        return jsonify({"error": "Forbidden"}), 403
    if event.is_cancelled:
        return jsonify({"error": "Cannot boost a cancelled event"}), 400

    try:
        url = create_boost_checkout(event, level, _public_origin())
    except ValueError as e:
        logger.error(f"Checkout error: {e}")
        return jsonify({"error": str(e)}), 500
    except stripe.StripeError as e:
        logger.error(f"Checkout error: {e}", exc_info=True)
        return jsonify({"error": "Failed to create checkout session"}), 500

    if not url:
        return jsonify({"error": "Failed to create checkout session"}), 500
    return jsonify({"url": url})


# ──────────────────────────────────────────────
# GET /api/stripe/success
# ──────────────────────────────────────────────

@payments_bp.route("/success")
def checkout_success():
    """Stripe success_url. Always answers with a redirect.

    The boost is applied at most once per Checkout Session no matter how
    often this is hit (refresh, double submit, racing webhook).
    """
    session_id = request.args.get("session_id")
    result = reconcile_boost_session(session_id, current_user)
    origin = _public_origin()

    if result.ok:
        return redirect(build_redirect(origin, "/events"))

    if result.reason == "unauthorized":
        return redirect(build_redirect(origin, "/", error="unauthorized"))
    if result.reason == "forbidden" and result.event_id is None:
        # Wrong role, not a foreign session.
        return redirect(build_redirect(origin, "/dashboard", error="forbidden"))

    return redirect(build_redirect(
        origin,
        "/events",
        payment="error",
        reason=result.reason,
        session_id=result.session_id,
        eventId=result.event_id,
    ))


# ──────────────────────────────────────────────
# GET /api/stripe/cancel
# ──────────────────────────────────────────────

@payments_bp.route("/cancel")
def checkout_cancel():
    """Stripe cancel_url — nothing was paid, just go back."""
    origin = _public_origin()
    if not current_user.is_authenticated:
        return redirect(build_redirect(origin, "/", payment="cancelled"))
    return redirect(build_redirect(
        origin,
        "/events",
        payment="cancelled",
        session_id=request.args.get("session_id"),
    ))
