"""Stripe service — all Stripe API calls and webhook handling.

Responsible for:
- Hashing checkout session ids for the checkout ledger
- Creating boost Checkout Sessions
- Reconciling a returning checkout session (the /api/stripe/success flow)
- Handling incoming webhooks with signature verification
- Looking up Stripe-hosted receipt / invoice URLs
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

import stripe
from flask import current_app

from viao.extensions import db
from viao.models.stripe_event import StripeEvent
from viao.services.boost_service import (
    BOOST_DURATIONS,
    BOOST_NAMES,
    DEFAULT_CURRENCY,
    BoostApplyError,
    PREMIUM,
    parse_level,
    process_paid_checkout,
    upsert_boost_checkout,
)
from viao.services.site_config import boosting_enabled

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Configuration helpers
# ──────────────────────────────────────────────

def is_stripe_configured():
    return bool(current_app.config.get("STRIPE_SECRET_KEY"))


def _configure_stripe():
    stripe.api_key = current_app.config["STRIPE_SECRET_KEY"]


def get_session_hash_secret():
    """Secret for hashing session ids, first of the three that is set."""
    config = current_app.config
    return (
        config.get("STRIPE_SESSION_HASH_SECRET")
        or config.get("STRIPE_WEBHOOK_SECRET")
        or config.get("STRIPE_SECRET_KEY")
    )


def hash_session_id(session_id, secret):
    """Hex HMAC-SHA256 of a Checkout Session id."""
    return hmac.new(
        secret.encode("utf-8"), session_id.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def _plain(value):
    """Turn a Stripe object (and anything nested in it) into plain dicts."""
    if isinstance(value, stripe.StripeObject):
        value = value.to_dict()
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _stripe_id(value):
    """Expandable fields come back as either an id string or an object."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return value.get("id")
    return None


def _session_amount(session):
    amount = session.get("amount_total")
    return amount if isinstance(amount, int) else 0


def _session_currency(session):
    currency = session.get("currency")
    return currency if isinstance(currency, str) and currency else DEFAULT_CURRENCY


# ──────────────────────────────────────────────
# Checkout Sessions
# ──────────────────────────────────────────────

def boost_amount(level):
    """Price of a boost level in minor units."""
    if level == PREMIUM:
        return current_app.config["BOOST_PREMIUM_AMOUNT"]
    return current_app.config["BOOST_BASIC_AMOUNT"]


def create_boost_checkout(event, level, origin):
    """Create a Stripe Checkout Session for boosting `event`.

    Records a CREATED row in the checkout ledger so the session is known
    before the customer comes back.

    Returns the Stripe checkout session URL (None if Stripe gave none).
    Raises ValueError if no hash secret is configured.
    Raises stripe.StripeError on API failures.
    """
    secret = get_session_hash_secret()
    if not secret:
        raise ValueError("Missing Stripe hash configuration")

    _configure_stripe()
    currency = current_app.config["BOOST_CURRENCY"]
    amount = boost_amount(level)
    hours = int(BOOST_DURATIONS[level].total_seconds() // 3600)

    session = stripe.checkout.Session.create(
        mode="payment",
        invoice_creation={"enabled": True},
        line_items=[
            {
                "quantity": 1,
                "price_data": {
                    "currency": currency,
                    "unit_amount": amount,
                    "product_data": {
                        "name": BOOST_NAMES[level],
                        "description": f'Boost "{event.title}" for {hours} hours',
                    },
                },
            }
        ],
        success_url=f"{origin}/api/stripe/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{origin}/api/stripe/cancel?session_id={{CHECKOUT_SESSION_ID}}",
        metadata={
            "eventId": event.id,
            "level": str(level),
            "organizerId": event.organizer_id,
        },
    )

    if not session.url:
        return None

    upsert_boost_checkout(
        session_id=None,
        session_hash=hash_session_id(session.id, secret),
        status="CREATED",
        level=level,
        amount=amount,
        currency=currency,
        event_id=event.id,
        organizer_id=event.organizer_id,
    )
    db.session.commit()

    return session.url


def retrieve_checkout_session(session_id, **params):
    """Fetch a Checkout Session as a plain dict."""
    _configure_stripe()
    return _plain(stripe.checkout.Session.retrieve(session_id, **params))


# ──────────────────────────────────────────────
# Success redirect reconciliation
# ──────────────────────────────────────────────

@dataclass
class ReconcileResult:
    """Outcome of reconcile_boost_session.

    ok=True means redirect to the success page (applied tells whether this
    request did the work or found it already done). ok=False carries the
    reason code for the error redirect.
    """

    ok: bool
    reason: Optional[str] = None
    applied: bool = False
    session_id: Optional[str] = None
    event_id: Optional[str] = None

    @classmethod
    def success(cls, applied, event_id=None):
        return cls(ok=True, applied=applied, event_id=event_id)

    @classmethod
    def failure(cls, reason, session_id=None, event_id=None):
        return cls(ok=False, reason=reason, session_id=session_id, event_id=event_id)


def reconcile_boost_session(session_id, user):
    """Verify a returning Checkout Session and apply its boost once.

    Preconditions are checked in order and fail fast with a reason code.
    Duplicate callbacks for an already-processed session are a success
    with applied=False.
    """
    if user is None or not user.is_authenticated:
        return ReconcileResult.failure("unauthorized")
    if not user.is_organizer:
        return ReconcileResult.failure("forbidden")
    if not boosting_enabled():
        return ReconcileResult.failure("boosting_disabled")
    if not is_stripe_configured():
        return ReconcileResult.failure("stripe_not_configured")
    if not session_id:
        return ReconcileResult.failure("missing_session")
    secret = get_session_hash_secret()
    if not secret:
        return ReconcileResult.failure("missing_hash_secret")

    session_hash = hash_session_id(session_id, secret)

    try:
        session = retrieve_checkout_session(session_id)

        if session.get("payment_status") != "paid":
            return ReconcileResult.failure("not_paid", session_id=session_id)

        metadata = session.get("metadata") or {}
        event_id = metadata.get("eventId")
        organizer_id = metadata.get("organizerId")
        level = parse_level(metadata.get("level"))

        if not event_id or not organizer_id:
            return ReconcileResult.failure("missing_metadata", session_id=session_id)

        if organizer_id != user.id:
            logger.warning(
                f"User {user.id} tried to redeem a boost session of organizer {organizer_id}"
            )
            return ReconcileResult.failure("forbidden", event_id=event_id)

        applied = process_paid_checkout(
            session_id=session_id,
            session_hash=session_hash,
            level=level,
            amount=_session_amount(session),
            currency=_session_currency(session),
            event_id=event_id,
            organizer_id=organizer_id,
            actor_id=user.id,
            payment_intent_id=_stripe_id(session.get("payment_intent")),
            invoice_id=_stripe_id(session.get("invoice")),
        )
        return ReconcileResult.success(applied, event_id=event_id)
    except Exception as e:
        logger.error(f"Boost reconciliation failed for a checkout session: {e}", exc_info=True)
        return ReconcileResult.failure("server_error", session_id=session_id)


# ──────────────────────────────────────────────
# Webhook Handling
# ──────────────────────────────────────────────

def verify_webhook_signature(payload, sig_header):
    """Verify Stripe webhook signature and construct the event.

    Returns the verified event as a plain dict.
    Raises stripe.SignatureVerificationError on invalid signature.
    """
    webhook_secret = current_app.config["STRIPE_WEBHOOK_SECRET"]
    return _plain(stripe.Webhook.construct_event(payload, sig_header, webhook_secret))


def handle_webhook_event(event):
    """Process a verified Stripe webhook event.

    Idempotency: checks stripe_events table before processing.
    If the event was already processed, returns immediately.

    Returns (success: bool, message: str).
    """
    event_id = event["id"]
    event_type = event["type"]

    if StripeEvent.seen(event_id):
        logger.info(f"Duplicate webhook event {event_id}, skipping")
        return True, "already_processed"

    # --- Route to handler ---
    handlers = {
        "checkout.session.completed": _handle_checkout_completed,
    }

    handler = handlers.get(event_type)
    if handler:
        try:
            handler(event)
        except Exception as e:
            logger.error(f"Error handling {event_type}: {e}", exc_info=True)
            db.session.rollback()
            return False, str(e)

    StripeEvent.record(event_id, event_type)
    db.session.commit()

    return True, "processed"


def _handle_checkout_completed(event):
    """Handle checkout.session.completed for boost sessions.

    Same claim-and-apply as the success redirect, whichever arrives first
    wins. There is no caller identity here, so ownership is taken from
    the session metadata. A vanished or cancelled event is logged and
    skipped rather than failed, since Stripe retrying will not fix it.
    """
    session = event["data"]["object"]
    session_id = session.get("id")
    metadata = session.get("metadata") or {}
    event_id = metadata.get("eventId")
    organizer_id = metadata.get("organizerId")

    if not session_id or not event_id or not organizer_id:
        logger.info("checkout.session.completed without boost metadata, ignoring")
        return

    if session.get("payment_status") not in (None, "paid"):
        logger.info(f"checkout.session.completed for unpaid boost on event {event_id}")
        return

    secret = get_session_hash_secret()
    if not secret:
        raise RuntimeError("Missing Stripe hash configuration")

    try:
        process_paid_checkout(
            session_id=session_id,
            session_hash=hash_session_id(session_id, secret),
            level=parse_level(metadata.get("level")),
            amount=_session_amount(session),
            currency=_session_currency(session),
            event_id=event_id,
            organizer_id=organizer_id,
            payment_intent_id=_stripe_id(session.get("payment_intent")),
            invoice_id=_stripe_id(session.get("invoice")),
        )
    except BoostApplyError as e:
        logger.warning(f"Webhook boost for event {event_id} not applied: {e.reason}")


# ──────────────────────────────────────────────
# Receipts
# ──────────────────────────────────────────────

def lookup_receipt_urls(checkout):
    """Best-effort (receipt_url, invoice_pdf) for a processed checkout.

    Never raises: a missing or failing Stripe lookup yields (None, None)
    for the affected URL.
    """
    if checkout is None or not is_stripe_configured():
        return None, None

    _configure_stripe()
    receipt_url = None
    receipt_pdf_url = None

    if checkout.stripe_payment_intent_id:
        try:
            intent = _plain(stripe.PaymentIntent.retrieve(
                checkout.stripe_payment_intent_id, expand=["latest_charge"]
            ))
            charge = intent.get("latest_charge")
            if isinstance(charge, dict):
                url = charge.get("receipt_url")
                receipt_url = url if isinstance(url, str) else None
        except stripe.StripeError as e:
            logger.warning(f"Receipt lookup failed for checkout {checkout.id}: {e}")

    if checkout.stripe_invoice_id:
        try:
            invoice = _plain(stripe.Invoice.retrieve(checkout.stripe_invoice_id))
            pdf = invoice.get("invoice_pdf")
            receipt_pdf_url = pdf if isinstance(pdf, str) else None
        except stripe.StripeError as e:
            logger.warning(f"Invoice lookup failed for checkout {checkout.id}: {e}")

    return receipt_url, receipt_pdf_url
