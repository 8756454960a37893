"""Boost service — checkout ledger, claim-and-apply, receipts.

Responsible for:
- Upserting boost_checkouts rows (the checkout ledger)
- The once-only claim on a checkout (conditional UPDATE on processed_at)
- Applying a paid boost to its event + writing receipt, notification, audit
- Receipt listings for organizers and revenue analytics for admins

Nothing in here talks to Stripe; see stripe_service.py for that.
"""

import logging
from datetime import datetime, time, timedelta, timezone

from sqlalchemy import func, or_, update

from viao.extensions import db
from viao.models.audit import AuditEvent
from viao.models.boost import BoostCheckout, BoostReceipt
from viao.models.event import Event, as_utc
from viao.models.user import User
from viao.services.notification_service import create_notification

logger = logging.getLogger(__name__)

BASIC = 1
PREMIUM = 2

BOOST_DURATIONS = {
    BASIC: timedelta(hours=24),
    PREMIUM: timedelta(hours=72),
}

BOOST_NAMES = {
    BASIC: "Basic Boost",
    PREMIUM: "Premium Boost",
}

DEFAULT_CURRENCY = "chf"


class BoostApplyError(Exception):
    """A paid boost could not be applied to its event.

    Raised inside the claim-and-apply transaction so the claim is rolled
    back together with everything else.
    """

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


def parse_level(raw):
    """Only an explicit "2" buys Premium; everything else is Basic."""
    return PREMIUM if str(raw) == "2" else BASIC


def compute_boost_window(current_until, current_level, level, now):
    """Return (new_boost_until, new_boost_level).

    An active window is extended from its current end; an expired or
    missing one starts over at `now`. The level never goes down.
    """
    current_until = as_utc(current_until)
    start = current_until if current_until and current_until > now else now
    return start + BOOST_DURATIONS[level], max(current_level or 0, level)


# ──────────────────────────────────────────────
# Checkout ledger
# ──────────────────────────────────────────────

def upsert_boost_checkout(session_id, session_hash, status, level, amount,
                          currency, event_id, organizer_id,
                          payment_intent_id=None, invoice_id=None):
    """Create or update the ledger row for a checkout session.

    Rows are looked up by the legacy raw session id first, then by hash,
    so one session can never end up with two rows. A row that has already
    been claimed keeps its recorded values, even when the claim lands
    after this transaction first read the row. Uses flush() so the caller
    controls the commit boundary.
    """
    checkout = None
    if session_id:
        checkout = _locked_checkout(session_id)
    if checkout is None:
        checkout = _locked_checkout(session_hash)

    if checkout is None:
        checkout = BoostCheckout(
            stripe_session_id_hash=session_hash,
            status=status,
            level=level,
            amount=amount,
            currency=currency,
            event_id=event_id,
            organizer_id=organizer_id,
            stripe_payment_intent_id=payment_intent_id,
            stripe_invoice_id=invoice_id,
        )
        db.session.add(checkout)
        db.session.flush()
        return checkout

    values = dict(
        status=status,
        level=level,
        amount=amount,
        currency=currency,
        event_id=event_id,
        organizer_id=organizer_id,
    )
    if payment_intent_id:
        values["stripe_payment_intent_id"] = payment_intent_id
    if invoice_id:
        values["stripe_invoice_id"] = invoice_id

    # processed_at is re-checked in the UPDATE itself; a concurrent claim wins
    db.session.execute(
        update(BoostCheckout)
        .where(
            BoostCheckout.id == checkout.id,
            BoostCheckout.processed_at.is_(None),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.session.expire(checkout)
    return checkout


def _locked_checkout(key):
    return (
        BoostCheckout.query.filter_by(stripe_session_id_hash=key)
        .with_for_update()
        .populate_existing()
        .first()
    )


def claim_boost_checkout(session_id, session_hash, now):
    """Atomically mark the checkout as processed.

    A single UPDATE ... WHERE processed_at IS NULL; the database decides
    which caller wins. Returns True only for the caller whose update
    touched the row.
    """
    result = db.session.execute(
        update(BoostCheckout)
        .where(
            BoostCheckout.processed_at.is_(None),
            or_(
                BoostCheckout.stripe_session_id_hash == session_hash,
                BoostCheckout.stripe_session_id_hash == session_id,
            ),
        )
        .values(processed_at=now, status="PROCESSED")
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) > 0


# ──────────────────────────────────────────────
# Apply
# ──────────────────────────────────────────────

def apply_boost(checkout, event_id, organizer_id, level, amount, currency,
                now, actor_id=None):
    """Boost the event, write the receipt, notify the organizer.

    Must run inside the same transaction as the claim. Raises
    BoostApplyError if the event is gone, cancelled or (when actor_id is
    given) owned by someone else.

    Returns the BoostReceipt.
    """
    event = (
        db.session.query(Event)
        .filter_by(id=event_id)
        .with_for_update()
        .first()
    )
    if event is None:
        raise BoostApplyError("event_not_found")
    if event.is_cancelled:
        raise BoostApplyError("event_cancelled")
    if actor_id is not None and event.organizer_id != actor_id:
        raise BoostApplyError("forbidden")

    boost_until, boost_level = compute_boost_window(
        event.boost_until, event.boost_level, level, now
    )
    event.is_boosted = True
    event.boost_until = boost_until
    event.boost_level = boost_level

    receipt = BoostReceipt.query.filter_by(
        boost_checkout_id=checkout.id
    ).first()
    if receipt is None:
        receipt = BoostReceipt(boost_checkout_id=checkout.id)
        db.session.add(receipt)
    receipt.level = level
    receipt.amount = amount
    receipt.currency = currency
    receipt.boost_until = boost_until
    receipt.event_title = event.title
    receipt.event_id = event_id
    receipt.organizer_id = organizer_id
    db.session.flush()

    create_notification(
        user_id=organizer_id,
        type="BOOST_ACTIVATED",
        title=f"{BOOST_NAMES[level]} activated",
        body=f'"{event.title}" is boosted until {boost_until:%Y-%m-%d %H:%M} UTC.',
        data={
            "eventId": event_id,
            "level": level,
            "boostUntil": boost_until.isoformat(),
            "receiptId": receipt.id,
        },
    )

    db.session.add(AuditEvent(
        actor_user_id=actor_id,
        action="boost.activated",
        metadata_={
            "event_id": event_id,
            "boost_checkout_id": checkout.id,
            "level": level,
            "boost_level": boost_level,
            "amount": amount,
            "currency": currency,
        },
    ))
    db.session.flush()

    logger.info(
        f"Boost L{level} applied to event {event_id} until {boost_until.isoformat()}"
    )
    return receipt


def process_paid_checkout(session_id, session_hash, level, amount, currency,
                          event_id, organizer_id, actor_id=None,
                          payment_intent_id=None, invoice_id=None, now=None):
    """Upsert + claim + apply as one transaction.

    Returns True if this call applied the boost, False if the checkout
    had already been claimed (duplicate callback; nothing to do).
    Any exception rolls back the whole unit, the claim included, and is
    re-raised.
    """
    now = now or datetime.now(timezone.utc)
    try:
        checkout = upsert_boost_checkout(
            session_id=session_id,
            session_hash=session_hash,
            status="PAID",
            level=level,
            amount=amount,
            currency=currency,
            event_id=event_id,
            organizer_id=organizer_id,
            payment_intent_id=payment_intent_id,
            invoice_id=invoice_id,
        )

        if not claim_boost_checkout(session_id, session_hash, now):
            db.session.commit()
            logger.info(f"Boost checkout {checkout.id} already processed, skipping")
            return False

        apply_boost(
            checkout,
            event_id=event_id,
            organizer_id=organizer_id,
            level=level,
            amount=amount,
            currency=currency,
            now=now,
            actor_id=actor_id,
        )
        db.session.commit()
        return True
    except Exception:
        db.session.rollback()
        raise


# ──────────────────────────────────────────────
# Receipts & analytics
# ──────────────────────────────────────────────

def parse_date_range(from_raw, to_raw):
    """Parse ?from=/?to= (ISO dates). Invalid values are ignored.

    `to` is inclusive: it is moved to the end of that day.
    """
    def _parse(raw):
        if not raw:
            return None
        try:
            value = datetime.fromisoformat(raw.strip())
        except ValueError:
            return None
        return as_utc(value)

    date_from = _parse(from_raw)
    date_to = _parse(to_raw)
    if date_from is not None:
        date_from = datetime.combine(date_from.date(), time.min, tzinfo=timezone.utc)
    if date_to is not None:
        date_to = datetime.combine(date_to.date(), time.max, tzinfo=timezone.utc)
    return date_from, date_to


def _filter_created(query, date_from, date_to):
    if date_from is not None:
        query = query.filter(BoostReceipt.created_at >= date_from)
    if date_to is not None:
        query = query.filter(BoostReceipt.created_at <= date_to)
    return query


def list_receipts(organizer_id, date_from=None, date_to=None):
    """Receipts for one organizer, newest first."""
    query = BoostReceipt.query.filter_by(organizer_id=organizer_id)
    query = _filter_created(query, date_from, date_to)
    return query.order_by(BoostReceipt.created_at.desc()).all()


def _totals(date_from=None, date_to=None):
    query = db.session.query(
        func.coalesce(func.sum(BoostReceipt.amount), 0),
        func.count(BoostReceipt.id),
    )
    amount, count = _filter_created(query, date_from, date_to).one()
    return {"amount": int(amount or 0), "count": int(count or 0)}


def billing_summary(q="", date_from=None, date_to=None, page=1, page_size=25):
    """Admin revenue view: one page of receipts plus all-time/range totals.

    The range totals honour the date filter but not the title search.
    """
    page = max(1, page)
    page_size = max(1, min(100, page_size))

    query = _filter_created(BoostReceipt.query, date_from, date_to)
    q = (q or "").strip()
    if q:
        query = query.filter(BoostReceipt.event_title.ilike(f"%{q}%"))

    pagination = query.order_by(BoostReceipt.created_at.desc()).paginate(
        page=page, per_page=page_size, error_out=False
    )
    receipts = pagination.items

    organizer_ids = {r.organizer_id for r in receipts if r.organizer_id}
    organizers = {}
    if organizer_ids:
        for user in User.query.filter(User.id.in_(organizer_ids)).all():
            organizers[user.id] = user

    return {
        "page": page,
        "page_size": page_size,
        "total": pagination.total,
        "receipts": receipts,
        "organizers": organizers,
        "totals": {
            "all_time": _totals(),
            "range": _totals(date_from, date_to),
        },
    }
