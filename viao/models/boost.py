"""Boost billing models.

- BoostCheckout: the checkout ledger. One row per Stripe Checkout Session,
  keyed by an HMAC of the session id so the raw id (which can be used to
  look the session up at Stripe) is never stored at rest. processed_at is
  the once-only claim flag: it goes NULL -> timestamp exactly once.
- BoostReceipt: immutable billing record, one per processed checkout.
"""

import uuid

from viao.extensions import db


class BoostCheckout(db.Model):
    __tablename__ = "boost_checkouts"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    stripe_session_id_hash = db.Column(
        db.String(255), unique=True, nullable=False
    )  # hex HMAC-SHA256; legacy rows hold the raw "cs_..." id
    status = db.Column(
        db.String(20), default="CREATED", nullable=False
    )  # CREATED | PAID | PROCESSED
    level = db.Column(db.Integer, default=1, nullable=False)  # 1 | 2
    amount = db.Column(db.Integer, default=0, nullable=False)  # minor units
    currency = db.Column(db.String(10), default="chf", nullable=False)
    event_id = db.Column(
        db.String(36), nullable=False, index=True
    )  # no FK: metadata may name an event that was since deleted
    organizer_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    stripe_payment_intent_id = db.Column(
        db.String(255), nullable=True
    )  # for receipt_url lookups
    stripe_invoice_id = db.Column(
        db.String(255), nullable=True
    )  # for invoice_pdf lookups
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    receipt = db.relationship(
        "BoostReceipt", back_populates="checkout", uselist=False
    )

    def __repr__(self):
        return f"<BoostCheckout {self.id} ({self.status})>"


class BoostReceipt(db.Model):
    __tablename__ = "boost_receipts"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    boost_checkout_id = db.Column(
        db.String(36),
        db.ForeignKey("boost_checkouts.id"),
        unique=True,
        nullable=False,
    )
    level = db.Column(db.Integer, nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(10), nullable=False)
    boost_until = db.Column(
        db.DateTime(timezone=True), nullable=True
    )  # resulting expiry after this purchase
    event_title = db.Column(
        db.String(255), nullable=False
    )  # snapshot; survives event renames
    event_id = db.Column(db.String(36), nullable=False)
    organizer_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now(), index=True
    )

    # --- Relationships ---
    checkout = db.relationship("BoostCheckout", back_populates="receipt")
    organizer = db.relationship("User")

    def __repr__(self):
        return f"<BoostReceipt {self.event_title!r} L{self.level} {self.amount} {self.currency}>"
