"""Processed webhook deliveries.

Stripe delivers at least once. A delivery whose event id is already here
is acknowledged without running its handler again; the boost claim makes
a repeat harmless anyway, this just skips the work.
"""

import uuid

from viao.extensions import db


class StripeEvent(db.Model):
    __tablename__ = "stripe_events"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    stripe_event_id = db.Column(db.String(255), unique=True, nullable=False)
    event_type = db.Column(db.String(255), nullable=False)
    processed_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    @classmethod
    def seen(cls, stripe_event_id):
        return db.session.query(
            cls.query.filter_by(stripe_event_id=stripe_event_id).exists()
        ).scalar()

    @classmethod
    def record(cls, stripe_event_id, event_type):
        """Add the delivery to the session; the caller commits."""
        row = cls(stripe_event_id=stripe_event_id, event_type=event_type)
        db.session.add(row)
        return row

    def __repr__(self):
        return f"<StripeEvent {self.event_type} {self.stripe_event_id}>"
