"""Event model.

Only the columns the boost flow and the listing read path depend on.

Boost fields are written exclusively by a successful checkout claim
(services/boost_service.py). Expiry is computed on read: once boost_until
has passed the event is treated as not boosted, whatever is_boosted says.
"""

import uuid
from datetime import datetime, timezone

from viao.extensions import db


def as_utc(value):
    """SQLite returns naive datetimes; Postgres returns aware ones."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _iso(value):
    value = as_utc(value)
    return value.isoformat() if value else None


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    location = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(100), nullable=True)
    organizer_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    is_cancelled = db.Column(db.Boolean, default=False, nullable=False)

    # --- Boost ---
    is_boosted = db.Column(db.Boolean, default=False, nullable=False)
    boost_level = db.Column(
        db.Integer, default=0, nullable=False
    )  # 0 = none | 1 = basic | 2 = premium
    boost_until = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    organizer = db.relationship("User", back_populates="events")

    def boost_active(self, now=None):
        """True while a paid boost window is still open."""
        if not self.is_boosted or self.boost_until is None:
            return False
        now = now or datetime.now(timezone.utc)
        return as_utc(self.boost_until) > now

    def to_dict(self, now=None):
        active = self.boost_active(now)
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date": _iso(self.date),
            "location": self.location,
            "category": self.category,
            "organizerId": self.organizer_id,
            "organizerName": self.organizer.name if self.organizer else None,
            "isCancelled": self.is_cancelled,
            "isBoosted": active,
            "boostLevel": self.boost_level if active else 0,
            "boostUntil": _iso(self.boost_until) if active else None,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Event {self.title!r} boost={self.boost_level}>"
