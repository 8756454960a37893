"""User model.

Accounts are issued by the main Viao auth service; this app only reads
them to resolve the caller's identity and role. Flask-Login integration
via UserMixin.
"""

import uuid

from flask_login import UserMixin

from viao.extensions import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(255))
    role = db.Column(
        db.String(20), default="USER", nullable=False
    )  # USER | ORGANIZER | ADMIN
    preferences = db.Column(
        db.JSON, default=dict
    )  # admin's "adminSettings" lives here (see services/site_config.py)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    events = db.relationship(
        "Event", back_populates="organizer", lazy="dynamic"
    )
    notifications = db.relationship(
        "Notification", back_populates="user", lazy="dynamic"
    )

    @property
    def is_organizer(self):
        return self.role == "ORGANIZER"

    @property
    def is_admin(self):
        return self.role == "ADMIN"

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
