"""Notification model.

Feed entries shown in the user's notification dropdown.
"""

import uuid

from viao.extensions import db


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    type = db.Column(db.String(50), nullable=False)  # e.g. "BOOST_ACTIVATED"
    title = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=True)
    data = db.Column(db.JSON, nullable=True)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    user = db.relationship("User", back_populates="notifications")

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "readAt": self.read_at.isoformat() if self.read_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Notification {self.type} user={self.user_id}>"
