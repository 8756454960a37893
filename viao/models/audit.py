"""Audit event model.

Logs billing actions (boost activations) for the admin audit log.
"""

import uuid

from viao.extensions import db


class AuditEvent(db.Model):
    __tablename__ = "audit_events"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    actor_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )  # None for system-initiated (webhook) actions
    action = db.Column(db.String(255), nullable=False)  # e.g. "boost.activated"
    metadata_ = db.Column(
        "metadata", db.JSON, default=dict
    )  # extra context, named metadata_ to avoid the declarative attribute clash
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    actor = db.relationship("User")

    def __repr__(self):
        return f"<AuditEvent {self.action}>"
