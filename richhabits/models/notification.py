"""
Rich Habits OS
Notification domain model.

Models:
    - Notification: per-user in-app notification with read tracking
"""

from richhabits.models import db
from richhabits.models.base import TimestampedModel, iso, utcnow

NOTIFICATION_TYPES = ("info", "success", "warning", "error", "action")


class Notification(TimestampedModel):
    """One record per recipient user."""

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")
    type = db.Column(db.String(20), default="info", nullable=False)
    link = db.Column(db.String(500))
    # "metadata" is reserved on declarative classes
    meta = db.Column("metadata", db.JSON)

    is_read = db.Column(db.Boolean, default=False, nullable=False)
    read_at = db.Column(db.DateTime, nullable=True)

    def mark_read(self):
        self.is_read = True
        self.read_at = utcnow()

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "link": self.link,
            "metadata": self.meta,
            "isRead": self.is_read,
            "readAt": iso(self.read_at),
            "createdAt": iso(self.created_at),
        }

    def __repr__(self):
        return f"<Notification {self.id}: {self.title[:40]}>"
