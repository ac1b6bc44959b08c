"""
Rich Habits OS
Notification Service.

Central service for creating and querying per-user notifications.
Workflow hooks create notifications through the helpers at the bottom.
"""

import logging

from richhabits.core.exceptions import NotFoundError, ValidationError
from richhabits.models import db
from richhabits.models.auth import User
from richhabits.models.base import utcnow
from richhabits.models.notification import NOTIFICATION_TYPES, Notification
from richhabits.services.workflow import status_style

logger = logging.getLogger(__name__)


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def create(*, user_id, title, message="", type="info", link=None, metadata=None,
               commit=True):
        """
        Create a single notification record.

        Returns:
            The created Notification instance.
        """
        if type not in NOTIFICATION_TYPES:
            raise ValidationError(
                f"Invalid notification type: {type}",
                details={"allowed": list(NOTIFICATION_TYPES)},
            )
        notif = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            link=link,
            meta=metadata,
        )
        db.session.add(notif)
        if commit:
            db.session.commit()
        return notif

    @staticmethod
    def broadcast_to_role(role, *, title, message="", type="info", link=None, metadata=None):
        """Notify every active user with ``role``. Returns the created rows."""
        users = User.query.filter_by(role=role, is_active=True).all()
        notifications = [
            NotificationService.create(
                user_id=u.id, title=title, message=message, type=type,
                link=link, metadata=metadata, commit=False,
            )
            for u in users
        ]
        db.session.commit()
        return notifications

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_user(user_id, unread_only=False, limit=50, offset=0):
        """Retrieve a user's notifications, newest first."""
        q = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            q = q.filter_by(is_read=False)
        total = q.count()
        items = (
            q.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset).limit(limit).all()
        )
        return items, total

    @staticmethod
    def unread_count(user_id):
        return Notification.query.filter_by(user_id=user_id, is_read=False).count()

    @staticmethod
    def _owned(user_id, notification_id):
        notif = db.session.get(Notification, notification_id)
        # Another user's notification is reported as missing
        if notif is None or notif.user_id != user_id:
            raise NotFoundError("Notification", notification_id)
        return notif

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read(user_id, notification_id):
        notif = NotificationService._owned(user_id, notification_id)
        if not notif.is_read:
            notif.mark_read()
            db.session.commit()
        return notif

    @staticmethod
    def mark_all_read(user_id):
        """Mark all of a user's notifications as read. Returns the count."""
        count = (
            Notification.query.filter_by(user_id=user_id, is_read=False)
            .update({"is_read": True, "read_at": utcnow()}, synchronize_session="fetch")
        )
        db.session.commit()
        return count

    @staticmethod
    def delete(user_id, notification_id):
        notif = NotificationService._owned(user_id, notification_id)
        db.session.delete(notif)
        db.session.commit()

    # ── Workflow hooks ────────────────────────────────────────────────────

    @staticmethod
    def notify_design_job_assigned(job):
        if job.assigned_designer_id is None:
            return None
        return NotificationService.create(
            user_id=job.assigned_designer_id,
            title=f"Design job {job.job_code} assigned to you",
            message=job.brief or "",
            type="action",
            link=f"/design-jobs/{job.id}",
            metadata={"designJobId": job.id},
        )

    @staticmethod
    def notify_order_status_change(order, old_status):
        if order.salesperson_id is None:
            return None
        label = status_style(order.status)["label"]
        return NotificationService.create(
            user_id=order.salesperson_id,
            title=f"Order {order.order_code} is now {label}",
            message=f"{order.order_name or order.order_code}: {old_status} → {order.status}",
            type="success" if order.status == "completed" else "info",
            link=f"/orders/{order.id}",
            metadata={"orderId": order.id, "from": old_status, "to": order.status},
        )

    @staticmethod
    def notify_manufacturing_status_change(record, old_status):
        """Tell the order's salesperson that production moved on."""
        order = record.order
        if order is None or order.salesperson_id is None:
            return None
        label = status_style(record.status)["label"]
        return NotificationService.create(
            user_id=order.salesperson_id,
            title=f"Manufacturing for {order.order_code}: {label}",
            message=f"{old_status} → {record.status}",
            type="info",
            link=f"/manufacturing/{record.id}",
            metadata={"manufacturingId": record.id, "from": old_status, "to": record.status},
        )

    @staticmethod
    def notify_manufacturing_awaiting_confirmation(record):
        """Ask every admin to confirm a new manufacturing record."""
        if record.status != "awaiting_admin_confirmation":
            return []
        code = record.order.order_code if record.order is not None else f"#{record.order_id}"
        return NotificationService.broadcast_to_role(
            "admin",
            title=f"Manufacturing for {code} needs confirmation",
            type="action",
            link=f"/manufacturing/{record.id}",
            metadata={"manufacturingId": record.id},
        )
