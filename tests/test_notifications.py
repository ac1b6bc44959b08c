"""
Notifications — service operations and the per-user API.
"""

import pytest

from richhabits.core.exceptions import NotFoundError, ValidationError
from richhabits.models.notification import Notification
from richhabits.services.notification import NotificationService


@pytest.fixture()
def inbox(sales_user):
    """Three notifications for sales_user, the oldest already read."""
    first = NotificationService.create(user_id=sales_user.id, title="One")
    NotificationService.mark_read(sales_user.id, first.id)
    NotificationService.create(user_id=sales_user.id, title="Two", type="warning")
    NotificationService.create(user_id=sales_user.id, title="Three", type="success")
    return sales_user


class TestNotificationService:
    def test_invalid_type(self, sales_user):
        with pytest.raises(ValidationError):
            NotificationService.create(user_id=sales_user.id, title="x", type="loud")

    def test_unread_count(self, inbox):
        assert NotificationService.unread_count(inbox.id) == 2

    def test_list_unread_only(self, inbox):
        items, total = NotificationService.list_for_user(inbox.id, unread_only=True)
        assert total == 2
        assert {n.title for n in items} == {"Two", "Three"}

    def test_mark_all_read(self, inbox):
        assert NotificationService.mark_all_read(inbox.id) == 2
        assert NotificationService.unread_count(inbox.id) == 0

    def test_other_users_notification_is_missing(self, inbox, make_user):
        other = make_user("designer")
        notif = Notification.query.filter_by(user_id=inbox.id).first()
        with pytest.raises(NotFoundError):
            NotificationService.mark_read(other.id, notif.id)

    def test_broadcast_skips_inactive_users(self, make_user):
        a = make_user("admin")
        make_user("admin", is_active=False)
        make_user("sales")
        created = NotificationService.broadcast_to_role("admin", title="Confirm")
        assert [n.user_id for n in created] == [a.id]


class TestNotificationAPI:
    def test_anonymous(self, client):
        assert client.get("/api/notifications").status_code == 401

    def test_list_and_count(self, login, inbox):
        c = login(inbox)
        body = c.get("/api/notifications").get_json()
        assert body["total"] == 3
        assert [n["title"] for n in body["items"]][0] == "Three"
        assert c.get("/api/notifications/unread-count").get_json() == {"count": 2}

    def test_limit_and_offset(self, login, inbox):
        body = login(inbox).get("/api/notifications?limit=1&offset=1").get_json()
        assert body["total"] == 3
        assert len(body["items"]) == 1

    def test_mark_read(self, login, inbox):
        c = login(inbox)
        notif = Notification.query.filter_by(user_id=inbox.id, is_read=False).first()
        res = c.patch(f"/api/notifications/{notif.id}/read")
        assert res.status_code == 200
        assert res.get_json()["isRead"] is True
        assert c.get("/api/notifications/unread-count").get_json() == {"count": 1}

    def test_mark_all_read(self, login, inbox):
        c = login(inbox)
        assert c.post("/api/notifications/mark-all-read").get_json() == {"updated": 2}

    def test_other_user_gets_404(self, login, inbox, designer_user):
        notif = Notification.query.filter_by(user_id=inbox.id).first()
        c = login(designer_user)
        assert c.patch(f"/api/notifications/{notif.id}/read").status_code == 404
        assert c.delete(f"/api/notifications/{notif.id}").status_code == 404

    def test_delete(self, login, inbox):
        notif = Notification.query.filter_by(user_id=inbox.id).first()
        res = login(inbox).delete(f"/api/notifications/{notif.id}")
        assert res.get_json() == {"deleted": True, "id": notif.id}
        assert Notification.query.filter_by(user_id=inbox.id).count() == 2
