"""
Manufacturing API — records, manufacturer scoping and the update trail.
"""

import pytest

from richhabits.models import db
from richhabits.models.catalog import Manufacturer
from richhabits.models.manufacturing import Manufacturing, ManufacturingUpdate
from richhabits.models.notification import Notification
from richhabits.models.order import Order


def _order(code="ORD-M1", salesperson=None):
    order = Order(order_code=code, order_name=f"Order {code}",
                  salesperson_id=salesperson.id if salesperson else None)
    db.session.add(order)
    db.session.commit()
    return order


def _record(manufacturer=None, code="ORD-M1", status="awaiting_admin_confirmation"):
    record = Manufacturing(order_id=_order(code).id, status=status,
                           manufacturer_id=manufacturer.id if manufacturer else None)
    db.session.add(record)
    db.session.commit()
    return record


@pytest.fixture()
def admin(login, admin_user):
    return login(admin_user)


# ═══════════════════════════════════════════════════════════════
# RECORDS
# ═══════════════════════════════════════════════════════════════

class TestManufacturingRecords:
    def test_create(self, admin):
        order = _order()
        res = admin.post("/api/manufacturing", json={"orderId": order.id, "priority": "urgent"})
        assert res.status_code == 201
        body = res.get_json()
        assert body["status"] == "awaiting_admin_confirmation"
        assert body["priority"] == "urgent"

    def test_create_asks_admins_to_confirm(self, admin, admin_user, make_user, ops_user):
        other_admin = make_user("admin")
        order = _order()
        record_id = admin.post("/api/manufacturing", json={"orderId": order.id}).get_json()["id"]

        notified = {n.user_id for n in Notification.query.all()}
        assert notified == {admin_user.id, other_admin.id}
        notif = Notification.query.filter_by(user_id=other_admin.id).one()
        assert notif.type == "action"
        assert notif.link == f"/manufacturing/{record_id}"
        assert "ORD-M1" in notif.title

    def test_confirmed_create_does_not_broadcast(self, admin):
        order = _order()
        admin.post("/api/manufacturing",
                   json={"orderId": order.id, "status": "confirmed_awaiting_manufacturing"})
        assert Notification.query.count() == 0

    def test_create_requires_order(self, admin):
        assert admin.post("/api/manufacturing", json={}).status_code == 400
        assert admin.post("/api/manufacturing", json={"orderId": 404}).status_code == 404

    def test_one_record_per_order(self, admin):
        record = _record()
        res = admin.post("/api/manufacturing", json={"orderId": record.order_id})
        assert res.status_code == 409

    def test_invalid_status(self, admin):
        record = _record()
        res = admin.put(f"/api/manufacturing/{record.id}", json={"status": "sewing"})
        assert res.status_code == 400
        assert "awaiting_admin_confirmation" in res.get_json()["error"]

    def test_status_change_logs_update_and_notifies(self, admin, admin_user, sales_user):
        record = _record()
        record.order.salesperson_id = sales_user.id
        db.session.commit()

        res = admin.put(f"/api/manufacturing/{record.id}",
                        json={"status": "printing", "notes": "Screens ready"})
        assert res.status_code == 200

        update = ManufacturingUpdate.query.one()
        assert update.status == "printing"
        assert update.notes == "Screens ready"
        assert update.updated_by == admin_user.id

        notif = Notification.query.filter_by(user_id=sales_user.id).one()
        assert notif.title == "Manufacturing for ORD-M1: Printing"

    def test_unchanged_status_logs_nothing(self, admin):
        record = _record()
        admin.put(f"/api/manufacturing/{record.id}",
                  json={"status": "awaiting_admin_confirmation", "trackingNumber": "1Z"})
        assert ManufacturingUpdate.query.count() == 0

    def test_detail_includes_updates(self, admin):
        record = _record()
        admin.post("/api/manufacturing-updates",
                   json={"manufacturingId": record.id, "status": "cutting_sewing"})
        body = admin.get(f"/api/manufacturing/{record.id}").get_json()
        assert [u["status"] for u in body["updates"]] == ["cutting_sewing"]
        assert body["status"] == "cutting_sewing"

    def test_archive(self, admin):
        record = _record()
        res = admin.post(f"/api/manufacturing/{record.id}/archive")
        assert res.get_json()["manufacturing"]["archived"] is True
        assert admin.get("/api/manufacturing").get_json() == []

    def test_delete_order_removes_record(self, admin):
        record = _record()
        res = admin.delete(f"/api/orders/{record.order_id}")
        assert res.status_code == 200
        db.session.expire_all()
        assert Manufacturing.query.count() == 0


# ═══════════════════════════════════════════════════════════════
# SCOPING
# ═══════════════════════════════════════════════════════════════

class TestManufacturerScoping:
    def test_sales_has_no_access(self, login, sales_user):
        assert login(sales_user).get("/api/manufacturing").status_code == 403

    def test_manufacturer_sees_own_records(self, login, manufacturer_user, manufacturer):
        mine = _record(manufacturer, code="ORD-A")
        _record(None, code="ORD-B")
        client = login(manufacturer_user)

        listed = client.get("/api/manufacturing").get_json()
        assert [r["id"] for r in listed] == [mine.id]

    def test_manufacturer_forbidden_on_other_record(self, login, manufacturer_user):
        record = _record(None)
        client = login(manufacturer_user)
        assert client.get(f"/api/manufacturing/{record.id}").status_code == 403
        res = client.post("/api/manufacturing-updates",
                          json={"manufacturingId": record.id, "status": "printing"})
        assert res.status_code == 403

    def test_manufacturer_posts_update(self, login, manufacturer_user, manufacturer):
        record = _record(manufacturer, status="cutting_sewing")
        client = login(manufacturer_user)
        res = client.post("/api/manufacturing-updates",
                          json={"manufacturingId": record.id, "status": "printing",
                                "notes": "On press"})
        assert res.status_code == 201
        assert res.get_json()["manufacturerId"] == manufacturer.id

        trail = client.get("/api/manufacturing-updates").get_json()
        assert [u["status"] for u in trail] == ["printing"]

    def test_manufacturer_cannot_delete(self, login, manufacturer_user, manufacturer):
        record = _record(manufacturer)
        res = login(manufacturer_user).delete(f"/api/manufacturing/{record.id}")
        assert res.status_code == 403

    def test_manufacturer_cannot_archive_other_record(self, login, manufacturer_user):
        record = _record(None)
        client = login(manufacturer_user)
        assert client.post(f"/api/manufacturing/{record.id}/archive").status_code == 403
        db.session.refresh(record)
        assert record.archived is False

    def test_manufacturer_cannot_claim_other_record(self, login, manufacturer_user, manufacturer):
        record = _record(None)
        res = login(manufacturer_user).put(f"/api/manufacturing/{record.id}",
                                           json={"manufacturerId": manufacturer.id})
        assert res.status_code == 403
        db.session.refresh(record)
        assert record.manufacturer_id is None

    def test_manufacturer_cannot_hand_off_own_record(self, login, manufacturer_user, manufacturer):
        other = Manufacturer(name="Other Co")
        db.session.add(other)
        db.session.commit()
        record = _record(manufacturer)

        res = login(manufacturer_user).put(f"/api/manufacturing/{record.id}",
                                           json={"manufacturerId": other.id,
                                                 "trackingNumber": "1Z999"})
        assert res.status_code == 200
        body = res.get_json()
        assert body["manufacturerId"] == manufacturer.id
        assert body["trackingNumber"] == "1Z999"

    def test_admin_can_reassign_manufacturer(self, admin, manufacturer):
        record = _record(None)
        res = admin.put(f"/api/manufacturing/{record.id}", json={"manufacturerId": manufacturer.id})
        assert res.get_json()["manufacturerId"] == manufacturer.id

    def test_delete_is_scoped(self, login, grant, manufacturer_user, manufacturer):
        grant(manufacturer_user, "manufacturing", delete=True)
        foreign = _record(None, code="ORD-X")
        mine = _record(manufacturer, code="ORD-Y")
        client = login(manufacturer_user)

        assert client.delete(f"/api/manufacturing/{foreign.id}").status_code == 403
        assert client.delete(f"/api/manufacturing/{mine.id}").status_code == 200

    def test_unlinked_manufacturer_sees_no_updates(self, login, make_user):
        record = _record(None)
        db.session.add(ManufacturingUpdate(manufacturing_id=record.id, status="printing"))
        db.session.commit()
        client = login(make_user("manufacturer"))

        assert client.get("/api/manufacturing").get_json() == []
        assert client.get("/api/manufacturing-updates").get_json() == []
