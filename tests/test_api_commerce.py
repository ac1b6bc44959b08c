"""
Commerce API — quotes, events and team stores.
"""

import pytest

from richhabits.models import db
from richhabits.models.commerce import Quote, TeamStore


@pytest.fixture()
def admin(login, admin_user):
    return login(admin_user)


@pytest.fixture()
def sales(login, sales_user):
    return login(sales_user)


# ═══════════════════════════════════════════════════════════════
# QUOTES
# ═══════════════════════════════════════════════════════════════

class TestQuotes:
    def test_create_as_sales(self, sales, sales_user):
        res = sales.post("/api/quotes", json={"quoteName": "Spring order", "subtotal": "100",
                                              "taxRate": "0.0825", "total": "108.25"})
        assert res.status_code == 201
        quote = res.get_json()
        assert quote["quoteCode"].startswith("QTE")
        assert quote["status"] == "draft"
        assert quote["salespersonId"] == sales_user.id
        assert quote["total"] == "108.25"

    def test_name_required(self, sales):
        assert sales.post("/api/quotes", json={}).status_code == 400

    def test_bad_amount(self, sales):
        res = sales.post("/api/quotes", json={"quoteName": "X", "total": "lots"})
        assert res.status_code == 400

    def test_invalid_status(self, admin):
        res = admin.post("/api/quotes", json={"quoteName": "X", "status": "won"})
        assert res.status_code == 400

    def test_sales_sees_only_own(self, sales, sales_user, make_user):
        other = make_user("sales")
        db.session.add(Quote(quote_code="QTE-A", quote_name="Mine", salesperson_id=sales_user.id))
        theirs = Quote(quote_code="QTE-B", quote_name="Theirs", salesperson_id=other.id)
        db.session.add(theirs)
        db.session.commit()

        assert [q["quoteName"] for q in sales.get("/api/quotes").get_json()] == ["Mine"]
        assert sales.get(f"/api/quotes/{theirs.id}").status_code == 404

    def test_update_and_delete(self, admin):
        quote_id = admin.post("/api/quotes", json={"quoteName": "X"}).get_json()["id"]
        res = admin.put(f"/api/quotes/{quote_id}", json={"status": "sent"})
        assert res.get_json()["status"] == "sent"
        res = admin.delete(f"/api/quotes/{quote_id}")
        assert res.get_json() == {"deleted": True, "id": quote_id}

    def test_sales_cannot_delete(self, sales):
        quote_id = sales.post("/api/quotes", json={"quoteName": "X"}).get_json()["id"]
        assert sales.delete(f"/api/quotes/{quote_id}").status_code == 403

    def test_delete_is_scoped(self, sales, sales_user, make_user, grant):
        grant(sales_user, "quotes", read=True, edit=True, delete=True)
        theirs = Quote(quote_code="QTE-B", quote_name="Theirs", salesperson_id=make_user("sales").id)
        mine = Quote(quote_code="QTE-A", quote_name="Mine", salesperson_id=sales_user.id)
        db.session.add_all([theirs, mine])
        db.session.commit()

        assert sales.delete(f"/api/quotes/{theirs.id}").status_code == 404
        assert db.session.get(Quote, theirs.id) is not None
        assert sales.delete(f"/api/quotes/{mine.id}").status_code == 200


# ═══════════════════════════════════════════════════════════════
# EVENTS
# ═══════════════════════════════════════════════════════════════

class TestEvents:
    def test_create(self, admin, admin_user):
        res = admin.post("/api/events", json={"name": "Summer Camp", "eventType": "camp",
                                              "startDate": "2026-07-01"})
        assert res.status_code == 201
        event = res.get_json()
        assert event["eventCode"].startswith("EVT")
        assert event["eventType"] == "camp"
        assert event["startDate"].startswith("2026-07-01")
        assert event["createdBy"] == admin_user.id

    def test_invalid_type(self, admin):
        res = admin.post("/api/events", json={"name": "X", "eventType": "party"})
        assert res.status_code == 400

    def test_bad_date(self, admin):
        res = admin.post("/api/events", json={"name": "X", "startDate": "July"})
        assert res.status_code == 400

    def test_designer_has_no_access(self, login, designer_user):
        assert login(designer_user).get("/api/events").status_code == 403


# ═══════════════════════════════════════════════════════════════
# TEAM STORES
# ═══════════════════════════════════════════════════════════════

class TestTeamStores:
    def test_create(self, sales, sales_user):
        res = sales.post("/api/team-stores", json={"storeName": "Eagles Store",
                                                   "storeOpenDate": "2026-02-01",
                                                   "storeCloseDate": "2026-02-15"})
        assert res.status_code == 201
        store = res.get_json()
        assert store["storeCode"].startswith("TS")
        assert store["status"] == "pending"
        assert store["salespersonId"] == sales_user.id

    def test_close_before_open_rejected(self, admin):
        res = admin.post("/api/team-stores", json={"storeName": "X",
                                                   "storeOpenDate": "2026-02-15",
                                                   "storeCloseDate": "2026-02-01"})
        assert res.status_code == 400

    def test_archive_hides_store(self, admin):
        store_id = admin.post("/api/team-stores", json={"storeName": "X"}).get_json()["id"]
        admin.put(f"/api/team-stores/{store_id}", json={"archived": True, "status": "completed"})
        assert admin.get("/api/team-stores").get_json() == []
        assert len(admin.get("/api/team-stores?includeArchived=true").get_json()) == 1

    def test_sales_cannot_touch_foreign_store(self, sales, make_user):
        store = TeamStore(store_code="TS-B", store_name="Theirs",
                          salesperson_id=make_user("sales").id)
        db.session.add(store)
        db.session.commit()

        assert sales.get(f"/api/team-stores/{store.id}").status_code == 403
        assert sales.put(f"/api/team-stores/{store.id}", json={"notes": "x"}).status_code == 403
        assert db.session.get(TeamStore, store.id).notes is None

    def test_store_delete_is_scoped(self, sales, sales_user, make_user, grant):
        grant(sales_user, "orders", read=True, edit=True, delete=True)
        theirs = TeamStore(store_code="TS-B", store_name="Theirs",
                           salesperson_id=make_user("sales").id)
        mine = TeamStore(store_code="TS-A", store_name="Mine", salesperson_id=sales_user.id)
        db.session.add_all([theirs, mine])
        db.session.commit()

        assert sales.delete(f"/api/team-stores/{theirs.id}").status_code == 403
        assert sales.delete(f"/api/team-stores/{mine.id}").status_code == 200
