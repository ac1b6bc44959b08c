"""
Permission resolution — static table, seeded matrix, overrides and the admin API.

Tests cover:
  - write translation truth table
  - static table ↔ seeded dataset agreement for every static triple
  - deny-by-default for pairs known to neither source
  - static fallback for unknown role/resource and for "dataset not loaded"
  - per-user overrides and cache invalidation
  - /api/permissions routes
"""

from itertools import product
from types import SimpleNamespace

import pytest

from richhabits.models import db
from richhabits.models.auth import Resource, Role, RolePermission, UserPermission
from richhabits.services.permission_service import (
    PERMISSION_KINDS,
    STATIC_PERMISSIONS,
    PermissionResolver,
    PermissionSnapshot,
    evaluate_permission,
    filter_data_by_role,
    get_accessible_nav_items,
    get_default_landing_path,
    get_role_dashboard_path,
    get_role_home_path,
    has_permission_with_overrides,
    invalidate_all_cache,
    load_permission_snapshot,
    map_static_to_db_permissions,
    seed_permissions,
    static_has_permission,
    translate_permission_to_db,
)

FLAG_KEYS = ("canView", "canCreate", "canEdit", "canDelete", "pageVisible")


def _principal(role, id=1, manufacturer_id=None):
    return SimpleNamespace(id=id, role=role, manufacturer_id=manufacturer_id)


# ═══════════════════════════════════════════════════════════════
# TRANSLATION
# ═══════════════════════════════════════════════════════════════

class TestTranslation:
    def test_write_truth_table(self):
        for values in product((False, True), repeat=len(FLAG_KEYS)):
            flags = dict(zip(FLAG_KEYS, values))
            expected = flags["canCreate"] or flags["canEdit"]
            assert translate_permission_to_db("write", flags) is expected

    def test_other_kinds_map_to_single_flag(self):
        flags = {"canView": True, "canCreate": False, "canEdit": False,
                 "canDelete": False, "pageVisible": True}
        assert translate_permission_to_db("read", flags) is True
        assert translate_permission_to_db("delete", flags) is False
        assert translate_permission_to_db("viewAll", flags) is True

    def test_unknown_kind_denied(self):
        flags = dict.fromkeys(FLAG_KEYS, True)
        assert translate_permission_to_db("approve", flags) is False

    def test_static_entry_mapping(self):
        mapped = map_static_to_db_permissions({"read": True, "write": True})
        assert mapped == {"canView": True, "canCreate": True, "canEdit": True,
                          "canDelete": False, "pageVisible": False}

    def test_static_lookup_is_strict(self):
        assert static_has_permission("sales", "orders", "write") is True
        assert static_has_permission("sales", "orders", "delete") is False
        # dashboard has no delete key at all
        assert static_has_permission("admin", "dashboard", "delete") is False
        assert static_has_permission("nobody", "orders", "read") is False


# ═══════════════════════════════════════════════════════════════
# SEEDED DATASET ↔ STATIC TABLE
# ═══════════════════════════════════════════════════════════════

class TestSeedAgreement:
    def test_every_static_triple_matches_seeded_rows(self, seeded):
        snapshot = PermissionSnapshot.from_db()
        for role, entries in STATIC_PERMISSIONS.items():
            resolver = PermissionResolver(_principal(role), snapshot, static_fallback=False)
            for resource in entries:
                for kind in PERMISSION_KINDS:
                    assert resolver.has_permission(resource, kind) == \
                        static_has_permission(role, resource, kind), (role, resource, kind)

    def test_seed_is_idempotent(self, seeded):
        again = seed_permissions()
        assert again["roles_created"] == 0
        assert again["resources_created"] == 0
        assert again["rows_created"] == 0

    def test_seed_keeps_edited_rows_unless_overwrite(self, seeded):
        role = Role.query.filter_by(name="sales").one()
        resource = Resource.query.filter_by(name="orders").one()
        row = RolePermission.query.filter_by(role_id=role.id, resource_id=resource.id).one()
        row.can_view = False
        db.session.commit()

        seed_permissions()
        assert db.session.get(RolePermission, row.id).can_view is False

        stats = seed_permissions(overwrite=True)
        assert stats["rows_updated"] == 1
        assert db.session.get(RolePermission, row.id).can_view is True

    def test_system_roles_flagged(self, seeded):
        assert all(r.is_system for r in Role.query.all())


# ═══════════════════════════════════════════════════════════════
# RESOLVER
# ═══════════════════════════════════════════════════════════════

class TestResolver:
    def test_unknown_pair_denied_for_every_kind(self, seeded):
        snapshot = load_permission_snapshot()
        # both names known, no row, no static entry
        resolver = PermissionResolver(_principal("sales"), snapshot)
        for kind in PERMISSION_KINDS:
            assert resolver.evaluate("teamStores", kind) == (False, "deny_by_default")
        # neither name known anywhere
        ghost = PermissionResolver(_principal("ghost"), snapshot)
        for kind in PERMISSION_KINDS:
            assert ghost.has_permission("nothing", kind) is False

    def test_sales_orders_falls_back_to_static_without_rows(self):
        snapshot = load_permission_snapshot()
        assert snapshot.roles == {}
        resolver = PermissionResolver(_principal("sales"), snapshot)
        assert resolver.evaluate("orders", "read") == (True, "allow_static_fallback")
        assert resolver.has_permission("orders", "write") is True
        assert resolver.evaluate("orders", "delete") == (False, "deny_static_fallback")

    def test_dataset_not_loaded_uses_static_only(self):
        resolver = PermissionResolver(_principal("designer"), snapshot=None)
        assert resolver.can_access("designJobs") is True
        assert resolver.can_modify("orders") is False
        assert resolver.evaluate("teamStores", "read") == (False, "deny_by_default")

    def test_fallback_disabled_denies(self):
        snapshot = PermissionSnapshot()
        resolver = PermissionResolver(_principal("sales"), snapshot, static_fallback=False)
        assert resolver.has_permission("orders", "read") is False

    def test_row_decides_when_present(self, seeded):
        role = Role.query.filter_by(name="sales").one()
        resource = Resource.query.filter_by(name="orders").one()
        row = RolePermission.query.filter_by(role_id=role.id, resource_id=resource.id).one()
        row.can_create = False
        row.can_edit = False
        db.session.commit()
        invalidate_all_cache()

        resolver = PermissionResolver(_principal("sales"), load_permission_snapshot())
        assert resolver.evaluate("orders", "write") == (False, "deny_role_row")
        assert resolver.evaluate("orders", "read") == (True, "allow_role_grant")

    def test_no_user_denied(self):
        assert PermissionResolver(None).evaluate("orders", "read") == (False, "deny_no_user")
        assert evaluate_permission(None, "orders", "read")["allowed"] is False

    def test_page_visible_uses_row_then_read(self, seeded):
        resolver = PermissionResolver(_principal("sales"), load_permission_snapshot())
        assert resolver.is_page_visible("events") is True
        assert resolver.is_page_visible("orders") is False
        # no row for teamStores: falls back to can_access
        assert resolver.is_page_visible("teamStores") is False


# ═══════════════════════════════════════════════════════════════
# OVERRIDES + SCOPING
# ═══════════════════════════════════════════════════════════════

class TestOverrides:
    def test_override_beats_role_row(self, seeded, sales_user):
        resource = Resource.query.filter_by(name="orders").one()
        assert has_permission_with_overrides(sales_user, "orders", "delete") is False

        db.session.add(UserPermission(
            user_id=sales_user.id, resource_id=resource.id,
            can_view=True, can_create=False, can_edit=False,
            can_delete=True, page_visible=False,
        ))
        db.session.commit()
        invalidate_all_cache()

        result = evaluate_permission(sales_user, "orders", "delete")
        assert result["allowed"] is True
        assert result["decision"] == "allow_user_override"
        assert has_permission_with_overrides(sales_user, "orders", "write") is False

    def test_filter_data_by_role(self, seeded):
        records = [{"id": 1, "ownerUserId": 5}, {"id": 2, "ownerUserId": 6}]
        assert filter_data_by_role(records, _principal("sales", id=5), "leads") == [records[0]]
        assert filter_data_by_role(records, _principal("admin", id=9), "leads") == records
        assert filter_data_by_role(records, None, "leads") == []

        jobs = [{"assignedDesignerId": 3}, {"assignedDesignerId": 4}]
        assert filter_data_by_role(jobs, _principal("designer", id=3), "designJobs") == [jobs[0]]

        mfg = [{"manufacturerId": 1}, {"manufacturerId": 2}]
        maker = _principal("manufacturer", id=8, manufacturer_id=2)
        assert filter_data_by_role(mfg, maker, "manufacturing") == [mfg[1]]
        assert filter_data_by_role(mfg, _principal("manufacturer", id=8), "manufacturing") == []

    def test_nav_items_and_landing(self):
        items = get_accessible_nav_items("manufacturer")
        assert items[0] == "dashboard"
        assert "/manufacturing" in items
        assert "/leads" not in items
        assert get_default_landing_path("sales", enable_role_home=True) == "/sales/home"
        assert get_default_landing_path("sales", enable_role_home=False) == "/"
        assert get_default_landing_path(None, enable_role_home=True) == "/"

    def test_role_paths(self):
        assert get_role_home_path("designer") == "/designer/home"
        assert get_role_dashboard_path("ops") == "/ops/dashboard"
        assert get_role_home_path("intern") == "/"
        assert get_role_dashboard_path(None) == "/"


# ═══════════════════════════════════════════════════════════════
# API
# ═══════════════════════════════════════════════════════════════

class TestPermissionsAPI:
    def test_user_permissions_requires_auth(self, client):
        assert client.get("/api/permissions/user-permissions").status_code == 401

    def test_user_permissions_dataset(self, seeded, sales_user, login):
        c = login(sales_user)
        data = c.get("/api/permissions/user-permissions").get_json()
        assert {"permissions", "roles", "resources"} <= set(data)
        assert len(data["roles"]) == 6

    def test_listings_need_user_management(self, seeded, sales_user, admin_user, login):
        assert login(sales_user).get("/api/permissions/roles").status_code == 403
        res = login(admin_user).get("/api/permissions/roles")
        assert res.status_code == 200
        assert {r["name"] for r in res.get_json()} >= {"admin", "sales"}

    def test_role_crud(self, seeded, admin_user, login):
        c = login(admin_user)
        sales = Role.query.filter_by(name="sales").one()

        res = c.post("/api/permissions/roles", json={
            "name": "intern", "displayName": "Intern", "copyFromRoleId": sales.id,
        })
        assert res.status_code == 201
        intern = res.get_json()
        assert intern["isSystem"] is False
        copied = RolePermission.query.filter_by(role_id=intern["id"]).count()
        assert copied == sales.permissions.count()

        dup = c.post("/api/permissions/roles", json={"name": "intern", "displayName": "X"})
        assert dup.status_code == 409

        res = c.put(f"/api/permissions/roles/{intern['id']}", json={"displayName": "Trainee"})
        assert res.get_json()["displayName"] == "Trainee"

        assert c.delete(f"/api/permissions/roles/{intern['id']}").status_code == 200
        assert db.session.get(Role, intern["id"]) is None

    def test_system_role_cannot_be_deleted(self, seeded, admin_user, login):
        c = login(admin_user)
        admin_role = Role.query.filter_by(name="admin").one()
        res = c.delete(f"/api/permissions/roles/{admin_role.id}")
        assert res.status_code == 403
        assert res.get_json()["error"] == "Cannot delete system role"

    def test_bulk_update(self, seeded, admin_user, sales_user, login):
        c = login(admin_user)
        role = Role.query.filter_by(name="sales").one()
        resource = Resource.query.filter_by(name="orders").one()
        flags = dict.fromkeys(FLAG_KEYS, False)

        res = c.post("/api/permissions/bulk-update", json={"updates": [
            {"roleId": role.id, "resourceId": resource.id, "permissions": flags},
        ]})
        assert res.status_code == 200
        assert res.get_json()["updated"] == 1
        # cache cleared by the mutation
        assert has_permission_with_overrides(sales_user, "orders", "read") is False

    @pytest.mark.parametrize("body, fragment", [
        ({"updates": "nope"}, "Updates must be an array"),
        ({"updates": [{"roleId": 0, "resourceId": 1, "permissions": {}}]}, "index 0"),
        ({"updates": [{"roleId": 1, "resourceId": 1,
                       "permissions": {"canView": "yes"}}]}, "index 0"),
    ])
    def test_bulk_update_validation(self, seeded, admin_user, login, body, fragment):
        res = login(admin_user).post("/api/permissions/bulk-update", json=body)
        assert res.status_code == 400
        assert fragment in res.get_json()["error"]

    def test_user_override_routes(self, seeded, admin_user, sales_user, login):
        c = login(admin_user)
        resource = Resource.query.filter_by(name="manufacturing").one()
        body = {"resourceId": resource.id, "permissions": {
            "canView": True, "canCreate": False, "canEdit": False,
            "canDelete": False, "pageVisible": False,
        }}

        assert c.post(f"/api/permissions/user/{sales_user.id}", json=body).status_code == 201
        assert c.post(f"/api/permissions/user/{sales_user.id}", json=body).status_code == 200
        rows = c.get(f"/api/permissions/user/{sales_user.id}").get_json()
        assert len(rows) == 1
        assert login(sales_user).get("/api/manufacturing").status_code == 200

        res = c.delete(f"/api/permissions/user/{sales_user.id}/{resource.id}")
        assert res.status_code == 204
        assert login(sales_user).get("/api/manufacturing").status_code == 403

    def test_seed_route(self, admin_user, login):
        res = login(admin_user).post("/api/permissions/seed", json={})
        assert res.status_code == 200
        body = res.get_json()
        assert body["success"] is True
        assert body["stats"]["roles_created"] == 6

    def test_nav(self, seeded, designer_user, login):
        data = login(designer_user).get("/api/permissions/nav").get_json()
        assert data["role"] == "designer"
        assert "/design-jobs" in data["items"]
        assert "/leads" not in data["items"]
        assert data["landingPath"] == "/designer/home"
