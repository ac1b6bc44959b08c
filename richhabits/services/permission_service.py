"""
Permission Service — role × resource matrix with a static-table fallback.

Resolution (``PermissionResolver.evaluate``) is deny-by-default:
  - no user                                   → deny
  - snapshot loaded, role AND resource known  → the (role, resource) row decides;
                                                an absent row denies
  - snapshot loaded, role OR resource unknown → STATIC_PERMISSIONS decides when it
                                                has an entry for the pair (logged,
                                                gated by PERMISSIONS_STATIC_FALLBACK)
  - snapshot not loaded                       → STATIC_PERMISSIONS only

The server path (``evaluate_permission`` / ``has_permission_with_overrides``)
checks the per-user override first and loads the snapshot through a
process-local TTL cache.
"""

import logging
import threading
import time

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from richhabits.models import db
from richhabits.models.auth import Resource, Role, RolePermission, UserPermission

logger = logging.getLogger(__name__)

CACHE_TTL = 300  # 5 minutes

PERMISSION_KINDS = ("read", "write", "delete", "viewAll")

# ═══════════════════════════════════════════════════════════════════════════
#  STATIC PERMISSION TABLE
# ═══════════════════════════════════════════════════════════════════════════

STATIC_PERMISSIONS = {
    "admin": {
        "dashboard": {"read": True, "write": True},
        "leads": {"read": True, "write": True, "delete": True, "viewAll": True},
        "organizations": {"read": True, "write": True, "delete": True},
        "contacts": {"read": True, "write": True, "delete": True},
        "catalog": {"read": True, "write": True, "delete": True},
        "designJobs": {"read": True, "write": True, "delete": True, "viewAll": True},
        "orders": {"read": True, "write": True, "delete": True, "viewAll": True},
        "manufacturing": {"read": True, "write": True, "delete": True, "viewAll": True},
        "salespeople": {"read": True, "write": True, "delete": True},
        "settings": {"read": True, "write": True},
        "users": {"read": True, "write": True, "delete": True},
        "designerManagement": {"read": True, "write": True, "delete": True, "viewAll": True},
        "manufacturerManagement": {"read": True, "write": True, "delete": True, "viewAll": True},
        "userManagement": {"read": True, "write": True, "delete": True, "viewAll": True},
        "finance": {"read": True, "write": True, "delete": False, "viewAll": True},
        "quotes": {"read": True, "write": True, "delete": True, "viewAll": True},
        "salesAnalytics": {"read": True, "write": False, "delete": False, "viewAll": True},
        "leadsTracker": {"read": True, "write": True, "delete": False, "viewAll": True},
        "designPortfolio": {"read": True, "write": False, "delete": False, "viewAll": True},
        "designResources": {"read": True, "write": True, "delete": False, "viewAll": True},
        "sizeChecker": {"read": True, "write": True, "delete": False, "viewAll": True},
        "capacityDashboard": {"read": True, "write": False, "delete": False, "viewAll": True},
        "orderSpecifications": {"read": True, "write": True, "delete": False, "viewAll": True},
        "systemAnalytics": {"read": True, "write": False, "delete": False, "viewAll": True},
        "connectionHealth": {"read": True, "write": False, "delete": False, "viewAll": True},
        "events": {"read": True, "write": True, "delete": True, "viewAll": True},
        "tasks": {"read": True, "write": True, "delete": True, "viewAll": True},
    },
    "sales": {
        "dashboard": {"read": True, "write": False},
        "leads": {"read": True, "write": True, "delete": False, "viewAll": False},
        "organizations": {"read": True, "write": True, "delete": False},
        "contacts": {"read": True, "write": True, "delete": False},
        "catalog": {"read": True, "write": False, "delete": False},
        "designJobs": {"read": True, "write": True, "delete": False, "viewAll": False},
        "orders": {"read": True, "write": True, "delete": False, "viewAll": False},
        "manufacturing": {"read": False, "write": False, "delete": False, "viewAll": False},
        "salespeople": {"read": True, "write": False, "delete": False},
        "settings": {"read": False, "write": False},
        "users": {"read": False, "write": False, "delete": False},
        "designerManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "manufacturerManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "userManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "finance": {"read": False, "write": False, "delete": False, "viewAll": False},
        "quotes": {"read": True, "write": True, "delete": False, "viewAll": False},
        "salesAnalytics": {"read": True, "write": False, "delete": False, "viewAll": False},
        "leadsTracker": {"read": True, "write": True, "delete": False, "viewAll": False},
        "designPortfolio": {"read": False, "write": False, "delete": False, "viewAll": False},
        "designResources": {"read": False, "write": False, "delete": False, "viewAll": False},
        "sizeChecker": {"read": False, "write": False, "delete": False, "viewAll": False},
        "capacityDashboard": {"read": False, "write": False, "delete": False, "viewAll": False},
        "orderSpecifications": {"read": False, "write": False, "delete": False, "viewAll": False},
        "systemAnalytics": {"read": False, "write": False, "delete": False, "viewAll": False},
        "connectionHealth": {"read": False, "write": False, "delete": False, "viewAll": False},
        "events": {"read": True, "write": True, "delete": False, "viewAll": False},
        "tasks": {"read": True, "write": True, "delete": False, "viewAll": False},
    },
    "designer": {
        "dashboard": {"read": True, "write": False},
        "leads": {"read": False, "write": False, "delete": False, "viewAll": False},
        "organizations": {"read": True, "write": False, "delete": False},
        "contacts": {"read": True, "write": False, "delete": False},
        "catalog": {"read": True, "write": False, "delete": False},
        "designJobs": {"read": True, "write": True, "delete": False, "viewAll": False},
        "orders": {"read": True, "write": False, "delete": False, "viewAll": False},
        "manufacturing": {"read": False, "write": False, "delete": False, "viewAll": False},
        "salespeople": {"read": False, "write": False, "delete": False},
        "settings": {"read": False, "write": False},
        "users": {"read": False, "write": False, "delete": False},
        "designerManagement": {"read": True, "write": False, "delete": False, "viewAll": False},
        "manufacturerManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "userManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "finance": {"read": False, "write": False, "delete": False, "viewAll": False},
        "quotes": {"read": False, "write": False, "delete": False, "viewAll": False},
        "salesAnalytics": {"read": False, "write": False, "delete": False, "viewAll": False},
        "leadsTracker": {"read": False, "write": False, "delete": False, "viewAll": False},
        "designPortfolio": {"read": True, "write": True, "delete": False, "viewAll": True},
        "designResources": {"read": True, "write": False, "delete": False, "viewAll": True},
        "sizeChecker": {"read": False, "write": False, "delete": False, "viewAll": False},
        "capacityDashboard": {"read": False, "write": False, "delete": False, "viewAll": False},
        "orderSpecifications": {"read": False, "write": False, "delete": False, "viewAll": False},
        "systemAnalytics": {"read": False, "write": False, "delete": False, "viewAll": False},
        "connectionHealth": {"read": False, "write": False, "delete": False, "viewAll": False},
        "events": {"read": False, "write": False, "delete": False, "viewAll": False},
        "tasks": {"read": True, "write": True, "delete": False, "viewAll": False},
    },
    "ops": {
        "dashboard": {"read": True, "write": False},
        "leads": {"read": False, "write": False, "delete": False, "viewAll": False},
        "organizations": {"read": True, "write": False, "delete": False},
        "contacts": {"read": True, "write": False, "delete": False},
        "catalog": {"read": True, "write": True, "delete": True},
        "designJobs": {"read": True, "write": True, "delete": False, "viewAll": True},
        "orders": {"read": True, "write": True, "delete": False, "viewAll": True},
        "manufacturing": {"read": True, "write": True, "delete": False, "viewAll": True},
        "salespeople": {"read": True, "write": False, "delete": False},
        "settings": {"read": False, "write": False},
        "users": {"read": False, "write": False, "delete": False},
        "designerManagement": {"read": True, "write": False, "delete": False, "viewAll": True},
        "manufacturerManagement": {"read": True, "write": True, "delete": False, "viewAll": True},
        "userManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "finance": {"read": True, "write": False, "delete": False, "viewAll": True},
        "quotes": {"read": True, "write": False, "delete": False, "viewAll": True},
        "salesAnalytics": {"read": False, "write": False, "delete": False, "viewAll": False},
        "leadsTracker": {"read": False, "write": False, "delete": False, "viewAll": False},
        "designPortfolio": {"read": False, "write": False, "delete": False, "viewAll": False},
        "designResources": {"read": False, "write": False, "delete": False, "viewAll": False},
        "sizeChecker": {"read": True, "write": True, "delete": False, "viewAll": True},
        "capacityDashboard": {"read": False, "write": False, "delete": False, "viewAll": False},
        "orderSpecifications": {"read": False, "write": False, "delete": False, "viewAll": False},
        "systemAnalytics": {"read": False, "write": False, "delete": False, "viewAll": False},
        "connectionHealth": {"read": False, "write": False, "delete": False, "viewAll": False},
        "events": {"read": True, "write": True, "delete": False, "viewAll": True},
        "tasks": {"read": True, "write": True, "delete": False, "viewAll": True},
    },
    "manufacturer": {
        "dashboard": {"read": True, "write": False},
        "leads": {"read": False, "write": False, "delete": False, "viewAll": False},
        "organizations": {"read": True, "write": False, "delete": False},
        "contacts": {"read": True, "write": False, "delete": False},
        "catalog": {"read": True, "write": False, "delete": False},
        "designJobs": {"read": False, "write": False, "delete": False, "viewAll": False},
        "orders": {"read": True, "write": False, "delete": False, "viewAll": False},
        "manufacturing": {"read": True, "write": True, "delete": False, "viewAll": False},
        "salespeople": {"read": False, "write": False, "delete": False},
        "settings": {"read": False, "write": False},
        "users": {"read": False, "write": False, "delete": False},
        "designerManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "manufacturerManagement": {"read": True, "write": False, "delete": False, "viewAll": False},
        "userManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "finance": {"read": False, "write": False, "delete": False, "viewAll": False},
        "quotes": {"read": False, "write": False, "delete": False, "viewAll": False},
        "salesAnalytics": {"read": False, "write": False, "delete": False, "viewAll": False},
        "leadsTracker": {"read": False, "write": False, "delete": False, "viewAll": False},
        "designPortfolio": {"read": False, "write": False, "delete": False, "viewAll": False},
        "designResources": {"read": False, "write": False, "delete": False, "viewAll": False},
        "sizeChecker": {"read": False, "write": False, "delete": False, "viewAll": False},
        "capacityDashboard": {"read": True, "write": False, "delete": False, "viewAll": False},
        "orderSpecifications": {"read": True, "write": True, "delete": False, "viewAll": False},
        "systemAnalytics": {"read": False, "write": False, "delete": False, "viewAll": False},
        "connectionHealth": {"read": False, "write": False, "delete": False, "viewAll": False},
        "events": {"read": False, "write": False, "delete": False, "viewAll": False},
        "tasks": {"read": True, "write": True, "delete": False, "viewAll": False},
    },
    "finance": {
        "dashboard": {"read": True, "write": False},
        "leads": {"read": False, "write": False, "delete": False, "viewAll": False},
        "organizations": {"read": True, "write": False, "delete": False},
        "contacts": {"read": True, "write": False, "delete": False},
        "catalog": {"read": True, "write": False, "delete": False},
        "designJobs": {"read": False, "write": False, "delete": False, "viewAll": False},
        "orders": {"read": True, "write": False, "delete": False, "viewAll": True},
        "manufacturing": {"read": False, "write": False, "delete": False, "viewAll": False},
        "salespeople": {"read": True, "write": False, "delete": False},
        "settings": {"read": False, "write": False},
        "users": {"read": True, "write": False, "delete": False},
        "designerManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "manufacturerManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "userManagement": {"read": False, "write": False, "delete": False, "viewAll": False},
        "finance": {"read": True, "write": True, "delete": False, "viewAll": True},
        "quotes": {"read": True, "write": True, "delete": False, "viewAll": True},
        "salesAnalytics": {"read": True, "write": False, "delete": False, "viewAll": True},
        "leadsTracker": {"read": False, "write": False, "delete": False, "viewAll": False},
        "designPortfolio": {"read": False, "write": False, "delete": False, "viewAll": False},
        "designResources": {"read": False, "write": False, "delete": False, "viewAll": False},
        "sizeChecker": {"read": False, "write": False, "delete": False, "viewAll": False},
        "capacityDashboard": {"read": False, "write": False, "delete": False, "viewAll": False},
        "orderSpecifications": {"read": False, "write": False, "delete": False, "viewAll": False},
        "systemAnalytics": {"read": True, "write": False, "delete": False, "viewAll": True},
        "connectionHealth": {"read": False, "write": False, "delete": False, "viewAll": False},
        "events": {"read": True, "write": False, "delete": False, "viewAll": True},
        "tasks": {"read": True, "write": True, "delete": False, "viewAll": True},
    },
}

SYSTEM_ROLE_DEFINITIONS = [
    {"name": "admin", "display_name": "Administrator",
     "description": "Full system access with all permissions"},
    {"name": "sales", "display_name": "Sales Person",
     "description": "Manage leads, orders, and quotes"},
    {"name": "designer", "display_name": "Designer",
     "description": "Manage design jobs and assets"},
    {"name": "ops", "display_name": "Operations",
     "description": "Manage operations, manufacturing, and fulfillment"},
    {"name": "manufacturer", "display_name": "Manufacturer",
     "description": "Manage manufacturing processes"},
    {"name": "finance", "display_name": "Finance",
     "description": "Manage financial operations and invoicing"},
]

# (name, display_name, description, resource_type, path)
_RESOURCE_ROWS = [
    ("dashboard", "Dashboard", "Main dashboard view", "page", "/"),
    ("leads", "Leads", "Lead management", "page", "/leads"),
    ("organizations", "Organizations", "Organization management", "page", "/organizations"),
    ("contacts", "Contacts", "Contact management", "feature", None),
    ("catalog", "Catalog", "Product catalog", "page", "/catalog"),
    ("designJobs", "Design Jobs", "Design job management", "page", "/design-jobs"),
    ("orders", "Orders", "Order management", "page", "/orders"),
    ("manufacturing", "Manufacturing", "Manufacturing operations", "page", "/manufacturing"),
    ("salespeople", "Salespeople", "Salesperson management", "page", "/salespeople"),
    ("settings", "Settings", "System settings", "page", "/settings"),
    ("users", "Users", "User management", "feature", None),
    ("designerManagement", "Designer Management", "Designer workflow management", "page",
     "/designer-management"),
    ("manufacturerManagement", "Manufacturer Management", "Manufacturer management", "page",
     "/manufacturer-management"),
    ("userManagement", "User Management", None, "page", "/user-management"),
    ("finance", "Finance", "Financial management", "page", "/finance"),
    ("quotes", "Quotes", "Quote management", "page", "/quotes"),
    ("salesAnalytics", "Sales Analytics", "Sales performance analytics", "page",
     "/sales-analytics"),
    ("leadsTracker", "Sales Tracker", "Sales tracking and pipeline", "page", "/sales-tracker"),
    ("designPortfolio", "Design Portfolio", "Design portfolio showcase", "page",
     "/design-portfolio"),
    ("designResources", "Design Resources", "Design resources and assets", "page",
     "/design-resources"),
    ("sizeChecker", "Size Checker", "Size validation tool", "feature", None),
    ("capacityDashboard", "Capacity Dashboard", "Manufacturing capacity overview", "page",
     "/capacity-dashboard"),
    ("orderSpecifications", "Order Specifications", "Order specification details", "page",
     "/order-specifications"),
    ("systemAnalytics", "System Analytics", "System-wide analytics", "page",
     "/system-analytics"),
    ("connectionHealth", "Connection Health", "System connection monitoring", "page",
     "/connection-health"),
    ("events", "Events", "Event management system", "page", "/events"),
    ("tasks", "Tasks", "Task management system", "page", "/tasks"),
    # No static rows: access comes from the DB only
    ("teamStores", "Team Stores", "Team store management", "page", "/team-stores"),
]

RESOURCE_DEFINITIONS = [
    {
        "name": name,
        "display_name": display_name,
        "description": description,
        "resource_type": resource_type,
        "path": path,
    }
    for name, display_name, description, resource_type, path in _RESOURCE_ROWS
]

# Sidebar navigation targets, in display order
NAV_PATHS = {
    "leads": "/leads",
    "organizations": "/organizations",
    "catalog": "/catalog",
    "designJobs": "/design-jobs",
    "orders": "/orders",
    "manufacturing": "/manufacturing",
    "salespeople": "/salespeople",
    "settings": "/settings",
    "salesAnalytics": "/sales-analytics",
    "leadsTracker": "/sales-tracker",
    "designPortfolio": "/design-portfolio",
    "designResources": "/design-resources",
    "sizeChecker": "/size-checker",
    "capacityDashboard": "/capacity-dashboard",
    "orderSpecifications": "/order-specifications",
    "systemAnalytics": "/system-analytics",
    "connectionHealth": "/connection-health",
}

ROLE_HOME_PATHS = {
    "admin": "/admin/home",
    "sales": "/sales/home",
    "designer": "/designer/home",
    "ops": "/ops/home",
    "manufacturer": "/manufacturer/home",
}

ROLE_DASHBOARD_PATHS = {
    "admin": "/admin/dashboard",
    "sales": "/sales/dashboard",
    "designer": "/designer/dashboard",
    "ops": "/ops/dashboard",
    "manufacturer": "/manufacturer/dashboard",
}


# ═══════════════════════════════════════════════════════════════════════════
#  TRANSLATION HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def translate_permission_to_db(kind: str, flags: dict) -> bool:
    """Evaluate a permission kind against a row's five DB flags.

    read → canView, write → canCreate OR canEdit, delete → canDelete,
    viewAll → pageVisible. Unknown kinds are denied.
    """
    if kind == "read":
        return bool(flags.get("canView"))
    if kind == "write":
        return bool(flags.get("canCreate")) or bool(flags.get("canEdit"))
    if kind == "delete":
        return bool(flags.get("canDelete"))
    if kind == "viewAll":
        return bool(flags.get("pageVisible"))
    return False


def map_static_to_db_permissions(entry: dict) -> dict:
    """Map a static ``{read, write, delete, viewAll}`` entry onto DB flags."""
    write = bool(entry.get("write", False))
    return {
        "canView": bool(entry.get("read", False)),
        "canCreate": write,
        "canEdit": write,
        "canDelete": bool(entry.get("delete", False)),
        "pageVisible": bool(entry.get("viewAll", False)),
    }


def static_has_permission(role: str, resource: str, kind: str) -> bool:
    """Strict static lookup: any missing role, resource or key is False."""
    entry = STATIC_PERMISSIONS.get(role, {}).get(resource)
    if not entry:
        return False
    return entry.get(kind) is True


def _static_entry_exists(role, resource) -> bool:
    return resource in STATIC_PERMISSIONS.get(role, {})


def _row_flags(row) -> dict:
    return {
        "canView": bool(row.can_view),
        "canCreate": bool(row.can_create),
        "canEdit": bool(row.can_edit),
        "canDelete": bool(row.can_delete),
        "pageVisible": bool(row.page_visible),
    }


# ═══════════════════════════════════════════════════════════════════════════
#  SNAPSHOT + CACHE
# ═══════════════════════════════════════════════════════════════════════════

class PermissionSnapshot:
    """Roles, resources and role rows as loaded at one point in time.

    Args:
        roles: {role_name: role_id}
        resources: {resource_name: resource_id}
        rows: {(role_id, resource_id): flags dict}
    """

    def __init__(self, roles=None, resources=None, rows=None):
        self.roles = dict(roles or {})
        self.resources = dict(resources or {})
        self.rows = dict(rows or {})
        self.loaded_at = time.time()

    @classmethod
    def from_db(cls):
        roles = {r.name: r.id for r in Role.query.all()}
        resources = {r.name: r.id for r in Resource.query.all()}
        rows = {(p.role_id, p.resource_id): _row_flags(p) for p in RolePermission.query.all()}
        return cls(roles, resources, rows)

    def lookup(self, role, resource):
        """Return (role_id, resource_id, flags) with None for whatever is missing."""
        role_id = self.roles.get(role)
        resource_id = self.resources.get(resource)
        flags = None
        if role_id is not None and resource_id is not None:
            flags = self.rows.get((role_id, resource_id))
        return role_id, resource_id, flags


_snapshot_cache: dict[str, tuple[float, PermissionSnapshot]] = {}
# user_id → (cached_at, {resource_id: flags})
_override_cache: dict[int, tuple[float, dict]] = {}
_cache_lock = threading.Lock()


def load_permission_snapshot() -> PermissionSnapshot:
    """Return the cached snapshot, reloading from the DB once CACHE_TTL has passed.

    Raises SQLAlchemyError when the store cannot be queried.
    """
    with _cache_lock:
        entry = _snapshot_cache.get("snapshot")
        if entry is not None and time.time() - entry[0] <= CACHE_TTL:
            return entry[1]

    snapshot = PermissionSnapshot.from_db()
    with _cache_lock:
        _snapshot_cache["snapshot"] = (time.time(), snapshot)
    return snapshot


def _load_user_overrides(user_id) -> dict:
    with _cache_lock:
        entry = _override_cache.get(user_id)
        if entry is not None and time.time() - entry[0] <= CACHE_TTL:
            return entry[1]

    overrides = {
        p.resource_id: _row_flags(p)
        for p in UserPermission.query.filter_by(user_id=user_id).all()
    }
    with _cache_lock:
        _override_cache[user_id] = (time.time(), overrides)
    return overrides


def invalidate_cache(user_id: int) -> None:
    with _cache_lock:
        _override_cache.pop(user_id, None)


def invalidate_all_cache() -> None:
    with _cache_lock:
        _snapshot_cache.clear()
        _override_cache.clear()


def _static_fallback_enabled() -> bool:
    if has_app_context():
        return bool(current_app.config.get("PERMISSIONS_STATIC_FALLBACK", True))
    return True


# ═══════════════════════════════════════════════════════════════════════════
#  RESOLVER
# ═══════════════════════════════════════════════════════════════════════════

class PermissionResolver:
    """Resolve (resource, kind) for one user against an optional snapshot.

    ``snapshot=None`` means the permissions dataset has not loaded; only the
    static table is consulted then.
    """

    def __init__(self, user, snapshot=None, static_fallback=True):
        self.user = user
        self.snapshot = snapshot
        self.static_fallback = static_fallback

    @property
    def role(self):
        return getattr(self.user, "role", None) if self.user is not None else None

    def evaluate(self, resource: str, kind: str) -> tuple[bool, str]:
        """Return ``(allowed, decision)``."""
        if self.user is None:
            return False, "deny_no_user"
        if kind not in PERMISSION_KINDS:
            return False, "deny_by_default"

        role = self.role
        if self.snapshot is None:
            if _static_entry_exists(role, resource):
                return self._static(role, resource, kind)
            return False, "deny_by_default"

        role_id, resource_id, flags = self.snapshot.lookup(role, resource)
        if role_id is None or resource_id is None:
            if self.static_fallback and _static_entry_exists(role, resource):
                return self._static(role, resource, kind)
            return False, "deny_by_default"

        if flags is None:
            return False, "deny_by_default"

        if translate_permission_to_db(kind, flags):
            return True, "allow_role_grant"
        return False, "deny_role_row"

    def _static(self, role, resource, kind):
        allowed = static_has_permission(role, resource, kind)
        logger.warning(
            "Static permission fallback: role=%s resource=%s kind=%s allowed=%s",
            role, resource, kind, allowed,
            extra={"role": role, "resource": resource, "permission": kind,
                   "decision": "static_fallback"},
        )
        return allowed, "allow_static_fallback" if allowed else "deny_static_fallback"

    def has_permission(self, resource: str, kind: str) -> bool:
        return self.evaluate(resource, kind)[0]

    def can_access(self, resource):
        return self.has_permission(resource, "read")

    def can_modify(self, resource):
        return self.has_permission(resource, "write")

    def can_delete(self, resource):
        return self.has_permission(resource, "delete")

    def can_view_all(self, resource):
        return self.has_permission(resource, "viewAll")

    def is_page_visible(self, resource: str) -> bool:
        """Row-level page visibility; falls back to ``can_access`` when no row applies."""
        if self.snapshot is None or self.user is None:
            return self.can_access(resource)
        _, _, flags = self.snapshot.lookup(self.role, resource)
        if flags is None:
            return self.can_access(resource)
        return flags["pageVisible"]


# ═══════════════════════════════════════════════════════════════════════════
#  SERVER PATH (overrides + cached snapshot)
# ═══════════════════════════════════════════════════════════════════════════

def evaluate_permission(user, resource: str, kind: str) -> dict:
    """Evaluate one permission with a decision label (for logs and the API).

    Returns:
        {"allowed", "decision", "role", "resource", "permission"}
    """
    role = getattr(user, "role", None) if user is not None else None
    result = {
        "allowed": False,
        "decision": "deny_no_user",
        "role": role,
        "resource": resource,
        "permission": kind,
    }
    if user is None:
        return result

    snapshot = None
    override = None
    try:
        snapshot = load_permission_snapshot()
        resource_id = snapshot.resources.get(resource)
        if resource_id is not None and getattr(user, "id", None) is not None:
            override = _load_user_overrides(user.id).get(resource_id)
    except SQLAlchemyError:
        logger.exception(
            "Permission store query failed; resolving %s.%s without the dataset",
            resource, kind,
        )
        db.session.rollback()
        snapshot = None
        override = None

    if override is not None:
        allowed = translate_permission_to_db(kind, override)
        result["allowed"] = allowed
        result["decision"] = "allow_user_override" if allowed else "deny_user_override"
        return result

    resolver = PermissionResolver(user, snapshot, static_fallback=_static_fallback_enabled())
    allowed, decision = resolver.evaluate(resource, kind)
    result["allowed"] = allowed
    result["decision"] = decision
    return result


def has_permission_with_overrides(user, resource: str, kind: str) -> bool:
    return evaluate_permission(user, resource, kind)["allowed"]


def server_resolver(user) -> PermissionResolver:
    """A resolver over the cached snapshot, or in not-loaded mode when the store fails."""
    try:
        snapshot = load_permission_snapshot()
    except SQLAlchemyError:
        logger.exception("Permission store query failed; building resolver without dataset")
        db.session.rollback()
        snapshot = None
    return PermissionResolver(user, snapshot, static_fallback=_static_fallback_enabled())


# ═══════════════════════════════════════════════════════════════════════════
#  SEEDING
# ═══════════════════════════════════════════════════════════════════════════

def seed_permissions(overwrite=False, commit=True) -> dict:
    """Write system roles, resources and role rows from the static table.

    Idempotent: existing roles and resources are refreshed in place and
    existing role rows are left as edited unless ``overwrite`` is set.

    Returns:
        {"roles_created", "resources_created", "resources_updated",
         "rows_created", "rows_updated"}
    """
    stats = {
        "roles_created": 0,
        "resources_created": 0,
        "resources_updated": 0,
        "rows_created": 0,
        "rows_updated": 0,
    }

    roles = {r.name: r for r in Role.query.all()}
    for definition in SYSTEM_ROLE_DEFINITIONS:
        role = roles.get(definition["name"])
        if role is None:
            role = Role(is_system=True, **definition)
            db.session.add(role)
            roles[role.name] = role
            stats["roles_created"] += 1
        elif not role.is_system:
            role.is_system = True

    resources = {r.name: r for r in Resource.query.all()}
    for definition in RESOURCE_DEFINITIONS:
        resource = resources.get(definition["name"])
        if resource is None:
            resource = Resource(**definition)
            db.session.add(resource)
            resources[resource.name] = resource
            stats["resources_created"] += 1
            continue
        changed = False
        for key in ("display_name", "description", "resource_type", "path"):
            if getattr(resource, key) != definition[key]:
                setattr(resource, key, definition[key])
                changed = True
        if changed:
            stats["resources_updated"] += 1

    db.session.flush()

    existing = {(p.role_id, p.resource_id): p for p in RolePermission.query.all()}
    for role_name, entries in STATIC_PERMISSIONS.items():
        role = roles[role_name]
        for resource_name, entry in entries.items():
            resource = resources[resource_name]
            flags = map_static_to_db_permissions(entry)
            row = existing.get((role.id, resource.id))
            if row is None:
                db.session.add(RolePermission(
                    role_id=role.id,
                    resource_id=resource.id,
                    can_view=flags["canView"],
                    can_create=flags["canCreate"],
                    can_edit=flags["canEdit"],
                    can_delete=flags["canDelete"],
                    page_visible=flags["pageVisible"],
                ))
                stats["rows_created"] += 1
            elif overwrite and _row_flags(row) != flags:
                row.can_view = flags["canView"]
                row.can_create = flags["canCreate"]
                row.can_edit = flags["canEdit"]
                row.can_delete = flags["canDelete"]
                row.page_visible = flags["pageVisible"]
                stats["rows_updated"] += 1

    if commit:
        db.session.commit()
    invalidate_all_cache()
    logger.info(
        "Permission seed: %d roles, %d resources (+%d updated), %d rows (+%d updated)",
        stats["roles_created"], stats["resources_created"], stats["resources_updated"],
        stats["rows_created"], stats["rows_updated"],
    )
    return stats


# ═══════════════════════════════════════════════════════════════════════════
#  DATA SCOPING + NAVIGATION
# ═══════════════════════════════════════════════════════════════════════════

def filter_data_by_role(records, user, resource: str) -> list:
    """Trim API records (camelCase dicts) to what the user's role may see."""
    if user is None:
        return []
    records = list(records)
    role = getattr(user, "role", None)
    if role == "admin" or has_permission_with_overrides(user, resource, "viewAll"):
        return records

    user_id = getattr(user, "id", None)
    if resource == "leads" and role == "sales":
        return [r for r in records if r.get("ownerUserId") == user_id]
    if resource in ("orders", "designJobs") and role == "sales":
        return [r for r in records if r.get("salespersonId") in (user_id, None)]
    if resource == "designJobs" and role == "designer":
        return [r for r in records if r.get("assignedDesignerId") == user_id]
    if resource == "manufacturing" and role == "manufacturer":
        manufacturer_id = getattr(user, "manufacturer_id", None)
        if manufacturer_id is None:
            return []
        return [r for r in records if r.get("manufacturerId") == manufacturer_id]
    return records


def get_accessible_nav_items(role: str, can_read=None) -> list[str]:
    """"dashboard" plus the nav path of every resource ``role`` can read.

    ``can_read(resource)`` defaults to the static table.
    """
    if can_read is None:
        def can_read(resource):
            return static_has_permission(role, resource, "read")

    items = ["dashboard"]
    for resource, path in NAV_PATHS.items():
        if can_read(resource):
            items.append(path)
    return items


def get_role_home_path(role=None) -> str:
    return ROLE_HOME_PATHS.get(role, "/") if role else "/"


def get_role_dashboard_path(role=None) -> str:
    return ROLE_DASHBOARD_PATHS.get(role, "/") if role else "/"


def get_default_landing_path(role=None, enable_role_home=False) -> str:
    if enable_role_home:
        return get_role_home_path(role)
    return "/"


def record_visible_to(user, resource: str, record: dict) -> bool:
    """Single-record form of ``filter_data_by_role``."""
    return bool(filter_data_by_role([record], user, resource))
