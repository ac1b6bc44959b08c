"""
Auth Models — users, roles, resources, role permissions, user permission overrides.

A role has at most one RolePermission row per resource; a user has at most one
UserPermission override per resource. Both carry the same five flags:
can_view, can_create, can_edit, can_delete, page_visible.
"""

from richhabits.models import db
from richhabits.models.base import TimestampedModel, iso

USER_ROLES = ("admin", "sales", "designer", "ops", "manufacturer", "finance")
RESOURCE_TYPES = ("page", "modal", "button", "feature")

PERMISSION_FLAGS = ("can_view", "can_create", "can_edit", "can_delete", "page_visible")


def _flags_to_dict(row):
    return {
        "canView": bool(row.can_view),
        "canCreate": bool(row.can_create),
        "canEdit": bool(row.can_edit),
        "canDelete": bool(row.can_delete),
        "pageVisible": bool(row.page_visible),
    }


# ═══════════════════════════════════════════════════════════════
# 1. USERS
# ═══════════════════════════════════════════════════════════════
class User(TimestampedModel):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    password_hash = db.Column(db.String(256))
    role = db.Column(db.String(50), nullable=False, default="sales")
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    manufacturer_id = db.Column(
        db.Integer, db.ForeignKey(
            "manufacturers.id", ondelete="SET NULL", deferrable=True, initially="DEFERRED",
        ),
        nullable=True,
    )
    license_accepted_at = db.Column(db.DateTime)
    license_version = db.Column(db.String(20))
    last_login_at = db.Column(db.DateTime)

    @property
    def name(self):
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.email

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "name": self.name,
            "role": self.role,
            "isActive": self.is_active,
            "manufacturerId": self.manufacturer_id,
            "licenseAcceptedAt": iso(self.license_accepted_at),
            "licenseVersion": self.license_version,
            "lastLoginAt": iso(self.last_login_at),
            "createdAt": iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.role})>"


# ═══════════════════════════════════════════════════════════════
# 2. ROLES
# ═══════════════════════════════════════════════════════════════
class Role(TimestampedModel):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    display_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    is_system = db.Column(db.Boolean, default=False, nullable=False)

    permissions = db.relationship(
        "RolePermission", back_populates="role", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_permissions=False):
        d = {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "isSystem": self.is_system,
            "createdAt": iso(self.created_at),
        }
        if include_permissions:
            d["permissions"] = [p.to_dict() for p in self.permissions.all()]
        return d


# ═══════════════════════════════════════════════════════════════
# 3. RESOURCES
# ═══════════════════════════════════════════════════════════════
class Resource(TimestampedModel):
    __tablename__ = "resources"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    display_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    resource_type = db.Column(db.String(20), default="page", nullable=False)
    parent_resource_id = db.Column(
        db.Integer,
        db.ForeignKey("resources.id", ondelete="SET NULL", deferrable=True, initially="DEFERRED"),
        nullable=True,
    )
    path = db.Column(db.String(200))

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "resourceType": self.resource_type,
            "parentResourceId": self.parent_resource_id,
            "path": self.path,
        }


# ═══════════════════════════════════════════════════════════════
# 4. ROLE ↔ RESOURCE PERMISSION ROWS
# ═══════════════════════════════════════════════════════════════
class RolePermission(TimestampedModel):
    __tablename__ = "role_permissions"

    id = db.Column(db.Integer, primary_key=True)
    role_id = db.Column(
        db.Integer, db.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False,
    )
    resource_id = db.Column(
        db.Integer, db.ForeignKey("resources.id", ondelete="CASCADE"), nullable=False,
    )
    can_view = db.Column(db.Boolean, default=False, nullable=False)
    can_create = db.Column(db.Boolean, default=False, nullable=False)
    can_edit = db.Column(db.Boolean, default=False, nullable=False)
    can_delete = db.Column(db.Boolean, default=False, nullable=False)
    page_visible = db.Column(db.Boolean, default=False, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("role_id", "resource_id", name="uq_role_resource"),
        db.Index("ix_role_permissions_role_id", "role_id"),
    )

    role = db.relationship("Role", back_populates="permissions")
    resource = db.relationship("Resource")

    def to_dict(self):
        d = {
            "id": self.id,
            "roleId": self.role_id,
            "resourceId": self.resource_id,
        }
        d.update(_flags_to_dict(self))
        return d


# ═══════════════════════════════════════════════════════════════
# 5. PER-USER OVERRIDES
# ═══════════════════════════════════════════════════════════════
class UserPermission(TimestampedModel):
    __tablename__ = "user_permissions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    resource_id = db.Column(
        db.Integer, db.ForeignKey("resources.id", ondelete="CASCADE"), nullable=False,
    )
    can_view = db.Column(db.Boolean, default=False, nullable=False)
    can_create = db.Column(db.Boolean, default=False, nullable=False)
    can_edit = db.Column(db.Boolean, default=False, nullable=False)
    can_delete = db.Column(db.Boolean, default=False, nullable=False)
    page_visible = db.Column(db.Boolean, default=False, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("user_id", "resource_id", name="uq_user_resource"),
    )

    resource = db.relationship("Resource")

    def to_dict(self):
        d = {
            "id": self.id,
            "userId": self.user_id,
            "resourceId": self.resource_id,
        }
        d.update(_flags_to_dict(self))
        return d
