"""
Application config object — per-user feature flags and the test-mode override.

Lifecycle:
    cfg = AppConfig.load(user_id)        # persisted row merged over defaults
    cfg.set_feature_flag("enableRoleHome", False)   # mutates + save()
    cfg.enter_test_mode(admin, {"id": 7, "name": "...", "email": "...", "role": "sales"})
    cfg.exit_test_mode()

Every setter persists synchronously through ``save()``. While test mode is
active, requests from that admin are evaluated as the test user
(``effective_principal``).
"""

import logging

from flask import current_app, has_app_context

from richhabits.core.exceptions import PermissionDenied, ValidationError
from richhabits.models import db
from richhabits.models.auth import USER_ROLES, User
from richhabits.models.preferences import UserAppConfig

logger = logging.getLogger(__name__)

FALLBACK_FEATURE_FLAGS = {
    "enableRoleHome": True,
    "enableNewNavigation": False,
    "salesMapEnabled": True,
}

_TEST_USER_FIELDS = ("id", "name", "email", "role")


def default_feature_flags() -> dict:
    if has_app_context():
        return dict(current_app.config.get("DEFAULT_FEATURE_FLAGS", FALLBACK_FEATURE_FLAGS))
    return dict(FALLBACK_FEATURE_FLAGS)


class TestModePrincipal:
    """Identity an admin acts as while test mode is on."""

    __test__ = False  # not a pytest test class

    def __init__(self, id, name, email, role, manufacturer_id=None, real_user_id=None):
        self.id = id
        self.name = name
        self.email = email
        self.role = role
        self.manufacturer_id = manufacturer_id
        self.real_user_id = real_user_id

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "manufacturerId": self.manufacturer_id,
        }


class AppConfig:
    """Feature flags plus optional test-mode user for one account."""

    def __init__(self, user_id, feature_flags=None, test_mode_user=None):
        self.user_id = user_id
        self.feature_flags = default_feature_flags()
        self.feature_flags.update(feature_flags or {})
        self.test_mode_user = test_mode_user

    # ── Load / save ──────────────────────────────────────────────────────

    @classmethod
    def load(cls, user_id):
        row = UserAppConfig.query.filter_by(user_id=user_id).first()
        if row is None:
            return cls(user_id)
        known = default_feature_flags()
        # Flags removed from the defaults are dropped on load
        flags = {k: v for k, v in (row.feature_flags or {}).items() if k in known}
        return cls(user_id, flags, row.test_mode_user)

    def save(self):
        row = UserAppConfig.query.filter_by(user_id=self.user_id).first()
        if row is None:
            row = UserAppConfig(user_id=self.user_id)
            db.session.add(row)
        row.feature_flags = dict(self.feature_flags)
        row.test_mode_user = dict(self.test_mode_user) if self.test_mode_user else None
        db.session.commit()
        return self

    # ── Feature flags ────────────────────────────────────────────────────

    def _check_flag(self, flag):
        if flag not in self.feature_flags:
            raise ValidationError(
                f"Unknown feature flag: {flag}",
                details={"flag": flag, "known": sorted(self.feature_flags)},
            )

    def is_feature_enabled(self, flag) -> bool:
        self._check_flag(flag)
        return bool(self.feature_flags[flag])

    def set_feature_flag(self, flag, value):
        self._check_flag(flag)
        if not isinstance(value, bool):
            raise ValidationError(f"Feature flag {flag} must be a boolean", details={"flag": flag})
        self.feature_flags[flag] = value
        logger.info("Feature flag %s=%s for user %s", flag, value, self.user_id)
        return self.save()

    # ── Test mode ────────────────────────────────────────────────────────

    @property
    def test_mode_active(self) -> bool:
        return bool(self.test_mode_user)

    def enter_test_mode(self, actor, test_user: dict):
        if actor is None or actor.role != "admin":
            raise PermissionDenied("testMode", "write")
        if not isinstance(test_user, dict):
            raise ValidationError("testUser must be an object")

        missing = [f for f in _TEST_USER_FIELDS if test_user.get(f) in (None, "")]
        if missing:
            raise ValidationError(
                "testUser is missing required fields", details={"missing": missing},
            )
        if isinstance(test_user["id"], bool) or not isinstance(test_user["id"], int):
            raise ValidationError("testUser.id must be an integer")
        if test_user["role"] not in USER_ROLES:
            raise ValidationError(
                f"Invalid role: {test_user['role']}", details={"allowed": list(USER_ROLES)},
            )

        self.test_mode_user = {f: test_user[f] for f in _TEST_USER_FIELDS}
        logger.info(
            "Test mode entered by user %s as %s (%s)",
            actor.id, self.test_mode_user["email"], self.test_mode_user["role"],
        )
        return self.save()

    def exit_test_mode(self):
        if self.test_mode_user:
            logger.info("Test mode exited by user %s", self.user_id)
        self.test_mode_user = None
        return self.save()

    def to_dict(self):
        return {
            "featureFlags": dict(self.feature_flags),
            "testModeUser": self.test_mode_user,
            "testMode": self.test_mode_active,
        }


def effective_principal(user):
    """The identity permission checks use for ``user`` on this request."""
    if user is None or user.role != "admin":
        return user

    row = UserAppConfig.query.filter_by(user_id=user.id).first()
    test_user = row.test_mode_user if row is not None else None
    if not test_user:
        return user

    target = db.session.get(User, test_user["id"])
    return TestModePrincipal(
        id=test_user["id"],
        name=test_user.get("name"),
        email=test_user.get("email"),
        role=test_user["role"],
        manufacturer_id=target.manufacturer_id if target is not None else None,
        real_user_id=user.id,
    )
