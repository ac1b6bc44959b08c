"""
Per-user UI state: favorites, saved views and the persisted app-config object.
"""

from richhabits.models import db
from richhabits.models.base import TimestampedModel, iso


class Favorite(TimestampedModel):
    __tablename__ = "favorites"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    entity_type = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("user_id", "entity_type", "entity_id", name="uq_favorite_entity"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
        }


class SavedView(TimestampedModel):
    __tablename__ = "saved_views"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    page_key = db.Column(db.String(80), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    filters = db.Column(db.JSON, default=dict)
    is_default = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "pageKey": self.page_key,
            "name": self.name,
            "filters": self.filters or {},
            "isDefault": self.is_default,
        }


class UserAppConfig(TimestampedModel):
    """Persisted feature flags and test-mode override for one user."""

    __tablename__ = "user_app_configs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True,
    )
    feature_flags = db.Column(db.JSON, default=dict)
    test_mode_user = db.Column(db.JSON, nullable=True)

    def to_dict(self):
        return {
            "userId": self.user_id,
            "featureFlags": self.feature_flags or {},
            "testModeUser": self.test_mode_user,
            "updatedAt": iso(self.updated_at),
        }
