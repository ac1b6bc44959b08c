"""
Manufacturing Models — one manufacturing record per order plus its update trail.

``Manufacturing.status`` carries no CHECK constraint: legacy values
(pending / in_progress) may still be present until
``scripts/migrate_manufacturing_statuses.py`` has run.
"""

from richhabits.models import db
from richhabits.models.base import TimestampedModel, iso

MANUFACTURING_STATUSES = (
    "awaiting_admin_confirmation",
    "confirmed_awaiting_manufacturing",
    "cutting_sewing",
    "printing",
    "final_packing_press",
    "shipped",
    "complete",
)
MANUFACTURING_PRIORITIES = ("low", "normal", "high", "urgent")


class Manufacturing(TimestampedModel):
    __tablename__ = "manufacturing"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True,
    )
    manufacturer_id = db.Column(
        db.Integer, db.ForeignKey("manufacturers.id", ondelete="SET NULL"), nullable=True,
        index=True,
    )
    status = db.Column(db.String(50), default="awaiting_admin_confirmation", nullable=False)
    priority = db.Column(db.String(20), default="normal", nullable=False)
    assigned_to = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    tracking_number = db.Column(db.String(120))
    production_notes = db.Column(db.Text)
    est_completion = db.Column(db.Date)
    actual_completion_date = db.Column(db.Date)
    archived = db.Column(db.Boolean, default=False, nullable=False)
    archived_at = db.Column(db.DateTime)

    order = db.relationship("Order", lazy="joined")
    updates = db.relationship(
        "ManufacturingUpdate", backref="manufacturing", lazy="dynamic",
        cascade="all, delete-orphan", order_by="ManufacturingUpdate.id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "orderId": self.order_id,
            "manufacturerId": self.manufacturer_id,
            "status": self.status,
            "priority": self.priority,
            "assignedTo": self.assigned_to,
            "trackingNumber": self.tracking_number,
            "productionNotes": self.production_notes,
            "estCompletion": iso(self.est_completion),
            "actualCompletionDate": iso(self.actual_completion_date),
            "archived": self.archived,
            "archivedAt": iso(self.archived_at),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class ManufacturingUpdate(TimestampedModel):
    __tablename__ = "manufacturing_updates"

    id = db.Column(db.Integer, primary_key=True)
    manufacturing_id = db.Column(
        db.Integer, db.ForeignKey("manufacturing.id", ondelete="CASCADE"), nullable=False,
        index=True,
    )
    status = db.Column(db.String(50), nullable=False)
    notes = db.Column(db.Text)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    manufacturer_id = db.Column(
        db.Integer, db.ForeignKey("manufacturers.id", ondelete="SET NULL"), nullable=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "manufacturingId": self.manufacturing_id,
            "status": self.status,
            "notes": self.notes,
            "updatedBy": self.updated_by,
            "manufacturerId": self.manufacturer_id,
            "createdAt": iso(self.created_at),
        }
