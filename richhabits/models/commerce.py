"""
Commerce Models — quotes, team stores and events.
"""

from richhabits.models import db
from richhabits.models.base import TimestampedModel, iso

QUOTE_STATUSES = ("draft", "sent", "accepted", "rejected", "expired")
TEAM_STORE_STATUSES = ("pending", "in_process", "completed")
EVENT_STATUSES = ("draft", "planning", "approved", "live", "completed", "archived")
EVENT_TYPES = ("small-scale", "large-scale", "seminar", "clinic", "camp")


class Quote(TimestampedModel):
    __tablename__ = "quotes"

    id = db.Column(db.Integer, primary_key=True)
    quote_code = db.Column(db.String(50), unique=True, nullable=False)
    org_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True,
    )
    contact_id = db.Column(
        db.Integer, db.ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True,
    )
    salesperson_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    quote_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), default="draft", nullable=False)
    valid_until = db.Column(db.Date)
    subtotal = db.Column(db.Numeric(10, 2))
    tax_rate = db.Column(db.Numeric(5, 4))
    total = db.Column(db.Numeric(10, 2))
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "quoteCode": self.quote_code,
            "orgId": self.org_id,
            "contactId": self.contact_id,
            "salespersonId": self.salesperson_id,
            "quoteName": self.quote_name,
            "status": self.status,
            "validUntil": iso(self.valid_until),
            "subtotal": str(self.subtotal) if self.subtotal is not None else None,
            "taxRate": str(self.tax_rate) if self.tax_rate is not None else None,
            "total": str(self.total) if self.total is not None else None,
            "notes": self.notes,
            "createdAt": iso(self.created_at),
        }


class TeamStore(TimestampedModel):
    __tablename__ = "team_stores"

    id = db.Column(db.Integer, primary_key=True)
    store_code = db.Column(db.String(50), unique=True, nullable=False)
    store_name = db.Column(db.String(255), nullable=False)
    order_id = db.Column(
        db.Integer, db.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True,
    )
    org_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True,
    )
    salesperson_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    status = db.Column(db.String(20), default="pending", nullable=False)
    store_open_date = db.Column(db.Date)
    store_close_date = db.Column(db.Date)
    notes = db.Column(db.Text)
    archived = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "storeCode": self.store_code,
            "storeName": self.store_name,
            "orderId": self.order_id,
            "orgId": self.org_id,
            "salespersonId": self.salesperson_id,
            "status": self.status,
            "storeOpenDate": iso(self.store_open_date),
            "storeCloseDate": iso(self.store_close_date),
            "notes": self.notes,
            "archived": self.archived,
            "createdAt": iso(self.created_at),
        }


class Event(TimestampedModel):
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    event_code = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    event_type = db.Column(db.String(30), default="small-scale", nullable=False)
    status = db.Column(db.String(20), default="draft", nullable=False)
    org_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True,
    )
    created_by = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    start_date = db.Column(db.DateTime)
    end_date = db.Column(db.DateTime)
    location = db.Column(db.String(255))
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "eventCode": self.event_code,
            "name": self.name,
            "eventType": self.event_type,
            "status": self.status,
            "orgId": self.org_id,
            "createdBy": self.created_by,
            "startDate": iso(self.start_date),
            "endDate": iso(self.end_date),
            "location": self.location,
            "notes": self.notes,
            "createdAt": iso(self.created_at),
        }
