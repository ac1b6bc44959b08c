"""
Order Models — orders and their sized line items.

Order status transitions are defined in ``richhabits.services.workflow``.
"""

from richhabits.models import db
from richhabits.models.base import TimestampedModel, iso

ORDER_STATUSES = (
    "new", "waiting_sizes", "invoiced", "production", "shipped", "completed", "cancelled",
)
ORDER_PRIORITIES = ("low", "normal", "high")

# Youth then adult sizes, in display order
SIZE_COLUMNS = ("yxs", "ys", "ym", "yl", "xs", "s", "m", "l", "xl", "xxl", "xxxl", "xxxxl")


class Order(TimestampedModel):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_code = db.Column(db.String(50), unique=True, nullable=False)
    org_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True,
    )
    salesperson_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    order_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(30), default="new", nullable=False)
    priority = db.Column(db.String(20), default="normal", nullable=False)
    estimated_delivery = db.Column(db.Date)
    tracking_number = db.Column(db.String(120))
    notes = db.Column(db.Text)
    archived = db.Column(db.Boolean, default=False, nullable=False)

    line_items = db.relationship(
        "OrderLineItem", backref="order", lazy="dynamic", cascade="all, delete-orphan",
    )

    def to_dict(self, include_line_items=False):
        d = {
            "id": self.id,
            "orderCode": self.order_code,
            "orgId": self.org_id,
            "salespersonId": self.salesperson_id,
            "orderName": self.order_name,
            "status": self.status,
            "priority": self.priority,
            "estimatedDelivery": iso(self.estimated_delivery),
            "trackingNumber": self.tracking_number,
            "notes": self.notes,
            "archived": self.archived,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if include_line_items:
            d["lineItems"] = [li.to_dict() for li in self.line_items.all()]
        return d


class OrderLineItem(TimestampedModel):
    __tablename__ = "order_line_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    variant_id = db.Column(
        db.Integer, db.ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True,
    )
    item_name = db.Column(db.String(255))
    unit_price = db.Column(db.Numeric(10, 2))
    # Only ever "/public-objects/<uploadId>"; signed upload URLs are never stored
    image_url = db.Column(db.String(500))
    notes = db.Column(db.Text)

    yxs = db.Column(db.Integer, default=0, nullable=False)
    ys = db.Column(db.Integer, default=0, nullable=False)
    ym = db.Column(db.Integer, default=0, nullable=False)
    yl = db.Column(db.Integer, default=0, nullable=False)
    xs = db.Column(db.Integer, default=0, nullable=False)
    s = db.Column(db.Integer, default=0, nullable=False)
    m = db.Column(db.Integer, default=0, nullable=False)
    l = db.Column(db.Integer, default=0, nullable=False)  # noqa: E741
    xl = db.Column(db.Integer, default=0, nullable=False)
    xxl = db.Column(db.Integer, default=0, nullable=False)
    xxxl = db.Column(db.Integer, default=0, nullable=False)
    xxxxl = db.Column(db.Integer, default=0, nullable=False)

    @property
    def qty_total(self):
        return sum(getattr(self, size) or 0 for size in SIZE_COLUMNS)

    def to_dict(self):
        d = {
            "id": self.id,
            "orderId": self.order_id,
            "variantId": self.variant_id,
            "itemName": self.item_name,
            "unitPrice": str(self.unit_price) if self.unit_price is not None else None,
            "imageUrl": self.image_url,
            "notes": self.notes,
            "qtyTotal": self.qty_total,
        }
        for size in SIZE_COLUMNS:
            d[size] = getattr(self, size)
        return d
