"""
Catalog Models — categories, products, variants and manufacturers.
"""

from richhabits.models import db
from richhabits.models.base import TimestampedModel


def _money(value):
    return str(value) if value is not None else None


class Category(TimestampedModel):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    description = db.Column(db.Text)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "description": self.description}


class Product(TimestampedModel):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(
        db.Integer, db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True,
    )
    sku = db.Column(db.String(80), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    base_price = db.Column(db.Numeric(10, 2))
    status = db.Column(db.String(20), default="active", nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "categoryId": self.category_id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "basePrice": _money(self.base_price),
            "status": self.status,
        }


class ProductVariant(TimestampedModel):
    __tablename__ = "product_variants"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False,
    )
    variant_code = db.Column(db.String(80), unique=True, nullable=False)
    color = db.Column(db.String(80))
    material = db.Column(db.String(120))
    msrp = db.Column(db.Numeric(10, 2))
    cost = db.Column(db.Numeric(10, 2))
    image_url = db.Column(db.String(500))

    def to_dict(self):
        return {
            "id": self.id,
            "productId": self.product_id,
            "variantCode": self.variant_code,
            "color": self.color,
            "material": self.material,
            "msrp": _money(self.msrp),
            "cost": _money(self.cost),
            "imageUrl": self.image_url,
        }


class Manufacturer(TimestampedModel):
    __tablename__ = "manufacturers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(255))
    email = db.Column(db.String(200))
    phone = db.Column(db.String(50))
    lead_time_days = db.Column(db.Integer)
    min_order_qty = db.Column(db.Integer)
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "contactName": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "leadTimeDays": self.lead_time_days,
            "minOrderQty": self.min_order_qty,
            "notes": self.notes,
        }
