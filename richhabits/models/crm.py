"""
CRM Models — organizations, contacts, salespeople and leads.

Lead stages are an ordered enumeration (see ``LEAD_STAGES``). Only membership
is enforced; a lead may move between any two stages.
"""

from richhabits.models import db
from richhabits.models.base import TimestampedModel, iso


LEAD_STAGES = (
    "future_lead",
    "lead",
    "hot_lead",
    "mock_up",
    "mock_up_sent",
    "team_store_or_direct_order",
    "current_clients",
    "no_answer_delete",
)


# ═══════════════════════════════════════════════════════════════
# 1. ORGANIZATIONS & CONTACTS
# ═══════════════════════════════════════════════════════════════
class Organization(TimestampedModel):
    __tablename__ = "organizations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    sports = db.Column(db.String(255))
    city = db.Column(db.String(120))
    state = db.Column(db.String(60))
    shipping_address = db.Column(db.Text)
    notes = db.Column(db.Text)
    logo_url = db.Column(db.String(500))
    archived = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "sports": self.sports,
            "city": self.city,
            "state": self.state,
            "shippingAddress": self.shipping_address,
            "notes": self.notes,
            "logoUrl": self.logo_url,
            "archived": self.archived,
            "createdAt": iso(self.created_at),
        }


class Contact(TimestampedModel):
    __tablename__ = "contacts"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(200))
    phone = db.Column(db.String(50))
    role_title = db.Column(db.String(120))
    is_primary = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "orgId": self.org_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "roleTitle": self.role_title,
            "isPrimary": self.is_primary,
        }


# ═══════════════════════════════════════════════════════════════
# 2. SALESPEOPLE
# ═══════════════════════════════════════════════════════════════
class Salesperson(TimestampedModel):
    """Sales metadata attached to a user: territory and quota."""
    __tablename__ = "salespersons"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True,
    )
    territory = db.Column(db.String(120))
    quota_monthly = db.Column(db.Numeric(10, 2))
    commission_rate = db.Column(db.Numeric(5, 4))
    active = db.Column(db.Boolean, default=True, nullable=False)
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "territory": self.territory,
            "quotaMonthly": str(self.quota_monthly) if self.quota_monthly is not None else None,
            "commissionRate": (
                str(self.commission_rate) if self.commission_rate is not None else None
            ),
            "active": self.active,
            "notes": self.notes,
        }


# ═══════════════════════════════════════════════════════════════
# 3. LEADS
# ═══════════════════════════════════════════════════════════════
class Lead(TimestampedModel):
    __tablename__ = "leads"

    id = db.Column(db.Integer, primary_key=True)
    lead_code = db.Column(db.String(50), unique=True, nullable=False)
    org_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True,
    )
    contact_id = db.Column(
        db.Integer, db.ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True,
    )
    owner_user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    stage = db.Column(db.String(50), default="future_lead", nullable=False)
    score = db.Column(db.Integer, default=0)
    notes = db.Column(db.Text)
    archived = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "leadCode": self.lead_code,
            "orgId": self.org_id,
            "contactId": self.contact_id,
            "ownerUserId": self.owner_user_id,
            "stage": self.stage,
            "score": self.score,
            "notes": self.notes,
            "archived": self.archived,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
