"""
Design Job Model.

A design job belongs to an organization, optionally to an order, and is
worked by at most one assigned designer. Status transitions live in
``richhabits.services.workflow``.
"""

from richhabits.models import db
from richhabits.models.base import TimestampedModel, iso

DESIGN_JOB_STATUSES = (
    "pending", "assigned", "in_progress", "review", "approved", "rejected", "completed",
)
DESIGN_JOB_URGENCIES = ("low", "normal", "high", "rush")
DESIGN_JOB_PRIORITIES = ("low", "normal", "high")


class DesignJob(TimestampedModel):
    __tablename__ = "design_jobs"

    id = db.Column(db.Integer, primary_key=True)
    job_code = db.Column(db.String(50), unique=True, nullable=False)
    org_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True,
    )
    # design_jobs is exported before orders, so the check waits for commit
    order_id = db.Column(
        db.Integer,
        db.ForeignKey("orders.id", ondelete="SET NULL", deferrable=True, initially="DEFERRED"),
        nullable=True,
    )
    salesperson_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    assigned_designer_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    brief = db.Column(db.Text)
    requirements = db.Column(db.Text)
    urgency = db.Column(db.String(20), default="normal", nullable=False)
    priority = db.Column(db.String(20), default="normal", nullable=False)
    status = db.Column(db.String(30), default="pending", nullable=False)
    deadline = db.Column(db.Date)
    final_link = db.Column(db.String(500))
    archived = db.Column(db.Boolean, default=False, nullable=False)
    archived_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            "id": self.id,
            "jobCode": self.job_code,
            "orgId": self.org_id,
            "orderId": self.order_id,
            "salespersonId": self.salesperson_id,
            "assignedDesignerId": self.assigned_designer_id,
            "brief": self.brief,
            "requirements": self.requirements,
            "urgency": self.urgency,
            "priority": self.priority,
            "status": self.status,
            "deadline": iso(self.deadline),
            "finalLink": self.final_link,
            "archived": self.archived,
            "archivedAt": iso(self.archived_at),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
