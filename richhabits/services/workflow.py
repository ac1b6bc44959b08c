"""
Workflow rules — status enumerations, labels and transition tables.

Covers orders, design jobs and manufacturing. Lead stages are listed here for
labelling only; any stage may follow any other.

    validate_transition("order", "new", "invoiced")
    → {"valid": True, "from": "new", "to": "invoiced", "reason": None}
"""

import logging

from sqlalchemy import func

from richhabits.core.exceptions import TransitionError, ValidationError
from richhabits.models.crm import LEAD_STAGES, Lead
from richhabits.models.design import DESIGN_JOB_STATUSES, DesignJob
from richhabits.models.manufacturing import MANUFACTURING_STATUSES, Manufacturing
from richhabits.models.notification import Notification
from richhabits.models.order import ORDER_STATUSES, Order
from richhabits.models.commerce import Quote

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  LABELS
# ═══════════════════════════════════════════════════════════════════════════

ORDER_STATUS_LABELS = {
    "new": "New",
    "waiting_sizes": "Waiting for Sizes",
    "invoiced": "Invoiced",
    "production": "In Production",
    "shipped": "Shipped",
    "completed": "Completed",
    "cancelled": "Cancelled",
}

LEAD_STAGE_LABELS = {
    "future_lead": "Future Lead",
    "lead": "Lead",
    "hot_lead": "Hot Lead",
    "mock_up": "Mock-Up",
    "mock_up_sent": "Mock-Up Sent",
    "team_store_or_direct_order": "Team Store / Direct Order",
    "current_clients": "Current Clients",
    "no_answer_delete": "No Answer / Delete",
}

DESIGN_JOB_STATUS_LABELS = {
    "pending": "Pending",
    "assigned": "Assigned",
    "in_progress": "In Progress",
    "review": "In Review",
    "approved": "Approved",
    "rejected": "Rejected",
    "completed": "Completed",
}

MANUFACTURING_STATUS_LABELS = {
    "awaiting_admin_confirmation": "Awaiting Admin Confirmation",
    "confirmed_awaiting_manufacturing": "Confirmed, Awaiting Manufacturing",
    "cutting_sewing": "Cutting & Sewing",
    "printing": "Printing",
    "final_packing_press": "Final Packing & Press",
    "shipped": "Shipped",
    "complete": "Complete",
}

# Pre-workflow manufacturing values, rewritten by the status migration
LEGACY_MANUFACTURING_STATUS_MAP = {
    "pending": "awaiting_admin_confirmation",
    "in_progress": "cutting_sewing",
    "complete": "complete",
}


# ═══════════════════════════════════════════════════════════════════════════
#  TRANSITIONS
# ═══════════════════════════════════════════════════════════════════════════

ORDER_TRANSITIONS = {
    "new": ("waiting_sizes", "invoiced", "cancelled"),
    "waiting_sizes": ("invoiced", "cancelled"),
    "invoiced": ("production", "cancelled"),
    "production": ("shipped", "cancelled"),
    "shipped": ("completed", "cancelled"),
    "completed": (),
    "cancelled": (),
}

DESIGN_JOB_TRANSITIONS = {
    "pending": ("assigned",),
    "assigned": ("in_progress", "pending"),
    "in_progress": ("review", "pending"),
    "review": ("approved", "rejected"),
    "rejected": ("in_progress",),
    "approved": ("completed",),
    "completed": (),
}

MANUFACTURING_TRANSITIONS = {
    "awaiting_admin_confirmation": ("confirmed_awaiting_manufacturing",),
    "confirmed_awaiting_manufacturing": ("cutting_sewing", "printing"),
    "cutting_sewing": ("printing", "final_packing_press"),
    "printing": ("final_packing_press",),
    "final_packing_press": ("shipped",),
    "shipped": ("complete",),
    "complete": (),
}

WORKFLOWS = {
    "order": (ORDER_STATUSES, ORDER_TRANSITIONS),
    "design_job": (DESIGN_JOB_STATUSES, DESIGN_JOB_TRANSITIONS),
    "manufacturing": (MANUFACTURING_STATUSES, MANUFACTURING_TRANSITIONS),
}

DESIGNER_BUSY_STATUSES = ("assigned", "in_progress", "review")


def validate_transition(kind: str, current: str, target: str) -> dict:
    """Check ``current → target`` against the workflow table for ``kind``.

    Returns:
        {"valid": bool, "from": current, "to": target, "reason": str | None}
    """
    if kind not in WORKFLOWS:
        raise ValueError(f"Unknown workflow: {kind}")
    statuses, transitions = WORKFLOWS[kind]

    result = {"valid": False, "from": current, "to": target, "reason": None}
    if target not in statuses:
        result["reason"] = f"Invalid status: {target}"
    elif current == target:
        result["reason"] = f"Already in status '{current}'"
    elif current not in transitions:
        result["reason"] = f"Unknown current status: {current}"
    elif not transitions[current]:
        result["reason"] = f"'{current}' is a terminal status"
    elif target not in transitions[current]:
        allowed = ", ".join(transitions[current])
        result["reason"] = f"Cannot move from '{current}' to '{target}' (allowed: {allowed})"
    else:
        result["valid"] = True
    return result


def allowed_next_statuses(kind: str, current: str) -> list[str]:
    return list(WORKFLOWS[kind][1].get(current, ()))


def ensure_transition(kind: str, current: str, target: str) -> None:
    """Raise unless ``current → target`` is allowed.

    Raises:
        ValidationError: ``target`` is not a status of this workflow (400).
        TransitionError: the move is not in the transition table (409).
    """
    statuses = WORKFLOWS[kind][0]
    if target not in statuses:
        raise ValidationError(
            f"Invalid status: {target}", details={"allowed": list(statuses)},
        )
    result = validate_transition(kind, current, target)
    if not result["valid"]:
        raise TransitionError(kind, current, target, result["reason"])


# ═══════════════════════════════════════════════════════════════════════════
#  STATUS STYLING
# ═══════════════════════════════════════════════════════════════════════════

_TONES = {
    "neutral": ("new", "pending", "draft", "future_lead"),
    "info": ("waiting_sizes", "assigned", "lead", "sent", "planning",
             "confirmed_awaiting_manufacturing"),
    "progress": ("production", "in_progress", "cutting_sewing", "printing",
                 "final_packing_press", "hot_lead", "mock_up", "mock_up_sent", "live"),
    "warning": ("review", "invoiced", "awaiting_admin_confirmation", "expired"),
    "success": ("completed", "complete", "shipped", "approved", "accepted",
                "current_clients", "team_store_or_direct_order"),
    "danger": ("cancelled", "rejected", "no_answer_delete"),
}
_TONE_BY_STATUS = {status: tone for tone, statuses in _TONES.items() for status in statuses}

_LABELS = {}
for _labels in (LEAD_STAGE_LABELS, ORDER_STATUS_LABELS, DESIGN_JOB_STATUS_LABELS,
                MANUFACTURING_STATUS_LABELS):
    _LABELS.update(_labels)


def status_style(status) -> dict:
    """Shared label + tone for any workflow status (unknown values are neutral)."""
    if not status:
        return {"label": "Unknown", "tone": "neutral"}
    label = _LABELS.get(status) or status.replace("_", " ").title()
    return {"label": label, "tone": _TONE_BY_STATUS.get(status, "neutral")}


# ═══════════════════════════════════════════════════════════════════════════
#  DESIGNER AVAILABILITY
# ═══════════════════════════════════════════════════════════════════════════

def designer_availability(designers, jobs) -> dict:
    """Split designers into busy (has assigned/in_progress/review work) and available."""
    active = {}
    for job in jobs:
        if job.status in DESIGNER_BUSY_STATUSES and job.assigned_designer_id is not None:
            active[job.assigned_designer_id] = active.get(job.assigned_designer_id, 0) + 1

    busy, available = [], []
    for designer in designers:
        entry = {
            "id": designer.id,
            "name": designer.name,
            "email": designer.email,
            "activeJobs": active.get(designer.id, 0),
        }
        (busy if entry["activeJobs"] else available).append(entry)
    return {"busy": busy, "available": available}


# ═══════════════════════════════════════════════════════════════════════════
#  HUB COUNTS
# ═══════════════════════════════════════════════════════════════════════════

def _count_by_status(query, column) -> dict:
    rows = query.with_entities(column, func.count()).group_by(column).all()
    return {status: count for status, count in rows}


def _pick(counts, statuses):
    return sum(counts.get(s, 0) for s in statuses)


def hub_counts(user, inbox_user_id=None) -> dict:
    """Live tile counts for the role's landing hub.

    ``user`` drives the role tiles. The unread count belongs to
    ``inbox_user_id`` (the signed-in user) and defaults to ``user.id``.
    """
    if user is None:
        return {}
    role = user.role
    uid = user.id

    orders = Order.query.filter(Order.archived.is_(False))
    jobs = DesignJob.query.filter(DesignJob.archived.is_(False))
    mfg = Manufacturing.query.filter(Manufacturing.archived.is_(False))
    leads = Lead.query.filter(Lead.archived.is_(False))

    counts = {
        "unreadNotifications": Notification.query.filter_by(
            user_id=inbox_user_id if inbox_user_id is not None else uid, is_read=False,
        ).count(),
    }

    if role == "sales":
        order_counts = _count_by_status(orders.filter(Order.salesperson_id == uid), Order.status)
        lead_counts = _count_by_status(leads.filter(Lead.owner_user_id == uid), Lead.stage)
        counts.update({
            "myLeads": _pick(lead_counts, LEAD_STAGES[:-1]),
            "hotLeads": _pick(lead_counts, ("hot_lead",)),
            "activeOrders": _pick(order_counts, ("new", "waiting_sizes", "invoiced", "production")),
            "waitingSizes": _pick(order_counts, ("waiting_sizes",)),
            "myDesignJobs": jobs.filter(
                DesignJob.salesperson_id == uid, DesignJob.status != "completed",
            ).count(),
            "draftQuotes": Quote.query.filter_by(salesperson_id=uid, status="draft").count(),
        })
    elif role == "designer":
        job_counts = _count_by_status(jobs.filter(DesignJob.assigned_designer_id == uid),
                                      DesignJob.status)
        counts.update({
            "assigned": _pick(job_counts, ("assigned",)),
            "inProgress": _pick(job_counts, ("in_progress",)),
            "inReview": _pick(job_counts, ("review",)),
            "needsRevision": _pick(job_counts, ("rejected",)),
        })
    elif role == "manufacturer":
        manufacturer_id = getattr(user, "manufacturer_id", None)
        mfg_counts = (
            _count_by_status(mfg.filter(Manufacturing.manufacturer_id == manufacturer_id),
                             Manufacturing.status)
            if manufacturer_id is not None else {}
        )
        counts.update({
            "awaitingConfirmation": _pick(mfg_counts, ("awaiting_admin_confirmation",)),
            "readyToStart": _pick(mfg_counts, ("confirmed_awaiting_manufacturing",)),
            "inProduction": _pick(mfg_counts,
                                  ("cutting_sewing", "printing", "final_packing_press")),
            "shipped": _pick(mfg_counts, ("shipped",)),
        })
    elif role == "finance":
        order_counts = _count_by_status(orders, Order.status)
        counts.update({
            "toInvoice": _pick(order_counts, ("waiting_sizes",)),
            "invoiced": _pick(order_counts, ("invoiced",)),
            "sentQuotes": Quote.query.filter_by(status="sent").count(),
            "acceptedQuotes": Quote.query.filter_by(status="accepted").count(),
        })
    else:
        # admin / ops: whole-pipeline view
        order_counts = _count_by_status(orders, Order.status)
        mfg_counts = _count_by_status(mfg, Manufacturing.status)
        counts.update({
            "newOrders": _pick(order_counts, ("new",)),
            "inProduction": _pick(order_counts, ("production",)),
            "unassignedDesignJobs": jobs.filter(
                DesignJob.assigned_designer_id.is_(None), DesignJob.status == "pending",
            ).count(),
            "awaitingConfirmation": _pick(mfg_counts, ("awaiting_admin_confirmation",)),
            "manufacturingActive": _pick(mfg_counts, MANUFACTURING_STATUSES[1:5]),
        })
        if role == "admin":
            counts["openLeads"] = leads.filter(Lead.stage != "no_answer_delete").count()

    return counts
