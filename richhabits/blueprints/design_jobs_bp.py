"""
Design Jobs Blueprint (resource ``designJobs``).

Designers see only jobs assigned to them and may move only those jobs
through the status workflow. Assigning a designer notifies them.
"""

import logging

from flask import Blueprint, g, jsonify, request

from richhabits.middleware.permission_required import require_any_permission, require_permission
from richhabits.models import db
from richhabits.models.auth import User
from richhabits.models.base import utcnow
from richhabits.models.design import DESIGN_JOB_PRIORITIES, DESIGN_JOB_URGENCIES, DesignJob
from richhabits.services.notification import NotificationService
from richhabits.services.permission_service import filter_data_by_role, record_visible_to
from richhabits.services.workflow import designer_availability, ensure_transition
from richhabits.utils.helpers import (
    db_commit_or_error,
    generate_code,
    get_or_404,
    paginate_query,
    parse_bool_arg,
    parse_iso_date,
)

logger = logging.getLogger(__name__)

design_jobs_bp = Blueprint("design_jobs_bp", __name__, url_prefix="/api/design-jobs")

_FIELDS = {
    "orgId": "org_id",
    "orderId": "order_id",
    "brief": "brief",
    "requirements": "requirements",
    "finalLink": "final_link",
}


def _apply(job, data):
    if "urgency" in data:
        if data["urgency"] not in DESIGN_JOB_URGENCIES:
            return jsonify({"error": f"Invalid urgency. Must be one of: {list(DESIGN_JOB_URGENCIES)}"}), 400
        job.urgency = data["urgency"]
    if "priority" in data:
        if data["priority"] not in DESIGN_JOB_PRIORITIES:
            return jsonify({"error": f"Invalid priority. Must be one of: {list(DESIGN_JOB_PRIORITIES)}"}), 400
        job.priority = data["priority"]
    if "deadline" in data:
        job.deadline = parse_iso_date(data["deadline"], "deadline")
    for key, attr in _FIELDS.items():
        if key in data:
            setattr(job, attr, data[key])
    return None


def _assign(job, designer_id):
    """Set the assignee; returns True when it changed to a real designer."""
    if designer_id == job.assigned_designer_id:
        return False
    job.assigned_designer_id = designer_id
    if designer_id is not None and job.status == "pending":
        job.status = "assigned"
    return designer_id is not None


def _hidden(job):
    if not record_visible_to(g.principal, "designJobs", job.to_dict()):
        return jsonify({"error": "Access denied"}), 403
    return None


@design_jobs_bp.route("", methods=["GET"])
@require_permission("designJobs", "read")
def list_design_jobs():
    q = DesignJob.query
    if not parse_bool_arg("includeArchived"):
        q = q.filter(DesignJob.archived.is_(False))
    status = request.args.get("status")
    if status:
        q = q.filter(DesignJob.status == status)
    items, _ = paginate_query(q.order_by(DesignJob.id.desc()))
    return jsonify(
        filter_data_by_role([j.to_dict() for j in items], g.principal, "designJobs")
    ), 200


@design_jobs_bp.route("", methods=["POST"])
@require_permission("designJobs", "write")
def create_design_job():
    data = request.get_json(silent=True) or {}
    job = DesignJob(job_code=generate_code("DJ"), status="pending")
    err = _apply(job, data)
    if err:
        return err

    principal = g.principal
    job.salesperson_id = principal.id if principal.role == "sales" else data.get("salespersonId")
    notify = _assign(job, data.get("assignedDesignerId"))

    db.session.add(job)
    db.session.flush()
    if notify:
        NotificationService.notify_design_job_assigned(job)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Design job %s created by user %s", job.job_code, principal.id)
    return jsonify(job.to_dict()), 201


@design_jobs_bp.route("/designer-availability", methods=["GET"])
@require_any_permission(("designJobs", "read"), ("designerManagement", "read"))
def availability():
    designers = User.query.filter_by(role="designer", is_active=True).order_by(User.id).all()
    jobs = DesignJob.query.filter(DesignJob.archived.is_(False)).all()
    return jsonify(designer_availability(designers, jobs)), 200


@design_jobs_bp.route("/<int:job_id>", methods=["GET"])
@require_permission("designJobs", "read")
def get_design_job(job_id):
    job, err = get_or_404(DesignJob, job_id, label="Design job")
    if err:
        return err
    err = _hidden(job)
    if err:
        return err
    return jsonify(job.to_dict()), 200


@design_jobs_bp.route("/<int:job_id>", methods=["PUT"])
@require_permission("designJobs", "write")
def update_design_job(job_id):
    job, err = get_or_404(DesignJob, job_id, label="Design job")
    if err:
        return err
    err = _hidden(job)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    if "status" in data:
        return jsonify({"error": "Use PUT /api/design-jobs/<id>/status to change status"}), 400
    err = _apply(job, data)
    if err:
        return err
    notify = False
    if "assignedDesignerId" in data:
        notify = _assign(job, data["assignedDesignerId"])
    if notify:
        NotificationService.notify_design_job_assigned(job)

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(job.to_dict()), 200


@design_jobs_bp.route("/<int:job_id>", methods=["DELETE"])
@require_permission("designJobs", "delete")
def delete_design_job(job_id):
    job, err = get_or_404(DesignJob, job_id, label="Design job")
    if err:
        return err
    err = _hidden(job)
    if err:
        return err
    db.session.delete(job)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Design job %s deleted by user %s", job_id, g.principal.id)
    return jsonify({"deleted": True, "id": job_id}), 200


# ═══════════════════════════════════════════════════════════════════════════
#  STATUS + ARCHIVE
# ═══════════════════════════════════════════════════════════════════════════

@design_jobs_bp.route("/<int:job_id>/status", methods=["PUT"])
@require_permission("designJobs", "write")
def change_status(job_id):
    job, err = get_or_404(DesignJob, job_id, label="Design job")
    if err:
        return err

    principal = g.principal
    if principal.role == "designer" and job.assigned_designer_id != principal.id:
        return jsonify({"error": "Only the assigned designer can change this job's status"}), 403
    err = _hidden(job)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    target = data.get("status")
    if not target:
        return jsonify({"error": "status is required"}), 400
    ensure_transition("design_job", job.status, target)

    old_status = job.status
    job.status = target
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Design job %s: %s → %s by user %s", job.job_code, old_status, target,
                principal.id)
    return jsonify(job.to_dict()), 200


def _set_archived(job_id, archived):
    job, err = get_or_404(DesignJob, job_id, label="Design job")
    if err:
        return err
    err = _hidden(job)
    if err:
        return err
    job.archived = archived
    job.archived_at = utcnow() if archived else None
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(job.to_dict()), 200


@design_jobs_bp.route("/<int:job_id>/archive", methods=["PUT"])
@require_permission("designJobs", "write")
def archive_design_job(job_id):
    return _set_archived(job_id, True)


@design_jobs_bp.route("/<int:job_id>/unarchive", methods=["PUT"])
@require_permission("designJobs", "write")
def unarchive_design_job(job_id):
    return _set_archived(job_id, False)
