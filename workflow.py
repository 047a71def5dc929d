import logging
from typing import Optional

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

import models
from config import REPORT_STATUSES
from errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from reports import get_report, get_user

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ["Resolved", "Rejected"]
OPEN_STATUSES = [s for s in REPORT_STATUSES if s not in TERMINAL_STATUSES]

POINTS_PER_RESOLVED = 10
POINTS_PER_IN_PROGRESS = 5


def update_status(
    db: Session,
    report_id: str,
    status: str,
    assigned_to: Optional[str] = None,
    actor: Optional[models.User] = None,
    allowed_statuses=None,
) -> models.Report:
    # Resolved set here stamps only resolved_at; resolve_report records the proof
    if status not in REPORT_STATUSES:
        raise ValidationError("Invalid status")
    if allowed_statuses is not None and status not in allowed_statuses:
        raise ValidationError(f"Status '{status}' cannot be set through this endpoint")

    report = get_report(db, report_id)
    if report.status in TERMINAL_STATUSES:
        raise ConflictError(f"Report is already {report.status.lower()}")

    if status == "Rejected" and (actor is None or actor.role != "admin"):
        logger.warning("Reject of report %s refused: admin required", report.id)
        raise AuthorizationError("Only an admin can reject a report")

    assignee = None
    if assigned_to:
        volunteer = get_user(db, assigned_to)
        if volunteer.role != "volunteer":
            raise AuthorizationError("Only volunteers can be assigned to a report")
        assignee = volunteer.id

    if status == "In Progress" and assignee is None and report.assigned_to is None:
        raise ValidationError("A report in progress needs an assigned volunteer")

    now = models.utcnow()
    values = {
        "status": status,
        "updated_at": now,
        "version": models.Report.version + 1,
    }
    if assignee:
        values["assigned_to"] = assignee
    if status == "Resolved":
        values["resolved_at"] = now

    conditions = [models.Report.id == report.id, models.Report.status.in_(OPEN_STATUSES)]
    if assignee:
        conditions.append(
            or_(models.Report.assigned_to.is_(None), models.Report.assigned_to == assignee)
        )

    result = db.execute(
        update(models.Report)
        .where(*conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        db.rollback()
        current = db.query(models.Report).filter(models.Report.id == report_id).first()
        if current is None:
            raise NotFoundError("Report not found")
        if current.status in TERMINAL_STATUSES:
            raise ConflictError(f"Report is already {current.status.lower()}")
        logger.warning("Report %s already reserved by %s", current.id, current.assigned_to)
        raise ConflictError("Report is already assigned to another volunteer")

    db.commit()
    db.refresh(report)
    logger.info("Report %s status updated to: %s (assigned to %s)", report.id, report.status, report.assigned_to)
    return report


def reserve(db: Session, report_id: str, volunteer_id: str) -> models.Report:
    return update_status(db, report_id, "Pending", assigned_to=volunteer_id)


def start(db: Session, report_id: str, volunteer_id: str) -> models.Report:
    return update_status(db, report_id, "In Progress", assigned_to=volunteer_id)


def eco_points(tasks_completed: int, in_progress: int) -> int:
    return POINTS_PER_RESOLVED * tasks_completed + POINTS_PER_IN_PROGRESS * in_progress


def volunteer_stats(db: Session, volunteer_id: str) -> dict:
    volunteer = get_user(db, volunteer_id)

    counts = dict(
        db.query(models.Report.status, func.count(models.Report.id))
        .filter(models.Report.assigned_to == volunteer.id)
        .group_by(models.Report.status)
        .all()
    )
    completed = counts.get("Resolved", 0)
    in_progress = counts.get("In Progress", 0)
    return {
        "tasks_completed": completed,
        "in_progress": in_progress,
        "eco_points": eco_points(completed, in_progress),
    }
