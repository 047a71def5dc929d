import logging
import math
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

import models
from errors import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SEVERITIES = ["Minor", "Major", "Critical"]


def get_user(db: Session, user_id) -> models.User:
    user = db.get(models.User, user_id) if user_id else None
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_report(db: Session, report_id) -> models.Report:
    report = db.get(models.Report, report_id) if report_id else None
    if report is None:
        raise NotFoundError("Report not found")
    return report


def create_report(
    db: Session,
    user_id: str,
    category: str,
    description: str,
    location: str,
    coordinates: Optional[dict],
    severity: Optional[str] = None,
    is_urgent: Optional[bool] = None,
    image: Optional[str] = None,
    user_name: Optional[str] = None,
    user_email: Optional[str] = None,
) -> models.Report:
    if not user_id or not category or not description or not location or not coordinates:
        raise ValidationError("Required fields: userId, category, description, location, coordinates")

    latitude = coordinates.get("latitude")
    longitude = coordinates.get("longitude")
    if latitude is None or longitude is None:
        raise ValidationError("Coordinates must include latitude and longitude")
    try:
        latitude, longitude = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise ValidationError("Coordinates must be numbers")
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise ValidationError("Coordinates must be finite numbers")

    severity = severity or "Minor"
    if severity not in SEVERITIES:
        raise ValidationError(f"Severity must be one of {', '.join(SEVERITIES)}")

    user = get_user(db, user_id)
    now = models.utcnow()

    report = models.Report(
        user_id=user.id,
        user_name=user_name or user.name,
        user_email=user_email or user.email,
        category=category,
        description=description,
        severity=severity,
        is_urgent=bool(is_urgent),
        location=location,
        latitude=latitude,
        longitude=longitude,
        image=image or None,
        status="Pending",
        assigned_to=None,
        created_at=now,
        updated_at=now,
    )
    db.add(report)

    user.total_reports = (user.total_reports or 0) + 1
    user.last_report_date = now

    db.commit()
    db.refresh(report)
    logger.info("Report created: %s by %s", report.id, user.email)
    return report


def list_reports(
    db: Session,
    status: Optional[str] = None,
    category: Optional[str] = None,
    severity: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = 50,
):
    if limit < 1:
        raise ValidationError("limit must be a positive integer")

    query = db.query(models.Report)
    if status:
        query = query.filter(models.Report.status == status)
    if category:
        query = query.filter(models.Report.category == category)
    if severity:
        query = query.filter(models.Report.severity == severity)
    if user_id:
        query = query.filter(models.Report.user_id == user_id)

    return query.order_by(models.Report.created_at.desc()).limit(limit).all()


def resolve_report(
    db: Session,
    report_id: str,
    user_id: str,
    image: Optional[str] = None,
    notes: Optional[str] = None,
) -> models.Report:
    report = get_report(db, report_id)
    resolver = get_user(db, user_id)
    now = models.utcnow()

    report.status = "Resolved"
    report.resolved_at = now
    report.resolved_by = resolver.id
    report.resolution_notes = notes or None
    report.resolved_image = image or None
    report.updated_at = now
    report.version = (report.version or 0) + 1

    db.commit()
    db.refresh(report)
    logger.info("Report %s resolved by %s", report.id, resolver.id)
    return report


def toggle_upvote(db: Session, report_id: str, user_id: str):
    report = get_report(db, report_id)
    user = get_user(db, user_id)

    existing = db.get(models.ReportUpvote, (report.id, user.id))
    if existing:
        db.delete(existing)
        report.upvotes = max((report.upvotes or 0) - 1, 0)
        upvoted = False
    else:
        db.add(models.ReportUpvote(report_id=report.id, user_id=user.id))
        report.upvotes = (report.upvotes or 0) + 1
        upvoted = True
    report.updated_at = models.utcnow()

    db.commit()
    logger.info("Report %s upvote toggled by user %s", report.id, user.id)
    return upvoted, report.upvotes


def add_comment(
    db: Session,
    report_id: str,
    user_id: str,
    text: str,
    user_name: Optional[str] = None,
) -> models.ReportComment:
    text = (text or "").strip()
    if not user_id or not text:
        raise ValidationError("userId and comment are required")

    report = get_report(db, report_id)
    user = get_user(db, user_id)
    now = models.utcnow()

    comment = models.ReportComment(
        report_id=report.id,
        user_id=user.id,
        user_name=user_name or user.name,
        comment=text,
        created_at=now,
    )
    db.add(comment)
    report.updated_at = now

    db.commit()
    db.refresh(comment)
    logger.info("Comment added to report %s", report.id)
    return comment


def report_stats(db: Session, top_categories: int = 10) -> dict:
    total = db.query(func.count(models.Report.id)).scalar() or 0

    by_status = (
        db.query(models.Report.status, func.count(models.Report.id))
        .group_by(models.Report.status)
        .all()
    )
    by_severity = (
        db.query(models.Report.severity, func.count(models.Report.id))
        .group_by(models.Report.severity)
        .all()
    )
    count = func.count(models.Report.id).label("count")
    by_category = (
        db.query(models.Report.category, count)
        .group_by(models.Report.category)
        .order_by(count.desc(), models.Report.category)
        .limit(top_categories)
        .all()
    )

    return {
        "total": total,
        "by_status": [{"status": s, "count": c} for s, c in by_status],
        "by_severity": [{"severity": s, "count": c} for s, c in by_severity],
        "top_categories": [{"category": cat, "count": c} for cat, c in by_category],
    }


def delete_report(db: Session, report_id: str, requesting_user_id: str) -> None:
    report = get_report(db, report_id)

    if not requesting_user_id or report.user_id != requesting_user_id:
        logger.warning("Delete of report %s refused for user %s", report.id, requesting_user_id)
        raise AuthorizationError("Unauthorized to delete this report")

    db.delete(report)
    db.commit()
    logger.info("Report %s deleted", report_id)
