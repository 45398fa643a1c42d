# routes/admin/reports.py
"""
Moderation queue: list open/processed reports and resolve or dismiss them.
Moderators and admins both have access.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_moderator
from model.base import utcnow
from model.moderation import Report
from model.user import Users
from schema.admin import ResolveIn
from src.route_helpers import clamp_paging, get_or_404, page_envelope
from src.serializers import serialize_author, iso

logger = logging.getLogger(__name__)

router = APIRouter()

REPORT_STATUSES = ("open", "resolved", "dismissed")
TARGET_TYPES = ("post", "comment", "user", "page", "group")


def serialize_report(r: Report, users: dict) -> dict:
    def _u(uid):
        return serialize_author(users[uid]) if uid in users else None

    return {
        "id": r.id,
        "targetType": r.target_type,
        "targetId": r.target_id,
        "reason": r.reason,
        "note": r.note or "",
        "status": r.status,
        "resolutionNote": r.resolution_note or "",
        "resolvedAt": iso(r.resolved_at),
        "createdAt": iso(r.created_at),
        "reporterUser": _u(r.reporter_id),
        "targetUserUser": _u(r.target_user_id),
        "resolverUser": _u(r.resolver_id),
    }


@router.get("/reports")
def list_reports(
    status: Optional[str] = Query(None),
    target_type: Optional[str] = Query(None, alias="targetType"),
    q: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    staff: Users = Depends(require_moderator),
):
    """
    Newest first. `status` and `targetType` filter exactly; `q` matches reason or note.

    **Requires admin or moderator role**
    """
    page, limit, offset = clamp_paging(page, limit, maximum=100)
    query = db.query(Report)
    if status in REPORT_STATUSES:
        query = query.filter(Report.status == status)
    if target_type in TARGET_TYPES:
        query = query.filter(Report.target_type == target_type)
    if q and q.strip():
        like = f"%{q.strip()}%"
        query = query.filter(or_(Report.reason.ilike(like), Report.note.ilike(like)))

    total = query.count()
    rows = query.order_by(Report.created_at.desc(), Report.id.desc()).offset(offset).limit(limit).all()

    user_ids = {uid for r in rows for uid in (r.reporter_id, r.target_user_id, r.resolver_id) if uid}
    users = {u.id: u for u in db.query(Users).filter(Users.id.in_(user_ids)).all()} if user_ids else {}
    return page_envelope(page, limit, total, [serialize_report(r, users) for r in rows])


def _close_report(db: Session, report_id: int, staff: Users, new_status: str, note: str) -> dict:
    report = get_or_404(db, Report, report_id, "Report")
    if report.status != "open":
        raise HTTPException(status_code=400, detail="Report already processed")
    report.status = new_status
    report.resolver_id = staff.id
    report.resolved_at = utcnow()
    if note:
        report.resolution_note = note.strip()[:400]
    db.commit()
    logger.info("Report %s %s by %s", report.id, new_status, staff.id)
    return {"ok": True, "status": new_status}


@router.post("/reports/{report_id}/resolve")
def resolve_report(report_id: int, body: Optional[ResolveIn] = None, db: Session = Depends(get_db),
                   staff: Users = Depends(require_moderator)):
    return _close_report(db, report_id, staff, "resolved", body.note if body else "")


@router.post("/reports/{report_id}/dismiss")
def dismiss_report(report_id: int, body: Optional[ResolveIn] = None, db: Session = Depends(get_db),
                   staff: Users = Depends(require_moderator)):
    return _close_report(db, report_id, staff, "dismissed", body.note if body else "")
