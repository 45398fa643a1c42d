# routes/reports.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.base import utcnow
from model.community import Group, Page, PageFollower
from model.moderation import Report, REPORT_REASONS
from model.post import Post, PostComment
from model.user import Users
from schema.social import ReportIn

logger = logging.getLogger(__name__)

router = APIRouter()


def normalize_reason(reason: Optional[str]) -> str:
    r = (reason or "").strip().lower()
    return r if r in REPORT_REASONS else "other"


def _target_owner(db: Session, target_type: str, target_id: int, reporter: Users) -> Optional[int]:
    """Resolve the reported object to the user responsible for it; 404 if it does not exist."""
    if target_type == "post":
        post = db.get(Post, target_id)
        if post is None:
            raise HTTPException(status_code=404, detail="Post not found")
        return post.author_id
    if target_type == "comment":
        comment = db.get(PostComment, target_id)
        if comment is None:
            raise HTTPException(status_code=404, detail="Comment not found")
        return comment.user_id
    if target_type == "user":
        if db.get(Users, target_id) is None:
            raise HTTPException(status_code=404, detail="User not found")
        return target_id
    if target_type == "group":
        group = db.get(Group, target_id)
        if group is None:
            raise HTTPException(status_code=404, detail="Group not found")
        return group.created_by
    page = db.get(Page, target_id)
    if page is None:
        raise HTTPException(status_code=404, detail="Page not found")
    # a page has no single owner; admins of the page count as its owner
    link = db.get(PageFollower, (page.id, reporter.id))
    if link is not None and link.is_admin:
        return reporter.id
    return None


@router.post("", status_code=status.HTTP_201_CREATED)
def create_report(body: ReportIn, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    owner_id = _target_owner(db, body.target_type, body.target_id, me)
    if owner_id is not None and owner_id == me.id:
        raise HTTPException(status_code=400, detail=f"You cannot report your own {body.target_type}.")

    report = Report(
        reporter_id=me.id,
        target_type=body.target_type,
        target_id=body.target_id,
        target_user_id=owner_id,
        reason=normalize_reason(body.reason),
        note=(body.note or "").strip(),
        status="open",
        created_at=utcnow(),
    )
    db.add(report)
    db.commit()
    logger.info("Report %s filed by user %s on %s %s (%s)", report.id, me.id, body.target_type, body.target_id, report.reason)
    return {"ok": True, "reportId": report.id}
