# routes/notifications.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.base import utcnow
from model.notification import Notification
from model.user import Users
from src.notifications import serialize_notification
from src.route_helpers import clamp_paging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def list_notifications(
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    page, limit, offset = clamp_paging(page, limit)
    rows = (
        db.query(Notification)
        .filter(Notification.user_id == me.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [serialize_notification(n) for n in rows]


@router.get("/unread-count")
def unread_count(db: Session = Depends(get_db), me: Users = Depends(require_user)):
    n = db.query(Notification).filter(Notification.user_id == me.id, Notification.read_at.is_(None)).count()
    return {"count": n}


@router.post("/read/{notification_id}")
def mark_read(notification_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    n = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == me.id)
        .first()
    )
    if n is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    if n.read_at is None:
        n.read_at = utcnow()
        db.commit()
    return {"ok": True}


@router.post("/read-all")
def mark_all_read(db: Session = Depends(get_db), me: Users = Depends(require_user)):
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == me.id, Notification.read_at.is_(None))
        .update({Notification.read_at: utcnow()}, synchronize_session=False)
    )
    db.commit()
    logger.info("User %s marked %d notifications read", me.id, updated)
    return {"ok": True, "updated": updated}
