# src/notifications.py
import logging
from typing import Optional, Dict, Any, Iterable

from sqlalchemy.orm import Session

from model.notification import Notification
from src.serializers import serialize_author, iso

logger = logging.getLogger(__name__)


def notify(db: Session, user_id: int, type_: str, *, actor_id: Optional[int] = None,
           post_id: Optional[int] = None, reaction_type: Optional[str] = None,
           message: str = "", quote_id: Optional[int] = None,
           meta: Optional[Dict[str, Any]] = None) -> Optional[Notification]:
    """Add a notification to the session. Self-notifications are skipped."""
    if actor_id is not None and actor_id == user_id:
        return None
    n = Notification(
        user_id=user_id,
        type=type_,
        actor_id=actor_id,
        post_id=post_id,
        reaction_type=reaction_type,
        message=message or "",
        quote_id=quote_id,
        meta=meta,
    )
    db.add(n)
    return n


def broadcast(db: Session, user_ids: Iterable[int], type_: str, message: str,
              meta: Optional[Dict[str, Any]] = None) -> int:
    count = 0
    for uid in user_ids:
        db.add(Notification(user_id=uid, type=type_, message=message, meta=meta))
        count += 1
    logger.info("Broadcast %s notification to %d users", type_, count)
    return count


def serialize_notification(n: Notification) -> Dict[str, Any]:
    return {
        "id": n.id,
        "type": n.type,
        "actor": serialize_author(n.actor) if n.actor_id else None,
        "postId": n.post_id,
        "reactionType": n.reaction_type,
        "message": n.message or "",
        "quoteId": n.quote_id,
        "meta": n.meta or {},
        "read": n.read_at is not None,
        "readAt": iso(n.read_at),
        "createdAt": iso(n.created_at),
    }
