# src/retention.py
"""
Post lifetime rules.

New posts expire POST_BASE_TTL_HOURS after creation. Engagement can extend a
post by a week or make it permanent; posts by platform admins never expire.
"""
import logging
from datetime import timedelta
from typing import Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from model.base import utcnow
from model.post import Post, PostReaction, PostComment
from model.user import Users

logger = logging.getLogger(__name__)

WEEK_TYPES = ("like", "love")
PERMA_TYPES = ("like", "love", "wow", "care")


def initial_lifetime(post: Post, author: Users) -> None:
    """Set expiry/protection on a freshly created post."""
    if author.role == "admin":
        post.is_protected = True
        post.retention = "permanent"
        post.expires_at = None
    else:
        post.is_protected = False
        post.retention = "normal"
        post.expires_at = (post.created_at or utcnow()) + timedelta(hours=settings.POST_BASE_TTL_HOURS)


def apply_reaction_retention(db: Session, post: Post) -> bool:
    """Promote a post after a reaction change. Returns True when the post changed.

    like+love reaching the week threshold pushes expiry to now + 7 days;
    like+love+wow+care reaching the permanent threshold removes expiry.
    """
    if post.is_protected or post.retention == "permanent":
        return False

    rows = (
        db.query(PostReaction.type, func.count())
        .filter(PostReaction.post_id == post.id)
        .group_by(PostReaction.type)
        .all()
    )
    counts: Dict[str, int] = {t: int(n) for t, n in rows}
    week_n = sum(counts.get(t, 0) for t in WEEK_TYPES)
    perma_n = sum(counts.get(t, 0) for t in PERMA_TYPES)

    if perma_n >= settings.RETENTION_PERMA_THRESHOLD:
        post.retention = "permanent"
        post.expires_at = None
        logger.info("Post %s is now permanent (%d strong reactions)", post.id, perma_n)
        return True

    if week_n >= settings.RETENTION_WEEK_THRESHOLD and post.expires_at is not None and post.retention == "normal":
        post.retention = "extended"
        post.expires_at = utcnow() + timedelta(days=settings.RETENTION_WEEK_DAYS)
        logger.info("Post %s extended to %s", post.id, post.expires_at)
        return True
    return False


def run_retention_tick(db: Session) -> Dict[str, int]:
    """One pass of the periodic retention worker.

    Tiers, evaluated per unexpired expiring post:
      * author is an admin                       -> permanent + protected
      * reactions >= T2 or comments >= T2        -> permanent
      * reactions >= T1 or comments >= T1        -> expires created_at + T1 days
    then every post whose expiry has passed is deleted.
    """
    now = utcnow()
    stats = {"permanent": 0, "extended": 0, "purged": 0}

    react_counts = dict(
        db.query(PostReaction.post_id, func.count()).group_by(PostReaction.post_id).all()
    )
    comment_counts = dict(
        db.query(PostComment.post_id, func.count()).group_by(PostComment.post_id).all()
    )

    candidates = (
        db.query(Post)
        .filter(Post.expires_at.isnot(None), Post.expires_at > now)
        .all()
    )
    for post in candidates:
        r = int(react_counts.get(post.id, 0))
        c = int(comment_counts.get(post.id, 0))
        author = post.author
        if author is not None and author.role == "admin":
            post.is_protected = True
            post.retention = "permanent"
            post.expires_at = None
            stats["permanent"] += 1
        elif r >= settings.POST_T2_REACTIONS or c >= settings.POST_T2_COMMENTS:
            post.retention = "permanent"
            post.expires_at = None
            stats["permanent"] += 1
        elif r >= settings.POST_T1_REACTIONS or c >= settings.POST_T1_COMMENTS:
            target = post.created_at + timedelta(days=settings.POST_T1_DAYS)
            if post.expires_at < target:
                post.expires_at = target
                post.retention = "extended"
                stats["extended"] += 1

    expired = db.query(Post).filter(Post.expires_at.isnot(None), Post.expires_at <= now).all()
    for post in expired:
        db.delete(post)
    stats["purged"] = len(expired)

    db.commit()
    return stats
