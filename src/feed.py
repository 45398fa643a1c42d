# src/feed.py
"""
Feed assembly: which posts a viewer may see, newest-first for-you paging
and the engagement-ranked trending list.
"""
import logging
from datetime import timedelta
from typing import Optional, List

from fastapi import HTTPException
from sqlalchemy import or_, and_, case, func, select
from sqlalchemy.orm import Session, Query

from model.base import utcnow
from model.community import Group, GroupMember, Page, PageFollower
from model.factcheck import FactCheckResult
from model.post import Post, PostReaction, PostComment, PostShare
from model.user import Users

logger = logging.getLogger(__name__)

TRENDING_WINDOW_DAYS = 30
TRENDING_MIN_REACTIONS = 2
COMMENT_WEIGHT = 5
SHARE_WEIGHT = 3


def not_expired(now=None):
    now = now or utcnow()
    return or_(Post.expires_at.is_(None), Post.expires_at > now)


def member_group_ids(viewer_id: int):
    return select(GroupMember.group_id).where(GroupMember.user_id == viewer_id)


def followed_page_ids(viewer_id: int):
    return select(PageFollower.page_id).where(PageFollower.user_id == viewer_id)


def visibility_clause(viewer_id: Optional[int]):
    """Global posts, posts of my groups, posts of pages I follow, and my own posts."""
    global_posts = Post.scope == "global"
    if viewer_id is None:
        return global_posts
    return or_(
        global_posts,
        and_(Post.scope == "group", Post.group_id.in_(member_group_ids(viewer_id))),
        and_(Post.scope == "page", Post.page_id.in_(followed_page_ids(viewer_id))),
        Post.author_id == viewer_id,
    )


def visible_posts(db: Session, viewer_id: Optional[int]) -> Query:
    return db.query(Post).filter(visibility_clause(viewer_id), not_expired())


def for_you(db: Session, viewer_id: Optional[int], offset: int, limit: int) -> List[Post]:
    return (
        visible_posts(db, viewer_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def trending(db: Session, viewer_id: Optional[int], offset: int, limit: int,
             window_days: int = TRENDING_WINDOW_DAYS) -> List[Post]:
    """Rank visible posts from the window by reactions + 5*comments + 3*shares.

    Posts with fewer than two reactions are left out. Posts that already
    carry a fact-check from inside the window sink to the end.
    """
    now = utcnow()
    since = now - timedelta(days=max(1, int(window_days)))

    reacts = (
        select(PostReaction.post_id, func.count().label("n"))
        .group_by(PostReaction.post_id)
        .subquery()
    )
    comments = (
        select(PostComment.post_id, func.count().label("n"))
        .group_by(PostComment.post_id)
        .subquery()
    )
    shares = (
        select(PostShare.post_id, func.count().label("n"))
        .group_by(PostShare.post_id)
        .subquery()
    )
    checked = (
        select(FactCheckResult.post_id)
        .where(FactCheckResult.created_at >= since)
        .distinct()
        .subquery()
    )

    react_n = func.coalesce(reacts.c.n, 0)
    score = react_n + COMMENT_WEIGHT * func.coalesce(comments.c.n, 0) + SHARE_WEIGHT * func.coalesce(shares.c.n, 0)
    already_checked = case((checked.c.post_id.is_(None), 0), else_=1)

    rows = (
        db.query(Post)
        .outerjoin(reacts, reacts.c.post_id == Post.id)
        .outerjoin(comments, comments.c.post_id == Post.id)
        .outerjoin(shares, shares.c.post_id == Post.id)
        .outerjoin(checked, checked.c.post_id == Post.id)
        .filter(visibility_clause(viewer_id), not_expired(now), Post.created_at >= since)
        .filter(react_n >= TRENDING_MIN_REACTIONS)
        .order_by(already_checked.asc(), score.desc(), Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows


def can_view_post(db: Session, post: Post, viewer: Optional[Users]) -> bool:
    if post.scope == "global":
        return True
    if viewer is None:
        return False
    if post.author_id == viewer.id or viewer.role == "admin":
        return True
    if post.scope == "group":
        return is_group_member(db, post.group_id, viewer.id)
    if post.scope == "page":
        # page posts are public to anyone who can see the page itself
        page = db.get(Page, post.page_id)
        return page is not None and not page.unavailable
    return False


def ensure_can_view(db: Session, post: Post, viewer: Optional[Users]) -> None:
    if post.expires_at is not None and post.expires_at <= utcnow():
        raise HTTPException(status_code=404, detail="Post not found")
    if not can_view_post(db, post, viewer):
        raise HTTPException(status_code=403, detail="Members only")


def is_group_member(db: Session, group_id: Optional[int], user_id: int) -> bool:
    if group_id is None:
        return False
    return db.get(GroupMember, (group_id, user_id)) is not None


def is_group_admin(db: Session, group_id: int, user_id: int) -> bool:
    m = db.get(GroupMember, (group_id, user_id))
    return bool(m and m.is_admin)


def group_is_private(db: Session, group_id: Optional[int]) -> bool:
    g = db.get(Group, group_id) if group_id is not None else None
    return bool(g and g.privacy == "private")
