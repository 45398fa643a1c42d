# src/route_helpers.py
"""
Shared lookup and paging helpers so routes 404 and clamp the same way.
"""

from typing import Optional, Type, TypeVar, Tuple
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from model.user import Users
from model.community import Group, Page
from model.post import Post


T = TypeVar("T")

DEFAULT_LIMIT = 20
MAX_LIMIT = 50


def clamp_paging(page: Optional[int], limit: Optional[int], default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> Tuple[int, int, int]:
    """Return (page, limit, offset) with page >= 1 and 1 <= limit <= maximum."""
    try:
        page = int(page) if page is not None else 1
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit) if limit is not None else default
    except (TypeError, ValueError):
        limit = default
    page = max(1, page)
    limit = max(1, min(maximum, limit))
    return page, limit, (page - 1) * limit


def get_or_404(db: Session, model: Type[T], pk, label: Optional[str] = None) -> T:
    obj = db.get(model, pk)
    if obj is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label or model.__name__} not found",
        )
    return obj


def get_user_or_404(db: Session, user_id: int) -> Users:
    return get_or_404(db, Users, user_id, "User")


def get_active_user_or_404(db: Session, user_id: int) -> Users:
    """Like get_user_or_404 but soft-deleted accounts count as missing."""
    user = get_user_or_404(db, user_id)
    if user.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def get_post_or_404(db: Session, post_id: int) -> Post:
    return get_or_404(db, Post, post_id, "Post")


def get_group_or_404(db: Session, group_id: int) -> Group:
    return get_or_404(db, Group, group_id, "Group")


def get_page_or_404(db: Session, page_id: int) -> Page:
    return get_or_404(db, Page, page_id, "Page")


def ensure_available(obj, label: str) -> None:
    """403 for a disabled or soft-deleted group/page."""
    if obj.unavailable:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"{label} unavailable")


def page_envelope(page: int, limit: int, total: int, items: list) -> dict:
    """Paged list shape used by the admin console."""
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "hasMore": (page - 1) * limit + len(items) < total,
        "items": items,
    }
