# routes/search.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.community import Group, Page
from model.post import Post
from model.user import Users
from src import feed
from src.serializers import serialize_author, serialize_posts, serialize_page, serialize_group

router = APIRouter()

RESULT_CAP = 10


def _like(q: str) -> str:
    escaped = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@router.get("")
def search(q: str = Query(..., min_length=1, max_length=100), db: Session = Depends(get_db), me: Users = Depends(require_user)):
    """Case-insensitive substring search over users, visible posts, pages and groups."""
    pattern = _like(q.strip())

    users = (
        db.query(Users)
        .filter(Users.role != "admin", Users.deleted_at.is_(None), Users.pseudonym.ilike(pattern, escape="\\"))
        .order_by(Users.pseudonym.asc())
        .limit(RESULT_CAP)
        .all()
    )
    posts = (
        feed.visible_posts(db, me.id)
        .filter(Post.type == "original", Post.text.ilike(pattern, escape="\\"))
        .order_by(Post.created_at.desc())
        .limit(RESULT_CAP)
        .all()
    )
    pages = (
        db.query(Page)
        .filter(Page.disabled.is_(False), Page.deleted_at.is_(None), Page.name.ilike(pattern, escape="\\"))
        .limit(RESULT_CAP)
        .all()
    )
    groups = (
        db.query(Group)
        .filter(
            Group.disabled.is_(False),
            Group.deleted_at.is_(None),
            Group.name.ilike(pattern, escape="\\"),
            or_(Group.privacy == "public", Group.id.in_(feed.member_group_ids(me.id))),
        )
        .limit(RESULT_CAP)
        .all()
    )

    return {
        "users": [serialize_author(u) for u in users],
        "posts": serialize_posts(db, posts, me.id),
        "pages": [serialize_page(p) for p in pages],
        "groups": [serialize_group(g) for g in groups],
    }
