# routes/pages.py
import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Form, File, UploadFile, Query, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.base import utcnow
from model.community import Page, PageFollower
from model.post import Post
from model.user import Users
from routes.posts import create_post_for
from schema.social import PageCreate
from src import feed
from src.route_helpers import clamp_paging, get_page_or_404, ensure_available
from src.serializers import serialize_page, serialize_posts, serialize_post, serialize_author
from src.storage import save_image, delete_upload

logger = logging.getLogger(__name__)

router = APIRouter()

SUGGESTION_CAP = 50
_TAGS = re.compile(r"<[^>]*>")


def _strip_tags(s: str) -> str:
    return _TAGS.sub("", s or "").strip()


def _followers_count(db: Session, page_id: int) -> int:
    return db.query(func.count(PageFollower.user_id)).filter(PageFollower.page_id == page_id).scalar() or 0


def _out(db: Session, p: Page, me: Users) -> dict:
    link = db.get(PageFollower, (p.id, me.id))
    return serialize_page(
        p,
        followers_count=_followers_count(db, p.id),
        is_following=link is not None,
        is_admin=bool(link and link.is_admin),
    )


def _is_page_admin(db: Session, page_id: int, user_id: int) -> bool:
    link = db.get(PageFollower, (page_id, user_id))
    return bool(link and link.is_admin)


def _mine(db: Session, me: Users, q: str):
    query = (
        db.query(Page)
        .join(PageFollower, PageFollower.page_id == Page.id)
        .filter(PageFollower.user_id == me.id, Page.deleted_at.is_(None))
    )
    if q:
        query = query.filter(Page.name.ilike(f"%{q}%"))
    return [_out(db, p, me) for p in query.order_by(Page.name.asc()).all()]


def _suggestions(db: Session, me: Users, q: str, limit: int = SUGGESTION_CAP):
    query = db.query(Page).filter(
        ~Page.id.in_(feed.followed_page_ids(me.id)),
        Page.disabled.is_(False),
        Page.deleted_at.is_(None),
    )
    if q:
        query = query.filter(Page.name.ilike(f"%{q}%"))
    return [_out(db, p, me) for p in query.order_by(Page.created_at.desc()).limit(limit).all()]


@router.get("")
def list_pages(
    mode: Optional[str] = Query(None),
    q: str = Query(""),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    """`mode=mine` or `mode=suggestions` returns one list; otherwise both."""
    if mode not in (None, "mine", "suggestions"):
        raise HTTPException(status_code=400, detail="Invalid mode")
    q = q.strip()
    if mode == "mine":
        return _mine(db, me, q)
    if mode == "suggestions":
        return _suggestions(db, me, q)
    return {"mine": _mine(db, me, q), "suggestions": _suggestions(db, me, q)}


@router.get("/mine")
def my_pages(db: Session = Depends(get_db), me: Users = Depends(require_user)):
    return _mine(db, me, "")


@router.get("/suggestions")
def page_suggestions(limit: int = Query(5), db: Session = Depends(get_db), me: Users = Depends(require_user)):
    return _suggestions(db, me, "", max(1, min(20, limit)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_page(body: PageCreate, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    name = _strip_tags(body.name)
    if len(name) < 3:
        raise HTTPException(status_code=400, detail="Page name must be 3-80 chars")
    if db.query(Page.id).filter(func.lower(Page.name) == name.lower()).first():
        raise HTTPException(status_code=409, detail="Page name already taken")
    p = Page(
        name=name,
        category=_strip_tags(body.category),
        description=_strip_tags(body.description),
        created_at=utcnow(),
    )
    db.add(p)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Page name already taken")
    db.add(PageFollower(page_id=p.id, user_id=me.id, is_admin=True, created_at=utcnow()))
    db.commit()
    db.refresh(p)
    logger.info("Page %s created by user %s", p.id, me.id)
    return _out(db, p, me)


@router.get("/{page_id}")
def get_page(page_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    p = get_page_or_404(db, page_id)
    if p.deleted_at is not None and me.role != "admin":
        raise HTTPException(status_code=404, detail="Page not found")
    return _out(db, p, me)


@router.post("/{page_id}/follow")
def toggle_follow(page_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    p = get_page_or_404(db, page_id)
    ensure_available(p, "Page")

    link = db.get(PageFollower, (p.id, me.id))
    if link is not None:
        if link.is_admin:
            other_admins = (
                db.query(PageFollower)
                .filter(PageFollower.page_id == p.id, PageFollower.is_admin.is_(True), PageFollower.user_id != me.id)
                .count()
            )
            if not other_admins:
                raise HTTPException(status_code=400, detail="Last admin cannot unfollow the page")
        db.delete(link)
        following = False
    else:
        db.add(PageFollower(page_id=p.id, user_id=me.id, is_admin=False, created_at=utcnow()))
        following = True
    db.commit()
    return {"following": following, "followersCount": _followers_count(db, p.id)}


@router.get("/{page_id}/posts")
def page_posts(
    page_id: int,
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    p = get_page_or_404(db, page_id)
    ensure_available(p, "Page")
    page, limit, offset = clamp_paging(page, limit)
    posts = (
        db.query(Post)
        .filter(Post.scope == "page", Post.page_id == p.id, feed.not_expired())
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return serialize_posts(db, posts, me.id)


@router.post("/{page_id}/post", status_code=status.HTTP_201_CREATED)
def create_page_post(
    page_id: int,
    text: str = Form(""),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    p = get_page_or_404(db, page_id)
    ensure_available(p, "Page")
    if not _is_page_admin(db, p.id, me.id):
        raise HTTPException(status_code=403, detail="Admins only")
    image_url = save_image(image) if image is not None and image.filename else ""
    post = create_post_for(db, me, _strip_tags(text), "page", page_id=p.id, image_url=image_url)
    return serialize_post(db, post, me.id)


@router.get("/{page_id}/followers")
def page_followers(page_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    p = get_page_or_404(db, page_id)
    ensure_available(p, "Page")
    rows = db.query(PageFollower).filter(PageFollower.page_id == p.id).order_by(PageFollower.created_at.asc()).all()
    items = []
    for link in rows:
        entry = serialize_author(link.user)
        entry["isAdmin"] = bool(link.is_admin)
        items.append(entry)
    return {"items": items, "count": len(items)}


@router.get("/{page_id}/admins")
def page_admins(page_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    p = get_page_or_404(db, page_id)
    ensure_available(p, "Page")
    rows = db.query(PageFollower).filter(PageFollower.page_id == p.id, PageFollower.is_admin.is_(True)).all()
    return {"items": [serialize_author(link.user) for link in rows]}


@router.post("/{page_id}/cover")
def upload_cover(page_id: int, image: UploadFile = File(...), db: Session = Depends(get_db), me: Users = Depends(require_user)):
    p = get_page_or_404(db, page_id)
    ensure_available(p, "Page")
    if not _is_page_admin(db, p.id, me.id):
        raise HTTPException(status_code=403, detail="Admins only")

    url = save_image(image)
    previous = p.cover_url
    p.cover_url = url
    db.commit()
    if previous:
        delete_upload(previous)
    return {"coverUrl": url}


@router.delete("/{page_id}/cover")
def delete_cover(page_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    p = get_page_or_404(db, page_id)
    ensure_available(p, "Page")
    if not _is_page_admin(db, p.id, me.id):
        raise HTTPException(status_code=403, detail="Admins only")

    previous = p.cover_url
    p.cover_url = ""
    db.commit()
    if previous:
        delete_upload(previous)
    return {"ok": True}


@router.delete("/{page_id}")
def delete_page(page_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    p = get_page_or_404(db, page_id)
    if not (_is_page_admin(db, p.id, me.id) or me.role == "admin"):
        raise HTTPException(status_code=403, detail="Forbidden")

    if p.cover_url:
        delete_upload(p.cover_url)
    db.query(Post).filter(Post.scope == "page", Post.page_id == p.id).delete(synchronize_session=False)
    db.delete(p)
    db.commit()
    logger.info("Page %s deleted by user %s", page_id, me.id)
    return {"ok": True}
