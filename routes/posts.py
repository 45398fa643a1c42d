# routes/posts.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Form, File, UploadFile, Query, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.base import utcnow
from model.community import Group, Page, PageFollower
from model.post import Post, PostReaction, PostComment, PostShare
from model.user import Users
from schema.social import ReactIn, CommentIn
from src import feed, retention
from src.factcheck.worker import get_worker
from src.notifications import notify
from src.route_helpers import clamp_paging, get_post_or_404
from src.serializers import serialize_post, serialize_posts, serialize_comment, reaction_counts
from src.storage import save_image

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_POST_TEXT = 2000


def _resolve_target(db: Session, me: Users, scope: str, group_id: Optional[int], page_id: Optional[int]):
    """Validate the requested scope and return (scope, group_id, page_id)."""
    if scope == "group":
        g = db.get(Group, group_id) if group_id else None
        if g is None or g.unavailable:
            raise HTTPException(status_code=400, detail="Invalid group")
        if not feed.is_group_member(db, g.id, me.id):
            raise HTTPException(status_code=403, detail="Only members can post in group")
        return "group", g.id, None
    if scope == "page":
        p = db.get(Page, page_id) if page_id else None
        if p is None or p.unavailable:
            raise HTTPException(status_code=400, detail="Invalid page")
        link = db.get(PageFollower, (p.id, me.id))
        if not (link and link.is_admin):
            raise HTTPException(status_code=403, detail="Only page admins can post to a page")
        return "page", None, p.id
    return "global", None, None


def create_post_for(db: Session, me: Users, text: str, scope: str = "global",
                    group_id: Optional[int] = None, page_id: Optional[int] = None,
                    image_url: str = "") -> Post:
    """Shared by the feed, group and page post endpoints."""
    text = (text or "").strip()
    if len(text) > MAX_POST_TEXT:
        raise HTTPException(status_code=400, detail="Post text must be at most 2000 chars")
    if not text and not image_url:
        raise HTTPException(status_code=400, detail="Post needs text or an image")

    scope, group_id, page_id = _resolve_target(db, me, scope, group_id, page_id)
    post = Post(
        author_id=me.id,
        text=text,
        image=image_url or "",
        scope=scope,
        group_id=group_id,
        page_id=page_id,
        type="original",
        created_at=utcnow(),
    )
    retention.initial_lifetime(post, me)
    db.add(post)
    db.commit()
    db.refresh(post)
    logger.info("Post %s created by user %s (scope=%s)", post.id, me.id, scope)

    get_worker().maybe_on_create(post)
    return post


@router.post("", status_code=status.HTTP_201_CREATED)
def create_post(
    text: str = Form(""),
    scope: str = Form("global"),
    group: Optional[int] = Form(None),
    page: Optional[int] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    if scope not in ("global", "group", "page"):
        raise HTTPException(status_code=400, detail="Invalid scope")
    image_url = save_image(image) if image is not None and image.filename else ""
    post = create_post_for(db, me, text, scope, group, page, image_url)
    return serialize_post(db, post, me.id)


@router.get("")
def for_you_feed(
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    page, limit, offset = clamp_paging(page, limit)
    posts = feed.for_you(db, me.id, offset, limit)
    return serialize_posts(db, posts, me.id)


@router.get("/trending")
def trending_feed(
    page: int = Query(1),
    limit: int = Query(20),
    window_days: int = Query(feed.TRENDING_WINDOW_DAYS, alias="windowDays"),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    page, limit, offset = clamp_paging(page, limit)
    posts = feed.trending(db, me.id, offset, limit, window_days)
    return serialize_posts(db, posts, me.id)


@router.get("/{post_id}")
def get_post(post_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    post = get_post_or_404(db, post_id)
    feed.ensure_can_view(db, post, me)
    return serialize_post(db, post, me.id, with_comments=True)


@router.post("/{post_id}/comment")
def add_comment(post_id: int, body: CommentIn, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    post = get_post_or_404(db, post_id)
    feed.ensure_can_view(db, post, me)

    comment = PostComment(post_id=post.id, user_id=me.id, text=body.text, created_at=utcnow())
    db.add(comment)
    notify(db, post.author_id, "comment", actor_id=me.id, post_id=post.id, message=body.text[:200])
    db.commit()
    db.refresh(post)
    logger.info("User %s commented on post %s", me.id, post.id)
    return {"post": serialize_post(db, post, me.id, with_comments=True), "comment": serialize_comment(comment)}


@router.post("/{post_id}/react")
def react(post_id: int, body: ReactIn, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    """Toggle a reaction: add, remove on the same type, or switch type."""
    post = get_post_or_404(db, post_id)
    feed.ensure_can_view(db, post, me)

    existing = db.get(PostReaction, (post.id, me.id))
    if existing is None:
        db.add(PostReaction(post_id=post.id, user_id=me.id, type=body.type, created_at=utcnow()))
        action = "added"
    elif existing.type == body.type:
        db.delete(existing)
        action = "removed"
    else:
        existing.type = body.type
        action = "changed"
    db.flush()

    retention.apply_reaction_retention(db, post)
    if action != "removed":
        notify(db, post.author_id, "reaction", actor_id=me.id, post_id=post.id, reaction_type=body.type)
    db.commit()
    db.refresh(post)
    logger.info("Reaction %s on post %s by user %s (%s)", action, post.id, me.id, body.type)

    get_worker().maybe_auto_factcheck(db, post)

    return {"post": serialize_post(db, post, me.id), "reactionCounts": reaction_counts(db, post.id)}


@router.post("/{post_id}/share", status_code=status.HTTP_201_CREATED)
def share(post_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    original = get_post_or_404(db, post_id)
    feed.ensure_can_view(db, original, me)
    if original.type == "reshare":
        if original.original_post is None:
            raise HTTPException(status_code=404, detail="Original post not found")
        original = original.original_post
        feed.ensure_can_view(db, original, me)

    scope, group_id = "global", None
    if original.scope == "group":
        if not feed.is_group_member(db, original.group_id, me.id):
            raise HTTPException(status_code=403, detail="Forbidden")
        if feed.group_is_private(db, original.group_id):
            scope, group_id = "group", original.group_id

    wrapper = Post(
        author_id=me.id,
        type="reshare",
        original_post_id=original.id,
        text="",
        image="",
        scope=scope,
        group_id=group_id,
        created_at=utcnow(),
    )
    retention.initial_lifetime(wrapper, me)
    db.add(wrapper)
    db.flush()
    db.add(PostShare(post_id=original.id, user_id=me.id, reshare_id=wrapper.id, created_at=utcnow()))
    notify(db, original.author_id, "share", actor_id=me.id, post_id=original.id)
    db.commit()
    db.refresh(wrapper)
    logger.info("User %s reshared post %s as %s (scope=%s)", me.id, original.id, wrapper.id, scope)
    return serialize_post(db, wrapper, me.id)


def can_delete_post(db: Session, post: Post, me: Users) -> bool:
    if post.author_id == me.id or me.role == "admin":
        return True
    if post.scope == "page" and post.page_id:
        link = db.get(PageFollower, (post.page_id, me.id))
        return bool(link and link.is_admin)
    if post.scope == "group" and post.group_id:
        return feed.is_group_admin(db, post.group_id, me.id)
    return False


@router.delete("/{post_id}")
def delete_post(post_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    post = get_post_or_404(db, post_id)
    if not can_delete_post(db, post, me):
        logger.warning("User %s tried to delete post %s", me.id, post.id)
        raise HTTPException(status_code=403, detail="Forbidden")
    db.delete(post)
    db.commit()
    logger.info("Post %s deleted by user %s", post_id, me.id)
    return {"ok": True}
