# routes/users.py
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, File, UploadFile, Query
from sqlalchemy import or_, and_
from sqlalchemy.orm import Session

from config import settings
from config.db import get_db
from config.dependencies import require_user
from model.base import utcnow
from model.post import Post
from model.user import Users, UserFollow, Friendship, FriendRequest, Bookmark
from schema.social import MotivationPrefsIn
from src import feed
from src.accounts import anonymize_user
from src.notifications import notify
from src.motivation import (
    INTEREST_TAGS, GOAL_TAGS, ROLES,
    get_or_create_prefs, apply_prefs_update, serialize_prefs,
)
from src.route_helpers import clamp_paging, get_active_user_or_404, get_post_or_404
from src.serializers import serialize_user, serialize_author, serialize_posts, iso
from src.storage import save_image, delete_upload

logger = logging.getLogger(__name__)

router = APIRouter()


# ------------------------------------------------------------
# Me
# ------------------------------------------------------------
@router.get("/me")
def get_me(db: Session = Depends(get_db), me: Users = Depends(require_user)):
    out = serialize_user(me, private=True)
    out["followingCount"] = db.query(UserFollow).filter(UserFollow.follower_id == me.id).count()
    out["friendsCount"] = db.query(Friendship).filter(Friendship.user_id == me.id).count()
    return out


@router.delete("/me")
def delete_me(db: Session = Depends(get_db), me: Users = Depends(require_user)):
    if me.role == "admin":
        raise HTTPException(status_code=400, detail="Admins cannot delete their own account")
    anonymize_user(db, me)
    db.commit()
    return {"ok": True}


# ------------------------------------------------------------
# Bookmarks
# ------------------------------------------------------------
@router.post("/me/bookmarks/{post_id}")
def toggle_bookmark(post_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    existing = db.get(Bookmark, (me.id, post_id))
    if existing is not None:
        db.delete(existing)
        db.commit()
        return {"bookmarked": False}

    post = get_post_or_404(db, post_id)
    feed.ensure_can_view(db, post, me)
    db.add(Bookmark(user_id=me.id, post_id=post_id, created_at=utcnow()))
    db.commit()
    return {"bookmarked": True}


@router.get("/me/bookmarks")
def list_bookmarks(ids: Optional[str] = Query(None), db: Session = Depends(get_db), me: Users = Depends(require_user)):
    rows = (
        db.query(Bookmark)
        .filter(Bookmark.user_id == me.id)
        .order_by(Bookmark.created_at.desc())
        .all()
    )
    post_ids = [b.post_id for b in rows]
    if ids == "1":
        return {"ids": post_ids}

    if not post_ids:
        return []
    posts = db.query(Post).filter(Post.id.in_(post_ids), feed.not_expired()).all()
    # access can be lost after bookmarking (left the group, page disabled)
    by_id = {p.id: p for p in posts if feed.can_view_post(db, p, me)}
    ordered = [by_id[pid] for pid in post_ids if pid in by_id]
    return serialize_posts(db, ordered, me.id)


# ------------------------------------------------------------
# Avatar
# ------------------------------------------------------------
def _avatar_status(user: Users) -> dict:
    cooldown = settings.AVATAR_COOLDOWN_SEC
    if not cooldown or user.avatar_updated_at is None:
        return {"canChange": True, "nextChangeAt": None}
    next_at = user.avatar_updated_at + timedelta(seconds=cooldown)
    return {"canChange": utcnow() >= next_at, "nextChangeAt": iso(next_at)}


@router.post("/me/avatar")
def upload_avatar(avatar: UploadFile = File(...), db: Session = Depends(get_db), me: Users = Depends(require_user)):
    status_ = _avatar_status(me)
    first_ever = not me.avatar_url and me.avatar_updated_at is None
    if not first_ever and not status_["canChange"]:
        raise HTTPException(status_code=429, detail=f"You can change your profile photo again on {status_['nextChangeAt']}")

    url = save_image(avatar)
    previous = me.avatar_url
    me.avatar_url = url
    me.avatar_updated_at = utcnow()
    db.commit()
    if previous:
        delete_upload(previous)
    logger.info("Avatar updated for user %s", me.id)
    return {"ok": True, "avatarUrl": url, **_avatar_status(me)}


@router.delete("/me/avatar")
def remove_avatar(db: Session = Depends(get_db), me: Users = Depends(require_user)):
    previous = me.avatar_url
    me.avatar_url = ""
    me.avatar_updated_at = utcnow()
    db.commit()
    if previous:
        delete_upload(previous)
    return {"ok": True, "avatarUrl": "", **_avatar_status(me)}


# ------------------------------------------------------------
# Motivation preferences
# ------------------------------------------------------------
def _allowed_lists() -> dict:
    return {"interests": list(INTEREST_TAGS), "goals": list(GOAL_TAGS), "roles": list(ROLES)}


@router.get("/me/motivation-prefs")
def get_motivation_prefs(me: Users = Depends(require_user)):
    return {"prefs": serialize_prefs(me.motivation_prefs), "allowed": _allowed_lists()}


@router.put("/me/motivation-prefs")
def put_motivation_prefs(body: MotivationPrefsIn, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    prefs = get_or_create_prefs(db, me)
    apply_prefs_update(prefs, body.as_update())
    db.commit()
    logger.info("Motivation prefs updated for user %s", me.id)
    return {"ok": True, "prefs": serialize_prefs(prefs), "allowed": _allowed_lists()}


# ------------------------------------------------------------
# Friend requests
# ------------------------------------------------------------
def _serialize_request(fr: FriendRequest, other: Users) -> dict:
    return {
        "id": fr.id,
        "status": fr.status,
        "user": serialize_author(other),
        "createdAt": iso(fr.created_at),
    }


def _befriend(db: Session, a: int, b: int) -> None:
    for x, y in ((a, b), (b, a)):
        if db.get(Friendship, (x, y)) is None:
            db.add(Friendship(user_id=x, friend_id=y, created_at=utcnow()))


@router.get("/requests")
def list_requests(db: Session = Depends(get_db), me: Users = Depends(require_user)):
    incoming = (
        db.query(FriendRequest)
        .filter(FriendRequest.to_user_id == me.id, FriendRequest.status == "pending")
        .order_by(FriendRequest.created_at.desc())
        .all()
    )
    outgoing = (
        db.query(FriendRequest)
        .filter(FriendRequest.from_user_id == me.id, FriendRequest.status == "pending")
        .order_by(FriendRequest.created_at.desc())
        .all()
    )
    return {
        "incoming": [_serialize_request(fr, fr.from_user) for fr in incoming],
        "outgoing": [_serialize_request(fr, fr.to_user) for fr in outgoing],
    }


def _pending_request_or_404(db: Session, request_id: int) -> FriendRequest:
    fr = db.get(FriendRequest, request_id)
    if fr is None or fr.status != "pending":
        raise HTTPException(status_code=404, detail="Request not found")
    return fr


@router.post("/requests/{request_id}/accept")
def accept_request(request_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    fr = _pending_request_or_404(db, request_id)
    if fr.to_user_id != me.id:
        raise HTTPException(status_code=403, detail="Forbidden")
    _befriend(db, fr.from_user_id, fr.to_user_id)
    fr.status = "accepted"
    db.commit()
    logger.info("Friend request %s accepted", fr.id)
    return {"ok": True}


@router.post("/requests/{request_id}/decline")
def decline_request(request_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    """Recipient declines, or the sender cancels."""
    fr = _pending_request_or_404(db, request_id)
    if me.id not in (fr.to_user_id, fr.from_user_id):
        raise HTTPException(status_code=403, detail="Forbidden")
    fr.status = "declined"
    db.commit()
    return {"ok": True}


# ------------------------------------------------------------
# Profiles
# ------------------------------------------------------------
@router.get("/{user_id}")
def get_profile(user_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    target = get_active_user_or_404(db, user_id)

    pending = (
        db.query(FriendRequest)
        .filter(
            FriendRequest.status == "pending",
            or_(
                and_(FriendRequest.from_user_id == me.id, FriendRequest.to_user_id == target.id),
                and_(FriendRequest.from_user_id == target.id, FriendRequest.to_user_id == me.id),
            ),
        )
        .first()
    )
    direction = None
    if pending is not None:
        direction = "outgoing" if pending.from_user_id == me.id else "incoming"

    out = serialize_user(target)
    out.update({
        "followingCount": db.query(UserFollow).filter(UserFollow.follower_id == target.id).count(),
        "isMe": target.id == me.id,
        "following": db.get(UserFollow, (me.id, target.id)) is not None,
        "isFriend": db.get(Friendship, (me.id, target.id)) is not None,
        "pendingDirection": direction,
        "requestId": pending.id if pending else None,
    })
    return out


@router.get("/{user_id}/posts")
def user_posts(
    user_id: int,
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    page, limit, offset = clamp_paging(page, limit)
    posts = (
        feed.visible_posts(db, me.id)
        .filter(Post.author_id == user_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return serialize_posts(db, posts, me.id)


@router.post("/{user_id}/follow")
def toggle_follow(user_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    if user_id == me.id:
        raise HTTPException(status_code=400, detail="Cannot follow yourself")
    target = get_active_user_or_404(db, user_id)

    edge = db.get(UserFollow, (me.id, target.id))
    if edge is not None:
        db.delete(edge)
        target.followers_count = max(0, (target.followers_count or 0) - 1)
        following = False
    else:
        db.add(UserFollow(follower_id=me.id, followee_id=target.id, created_at=utcnow()))
        target.followers_count = (target.followers_count or 0) + 1
        following = True
    db.commit()
    logger.info("User %s %s user %s", me.id, "followed" if following else "unfollowed", target.id)
    return {"following": following, "followersCount": target.followers_count}


@router.post("/{user_id}/friend-request")
def send_friend_request(user_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    """Send a request; if the other side already asked, accept theirs instead."""
    if user_id == me.id:
        raise HTTPException(status_code=400, detail="Cannot friend yourself")
    target = get_active_user_or_404(db, user_id)

    if db.get(Friendship, (me.id, target.id)) is not None:
        return {"status": "friends"}

    incoming = (
        db.query(FriendRequest)
        .filter(FriendRequest.from_user_id == target.id, FriendRequest.to_user_id == me.id,
                FriendRequest.status == "pending")
        .first()
    )
    if incoming is not None:
        _befriend(db, me.id, target.id)
        incoming.status = "accepted"
        db.commit()
        return {"status": "accepted", "requestId": incoming.id}

    outgoing = (
        db.query(FriendRequest)
        .filter(FriendRequest.from_user_id == me.id, FriendRequest.to_user_id == target.id,
                FriendRequest.status == "pending")
        .first()
    )
    if outgoing is not None:
        return {"status": "pending", "requestId": outgoing.id}

    fr = FriendRequest(from_user_id=me.id, to_user_id=target.id, status="pending", created_at=utcnow())
    db.add(fr)
    db.flush()
    notify(db, target.id, "friend_request", actor_id=me.id, meta={"requestId": fr.id})
    db.commit()
    logger.info("Friend request %s from %s to %s", fr.id, me.id, target.id)
    return {"status": "pending", "requestId": fr.id}


@router.post("/{user_id}/unfriend")
def unfriend(user_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    if user_id == me.id:
        raise HTTPException(status_code=400, detail="Cannot unfriend yourself")
    db.query(Friendship).filter(
        or_(
            and_(Friendship.user_id == me.id, Friendship.friend_id == user_id),
            and_(Friendship.user_id == user_id, Friendship.friend_id == me.id),
        )
    ).delete(synchronize_session=False)
    db.query(FriendRequest).filter(
        or_(
            and_(FriendRequest.from_user_id == me.id, FriendRequest.to_user_id == user_id),
            and_(FriendRequest.from_user_id == user_id, FriendRequest.to_user_id == me.id),
        )
    ).delete(synchronize_session=False)
    db.commit()
    return {"ok": True}
