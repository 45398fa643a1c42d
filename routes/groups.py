# routes/groups.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Form, File, UploadFile, Query, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user
from model.base import utcnow
from model.community import Group, GroupMember
from model.post import Post
from model.user import Users
from routes.posts import create_post_for
from schema.social import GroupCreate
from src import feed
from src.route_helpers import clamp_paging, get_group_or_404, ensure_available
from src.serializers import serialize_group, serialize_posts, serialize_post, serialize_author
from src.storage import save_image, delete_upload

logger = logging.getLogger(__name__)

router = APIRouter()

MEMBER_LIST_CAP = 400


def _members_count(db: Session, group_id: int) -> int:
    return db.query(func.count(GroupMember.user_id)).filter(GroupMember.group_id == group_id).scalar() or 0


def _out(db: Session, g: Group, me: Users) -> dict:
    m = db.get(GroupMember, (g.id, me.id))
    return serialize_group(
        g,
        members_count=_members_count(db, g.id),
        is_member=m is not None,
        is_admin=bool(m and m.is_admin),
    )


def _require_group_admin(db: Session, g: Group, me: Users) -> None:
    if not feed.is_group_admin(db, g.id, me.id):
        raise HTTPException(status_code=403, detail="Admins only")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_group(body: GroupCreate, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    if db.query(Group.id).filter(func.lower(Group.name) == body.name.lower()).first():
        raise HTTPException(status_code=409, detail="Group name already taken")
    g = Group(
        name=body.name,
        description=body.description.strip(),
        privacy=body.privacy,
        created_by=me.id,
        created_at=utcnow(),
    )
    db.add(g)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Group name already taken")
    db.add(GroupMember(group_id=g.id, user_id=me.id, is_admin=True, joined_at=utcnow()))
    db.commit()
    db.refresh(g)
    logger.info("Group %s created by user %s", g.id, me.id)
    return _out(db, g, me)


@router.get("")
def my_groups(db: Session = Depends(get_db), me: Users = Depends(require_user)):
    groups = (
        db.query(Group)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .filter(GroupMember.user_id == me.id, Group.disabled.is_(False), Group.deleted_at.is_(None))
        .order_by(Group.created_at.desc())
        .all()
    )
    return [_out(db, g, me) for g in groups]


@router.get("/suggestions")
def suggestions(limit: int = Query(5), db: Session = Depends(get_db), me: Users = Depends(require_user)):
    limit = max(1, min(20, limit))
    groups = (
        db.query(Group)
        .filter(
            ~Group.id.in_(feed.member_group_ids(me.id)),
            Group.disabled.is_(False),
            Group.deleted_at.is_(None),
        )
        .order_by(Group.created_at.desc())
        .limit(limit)
        .all()
    )
    return [_out(db, g, me) for g in groups]


@router.get("/{group_id}")
def get_group(group_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    g = get_group_or_404(db, group_id)
    if g.deleted_at is not None and me.role != "admin":
        raise HTTPException(status_code=404, detail="Group not found")
    return _out(db, g, me)


@router.post("/{group_id}/join")
def toggle_join(group_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    g = get_group_or_404(db, group_id)
    ensure_available(g, "Group")

    m = db.get(GroupMember, (g.id, me.id))
    if m is not None:
        if m.is_admin:
            other_admins = (
                db.query(GroupMember)
                .filter(GroupMember.group_id == g.id, GroupMember.is_admin.is_(True), GroupMember.user_id != me.id)
                .count()
            )
            if not other_admins:
                raise HTTPException(status_code=400, detail="Last admin cannot leave the group")
        db.delete(m)
        member = False
    else:
        db.add(GroupMember(group_id=g.id, user_id=me.id, is_admin=False, joined_at=utcnow()))
        member = True
    db.commit()
    logger.info("User %s %s group %s", me.id, "joined" if member else "left", g.id)
    return {"member": member, "membersCount": _members_count(db, g.id)}


@router.get("/{group_id}/posts")
def group_posts(
    group_id: int,
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    g = get_group_or_404(db, group_id)
    ensure_available(g, "Group")
    if not feed.is_group_member(db, g.id, me.id) and me.role != "admin":
        raise HTTPException(status_code=403, detail="Join the group to view posts")

    page, limit, offset = clamp_paging(page, limit)
    posts = (
        db.query(Post)
        .filter(Post.scope == "group", Post.group_id == g.id, feed.not_expired())
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return serialize_posts(db, posts, me.id)


@router.post("/{group_id}/post", status_code=status.HTTP_201_CREATED)
def create_group_post(
    group_id: int,
    text: str = Form(""),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    g = get_group_or_404(db, group_id)
    ensure_available(g, "Group")
    if not feed.is_group_member(db, g.id, me.id):
        raise HTTPException(status_code=403, detail="Join the group first")
    image_url = save_image(image) if image is not None and image.filename else ""
    post = create_post_for(db, me, text, "group", group_id=g.id, image_url=image_url)
    return serialize_post(db, post, me.id)


@router.get("/{group_id}/members")
def group_members(group_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    g = get_group_or_404(db, group_id)
    ensure_available(g, "Group")
    if g.privacy == "private" and not feed.is_group_member(db, g.id, me.id):
        raise HTTPException(status_code=403, detail="Members only")

    rows = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == g.id)
        .order_by(GroupMember.joined_at.asc())
        .limit(MEMBER_LIST_CAP)
        .all()
    )
    items = []
    for m in rows:
        entry = serialize_author(m.user)
        entry["isAdmin"] = bool(m.is_admin)
        items.append(entry)
    return {"items": items, "count": _members_count(db, g.id)}


@router.get("/{group_id}/admins")
def group_admins(group_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    g = get_group_or_404(db, group_id)
    ensure_available(g, "Group")
    rows = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == g.id, GroupMember.is_admin.is_(True))
        .all()
    )
    return {"items": [serialize_author(m.user) for m in rows]}


@router.post("/{group_id}/cover")
def upload_cover(group_id: int, image: UploadFile = File(...), db: Session = Depends(get_db), me: Users = Depends(require_user)):
    g = get_group_or_404(db, group_id)
    ensure_available(g, "Group")
    _require_group_admin(db, g, me)

    url = save_image(image)
    previous = g.cover_url
    g.cover_url = url
    db.commit()
    if previous:
        delete_upload(previous)
    return {"coverUrl": url}


@router.delete("/{group_id}/cover")
def delete_cover(group_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    g = get_group_or_404(db, group_id)
    ensure_available(g, "Group")
    _require_group_admin(db, g, me)

    previous = g.cover_url
    g.cover_url = ""
    db.commit()
    if previous:
        delete_upload(previous)
    return {"ok": True}


@router.delete("/{group_id}")
def delete_group(group_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    """Hard delete by a group admin or a platform admin; the group's posts go with it."""
    g = get_group_or_404(db, group_id)
    if not (feed.is_group_admin(db, g.id, me.id) or me.role == "admin"):
        raise HTTPException(status_code=403, detail="Forbidden")

    if g.cover_url:
        delete_upload(g.cover_url)
    db.query(Post).filter(Post.scope == "group", Post.group_id == g.id).delete(synchronize_session=False)
    db.delete(g)
    db.commit()
    logger.info("Group %s deleted by user %s", group_id, me.id)
    return {"ok": True}
