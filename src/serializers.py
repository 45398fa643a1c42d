# src/serializers.py
"""
JSON shapes returned by the API.

Posts are serialized in two variants: an original carries its own text and
image, a reshare carries an embedded `originalPost` (or None once the
original is gone). Authors that were soft-deleted render as "Deleted user"
without avatar or profile link.
"""
import re
from collections import Counter
from datetime import datetime
from typing import Optional, Dict, Any, Iterable, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from model.enums import REACTION_TYPES
from model.post import Post, PostReaction, PostComment, PostShare
from model.user import Users

DELETED_NAME = "Deleted user"
_LEGACY_DELETED = re.compile(r"^deleted[-_]", re.IGNORECASE)


def iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() + "Z" if dt else None


def is_deleted_user(user: Optional[Users]) -> bool:
    """deleted_at is authoritative; the pseudonym prefix catches rows anonymized before it existed."""
    if user is None:
        return True
    if user.deleted_at is not None:
        return True
    return bool(_LEGACY_DELETED.match(user.pseudonym or ""))


def serialize_author(user: Optional[Users]) -> Dict[str, Any]:
    if is_deleted_user(user):
        return {
            "id": user.id if user is not None else None,
            "displayName": DELETED_NAME,
            "avatarUrl": None,
            "profileLink": None,
            "role": "user",
            "deleted": True,
        }
    return {
        "id": user.id,
        "displayName": user.pseudonym,
        "avatarUrl": user.avatar_url or None,
        "profileLink": f"/profile/{user.id}",
        "role": user.role,
        "deleted": False,
    }


def serialize_user(user: Users, *, private: bool = False) -> Dict[str, Any]:
    out = serialize_author(user)
    out.update({
        "publicId": user.public_id,
        "pseudonym": DELETED_NAME if out["deleted"] else user.pseudonym,
        "followersCount": user.followers_count or 0,
        "createdAt": iso(user.created_at),
    })
    if private:
        out["email"] = user.email
        out["emailVerified"] = bool(user.email_verified)
    return out


def empty_counts() -> Dict[str, int]:
    return {t: 0 for t in REACTION_TYPES}


def reaction_counts(db: Session, post_id: int) -> Dict[str, int]:
    counts = empty_counts()
    rows = (
        db.query(PostReaction.type, func.count())
        .filter(PostReaction.post_id == post_id)
        .group_by(PostReaction.type)
        .all()
    )
    for rtype, n in rows:
        counts[rtype] = int(n)
    return counts


def _bulk_stats(db: Session, post_ids: List[int], viewer_id: Optional[int]):
    counts = {pid: empty_counts() for pid in post_ids}
    comments: Counter = Counter()
    shares: Counter = Counter()
    mine: Dict[int, str] = {}
    if not post_ids:
        return counts, comments, shares, mine

    for pid, rtype, n in (
        db.query(PostReaction.post_id, PostReaction.type, func.count())
        .filter(PostReaction.post_id.in_(post_ids))
        .group_by(PostReaction.post_id, PostReaction.type)
    ):
        counts[pid][rtype] = int(n)
    for pid, n in (
        db.query(PostComment.post_id, func.count())
        .filter(PostComment.post_id.in_(post_ids))
        .group_by(PostComment.post_id)
    ):
        comments[pid] = int(n)
    for pid, n in (
        db.query(PostShare.post_id, func.count())
        .filter(PostShare.post_id.in_(post_ids))
        .group_by(PostShare.post_id)
    ):
        shares[pid] = int(n)
    if viewer_id is not None:
        for pid, rtype in (
            db.query(PostReaction.post_id, PostReaction.type)
            .filter(PostReaction.post_id.in_(post_ids), PostReaction.user_id == viewer_id)
        ):
            mine[pid] = rtype
    return counts, comments, shares, mine


def _post_core(post: Post) -> Dict[str, Any]:
    out = {
        "id": post.id,
        "author": serialize_author(post.author),
        "text": post.text or "",
        "image": post.image or None,
        "scope": post.scope,
        "groupId": post.group_id,
        "pageId": post.page_id,
        "type": post.type,
        "isProtected": bool(post.is_protected),
        "retention": post.retention,
        "expiresAt": iso(post.expires_at),
        "createdAt": iso(post.created_at),
    }
    if post.page_id and post.page is not None:
        out["page"] = {"id": post.page.id, "name": post.page.name, "avatarUrl": post.page.avatar_url or None}
    if post.group_id and post.group is not None:
        out["group"] = {"id": post.group.id, "name": post.group.name, "privacy": post.group.privacy}
    return out


def serialize_posts(db: Session, posts: Iterable[Post], viewer_id: Optional[int] = None) -> List[Dict[str, Any]]:
    posts = list(posts)
    counts, comments, shares, mine = _bulk_stats(db, [p.id for p in posts], viewer_id)
    out = []
    for post in posts:
        item = _post_core(post)
        item["reactionCounts"] = counts.get(post.id, empty_counts())
        item["myReaction"] = mine.get(post.id)
        item["commentCount"] = comments.get(post.id, 0)
        item["shareCount"] = shares.get(post.id, 0)
        if post.type == "reshare":
            original = post.original_post
            item["originalPost"] = _post_core(original) if original is not None else None
            item["text"] = ""
            item["image"] = None
        out.append(item)
    return out


def serialize_post(db: Session, post: Post, viewer_id: Optional[int] = None, with_comments: bool = False) -> Dict[str, Any]:
    item = serialize_posts(db, [post], viewer_id)[0]
    if with_comments:
        item["comments"] = [serialize_comment(c) for c in post.comments]
    return item


def serialize_comment(comment: PostComment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "postId": comment.post_id,
        "author": serialize_author(comment.user),
        "text": comment.text,
        "createdAt": iso(comment.created_at),
    }


def serialize_group(group, *, members_count: int = 0, is_member: bool = False, is_admin: bool = False) -> Dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description or "",
        "privacy": group.privacy,
        "avatarUrl": group.avatar_url or None,
        "coverUrl": group.cover_url or None,
        "disabled": bool(group.disabled),
        "deletedAt": iso(group.deleted_at),
        "createdAt": iso(group.created_at),
        "membersCount": members_count,
        "isMember": is_member,
        "isAdmin": is_admin,
    }


def serialize_page(page, *, followers_count: int = 0, is_following: bool = False, is_admin: bool = False) -> Dict[str, Any]:
    return {
        "id": page.id,
        "name": page.name,
        "category": page.category or "",
        "description": page.description or "",
        "avatarUrl": page.avatar_url or None,
        "coverUrl": page.cover_url or None,
        "disabled": bool(page.disabled),
        "deletedAt": iso(page.deleted_at),
        "createdAt": iso(page.created_at),
        "followersCount": followers_count,
        "isFollowing": is_following,
        "isAdmin": is_admin,
    }


def serialize_factcheck(row) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {
        "id": row.id,
        "postId": row.post_id,
        "claim": row.claim or "",
        "verdict": row.verdict,
        "explanation": row.explanation or "",
        "confidence": row.confidence,
        "topic": row.topic or "",
        "evidence": row.evidence or [],
        "model": row.model or "",
        "createdAt": iso(row.created_at),
    }
