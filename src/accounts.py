# src/accounts.py
"""
Account lifecycle helpers shared by the self-service and admin routes.
"""
import logging

from sqlalchemy.orm import Session

from model.base import utcnow
from model.user import Users, Bookmark, UserFollow, Friendship, FriendRequest
from src.storage import delete_upload
from src.utils import gen_token_urlsafe, hash_password

logger = logging.getLogger(__name__)


def deleted_pseudonym(user_id: int) -> str:
    return f"deleted-{user_id}"


def anonymize_user(db: Session, user: Users) -> Users:
    """Scrub PII and mark the account deleted; posts stay and render as "Deleted user"."""
    old_avatar = user.avatar_url
    user.pseudonym = deleted_pseudonym(user.id)
    user.email = None
    user.email_verified = False
    user.avatar_url = ""
    user.deleted_at = utcnow()
    if user.creds is not None:
        user.creds.password_hash = hash_password(gen_token_urlsafe(24))
        user.creds.last_password_change = utcnow()

    # drop the social edges; followers of this account stop counting it
    followees = [f.followee_id for f in db.query(UserFollow).filter(UserFollow.follower_id == user.id).all()]
    for fid in followees:
        other = db.get(Users, fid)
        if other is not None:
            other.followers_count = max(0, (other.followers_count or 0) - 1)
    db.query(UserFollow).filter(
        (UserFollow.follower_id == user.id) | (UserFollow.followee_id == user.id)
    ).delete(synchronize_session=False)
    db.query(Friendship).filter(
        (Friendship.user_id == user.id) | (Friendship.friend_id == user.id)
    ).delete(synchronize_session=False)
    db.query(FriendRequest).filter(
        (FriendRequest.from_user_id == user.id) | (FriendRequest.to_user_id == user.id)
    ).delete(synchronize_session=False)
    db.query(Bookmark).filter(Bookmark.user_id == user.id).delete(synchronize_session=False)
    user.followers_count = 0

    if old_avatar:
        delete_upload(old_avatar)
    logger.info("User %s anonymized", user.id)
    return user
