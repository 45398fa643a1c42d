# model/user.py
from sqlalchemy import (
    Column, String, Boolean, Integer, SmallInteger, JSON,
    DateTime, ForeignKey, Index, UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from model.base import Base, IdType, utcnow


class Users(Base):
    __tablename__ = "users"

    id = Column(IdType, primary_key=True, autoincrement=True)
    public_id = Column(String(50), unique=True, index=True, nullable=False)
    pseudonym = Column(String(64), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    role = Column(SAEnum("user", "moderator", "admin", name="user_role"), nullable=False, default="user")
    avatar_url = Column(String(512), nullable=False, default="")
    avatar_updated_at = Column(DateTime, nullable=True)
    followers_count = Column(Integer, nullable=False, default=0)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_users_role", "role"),
        Index("ix_users_deleted_at", "deleted_at"),
    )

    creds = relationship("UserCredential", uselist=False, back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    motivation_prefs = relationship("MotivationPrefs", uselist=False, back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class UserCredential(Base):
    __tablename__ = "user_credentials"

    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    password_hash = Column(String(255), nullable=False)
    password_algo = Column(SAEnum("bcrypt", name="password_algo"), nullable=False, default="bcrypt")
    last_password_change = Column(DateTime)

    user = relationship("Users", back_populates="creds")


# ---------------------------------------------------------------------------
# Social graph: one row per directed follow, two rows per friendship.
# ---------------------------------------------------------------------------
class UserFollow(Base):
    __tablename__ = "user_follows"

    follower_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    followee_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_user_follows_followee", "followee_id", "created_at"),
    )


class Friendship(Base):
    __tablename__ = "friendships"

    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    friend_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id = Column(IdType, primary_key=True, autoincrement=True)
    from_user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    to_user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(SAEnum("pending", "accepted", "declined", name="friend_request_status"), nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    from_user = relationship("Users", foreign_keys=[from_user_id])
    to_user = relationship("Users", foreign_keys=[to_user_id])

    __table_args__ = (
        Index("idx_friend_requests_pair", "from_user_id", "to_user_id", "status"),
        Index("idx_friend_requests_to", "to_user_id", "status"),
    )


class Bookmark(Base):
    __tablename__ = "bookmarks"

    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    post_id = Column(IdType, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_bookmarks_user", "user_id", "created_at"),
    )


class MotivationPrefs(Base):
    __tablename__ = "motivation_prefs"

    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    enabled = Column(Boolean, nullable=False, default=False)
    hour_local = Column(SmallInteger, nullable=False, default=9)
    tone_inspiration = Column(Boolean, nullable=False, default=True)
    tone_humor = Column(Boolean, nullable=False, default=False)
    interests = Column(JSON, nullable=False, default=list)
    goals = Column(JSON, nullable=False, default=list)
    role = Column(String(40), nullable=False, default="")
    language = Column(String(10), nullable=False, default="")
    updated_at = Column(DateTime, nullable=True)

    user = relationship("Users", back_populates="motivation_prefs")


class EmailOTP(Base):
    __tablename__ = "email_otps"

    id = Column(IdType, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, index=True)
    code_hash = Column(String(255), nullable=False)
    purpose = Column(String(24), nullable=False, default="signup")
    attempts = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("email", "purpose", name="uq_email_otps_email_purpose"),
    )
