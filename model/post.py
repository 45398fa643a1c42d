# model/post.py
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from model.base import Base, IdType, utcnow
from model.enums import REACTION_TYPES


class Post(Base):
    __tablename__ = "posts"

    id = Column(IdType, primary_key=True, autoincrement=True)
    author_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False, default="")
    image = Column(String(512), nullable=False, default="")
    scope = Column(SAEnum("global", "group", "page", name="post_scope"), nullable=False, default="global")
    group_id = Column(IdType, ForeignKey("groups.id", ondelete="CASCADE"), nullable=True)
    page_id = Column(IdType, ForeignKey("pages.id", ondelete="CASCADE"), nullable=True)
    type = Column(SAEnum("original", "reshare", name="post_type"), nullable=False, default="original")
    original_post_id = Column(IdType, ForeignKey("posts.id", ondelete="SET NULL"), nullable=True)
    is_protected = Column(Boolean, nullable=False, default=False)
    retention = Column(SAEnum("normal", "extended", "permanent", name="post_retention"), nullable=False, default="normal")
    expires_at = Column(DateTime, nullable=True)  # NULL = never expires
    created_at = Column(DateTime, nullable=False, default=utcnow)

    author = relationship("Users", foreign_keys=[author_id])
    group = relationship("Group")
    page = relationship("Page")
    original_post = relationship("Post", remote_side=[id], foreign_keys=[original_post_id])

    reactions = relationship("PostReaction", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)
    comments = relationship(
        "PostComment", back_populates="post", cascade="all, delete-orphan", passive_deletes=True,
        order_by="PostComment.created_at",
    )
    shares = relationship("PostShare", back_populates="post", cascade="all, delete-orphan", passive_deletes=True,
                          foreign_keys="PostShare.post_id")

    __table_args__ = (
        Index("idx_posts_created", "created_at"),
        Index("idx_posts_expires", "expires_at"),
        Index("idx_posts_group", "group_id", "created_at"),
        Index("idx_posts_page", "page_id", "created_at"),
        Index("idx_posts_author", "author_id", "created_at"),
    )


# ---------------------------------------------------------------------------
# Reactions: composite PK allows exactly one reaction per (post, user).
# ---------------------------------------------------------------------------
class PostReaction(Base):
    __tablename__ = "post_reactions"

    post_id = Column(IdType, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    type = Column(SAEnum(*REACTION_TYPES, name="reaction_type"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    post = relationship("Post", back_populates="reactions")


class PostComment(Base):
    __tablename__ = "post_comments"

    id = Column(IdType, primary_key=True, autoincrement=True)
    post_id = Column(IdType, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    post = relationship("Post", back_populates="comments")
    user = relationship("Users")

    __table_args__ = (
        Index("idx_post_comments_post", "post_id", "created_at"),
    )


class PostShare(Base):
    __tablename__ = "post_shares"

    id = Column(IdType, primary_key=True, autoincrement=True)
    post_id = Column(IdType, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reshare_id = Column(IdType, ForeignKey("posts.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    post = relationship("Post", back_populates="shares", foreign_keys=[post_id])

    __table_args__ = (
        Index("idx_post_shares_post", "post_id"),
    )
