# model/community.py
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from model.base import Base, IdType, utcnow


class Group(Base):
    __tablename__ = "groups"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(80), unique=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    privacy = Column(SAEnum("public", "private", name="group_privacy"), nullable=False, default="public")
    avatar_url = Column(String(512), nullable=False, default="")
    cover_url = Column(String(512), nullable=False, default="")
    created_by = Column(IdType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    disabled = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    memberships = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("ix_groups_disabled", "disabled"),
    )

    @property
    def unavailable(self) -> bool:
        return bool(self.disabled or self.deleted_at)


class GroupMember(Base):
    __tablename__ = "group_members"

    group_id = Column(IdType, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    joined_at = Column(DateTime, nullable=False, default=utcnow)

    group = relationship("Group", back_populates="memberships")
    user = relationship("Users")

    __table_args__ = (
        Index("idx_group_members_user", "user_id"),
    )


class Page(Base):
    __tablename__ = "pages"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(80), unique=True, nullable=False)
    category = Column(String(80), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    avatar_url = Column(String(512), nullable=False, default="")
    cover_url = Column(String(512), nullable=False, default="")
    disabled = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    followers = relationship("PageFollower", back_populates="page", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("ix_pages_disabled", "disabled"),
    )

    @property
    def unavailable(self) -> bool:
        return bool(self.disabled or self.deleted_at)


class PageFollower(Base):
    __tablename__ = "page_followers"

    page_id = Column(IdType, ForeignKey("pages.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    page = relationship("Page", back_populates="followers")
    user = relationship("Users")

    __table_args__ = (
        Index("idx_page_followers_user", "user_id"),
    )
