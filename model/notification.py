# model/notification.py
from sqlalchemy import Column, Text, JSON, DateTime, ForeignKey, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from model.base import Base, IdType, utcnow
from model.enums import NotificationType, REACTION_TYPES


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(SAEnum(*[t.value for t in NotificationType], name="notification_type"), nullable=False)
    actor_id = Column(IdType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    post_id = Column(IdType, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True)
    reaction_type = Column(SAEnum(*REACTION_TYPES, name="notification_reaction_type"), nullable=True)
    message = Column(Text, nullable=False, default="")
    quote_id = Column(IdType, ForeignKey("motivation_quotes.id", ondelete="SET NULL"), nullable=True)
    meta = Column(JSON, nullable=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    actor = relationship("Users", foreign_keys=[actor_id])

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
        Index("idx_notifications_user_read", "user_id", "read_at"),
    )

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
