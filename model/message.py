# model/message.py
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from model.base import Base, IdType, utcnow


def participants_key(a: int, b: int) -> str:
    """Order-independent key for a 1:1 conversation, e.g. "3:7"."""
    lo, hi = sorted((int(a), int(b)))
    return f"{lo}:{hi}"


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(IdType, primary_key=True, autoincrement=True)
    participants_key = Column(String(64), unique=True, nullable=False)
    last_message_text = Column(Text, nullable=False, default="")
    last_message_at = Column(DateTime, nullable=True)
    last_sender_id = Column(IdType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    participants = relationship(
        "ConversationParticipant", back_populates="conversation",
        cascade="all, delete-orphan", passive_deletes=True,
    )


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"

    conversation_id = Column(IdType, ForeignKey("conversations.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)

    conversation = relationship("Conversation", back_populates="participants")
    user = relationship("Users")

    __table_args__ = (
        Index("idx_conv_participants_user", "user_id"),
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(IdType, primary_key=True, autoincrement=True)
    conversation_id = Column(IdType, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    sender = relationship("Users")
    reads = relationship("MessageRead", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("idx_messages_conv_created", "conversation_id", "created_at"),
    )


class MessageRead(Base):
    __tablename__ = "message_reads"

    message_id = Column(IdType, ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    read_at = Column(DateTime, nullable=False, default=utcnow)
