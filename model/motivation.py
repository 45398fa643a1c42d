# model/motivation.py
from sqlalchemy import Column, String, Text, Boolean, JSON, DateTime, ForeignKey, Index
from sqlalchemy import Enum as SAEnum

from model.base import Base, IdType, utcnow


class MotivationQuote(Base):
    __tablename__ = "motivation_quotes"

    id = Column(IdType, primary_key=True, autoincrement=True)
    text = Column(Text, nullable=False)
    author = Column(String(120), nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    tone = Column(SAEnum("inspiration", "humor", name="quote_tone"), nullable=False, default="inspiration")
    lang = Column(String(10), nullable=False, default="en")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class MotivationDelivery(Base):
    __tablename__ = "motivation_deliveries"

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    quote_id = Column(IdType, ForeignKey("motivation_quotes.id", ondelete="CASCADE"), nullable=False)
    delivered_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_motivation_deliveries_user", "user_id", "delivered_at"),
    )
