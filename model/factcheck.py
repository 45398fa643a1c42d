# model/factcheck.py
from sqlalchemy import Column, String, Text, Float, Integer, JSON, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy import Enum as SAEnum

from model.base import Base, IdType, utcnow
from model.enums import VERDICTS


class FactCheckResult(Base):
    """One annotation run for a post. The newest row per post is the one shown."""
    __tablename__ = "factcheck_results"

    id = Column(IdType, primary_key=True, autoincrement=True)
    post_id = Column(IdType, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    claim = Column(Text, nullable=False, default="")
    verdict = Column(SAEnum(*VERDICTS, name="factcheck_verdict"), nullable=False)
    explanation = Column(Text, nullable=False, default="")
    confidence = Column(Float, nullable=True)
    topic = Column(String(80), nullable=False, default="")
    evidence = Column(JSON, nullable=True)
    model = Column(String(80), nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_factcheck_post_created", "post_id", "created_at"),
        Index("idx_factcheck_verdict", "verdict"),
    )


class TrustSnapshot(Base):
    __tablename__ = "trust_snapshots"

    id = Column(IdType, primary_key=True, autoincrement=True)
    subject_type = Column(SAEnum("user", "page", name="trust_subject"), nullable=False)
    subject_id = Column(IdType, nullable=False)
    checks = Column(Integer, nullable=False, default=0)
    good = Column(Integer, nullable=False, default=0)
    bad = Column(Integer, nullable=False, default=0)
    score = Column(Integer, nullable=False, default=50)
    conf_low = Column(Integer, nullable=False, default=0)
    conf_high = Column(Integer, nullable=False, default=100)
    tier = Column(SAEnum("provisional", "low", "normal", "high", name="trust_tier"), nullable=False, default="provisional")
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("subject_type", "subject_id", name="uq_trust_subject"),
    )
