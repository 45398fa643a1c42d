# model/moderation.py
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from model.base import Base, IdType, utcnow
from model.enums import ReportTarget

REPORT_REASONS = ("spam", "harassment", "hate", "violence", "nudity", "misinformation", "other")


class Report(Base):
    __tablename__ = "reports"

    id = Column(IdType, primary_key=True, autoincrement=True)
    reporter_id = Column(IdType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    target_type = Column(SAEnum(*[t.value for t in ReportTarget], name="report_target"), nullable=False)
    target_id = Column(IdType, nullable=False)
    target_user_id = Column(IdType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reason = Column(SAEnum(*REPORT_REASONS, name="report_reason"), nullable=False, default="other")
    note = Column(String(1000), nullable=False, default="")
    status = Column(SAEnum("open", "resolved", "dismissed", name="report_status"), nullable=False, default="open")
    resolver_id = Column(IdType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolution_note = Column(String(400), nullable=False, default="")
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    reporter = relationship("Users", foreign_keys=[reporter_id])
    resolver = relationship("Users", foreign_keys=[resolver_id])

    __table_args__ = (
        Index("idx_reports_status_created", "status", "created_at"),
        Index("idx_reports_target", "target_type", "target_id"),
    )
