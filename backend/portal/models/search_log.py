"""
One row per global search, the source of the search analytics
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from .base import Base, _uuid


class SearchLog(Base):
    __tablename__ = "search_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    term = Column(String(200), nullable=False, index=True)
    tab = Column(String(32), nullable=False, default="all", index=True)
    result_count = Column(Integer, nullable=False, default=0)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<SearchLog {self.term!r} {self.tab} ({self.result_count})>"
