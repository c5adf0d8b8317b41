"""
猜测记录数据模型
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Boolean, Index
from madurinn.core.database import Base

class GuessEvent(Base):
    """猜测记录表（只追加）"""
    __tablename__ = "guess_events"
    __table_args__ = (
        Index("idx_guess_events_session_created", "session_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    round_id = Column(String(10), nullable=False)
    session_id = Column(String(36), ForeignKey("device_sessions.id"), nullable=False)
    guess_text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    created_at = Column(DateTime, nullable=False)
