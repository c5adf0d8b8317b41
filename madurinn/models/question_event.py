"""
提问记录数据模型
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Index
from madurinn.core.database import Base

class QuestionEvent(Base):
    """提问记录表（只追加）"""
    __tablename__ = "question_events"
    __table_args__ = (
        Index("idx_question_events_session_created", "session_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    round_id = Column(String(10), nullable=False)
    session_id = Column(String(36), ForeignKey("device_sessions.id"), nullable=False)
    question_text = Column(Text, nullable=False)
    answer_label = Column(String(20), nullable=False)   # yes, no, unknown, probably_yes, probably_no
    answer_text = Column(Text, nullable=False)
    answer_source = Column(String(20), nullable=False, default="heuristic")  # heuristic, llm
    latency_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False)
