"""
设备会话数据模型
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, UniqueConstraint, Index
from madurinn.core.database import Base

class DeviceSession(Base):
    """设备在某一轮次中的游戏会话（每个设备每轮一条）"""
    __tablename__ = "device_sessions"
    __table_args__ = (
        UniqueConstraint("device_id_hash", "round_id", name="uq_device_sessions_device_round"),
        Index("idx_device_sessions_round_solved", "round_id", "solved", "solved_at"),
    )

    id = Column(String(36), primary_key=True, index=True)
    device_id_hash = Column(String(64), nullable=False)
    round_id = Column(String(10), nullable=False)
    started_at = Column(DateTime, nullable=False)
    question_count = Column(Integer, nullable=False, default=0)
    hint_used = Column(Boolean, nullable=False, default=False)
    solved = Column(Boolean, nullable=False, default=False)
    solved_at = Column(DateTime, nullable=True)
    solve_question_index = Column(Integer, nullable=True)  # 猜中时已用的问题数
