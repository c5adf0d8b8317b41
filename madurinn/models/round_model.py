"""
轮次数据模型
"""

from sqlalchemy import Column, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from madurinn.core.database import Base
from madurinn.core.utils import utcnow

class Round(Base):
    """每日轮次表（主键即YYYY-MM-DD）"""
    __tablename__ = "rounds"

    id = Column(String(10), primary_key=True, index=True)
    date_ymd = Column(String(10), nullable=False, unique=True)
    person_id = Column(String(120), ForeignKey("persons.id"), nullable=False)
    opens_at_utc = Column(DateTime, nullable=False)
    closes_at_utc = Column(DateTime, nullable=False)
    status_override = Column(String(20), nullable=True)  # open, closed；为空时按时间计算
    hint_text = Column(Text, nullable=True)              # 本轮提示，为空时使用人物默认提示
    created_at = Column(DateTime, default=utcnow)

    # 关系
    person = relationship("Person")
