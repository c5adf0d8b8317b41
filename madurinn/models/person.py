"""
人物数据模型
"""

from sqlalchemy import Column, String, DateTime, Text, Boolean, JSON
from madurinn.core.database import Base
from madurinn.core.utils import utcnow

class Person(Base):
    """待猜人物表"""
    __tablename__ = "persons"

    id = Column(String(120), primary_key=True, index=True)
    display_name = Column(String(120), nullable=False)
    slug = Column(String(160), nullable=False, unique=True)
    reveal_text = Column(Text, nullable=False)          # 揭晓时展示的介绍
    image_url = Column(String(500), nullable=True)
    aliases = Column(JSON, nullable=False, default=list)        # 可接受的别名
    hint_text = Column(Text, nullable=True)             # 默认提示
    yes_keywords = Column(JSON, nullable=False, default=list)   # 启发式回答：命中即回答"是"
    no_keywords = Column(JSON, nullable=False, default=list)    # 启发式回答：命中即回答"否"
    is_icelander = Column(Boolean, nullable=False, default=True)  # 国籍标记
    created_at = Column(DateTime, default=utcnow)
