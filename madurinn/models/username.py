"""
用户名数据模型
"""

from sqlalchemy import Column, String, DateTime
from madurinn.core.database import Base
from madurinn.core.utils import utcnow

class Username(Base):
    """设备用户名表（规范化后的用户名全局唯一）"""
    __tablename__ = "usernames"

    device_id_hash = Column(String(64), primary_key=True)
    username = Column(String(40), nullable=False)
    username_normalized = Column(String(40), nullable=False, unique=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
