"""
管理后台相关的数据模式
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional, List
from datetime import datetime

from madurinn.core.utils import format_timestamp_with_timezone

MAX_ALIASES = 25


class PersonCreate(BaseModel):
    """创建人物的请求"""
    display_name: str = Field(..., min_length=1, max_length=120, description="显示名称")
    reveal_text: str = Field(..., min_length=1, max_length=2000, description="揭晓时的介绍")
    image_url: Optional[str] = Field(None, max_length=500, description="图片地址")
    aliases: List[str] = Field(default_factory=list, description="可接受的别名")
    hint_text: Optional[str] = Field(None, max_length=500, description="默认提示")
    yes_keywords: List[str] = Field(default_factory=list)
    no_keywords: List[str] = Field(default_factory=list)
    is_icelander: bool = Field(True, description="是否为冰岛人")

    class Config:
        str_strip_whitespace = True


class PersonUpdate(BaseModel):
    """更新人物的请求（只更新提交的字段）"""
    display_name: Optional[str] = Field(None, min_length=1, max_length=120)
    reveal_text: Optional[str] = Field(None, min_length=1, max_length=2000)
    image_url: Optional[str] = Field(None, max_length=500)
    aliases: Optional[List[str]] = None
    hint_text: Optional[str] = Field(None, max_length=500)
    yes_keywords: Optional[List[str]] = None
    no_keywords: Optional[List[str]] = None
    is_icelander: Optional[bool] = None

    class Config:
        str_strip_whitespace = True


class PersonResponse(BaseModel):
    """人物的响应"""
    id: str
    display_name: str
    slug: str
    reveal_text: str
    image_url: Optional[str] = None
    aliases: List[str] = []
    hint_text: Optional[str] = None
    yes_keywords: List[str] = []
    no_keywords: List[str] = []
    is_icelander: bool
    created_at: Optional[datetime] = None

    @field_serializer('created_at')
    def serialize_created_at(self, dt: Optional[datetime]) -> Optional[str]:
        return format_timestamp_with_timezone(dt) if dt else None

    class Config:
        from_attributes = True


class RoundAssign(BaseModel):
    """为轮次指定人物的请求"""
    person_id: str = Field(..., min_length=1, max_length=120)
    hint_text: Optional[str] = Field(None, max_length=500, description="本轮提示，为空时使用人物默认提示")
    status_override: Optional[str] = Field(None, pattern="^(open|closed)$", description="强制轮次状态")

    class Config:
        str_strip_whitespace = True


class RoundAssignment(BaseModel):
    """轮次分配的响应"""
    round_id: str
    person_id: Optional[str] = None
    person_name: Optional[str] = None
    hint_text: Optional[str] = None
    status_override: Optional[str] = None
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None
    assigned: bool = False

    @field_serializer('opens_at', 'closes_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return format_timestamp_with_timezone(dt) if dt else None


class SubmissionEntry(BaseModel):
    """一条玩家提交（提问或猜测）"""
    kind: str  # question, guess
    id: int
    round_id: str
    session_id: str
    text: str
    answer_label: Optional[str] = None
    answer_text: Optional[str] = None
    answer_source: Optional[str] = None
    latency_ms: Optional[int] = None
    is_correct: Optional[bool] = None
    created_at: datetime

    @field_serializer('created_at')
    def serialize_created_at(self, dt: datetime) -> str:
        return format_timestamp_with_timezone(dt)
