"""
游戏相关的数据模式
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional, List
from datetime import datetime

from madurinn.core.utils import format_timestamp_with_timezone


def _serialize_dt(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return format_timestamp_with_timezone(dt)


# ---- 请求 ----

class StartSessionRequest(BaseModel):
    """开始会话的请求模式"""
    device_id: Optional[str] = Field(default=None, max_length=200, description="设备ID，为空时生成匿名ID")
    randomize_round: bool = Field(default=False, description="随机轮次（调试用）")
    fresh_device: bool = Field(default=False, description="忽略设备ID，使用新的匿名设备")
    force_round_open: bool = Field(default=False, description="强制轮次开放（调试用）")

    class Config:
        str_strip_whitespace = True


class SessionRequest(BaseModel):
    """只需要会话ID的请求"""
    session_id: str = Field(..., min_length=1, max_length=120)
    force_round_open: bool = False

    class Config:
        str_strip_whitespace = True


class QuestionRequest(SessionRequest):
    question: str = Field(..., min_length=2, max_length=400)


class GuessRequest(SessionRequest):
    guess: str = Field(..., min_length=1, max_length=200)


class InputRequest(SessionRequest):
    input: str = Field(..., min_length=1, max_length=400)


class UsernameRequest(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=200)
    username: str = Field(..., min_length=2, max_length=24)

    class Config:
        str_strip_whitespace = True


# ---- 响应 ----

class RevealPerson(BaseModel):
    """揭晓的人物信息"""
    display_name: str
    reveal_text: str
    image_url: str


class RoundState(BaseModel):
    """轮次信息"""
    id: str
    ymd: str
    status: str
    opens_at: datetime
    closes_at: datetime
    countdown_ms: int
    max_questions: int

    @field_serializer('opens_at', 'closes_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class RoundDebug(BaseModel):
    force_round_open: bool
    dev_random_round_per_session: bool
    current_person_id: Optional[str] = None
    current_person_name: Optional[str] = None


class CurrentRoundResponse(BaseModel):
    round: RoundState
    debug: RoundDebug
    reveal_person: Optional[RevealPerson] = None


class DebugRoundInfo(BaseModel):
    round_id: str
    person_id: Optional[str] = None
    person_name: Optional[str] = None


class SessionInfo(BaseModel):
    """会话信息"""
    id: str
    round_id: str
    started_at: datetime
    question_count: int
    hint_used: bool
    solved: bool
    solved_at: Optional[datetime] = None

    @field_serializer('started_at', 'solved_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)

    class Config:
        from_attributes = True


class StartSessionResponse(BaseModel):
    session: SessionInfo


class QuestionLogEntry(BaseModel):
    question: str
    answer_label: str
    answer_text: str
    created_at: datetime

    @field_serializer('created_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class SessionStateResponse(BaseModel):
    session: SessionInfo
    questions: List[QuestionLogEntry]
    remaining: int


class QuestionResponse(BaseModel):
    answer_label: str
    answer_text: str
    question_count: int
    remaining: int


class GuessResponse(BaseModel):
    correct: bool
    solved: bool
    reveal: bool
    reveal_person: Optional[RevealPerson] = None
    solved_at: Optional[datetime] = None

    @field_serializer('solved_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class HintResponse(BaseModel):
    hint: str
    hint_used: bool = True


class InputResponse(BaseModel):
    """自由输入的处理结果，kind 为 question / guess / hint"""
    kind: str
    answer_text: str = ""
    answer_label: Optional[str] = None
    question_count: Optional[int] = None
    remaining: Optional[int] = None
    correct: Optional[bool] = None
    solved: Optional[bool] = None
    reveal_person: Optional[RevealPerson] = None
    hint: Optional[str] = None


class UsernameResponse(BaseModel):
    username: Optional[str] = None


class LeaderboardEntry(BaseModel):
    rank: int
    session_id: str
    username: Optional[str] = None
    questions_used: int
    time_from_start_ms: int
    time_from_open_ms: int
    solved_at: datetime

    @field_serializer('solved_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt(dt)


class LeaderboardResponse(BaseModel):
    round_id: str
    leaderboard: List[LeaderboardEntry]
