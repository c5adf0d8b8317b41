"""
轮次计算

根据当前时间（固定时区）计算每日轮次：轮次ID、开放/关闭时间、状态、倒计时以及默认人物。
这里只有纯函数，不访问数据库。
"""

import random
from dataclasses import dataclass
from datetime import datetime, date, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from madurinn.core.config import settings
from madurinn.core.utils import to_ms
from madurinn.services.person_service import PersonProfile, get_person_for_round_id

STATUS_SCHEDULED = "scheduled"
STATUS_OPEN = "open"
STATUS_CLOSED = "closed"

FORCE_OPEN_WINDOW = timedelta(hours=5)


@dataclass
class RoundOptions:
    """轮次计算选项"""
    force_open: bool = False
    round_id_override: Optional[str] = None
    status_override: Optional[str] = None
    tz_name: Optional[str] = None
    open_hour: Optional[int] = None
    close_hour: Optional[int] = None
    max_questions: Optional[int] = None


@dataclass
class RoundInfo:
    """某一时刻的轮次信息"""
    id: str
    ymd: str
    opens_at: datetime       # naive UTC
    closes_at: datetime      # naive UTC
    status: str
    countdown_target: datetime
    countdown_ms: int
    max_questions: int
    person: PersonProfile


def _local_time_to_utc(ymd: str, hour: int, tz: ZoneInfo) -> datetime:
    day = date.fromisoformat(ymd)
    local = datetime(day.year, day.month, day.day, hour, tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def round_window(ymd: str, options: Optional[RoundOptions] = None):
    """返回轮次的 (opens_at, closes_at)，均为naive UTC"""
    options = options or RoundOptions()
    tz = ZoneInfo(options.tz_name or settings.ROUND_TIMEZONE)
    open_hour = settings.ROUND_OPEN_HOUR if options.open_hour is None else options.open_hour
    close_hour = settings.ROUND_CLOSE_HOUR if options.close_hour is None else options.close_hour
    return _local_time_to_utc(ymd, open_hour, tz), _local_time_to_utc(ymd, close_hour, tz)


def next_ymd(ymd: str) -> str:
    return (date.fromisoformat(ymd) + timedelta(days=1)).isoformat()


def random_round_id() -> str:
    """2000-01-01 到 2099-12-31 之间的随机日期（调试用）"""
    start = date(2000, 1, 1)
    span = (date(2099, 12, 31) - start).days
    return (start + timedelta(days=random.randint(0, span))).isoformat()


def get_current_round(now: datetime, options: Optional[RoundOptions] = None) -> RoundInfo:
    """计算当前轮次

    now 为naive UTC时间。状态只由本地小时决定：开放窗口内为open，之前为scheduled，
    之后为closed；force_open 总是open，status_override 覆盖按时间计算的状态。
    """
    options = options or RoundOptions()
    tz = ZoneInfo(options.tz_name or settings.ROUND_TIMEZONE)
    open_hour = settings.ROUND_OPEN_HOUR if options.open_hour is None else options.open_hour
    close_hour = settings.ROUND_CLOSE_HOUR if options.close_hour is None else options.close_hour
    max_questions = options.max_questions or settings.MAX_QUESTIONS

    local_now = now.replace(tzinfo=timezone.utc).astimezone(tz)
    ymd = options.round_id_override or local_now.date().isoformat()
    opens_at, closes_at = round_window(ymd, options)

    if options.force_open:
        status = STATUS_OPEN
        countdown_target = now + FORCE_OPEN_WINDOW
    else:
        if options.status_override in (STATUS_OPEN, STATUS_CLOSED):
            status = options.status_override
        elif local_now.hour < open_hour:
            status = STATUS_SCHEDULED
        elif local_now.hour < close_hour:
            status = STATUS_OPEN
        else:
            status = STATUS_CLOSED

        if status == STATUS_SCHEDULED:
            countdown_target = opens_at
        elif status == STATUS_OPEN:
            countdown_target = closes_at
        else:
            countdown_target, _ = round_window(next_ymd(ymd), options)

    return RoundInfo(
        id=ymd,
        ymd=ymd,
        opens_at=opens_at,
        closes_at=closes_at,
        status=status,
        countdown_target=countdown_target,
        countdown_ms=max(0, to_ms(countdown_target) - to_ms(now)),
        max_questions=max_questions,
        person=get_person_for_round_id(ymd),
    )
