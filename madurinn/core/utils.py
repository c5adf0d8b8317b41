"""
工具函数模块
"""

import hashlib
import re
import unicodedata
import uuid
from typing import Optional
from datetime import datetime, timezone


def utcnow() -> datetime:
    """当前UTC时间（不带时区信息，与数据库中的存储格式一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_timestamp_with_timezone(timestamp: Optional[datetime]) -> str:
    """格式化时间戳，确保包含UTC时区标识符"""
    if not timestamp:
        return ""
    # 确保发送给前端的时间戳包含'Z'后缀，表示这是UTC时间
    return timestamp.isoformat() + 'Z'


def to_ms(timestamp: datetime) -> int:
    """naive UTC时间转换为毫秒时间戳"""
    return int(timestamp.replace(tzinfo=timezone.utc).timestamp() * 1000)


def random_id() -> str:
    return str(uuid.uuid4())


def normalize(text: str) -> str:
    """去除大小写、重音符号和标点，用于名字和关键词的模糊比较"""
    text = unicodedata.normalize("NFD", text.strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^a-z0-9\s-]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def fnv1a_32(text: str) -> int:
    """32位FNV-1a哈希，结果按有符号32位整数取绝对值"""
    h = 2166136261
    for ch in text:
        h ^= ord(ch)
        h = (h * 16777619) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def hash_device_id(device_id: str) -> str:
    return hashlib.sha256(device_id.encode("utf-8")).hexdigest()


def normalize_username(username: str) -> str:
    return unicodedata.normalize("NFKC", username.strip().lower())
