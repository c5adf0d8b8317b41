"""
输入意图识别服务

先用正则/关键词规则判断自由输入是提问、猜测还是请求提示；
规则无法确定且配置了API密钥时，再交给外部模型判断；仍无法确定时按提问处理。
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from madurinn.core.utils import normalize
from madurinn.services.llm_service import LlmService

logger = logging.getLogger(__name__)

INTENT_QUESTION = "question"
INTENT_GUESS = "guess"
INTENT_HINT = "hint"

SOURCE_RULE = "rule"
SOURCE_LLM = "llm"
SOURCE_DEFAULT = "default"

# 冰岛语特有字母先转写，再做通用规范化
ICELANDIC_FOLD = str.maketrans({"ð": "d", "þ": "th", "æ": "ae"})

HINT_PHRASES = {
    "visbending", "visbendingu", "hint", "hjalp", "help",
    "ma eg fa visbendingu", "gefdu mer visbendingu", "eg vil fa visbendingu",
    "give me a hint", "can i get a hint",
}
HINT_TOKENS = {"visbending", "visbendingu", "hint", "hjalp"}

NAME = r"(?P<name>.+?)"

GUESS_PATTERNS: List[re.Pattern] = [
    re.compile(rf"^(?:gisk|giska|guess|svar|answer)\s*[:\-]\s*{NAME}[.!?]*$", re.IGNORECASE),
    re.compile(rf"^(?:ég|eg)\s+(?:giska|gisk)\s+(?:á|a)\s+{NAME}[.!?]*$", re.IGNORECASE),
    re.compile(rf"^i\s+guess\s+(?:it\s+is\s+|it's\s+)?{NAME}[.!?]*$", re.IGNORECASE),
]

QUESTION_WORDS = {
    # íslenska
    "er", "var", "hefur", "hafdi", "getur", "gat", "byr", "bjo", "a", "atti", "lifir", "vann", "vinnur",
    "kemur", "kom", "spilar", "syngur", "skrifadi", "skrifar", "tengist", "tengdist", "faeddist",
    "hvad", "hver", "hvar", "hvenaer", "hvernig", "hvort", "eru", "voru", "mun", "myndi",
    # english
    "is", "was", "are", "were", "does", "did", "do", "has", "have", "had", "can", "could",
    "will", "would", "who", "what", "where", "when", "how",
}


@dataclass
class Intent:
    """识别结果"""
    kind: str
    text: str
    source: str = SOURCE_RULE


def fold(text: str) -> str:
    return normalize(text.lower().translate(ICELANDIC_FOLD))


def _strip_trailing_punctuation(text: str) -> str:
    return text.strip().rstrip(".!?").strip()


def classify_heuristic(text: str) -> Optional[Intent]:
    """规则识别；无法确定时返回None"""
    raw = text.strip()
    if not raw:
        return None
    folded = fold(raw)
    tokens = folded.split()

    # 提示
    if folded in HINT_PHRASES:
        return Intent(INTENT_HINT, raw)
    if len(tokens) <= 5 and HINT_TOKENS & set(tokens) and tokens[0] not in QUESTION_WORDS:
        return Intent(INTENT_HINT, raw)

    # 明确的猜测引导语
    for pattern in GUESS_PATTERNS:
        match = pattern.match(raw)
        if match:
            return Intent(INTENT_GUESS, _strip_trailing_punctuation(match.group("name")))

    # 问号结尾或以疑问词开头即为提问
    if raw.endswith("?") or (tokens and tokens[0] in QUESTION_WORDS):
        return Intent(INTENT_QUESTION, raw)

    # 像人名的短语：每个词首字母大写，或者不超过3个词
    words = raw.split()
    if 1 <= len(words) <= 4 and all(word[:1].isupper() for word in words):
        return Intent(INTENT_GUESS, _strip_trailing_punctuation(raw))
    if 1 <= len(tokens) <= 3:
        return Intent(INTENT_GUESS, _strip_trailing_punctuation(raw))

    return None


class IntentService:
    """输入意图识别服务"""

    def __init__(self, llm_service: Optional[LlmService] = None):
        self.llm_service = llm_service or LlmService()

    async def classify(self, text: str) -> Intent:
        intent = classify_heuristic(text)
        if intent:
            return intent

        if self.llm_service.enabled:
            result = await self.llm_service.classify_intent(text.strip())
            if result:
                return Intent(result["kind"], result["text"], SOURCE_LLM)
            logger.info("🔄 意图识别回退为提问")

        return Intent(INTENT_QUESTION, text.strip(), SOURCE_DEFAULT)
