"""
外部语言模型服务

支持 Gemini 和 OpenAI 兼容接口。只要求模型输出JSON；遇到429时重试一次；
任何失败都返回None，由调用方回退到启发式逻辑。
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from madurinn.core.config import Settings, settings as default_settings
from madurinn.services.answer_service import (
    SOURCE_LLM,
    AnswerResult,
    filter_disclosures,
    normalize_answer_text,
    normalize_label,
)
from madurinn.services.person_service import PersonProfile

logger = logging.getLogger(__name__)

PROVIDER_GEMINI = "gemini"
OPENAI_COMPATIBLE_PROVIDERS = ("openai", "openai-compatible", "kimi")

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash-lite"
OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"

INTENT_KINDS = ("question", "guess", "hint")


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """从模型输出中截取第一个 { 到最后一个 } 之间的内容并解析"""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def build_answer_system_prompt() -> str:
    return "\n".join([
        'Role: You are the strict game master for "Hver er maðurinn?".',
        "Language: Always answer in Icelandic.",
        "You must answer clearly and briefly (one short sentence).",
        "Prefer direct labels: yes/no whenever possible; use unknown only when evidence is genuinely insufficient.",
        "For factual binary questions (e.g. nationality/profession), avoid unknown unless the provided facts truly do not decide it.",
        "Never reveal or confirm the exact person name directly.",
        "Do not mention gender or whether the person is alive unless the question asks about it.",
        "Examples:",
        '- Q: "Er manneskjan íslendingur?" -> {"answerLabel":"yes","answerTextIs":"Já."} or {"answerLabel":"no","answerTextIs":"Nei."}',
        '- Q: "Er hún tónlistarkona?" -> short yes/no/unknown based on facts.',
        'Output STRICT JSON only: {"answerLabel":"yes|no|unknown|probably_yes|probably_no","answerTextIs":"short icelandic sentence"}.',
        "Do not output markdown or any text outside JSON.",
    ])


def build_answer_user_prompt(question: str, person: PersonProfile) -> str:
    return "\n".join([
        f"Target person name: {person.display_name}",
        f"Known aliases: {', '.join(person.aliases)}",
        f"Known nationality flag (is Icelandic): {'yes' if person.is_icelander else 'no'}",
        f"Bio: {person.reveal_text}",
        f"Hint: {person.hint_text}",
        f"Question: {question}",
    ])


def build_intent_system_prompt() -> str:
    return "\n".join([
        'Role: You route player input for the Icelandic guessing game "Hver er maðurinn?".',
        "The player either asks a yes/no question about a hidden person, guesses the person's name, or asks for a hint.",
        'Output STRICT JSON only: {"kind":"question|guess|hint","text":"..."}.',
        'For "guess", "text" is only the guessed name without lead-in words. Otherwise "text" repeats the input.',
        "Do not output markdown or any text outside JSON.",
    ])


class LlmService:
    """外部语言模型调用服务"""

    def __init__(self, app_settings: Optional[Settings] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = app_settings or default_settings
        self.transport = transport

    @property
    def provider(self) -> str:
        return (self.settings.LLM_PROVIDER or PROVIDER_GEMINI).strip().lower()

    @property
    def enabled(self) -> bool:
        return bool(self.settings.LLM_API_KEY and self.settings.LLM_API_KEY.strip())

    def _build_complete_api_url(self) -> str:
        """根据提供方构建完整的API端点"""
        if self.provider == PROVIDER_GEMINI:
            base_url = (self.settings.LLM_BASE_URL or GEMINI_BASE_URL).rstrip('/')
            model = self.settings.LLM_MODEL or GEMINI_DEFAULT_MODEL
            return f"{base_url}/models/{model}:generateContent"

        base_url = (self.settings.LLM_BASE_URL or OPENAI_BASE_URL).rstrip('/')
        if base_url.endswith('/chat/completions'):
            return base_url
        return f"{base_url}/chat/completions"

    def _build_request(self, system_prompt: str, user_prompt: str) -> Tuple[str, Dict[str, str], Dict[str, str], dict]:
        """根据提供方构建 (url, params, headers, body)"""
        key = self.settings.LLM_API_KEY.strip()
        url = self._build_complete_api_url()
        headers = {"Content-Type": "application/json"}

        if self.provider == PROVIDER_GEMINI:
            body = {
                "systemInstruction": {"parts": [{"text": system_prompt}]},
                "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
                "generationConfig": {
                    "temperature": 0.2,
                    "responseMimeType": "application/json"
                }
            }
            return url, {"key": key}, headers, body

        headers["Authorization"] = f"Bearer {key}"
        body = {
            "model": self.settings.LLM_MODEL or OPENAI_DEFAULT_MODEL,
            "temperature": 0.2,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ]
        }
        return url, {}, headers, body

    def _extract_text(self, data: dict) -> Optional[str]:
        try:
            if self.provider == PROVIDER_GEMINI:
                text = data["candidates"][0]["content"]["parts"][0]["text"]
            else:
                text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None
        return text if isinstance(text, str) else None

    def _retry_delay(self, response: httpx.Response) -> float:
        try:
            delay = float(response.headers.get("retry-after", "1"))
        except ValueError:
            delay = 1.0
        return max(0.0, min(delay, self.settings.LLM_RETRY_DELAY_MAX))

    async def _post(self, url: str, params: dict, headers: dict, body: dict) -> httpx.Response:
        """发送请求；遇到429时等待后重试一次"""
        async with httpx.AsyncClient(timeout=self.settings.LLM_TIMEOUT, transport=self.transport) as client:
            response = await client.post(url, params=params, json=body, headers=headers)
            if response.status_code == 429:
                delay = self._retry_delay(response)
                logger.info(f"⏳ [llm] {self.provider} 触发限流(429)，{delay:.1f}秒后重试一次")
                await asyncio.sleep(delay)
                response = await client.post(url, params=params, json=body, headers=headers)
            return response

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Optional[Dict[str, Any]]:
        """调用模型并解析JSON输出，失败返回None"""
        if not self.enabled:
            return None
        if self.provider != PROVIDER_GEMINI and self.provider not in OPENAI_COMPATIBLE_PROVIDERS:
            logger.warning(f"⚠️ [llm] 未知的模型提供方: {self.provider}")
            return None

        url, params, headers, body = self._build_request(system_prompt, user_prompt)
        try:
            response = await self._post(url, params, headers, body)
            if response.status_code >= 400:
                logger.warning(f"❌ [llm] {self.provider} HTTP错误: {response.status_code}")
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"❌ [llm] {self.provider} 调用失败: {type(e).__name__}: {e}")
            return None

        text = self._extract_text(data)
        if text is None:
            logger.warning(f"❌ [llm] {self.provider} 响应中没有文本内容")
            return None

        parsed = extract_json(text)
        if parsed is None:
            logger.warning(f"❌ [llm] {self.provider} 返回的不是JSON: {text[:220]}")
        return parsed

    async def answer_question(self, question: str, person: PersonProfile) -> Optional[AnswerResult]:
        """用外部模型回答问题，并过滤未被问到的性别/生死信息"""
        parsed = await self.complete_json(build_answer_system_prompt(), build_answer_user_prompt(question, person))
        if parsed is None:
            return None

        answer_label = normalize_label(parsed.get("answerLabel", "unknown"))
        answer_text = normalize_answer_text(answer_label, str(parsed.get("answerTextIs", "")))
        result = filter_disclosures(question, AnswerResult(answer_label, answer_text, SOURCE_LLM))
        logger.info(f"🤖 [llm] answer provider={self.provider} label={result.answer_label} question={question!r}")
        return result

    async def classify_intent(self, text: str) -> Optional[Dict[str, str]]:
        """用外部模型判断输入意图，返回 {"kind": ..., "text": ...}"""
        parsed = await self.complete_json(build_intent_system_prompt(), f"Input: {text}")
        if parsed is None:
            return None

        kind = str(parsed.get("kind", "")).strip().lower()
        if kind not in INTENT_KINDS:
            logger.warning(f"❌ [llm] 无法识别的意图: {kind!r}")
            return None
        intent_text = str(parsed.get("text") or "").strip() or text
        logger.info(f"🤖 [llm] intent provider={self.provider} kind={kind}")
        return {"kind": kind, "text": intent_text}
