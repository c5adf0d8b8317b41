"""
输入意图识别测试
"""

import json

import httpx
import pytest

from madurinn.core.config import Settings
from madurinn.services.intent_service import (
    INTENT_GUESS,
    INTENT_HINT,
    INTENT_QUESTION,
    SOURCE_DEFAULT,
    SOURCE_LLM,
    IntentService,
    classify_heuristic,
)
from madurinn.services.llm_service import LlmService


@pytest.mark.parametrize("text", [
    "Vísbending",
    "hint",
    "Má ég fá vísbendingu?",
    "gefðu vísbendingu takk",
])
def test_hint(text):
    assert classify_heuristic(text).kind == INTENT_HINT


@pytest.mark.parametrize("text, name", [
    ("gisk: Björk", "Björk"),
    ("Guess - Egill Skallagrímsson.", "Egill Skallagrímsson"),
    ("Ég giska á Vigdís Finnbogadóttir", "Vigdís Finnbogadóttir"),
    ("I guess it is Björk", "Björk"),
    ("svar: Björk!", "Björk"),
])
def test_guess_lead_in_is_stripped(text, name):
    intent = classify_heuristic(text)
    assert intent.kind == INTENT_GUESS
    assert intent.text == name


@pytest.mark.parametrize("text", [
    "Er hún söngkona?",
    "Er þetta söngkona?",
    "hefur hún sungið opinberlega",
    "Is this person alive",
    "Er þetta Íslendingur?",
    "Is it Icelandic?",
    "Er þetta Björk?",
])
def test_question(text):
    intent = classify_heuristic(text)
    assert intent.kind == INTENT_QUESTION
    assert intent.text == text


def test_name_like_input_is_guess():
    assert classify_heuristic("Björk Guðmundsdóttir").kind == INTENT_GUESS
    assert classify_heuristic("egill").kind == INTENT_GUESS


def test_inconclusive_input():
    assert classify_heuristic("mig langar að vita meira um þessa manneskju") is None
    assert classify_heuristic("   ") is None


async def test_inconclusive_defaults_to_question_without_key():
    service = IntentService(LlmService(Settings(LLM_API_KEY="")))
    intent = await service.classify("mig langar að vita meira um þessa manneskju")
    assert intent.kind == INTENT_QUESTION
    assert intent.source == SOURCE_DEFAULT


async def test_inconclusive_uses_model_when_configured():
    def handler(request: httpx.Request) -> httpx.Response:
        content = json.dumps({"kind": "guess", "text": "Björk"})
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    llm = LlmService(
        Settings(LLM_API_KEY="k", LLM_PROVIDER="openai", LLM_RETRY_DELAY_MAX=0),
        transport=httpx.MockTransport(handler),
    )
    intent = await IntentService(llm).classify("ég held að þetta sé hún björk")
    assert intent.kind == INTENT_GUESS
    assert intent.text == "Björk"
    assert intent.source == SOURCE_LLM


async def test_model_failure_defaults_to_question():
    llm = LlmService(
        Settings(LLM_API_KEY="k", LLM_PROVIDER="openai", LLM_RETRY_DELAY_MAX=0),
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    intent = await IntentService(llm).classify("mig langar að vita meira um þessa manneskju")
    assert intent.kind == INTENT_QUESTION
    assert intent.source == SOURCE_DEFAULT
