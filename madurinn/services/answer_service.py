"""
问题回答服务

关键词启发式回答，以及对外部模型回答的事后过滤（未被问到时不透露性别和生死状态）。
"""

import re
from dataclasses import dataclass
from typing import Set

from madurinn.core.utils import normalize
from madurinn.services.person_service import PersonProfile, accepted_names

ANSWER_LABELS = ("yes", "no", "unknown", "probably_yes", "probably_no")

SOURCE_HEURISTIC = "heuristic"
SOURCE_LLM = "llm"


@dataclass
class AnswerResult:
    """一次回答"""
    answer_label: str
    answer_text: str
    source: str = SOURCE_HEURISTIC


# 只做整词匹配，避免 "manneskja" 命中 "man" 之类的误判
GENDER_QUESTION_TERMS = {
    "kona", "karl", "karlmadur", "kvenmadur", "karlkyn", "kvenkyn", "kk", "kvk",
    "male", "female", "woman", "boy", "girl", "hann", "hun", "stelpa", "drengur",
}
GENDER_QUESTION_PHRASES = ("hvada kyn", "hvada kyni", "what gender", "is he", "is she")

GENDER_DISCLOSURE_TERMS = GENDER_QUESTION_TERMS | {
    "he", "she", "his", "her", "him", "kvenkyns", "karlkyns", "konan", "karlinn", "tonlistarkona",
}

LIFE_STATUS_QUESTION_TERMS = {
    "lifandi", "lifir", "latin", "latinn", "dain", "dainn", "lest",
    "alive", "dead", "died", "deceased", "living",
}
LIFE_STATUS_QUESTION_PHRASES = ("enn a lifi", "a lifi", "still alive", "enn til")

LIFE_STATUS_DISCLOSURE_TERMS = LIFE_STATUS_QUESTION_TERMS | {"fallin", "fallinn", "passed"}


def _tokens(text: str) -> Set[str]:
    return set(normalize(text).split())


def is_gender_question(question: str) -> bool:
    q = normalize(question)
    if _tokens(question) & GENDER_QUESTION_TERMS:
        return True
    return any(phrase in q for phrase in GENDER_QUESTION_PHRASES)


def is_life_status_question(question: str) -> bool:
    q = normalize(question)
    if _tokens(question) & LIFE_STATUS_QUESTION_TERMS:
        return True
    return any(phrase in q for phrase in LIFE_STATUS_QUESTION_PHRASES)


def discloses_gender(answer_text: str) -> bool:
    t = normalize(answer_text)
    return bool(_tokens(answer_text) & GENDER_DISCLOSURE_TERMS) or "kyn" in t or "gender" in t


def discloses_life_status(answer_text: str) -> bool:
    return bool(_tokens(answer_text) & LIFE_STATUS_DISCLOSURE_TERMS)


def short_answer_from_label(label: str) -> str:
    return {
        "yes": "Já.",
        "no": "Nei.",
        "probably_yes": "Líklega já.",
        "probably_no": "Líklega nei.",
    }.get(label, "Ekki viss.")


def normalize_label(value: str) -> str:
    v = str(value).strip().lower()
    if v in ("yes", "já", "ja"):
        return "yes"
    if v in ("no", "nei"):
        return "no"
    if v in ("probably_yes", "probably_no"):
        return v
    return "unknown"


def normalize_answer_text(answer_label: str, raw_text: str) -> str:
    """只保留第一句，最长90字符，并保证以标点结尾"""
    cleaned = re.sub(r"\s+", " ", raw_text or "").strip()
    first_sentence = re.split(r"[.!?]\s", cleaned)[0].strip()
    candidate = first_sentence or cleaned
    if not candidate:
        return short_answer_from_label(answer_label)

    clipped = candidate if len(candidate) <= 90 else candidate[:89] + "…"
    return clipped if re.search(r"[.!?…]$", clipped) else clipped + "."


def filter_disclosures(question: str, answer: AnswerResult) -> AnswerResult:
    """外部模型的回答如果透露了没被问到的性别或生死信息，改用简短的标签回答"""
    leaks_gender = discloses_gender(answer.answer_text) and not is_gender_question(question)
    leaks_life = discloses_life_status(answer.answer_text) and not is_life_status_question(question)
    if leaks_gender or leaks_life:
        return AnswerResult(
            answer_label=answer.answer_label,
            answer_text=short_answer_from_label(answer.answer_label),
            source=answer.source,
        )
    return answer


def answer_question_for_person(question: str, person: PersonProfile) -> AnswerResult:
    """关键词启发式回答"""
    q = normalize(question)

    if any(name in q for name in accepted_names(person)):
        return AnswerResult("unknown", "Ég get ekki staðfest nafn beint. Prófaðu frekar eiginleika eða hlutverk.")
    if any(normalize(k) and normalize(k) in q for k in person.yes_keywords):
        return AnswerResult("yes", "Já, það passar.")
    if any(normalize(k) and normalize(k) in q for k in person.no_keywords):
        return AnswerResult("no", "Nei, það passar ekki.")
    if len(q) < 8:
        return AnswerResult("unknown", "Geturðu orðað þetta aðeins nánar?")
    return AnswerResult("unknown", "Ég er ekki viss, geturðu spurt aðeins skýrar?")
