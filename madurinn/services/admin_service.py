"""
管理后台服务

人物增删改查、轮次人物分配以及玩家提交记录审查。
"""

import logging
import re
import secrets
from typing import List, Optional

from sqlalchemy.orm import Session

from madurinn.core.config import Settings, settings as default_settings
from madurinn.core.errors import AdminTokenNotConfigured, PersonInUse, PersonNotFound, Unauthorized
from madurinn.core.utils import normalize, random_id
from madurinn.models.guess_event import GuessEvent
from madurinn.models.person import Person
from madurinn.models.question_event import QuestionEvent
from madurinn.models.round_model import Round
from madurinn.schemas.admin_schemas import (
    MAX_ALIASES,
    PersonCreate,
    PersonResponse,
    PersonUpdate,
    RoundAssign,
    RoundAssignment,
    SubmissionEntry,
)
from madurinn.services.round_service import round_window

logger = logging.getLogger(__name__)

PLACEHOLDER_ADMIN_TOKEN = "CHANGE_ME"
MAX_PERSONS_LISTED = 200


def configured_admin_token(app_settings: Optional[Settings] = None) -> Optional[str]:
    """优先使用 CF_ADMIN_TOKEN；ADMIN_TOKEN 为占位值时视为未配置"""
    app_settings = app_settings or default_settings
    if app_settings.CF_ADMIN_TOKEN.strip():
        return app_settings.CF_ADMIN_TOKEN.strip()
    token = app_settings.ADMIN_TOKEN.strip()
    if token and token != PLACEHOLDER_ADMIN_TOKEN:
        return token
    return None


def verify_admin_token(provided: Optional[str], app_settings: Optional[Settings] = None) -> None:
    expected = configured_admin_token(app_settings)
    if expected is None:
        raise AdminTokenNotConfigured("未配置管理员令牌")
    if not provided or not secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise Unauthorized("管理员令牌无效")


def slugify(name: str) -> str:
    return re.sub(r"[\s-]+", "-", normalize(name)).strip("-") or "person"


def clean_list(values: Optional[List[str]], limit: Optional[int] = None) -> List[str]:
    """去空、去重（保持顺序），可选截断"""
    result = []
    for value in values or []:
        value = value.strip()
        if value and value not in result:
            result.append(value)
    return result[:limit] if limit else result


class AdminService:
    """管理后台服务"""

    def __init__(self, db: Session):
        self.db = db

    # ---- 人物 ----

    async def list_persons(self) -> List[PersonResponse]:
        persons = self.db.query(Person).order_by(
            Person.created_at.desc()
        ).limit(MAX_PERSONS_LISTED).all()
        return [PersonResponse.model_validate(person) for person in persons]

    async def create_person(self, person_data: PersonCreate) -> PersonResponse:
        """创建人物，slug 由名字和ID前缀组成"""
        person_id = random_id()
        person = Person(
            id=person_id,
            display_name=person_data.display_name,
            slug=f"{slugify(person_data.display_name)}-{person_id[:8]}",
            reveal_text=person_data.reveal_text,
            image_url=person_data.image_url,
            aliases=clean_list(person_data.aliases, MAX_ALIASES),
            hint_text=person_data.hint_text,
            yes_keywords=clean_list(person_data.yes_keywords),
            no_keywords=clean_list(person_data.no_keywords),
            is_icelander=person_data.is_icelander,
        )
        self.db.add(person)
        self.db.commit()
        self.db.refresh(person)

        logger.info(f"👤 创建人物 {person.display_name} ({person.id})")
        return PersonResponse.model_validate(person)

    async def update_person(self, person_id: str, person_data: PersonUpdate) -> PersonResponse:
        person = self.db.get(Person, person_id)
        if not person:
            raise PersonNotFound(f"人物 {person_id} 不存在")

        update_data = person_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if field == "aliases":
                value = clean_list(value, MAX_ALIASES)
            elif field in ("yes_keywords", "no_keywords"):
                value = clean_list(value)
            elif value is None and field in ("display_name", "reveal_text", "is_icelander"):
                continue
            setattr(person, field, value)

        self.db.commit()
        self.db.refresh(person)
        return PersonResponse.model_validate(person)

    async def delete_person(self, person_id: str) -> None:
        """删除人物；已被分配到轮次的人物不能删除"""
        person = self.db.get(Person, person_id)
        if not person:
            raise PersonNotFound(f"人物 {person_id} 不存在")

        in_use = self.db.query(Round).filter(Round.person_id == person_id).first()
        if in_use:
            raise PersonInUse(f"人物 {person_id} 已分配到轮次 {in_use.id}")

        self.db.delete(person)
        self.db.commit()
        logger.info(f"🗑️ 删除人物 {person_id}")

    # ---- 轮次 ----

    def _assignment(self, round_id: str, round_row: Optional[Round]) -> RoundAssignment:
        if not round_row:
            opens_at, closes_at = round_window(round_id)
            return RoundAssignment(round_id=round_id, opens_at=opens_at, closes_at=closes_at)

        person = self.db.get(Person, round_row.person_id)
        return RoundAssignment(
            round_id=round_id,
            person_id=round_row.person_id,
            person_name=person.display_name if person else None,
            hint_text=round_row.hint_text,
            status_override=round_row.status_override,
            opens_at=round_row.opens_at_utc,
            closes_at=round_row.closes_at_utc,
            assigned=True,
        )

    async def get_round(self, round_id: str) -> RoundAssignment:
        return self._assignment(round_id, self.db.get(Round, round_id))

    async def assign_round(self, round_id: str, assign_data: RoundAssign) -> RoundAssignment:
        """为轮次指定人物（不存在则创建轮次）"""
        if not self.db.get(Person, assign_data.person_id):
            raise PersonNotFound(f"人物 {assign_data.person_id} 不存在")

        # 空提示视为未设置，使用人物默认提示
        hint_text = assign_data.hint_text or None
        round_row = self.db.get(Round, round_id)
        if round_row:
            round_row.person_id = assign_data.person_id
            round_row.hint_text = hint_text
            round_row.status_override = assign_data.status_override
        else:
            opens_at, closes_at = round_window(round_id)
            round_row = Round(
                id=round_id,
                date_ymd=round_id,
                person_id=assign_data.person_id,
                opens_at_utc=opens_at,
                closes_at_utc=closes_at,
                hint_text=hint_text,
                status_override=assign_data.status_override,
            )
            self.db.add(round_row)

        self.db.commit()
        logger.info(f"📅 轮次 {round_id} 分配人物 {assign_data.person_id}")
        return self._assignment(round_id, round_row)

    # ---- 提交记录 ----

    async def list_submissions(self, round_id: Optional[str] = None, flagged_only: bool = False,
                               limit: int = 200) -> List[SubmissionEntry]:
        """提问和猜测记录，按时间倒序；flagged_only 时只返回回答为 unknown 的提问"""
        questions = self.db.query(QuestionEvent)
        if round_id:
            questions = questions.filter(QuestionEvent.round_id == round_id)
        if flagged_only:
            questions = questions.filter(QuestionEvent.answer_label == "unknown")

        entries = [
            SubmissionEntry(
                kind="question",
                id=event.id,
                round_id=event.round_id,
                session_id=event.session_id,
                text=event.question_text,
                answer_label=event.answer_label,
                answer_text=event.answer_text,
                answer_source=event.answer_source,
                latency_ms=event.latency_ms,
                created_at=event.created_at,
            )
            for event in questions.order_by(QuestionEvent.created_at.desc()).limit(limit).all()
        ]

        if not flagged_only:
            guesses = self.db.query(GuessEvent)
            if round_id:
                guesses = guesses.filter(GuessEvent.round_id == round_id)
            entries.extend(
                SubmissionEntry(
                    kind="guess",
                    id=event.id,
                    round_id=event.round_id,
                    session_id=event.session_id,
                    text=event.guess_text,
                    is_correct=event.is_correct,
                    created_at=event.created_at,
                )
                for event in guesses.order_by(GuessEvent.created_at.desc()).limit(limit).all()
            )

        entries.sort(key=lambda entry: entry.created_at, reverse=True)
        return entries[:limit]
