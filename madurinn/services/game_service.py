"""
游戏管理服务

会话、提问、猜测、提示、自由输入、排行榜和用户名。
每个操作先校验轮次和会话状态，再追加事件记录并更新计数。
"""

import logging
import time
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from madurinn.core.config import Settings, settings as default_settings
from madurinn.core.errors import (
    AlreadySolved,
    HintAlreadyUsed,
    QuestionLimitReached,
    RoundNotOpen,
    SessionNotFound,
    SessionRoundMismatch,
    UsernameTaken,
)
from madurinn.core.utils import hash_device_id, normalize_username, random_id, to_ms, utcnow
from madurinn.models.device_session import DeviceSession
from madurinn.models.guess_event import GuessEvent
from madurinn.models.person import Person
from madurinn.models.question_event import QuestionEvent
from madurinn.models.round_model import Round
from madurinn.models.username import Username
from madurinn.schemas.game_schemas import (
    CurrentRoundResponse,
    DebugRoundInfo,
    GuessResponse,
    HintResponse,
    InputResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    QuestionLogEntry,
    QuestionResponse,
    RevealPerson,
    RoundDebug,
    RoundState,
    SessionInfo,
    SessionStateResponse,
)
from madurinn.services.answer_service import AnswerResult, answer_question_for_person
from madurinn.services.intent_service import INTENT_GUESS, INTENT_HINT, IntentService
from madurinn.services.llm_service import LlmService
from madurinn.services.person_service import PersonProfile, PersonService, is_correct_guess
from madurinn.services.round_service import (
    STATUS_CLOSED,
    STATUS_OPEN,
    RoundInfo,
    RoundOptions,
    get_current_round,
    random_round_id,
    round_window,
)

logger = logging.getLogger(__name__)


class GameService:
    """游戏管理服务"""

    def __init__(self, db: Session, llm_service: Optional[LlmService] = None,
                 app_settings: Optional[Settings] = None):
        self.db = db
        self.settings = app_settings or default_settings
        self.llm_service = llm_service or LlmService(self.settings)
        self.intent_service = IntentService(self.llm_service)
        self.person_service = PersonService(db)

    # ---- 轮次 ----

    def _force_open(self, requested: bool = False) -> bool:
        return bool(self.settings.FORCE_ROUND_OPEN or requested)

    def _round_options(self, force_open: bool = False, round_id_override: Optional[str] = None) -> RoundOptions:
        return RoundOptions(
            force_open=force_open,
            round_id_override=round_id_override,
            tz_name=self.settings.ROUND_TIMEZONE,
            open_hour=self.settings.ROUND_OPEN_HOUR,
            close_hour=self.settings.ROUND_CLOSE_HOUR,
            max_questions=self.settings.MAX_QUESTIONS,
        )

    def current_round(self, now: datetime, force_open: bool = False,
                      round_id_override: Optional[str] = None) -> RoundInfo:
        """计算当前轮次，并应用管理员在轮次表中设置的状态覆盖"""
        options = self._round_options(force_open, round_id_override)
        round_info = get_current_round(now, options)
        round_row = self.db.get(Round, round_info.id)
        if round_row and round_row.status_override:
            options.status_override = round_row.status_override
            round_info = get_current_round(now, options)
        return round_info

    def ensure_round(self, round_info: RoundInfo) -> Round:
        """轮次行不存在时写入（人物按哈希分配），已存在则保持不变"""
        round_row = self.db.get(Round, round_info.id)
        if round_row:
            return round_row

        self.person_service.ensure_default_persons()
        person = round_info.person
        round_row = Round(
            id=round_info.id,
            date_ymd=round_info.id,
            person_id=person.id,
            opens_at_utc=round_info.opens_at,
            closes_at_utc=round_info.closes_at,
            hint_text=person.hint_text,
        )
        self.db.add(round_row)
        try:
            self.db.commit()
        except IntegrityError:
            # 并发请求已经写入同一轮次
            self.db.rollback()
            round_row = self.db.get(Round, round_info.id)
        else:
            logger.info(f"📅 创建轮次 {round_info.id}，人物: {person.id}")
        return round_row

    def debug_allowed(self) -> bool:
        return bool(self.settings.FORCE_ROUND_OPEN or self.settings.DEV_RANDOM_ROUND_PER_SESSION)

    async def get_round(self, now: Optional[datetime] = None) -> CurrentRoundResponse:
        """获取当前轮次信息；轮次关闭后揭晓人物"""
        now = now or utcnow()
        force_open = self._force_open()
        round_info = self.current_round(now, force_open)
        person = self.person_service.resolve_person_for_round(round_info.id)
        expose = self.debug_allowed()

        return CurrentRoundResponse(
            round=RoundState(
                id=round_info.id,
                ymd=round_info.ymd,
                status=round_info.status,
                opens_at=round_info.opens_at,
                closes_at=round_info.closes_at,
                countdown_ms=round_info.countdown_ms,
                max_questions=round_info.max_questions,
            ),
            debug=RoundDebug(
                force_round_open=self.settings.FORCE_ROUND_OPEN,
                dev_random_round_per_session=self.settings.DEV_RANDOM_ROUND_PER_SESSION,
                current_person_id=person.id if expose else None,
                current_person_name=person.display_name if expose else None,
            ),
            reveal_person=RevealPerson(**person.reveal()) if round_info.status == STATUS_CLOSED else None,
        )

    async def get_debug_round_info(self, round_id: str) -> DebugRoundInfo:
        """调试：查看某一轮次分配的人物（仅在调试开关打开时返回）"""
        if not self.debug_allowed():
            return DebugRoundInfo(round_id=round_id)

        round_row = self.db.get(Round, round_id)
        if round_row:
            person_row = self.db.get(Person, round_row.person_id)
            return DebugRoundInfo(
                round_id=round_id,
                person_id=round_row.person_id,
                person_name=person_row.display_name if person_row else None,
            )

        person = self.person_service.resolve_person_for_round(round_id)
        return DebugRoundInfo(round_id=round_id, person_id=person.id, person_name=person.display_name)

    # ---- 会话 ----

    async def start_session(self, device_id: Optional[str] = None, randomize_round: bool = False,
                            fresh_device: bool = False, force_round_open: bool = False,
                            now: Optional[datetime] = None) -> SessionInfo:
        """开始（或继续）设备在当前轮次的会话"""
        now = now or utcnow()
        if fresh_device or not (device_id or "").strip():
            device_id = f"anon-{random_id()}"
        device_id = device_id.strip()

        round_id_override = None
        if randomize_round or self.settings.DEV_RANDOM_ROUND_PER_SESSION:
            round_id_override = random_round_id()

        round_info = self.current_round(now, self._force_open(force_round_open), round_id_override)
        self.ensure_round(round_info)
        device_id_hash = hash_device_id(device_id)

        existing = self._find_session(round_info.id, device_id_hash)
        if existing:
            return SessionInfo.model_validate(existing)

        session = DeviceSession(
            id=random_id(),
            device_id_hash=device_id_hash,
            round_id=round_info.id,
            started_at=now,
            question_count=0,
            hint_used=False,
            solved=False,
        )
        self.db.add(session)
        try:
            self.db.commit()
        except IntegrityError:
            # 同一设备并发开始会话，以先写入的为准
            self.db.rollback()
            session = self._find_session(round_info.id, device_id_hash)
        else:
            self.db.refresh(session)
            logger.info(f"🎮 新会话 {session.id}（轮次 {round_info.id}）")

        return SessionInfo.model_validate(session)

    def _find_session(self, round_id: str, device_id_hash: str) -> Optional[DeviceSession]:
        return self.db.query(DeviceSession).filter(
            DeviceSession.round_id == round_id,
            DeviceSession.device_id_hash == device_id_hash
        ).first()

    def _load_session(self, session_id: str) -> DeviceSession:
        session = self.db.get(DeviceSession, session_id)
        if not session:
            raise SessionNotFound(f"会话 {session_id} 不存在")
        return session

    def _check_round(self, session: DeviceSession, now: datetime, force_open: bool) -> RoundInfo:
        round_info = self.current_round(now, force_open)
        if not force_open and session.round_id != round_info.id:
            raise SessionRoundMismatch(f"会话属于轮次 {session.round_id}，当前轮次为 {round_info.id}")
        return round_info

    def _remaining(self, question_count: int) -> int:
        return max(0, self.settings.MAX_QUESTIONS - question_count)

    async def get_session_state(self, session_id: str) -> SessionStateResponse:
        """获取会话状态和提问记录"""
        session = self._load_session(session_id)
        events = self.db.query(QuestionEvent).filter(
            QuestionEvent.session_id == session_id
        ).order_by(QuestionEvent.created_at, QuestionEvent.id).all()

        return SessionStateResponse(
            session=SessionInfo.model_validate(session),
            questions=[
                QuestionLogEntry(
                    question=event.question_text,
                    answer_label=event.answer_label,
                    answer_text=event.answer_text,
                    created_at=event.created_at,
                )
                for event in events
            ],
            remaining=self._remaining(session.question_count),
        )

    # ---- 提问 / 猜测 / 提示 ----

    async def _resolve_answer(self, question: str, person: PersonProfile) -> AnswerResult:
        """优先使用外部模型；未配置或失败时使用关键词启发式"""
        if self.llm_service.enabled:
            try:
                result = await self.llm_service.answer_question(question, person)
            except Exception as e:
                logger.error(f"❌ 外部模型回答异常: {type(e).__name__}: {e}")
                result = None
            if result:
                return result
            logger.info("🔄 外部模型不可用，使用启发式回答")
        return answer_question_for_person(question, person)

    async def ask_question(self, session_id: str, question: str, force_round_open: bool = False,
                           now: Optional[datetime] = None) -> QuestionResponse:
        """提问：轮次开放、未猜中且问题数未用完时才接受"""
        now = now or utcnow()
        force_open = self._force_open(force_round_open)
        session = self._load_session(session_id)
        round_info = self._check_round(session, now, force_open)

        if round_info.status != STATUS_OPEN:
            raise RoundNotOpen(f"轮次 {round_info.id} 当前状态为 {round_info.status}")
        if session.solved:
            raise AlreadySolved("本轮已经猜中")
        if session.question_count >= self.settings.MAX_QUESTIONS:
            raise QuestionLimitReached(f"最多只能提问 {self.settings.MAX_QUESTIONS} 次")

        person = self.person_service.resolve_person_for_round(session.round_id)
        started = time.monotonic()
        answer = await self._resolve_answer(question, person)
        latency_ms = int((time.monotonic() - started) * 1000)

        # 计数在数据库中条件递增，并发请求也不会超过上限
        claimed = self.db.query(DeviceSession).filter(
            DeviceSession.id == session.id,
            DeviceSession.solved.is_(False),
            DeviceSession.question_count < self.settings.MAX_QUESTIONS
        ).update(
            {DeviceSession.question_count: DeviceSession.question_count + 1},
            synchronize_session=False
        )
        if not claimed:
            self.db.rollback()
            self.db.refresh(session)
            logger.warning(f"⚠️ 会话 {session.id} 的提问被并发请求抢先，已丢弃")
            if session.solved:
                raise AlreadySolved("本轮已经猜中")
            raise QuestionLimitReached(f"最多只能提问 {self.settings.MAX_QUESTIONS} 次")

        self.db.add(QuestionEvent(
            round_id=session.round_id,
            session_id=session.id,
            question_text=question,
            answer_label=answer.answer_label,
            answer_text=answer.answer_text,
            answer_source=answer.source,
            latency_ms=latency_ms,
            created_at=now,
        ))
        self.db.commit()
        self.db.refresh(session)

        return QuestionResponse(
            answer_label=answer.answer_label,
            answer_text=answer.answer_text,
            question_count=session.question_count,
            remaining=self._remaining(session.question_count),
        )

    async def submit_guess(self, session_id: str, guess: str, force_round_open: bool = False,
                           now: Optional[datetime] = None) -> GuessResponse:
        """猜测：轮次关闭后只有已猜中的会话还能提交"""
        now = now or utcnow()
        force_open = self._force_open(force_round_open)
        session = self._load_session(session_id)
        round_info = self._check_round(session, now, force_open)

        if round_info.status != STATUS_OPEN and not session.solved:
            raise RoundNotOpen(f"轮次 {round_info.id} 当前状态为 {round_info.status}")

        person = self.person_service.resolve_person_for_round(session.round_id)
        correct = is_correct_guess(guess, person)

        if correct and not session.solved:
            session.solved = True
            session.solved_at = now
            session.solve_question_index = session.question_count
            logger.info(f"🎉 会话 {session.id} 猜中（{session.question_count} 个问题）")

        self.db.add(GuessEvent(
            round_id=session.round_id,
            session_id=session.id,
            guess_text=guess,
            is_correct=correct,
            created_at=now,
        ))
        self.db.commit()

        reveal = session.solved or round_info.status == STATUS_CLOSED
        return GuessResponse(
            correct=correct,
            solved=session.solved,
            reveal=reveal,
            reveal_person=RevealPerson(**person.reveal()) if reveal else None,
            solved_at=session.solved_at,
        )

    async def use_hint(self, session_id: str, force_round_open: bool = False,
                       now: Optional[datetime] = None) -> HintResponse:
        """提示：每个会话只能使用一次"""
        now = now or utcnow()
        force_open = self._force_open(force_round_open)
        session = self._load_session(session_id)
        round_info = self._check_round(session, now, force_open)

        if round_info.status != STATUS_OPEN:
            raise RoundNotOpen(f"轮次 {round_info.id} 当前状态为 {round_info.status}")
        if session.hint_used:
            raise HintAlreadyUsed("提示已经使用过")

        session.hint_used = True
        self.db.commit()

        person = self.person_service.resolve_person_for_round(session.round_id)
        return HintResponse(hint=person.hint_text, hint_used=True)

    async def handle_input(self, session_id: str, text: str, force_round_open: bool = False,
                           now: Optional[datetime] = None) -> InputResponse:
        """识别自由输入的意图并分发到提问/猜测/提示"""
        now = now or utcnow()
        intent = await self.intent_service.classify(text)
        logger.debug(f"🧭 输入意图: {intent.kind}（{intent.source}）")

        if intent.kind == INTENT_HINT:
            hint = await self.use_hint(session_id, force_round_open, now)
            return InputResponse(kind=INTENT_HINT, hint=hint.hint, answer_text="Vísbending móttekin.")

        if intent.kind == INTENT_GUESS:
            result = await self.submit_guess(session_id, intent.text, force_round_open, now)
            return InputResponse(
                kind=INTENT_GUESS,
                correct=result.correct,
                solved=result.solved,
                reveal_person=result.reveal_person,
                answer_text="" if result.correct else "Nei.",
            )

        result = await self.ask_question(session_id, intent.text, force_round_open, now)
        return InputResponse(
            kind="question",
            answer_label=result.answer_label,
            answer_text=result.answer_text,
            question_count=result.question_count,
            remaining=result.remaining,
        )

    # ---- 排行榜 ----

    async def get_leaderboard(self, round_id: Optional[str] = None,
                              now: Optional[datetime] = None) -> LeaderboardResponse:
        """按 (问题数, 用时, 距开放时间, 猜中时间) 排序，相同成绩名次相同"""
        now = now or utcnow()
        if not round_id:
            round_id = self.current_round(now, self._force_open()).id

        round_row = self.db.get(Round, round_id)
        opens_at = round_row.opens_at_utc if round_row else round_window(round_id, self._round_options())[0]

        rows = self.db.query(DeviceSession, Username.username).outerjoin(
            Username, Username.device_id_hash == DeviceSession.device_id_hash
        ).filter(
            DeviceSession.round_id == round_id,
            DeviceSession.solved.is_(True),
            DeviceSession.solved_at.isnot(None)
        ).all()

        ranked = rank_leaderboard([
            {
                "session_id": session.id,
                "username": username,
                "questions_used": session.question_count,
                "time_from_start_ms": to_ms(session.solved_at) - to_ms(session.started_at),
                "time_from_open_ms": to_ms(session.solved_at) - to_ms(opens_at),
                "solved_at": session.solved_at,
            }
            for session, username in rows
        ])
        return LeaderboardResponse(round_id=round_id, leaderboard=ranked)

    # ---- 用户名 ----

    async def get_username(self, device_id: str) -> Optional[str]:
        row = self.db.get(Username, hash_device_id(device_id.strip()))
        return row.username if row else None

    async def set_username(self, device_id: str, username: str) -> str:
        """设置用户名；规范化后的用户名已属于其他设备时报错"""
        username = username.strip()
        username_normalized = normalize_username(username)
        device_id_hash = hash_device_id(device_id.strip())

        existing_by_name = self.db.query(Username).filter(
            Username.username_normalized == username_normalized
        ).first()
        if existing_by_name and existing_by_name.device_id_hash != device_id_hash:
            raise UsernameTaken(f"用户名 {username} 已被使用")

        row = self.db.get(Username, device_id_hash)
        if row:
            row.username = username
            row.username_normalized = username_normalized
            row.updated_at = utcnow()
        else:
            self.db.add(Username(
                device_id_hash=device_id_hash,
                username=username,
                username_normalized=username_normalized,
            ))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise UsernameTaken(f"用户名 {username} 已被使用")
        return username


def rank_leaderboard(rows: List[dict]) -> List[LeaderboardEntry]:
    """排序并分配名次（排序键完全相同的记录名次相同）"""
    def sort_key(row: dict):
        return (row["questions_used"], row["time_from_start_ms"], row["time_from_open_ms"], row["solved_at"])

    entries = []
    rank = 0
    previous_key = None
    for row in sorted(rows, key=lambda r: (sort_key(r), r["session_id"])):
        key = sort_key(row)
        if key != previous_key:
            rank += 1
            previous_key = key
        entries.append(LeaderboardEntry(rank=rank, **row))
    return entries
