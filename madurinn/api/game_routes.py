"""
游戏API路由
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from madurinn.core.database import get_db
from madurinn.core.errors import GameError
from madurinn.services.game_service import GameService
from madurinn.schemas.game_schemas import (
    CurrentRoundResponse,
    DebugRoundInfo,
    GuessRequest,
    GuessResponse,
    HintResponse,
    InputRequest,
    InputResponse,
    LeaderboardResponse,
    QuestionRequest,
    QuestionResponse,
    SessionRequest,
    SessionStateResponse,
    StartSessionRequest,
    StartSessionResponse,
    UsernameRequest,
    UsernameResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_game_service(db: Session = Depends(get_db)) -> GameService:
    return GameService(db)


def raise_http(e: GameError):
    raise HTTPException(status_code=e.status_code, detail=e.code)


@router.get("/round", response_model=CurrentRoundResponse)
async def get_round(game_service: GameService = Depends(get_game_service)):
    """获取当前轮次"""
    return await game_service.get_round()


@router.get("/debug/round/{round_id}", response_model=DebugRoundInfo)
async def get_debug_round(round_id: str, game_service: GameService = Depends(get_game_service)):
    """调试：查看轮次分配的人物"""
    return await game_service.get_debug_round_info(round_id)


@router.post("/session/start", response_model=StartSessionResponse)
async def start_session(
    request: StartSessionRequest,
    game_service: GameService = Depends(get_game_service)
):
    """开始（或继续）当前轮次的会话"""
    try:
        session = await game_service.start_session(
            device_id=request.device_id,
            randomize_round=request.randomize_round,
            fresh_device=request.fresh_device,
            force_round_open=request.force_round_open,
        )
        return StartSessionResponse(session=session)
    except GameError as e:
        raise_http(e)


@router.get("/session/{session_id}", response_model=SessionStateResponse)
async def get_session(session_id: str, game_service: GameService = Depends(get_game_service)):
    """获取会话状态和提问记录"""
    try:
        return await game_service.get_session_state(session_id)
    except GameError as e:
        raise_http(e)


@router.post("/question", response_model=QuestionResponse)
async def ask_question(
    request: QuestionRequest,
    game_service: GameService = Depends(get_game_service)
):
    """提问"""
    try:
        return await game_service.ask_question(request.session_id, request.question, request.force_round_open)
    except GameError as e:
        raise_http(e)


@router.post("/guess", response_model=GuessResponse)
async def submit_guess(
    request: GuessRequest,
    game_service: GameService = Depends(get_game_service)
):
    """猜测人物"""
    try:
        return await game_service.submit_guess(request.session_id, request.guess, request.force_round_open)
    except GameError as e:
        raise_http(e)


@router.post("/hint", response_model=HintResponse)
async def use_hint(
    request: SessionRequest,
    game_service: GameService = Depends(get_game_service)
):
    """使用提示"""
    try:
        return await game_service.use_hint(request.session_id, request.force_round_open)
    except GameError as e:
        raise_http(e)


@router.post("/input", response_model=InputResponse)
async def handle_input(
    request: InputRequest,
    game_service: GameService = Depends(get_game_service)
):
    """自由输入：自动识别提问、猜测或提示"""
    try:
        return await game_service.handle_input(request.session_id, request.input, request.force_round_open)
    except GameError as e:
        raise_http(e)


@router.get("/username", response_model=UsernameResponse)
async def get_username(
    device_id: str = Query(..., min_length=1, max_length=200),
    game_service: GameService = Depends(get_game_service)
):
    """获取设备的用户名"""
    return UsernameResponse(username=await game_service.get_username(device_id))


@router.post("/username", response_model=UsernameResponse)
async def set_username(
    request: UsernameRequest,
    game_service: GameService = Depends(get_game_service)
):
    """设置设备的用户名"""
    try:
        return UsernameResponse(username=await game_service.set_username(request.device_id, request.username))
    except GameError as e:
        raise_http(e)


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    round_id: Optional[str] = Query(None, max_length=10),
    game_service: GameService = Depends(get_game_service)
):
    """获取排行榜（默认当前轮次）"""
    try:
        return await game_service.get_leaderboard(round_id)
    except ValueError as e:
        logger.warning(f"⚠️ 无效的轮次ID: {round_id}: {e}")
        raise HTTPException(status_code=400, detail="INVALID_ROUND_ID")
