"""
管理后台API路由（Bearer令牌保护）
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from madurinn.core.database import get_db
from madurinn.core.errors import GameError
from madurinn.services.admin_service import AdminService, verify_admin_token
from madurinn.schemas.admin_schemas import (
    PersonCreate,
    PersonResponse,
    PersonUpdate,
    RoundAssign,
    RoundAssignment,
    SubmissionEntry,
)

bearer_scheme = HTTPBearer(auto_error=False)


def require_admin(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)):
    """校验 Authorization: Bearer <token>"""
    try:
        verify_admin_token(credentials.credentials if credentials else None)
    except GameError as e:
        raise HTTPException(status_code=e.status_code, detail=e.code)


router = APIRouter(dependencies=[Depends(require_admin)])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    return AdminService(db)


def raise_http(e: GameError):
    raise HTTPException(status_code=e.status_code, detail=e.code)


@router.get("/persons", response_model=List[PersonResponse])
async def list_persons(admin_service: AdminService = Depends(get_admin_service)):
    """人物列表（最新在前）"""
    return await admin_service.list_persons()


@router.post("/persons", response_model=PersonResponse)
async def create_person(
    person_data: PersonCreate,
    admin_service: AdminService = Depends(get_admin_service)
):
    """创建人物"""
    return await admin_service.create_person(person_data)


@router.patch("/persons/{person_id}", response_model=PersonResponse)
async def update_person(
    person_id: str,
    person_data: PersonUpdate,
    admin_service: AdminService = Depends(get_admin_service)
):
    """更新人物"""
    try:
        return await admin_service.update_person(person_id, person_data)
    except GameError as e:
        raise_http(e)


@router.delete("/persons/{person_id}")
async def delete_person(person_id: str, admin_service: AdminService = Depends(get_admin_service)):
    """删除人物"""
    try:
        await admin_service.delete_person(person_id)
        return {"message": "人物已删除", "person_id": person_id}
    except GameError as e:
        raise_http(e)


@router.get("/rounds/{round_id}", response_model=RoundAssignment)
async def get_round(round_id: str, admin_service: AdminService = Depends(get_admin_service)):
    """查看轮次的人物分配"""
    try:
        return await admin_service.get_round(round_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="INVALID_ROUND_ID")


@router.put("/rounds/{round_id}", response_model=RoundAssignment)
async def assign_round(
    round_id: str,
    assign_data: RoundAssign,
    admin_service: AdminService = Depends(get_admin_service)
):
    """为轮次指定人物"""
    try:
        return await admin_service.assign_round(round_id, assign_data)
    except GameError as e:
        raise_http(e)
    except ValueError:
        raise HTTPException(status_code=400, detail="INVALID_ROUND_ID")


@router.get("/submissions", response_model=List[SubmissionEntry])
async def list_submissions(
    round_id: Optional[str] = None,
    flagged_only: bool = False,
    limit: int = Query(200, ge=1, le=1000),
    admin_service: AdminService = Depends(get_admin_service)
):
    """玩家提交记录审查"""
    return await admin_service.list_submissions(round_id=round_id, flagged_only=flagged_only, limit=limit)
