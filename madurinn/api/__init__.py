"""
API路由模块
"""

from fastapi import APIRouter
from .game_routes import router as game_router
from .admin_routes import router as admin_router

# 创建主路由器
api_router = APIRouter()

# 注册各个功能模块的路由
api_router.include_router(game_router, prefix="/game", tags=["游戏"])
api_router.include_router(admin_router, prefix="/admin", tags=["管理后台"])
