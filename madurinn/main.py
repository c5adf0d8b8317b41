#!/usr/bin/env python3
"""
Hver er maðurinn? - 后端主入口
"""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from madurinn.core.config import settings
from madurinn.api import api_router
from madurinn.core.database import init_db

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="每日猜人物游戏后端API",
    version=settings.VERSION
)

# CORS设置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册API路由
app.include_router(api_router, prefix="/api")

@app.on_event("startup")
async def startup_event():
    """应用启动时的初始化"""
    logger.info(f"🚀 启动 {settings.APP_NAME} 后端服务...")
    init_db()
    if settings.FORCE_ROUND_OPEN or settings.DEV_RANDOM_ROUND_PER_SESSION:
        logger.warning("⚠️ 调试开关已打开：FORCE_ROUND_OPEN=%s DEV_RANDOM_ROUND_PER_SESSION=%s",
                       settings.FORCE_ROUND_OPEN, settings.DEV_RANDOM_ROUND_PER_SESSION)

@app.get("/")
async def root():
    """根路径健康检查"""
    return {"message": f"{settings.APP_NAME} 后端运行中", "status": "healthy"}

@app.get("/health")
async def health_check():
    """健康检查端点"""
    return {"status": "healthy", "service": "hver-er-madurinn"}

if __name__ == "__main__":
    uvicorn.run(
        "madurinn.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
