"""
应用配置模块
"""

from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """应用设置"""

    # 基础设置
    APP_NAME: str = "Hver er maðurinn?"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # 服务器设置
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # 数据库设置
    DATABASE_URL: str = "sqlite:///./madurinn.db"

    # 轮次设置（每天一轮，按固定时区计算）
    ROUND_TIMEZONE: str = "Atlantic/Reykjavik"
    ROUND_OPEN_HOUR: int = 12
    ROUND_CLOSE_HOUR: int = 17
    MAX_QUESTIONS: int = 20

    # 外部语言模型设置
    LLM_PROVIDER: str = "gemini"  # gemini, openai, openai-compatible, kimi
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = ""
    LLM_MODEL: str = ""
    LLM_TIMEOUT: int = 20
    LLM_RETRY_DELAY_MAX: float = 5.0  # 429重试前最长等待（秒）

    # 管理员令牌
    ADMIN_TOKEN: str = "CHANGE_ME"
    CF_ADMIN_TOKEN: str = ""

    # 调试开关
    FORCE_ROUND_OPEN: bool = False
    DEV_RANDOM_ROUND_PER_SESSION: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True

# 全局设置实例
settings = Settings()
