"""
数据库配置
"""
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from madurinn.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
    echo=False  # 设置为True可以看到SQL查询日志
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    """初始化数据库：建表并写入默认人物"""
    # 导入所有模型
    from madurinn.models.person import Person
    from madurinn.models.round_model import Round
    from madurinn.models.device_session import DeviceSession
    from madurinn.models.question_event import QuestionEvent
    from madurinn.models.guess_event import GuessEvent
    from madurinn.models.username import Username
    from madurinn.services.person_service import PersonService

    # 创建所有表
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        inserted = PersonService(db).ensure_default_persons()
        if inserted:
            logger.info(f"📦 已写入 {inserted} 个默认人物")
    finally:
        db.close()

    logger.info("✅ 数据库初始化完成")
