"""
测试公共夹具：内存SQLite数据库、独立的设置对象和TestClient
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from madurinn.core.config import Settings, settings
from madurinn.core.database import Base, get_db
from madurinn.main import app
from madurinn.models.person import Person  # noqa: F401
from madurinn.models.round_model import Round  # noqa: F401
from madurinn.models.device_session import DeviceSession  # noqa: F401
from madurinn.models.question_event import QuestionEvent  # noqa: F401
from madurinn.models.guess_event import GuessEvent  # noqa: F401
from madurinn.models.username import Username  # noqa: F401
from madurinn.services.game_service import GameService
from madurinn.services.llm_service import LlmService
from madurinn.services.person_service import PersonService

# Reykjavik 全年UTC+0，本地12:00-17:00即UTC 12:00-17:00
ROUND_ID = "2025-03-10"
BEFORE_OPEN = datetime(2025, 3, 10, 11, 0)
OPEN = datetime(2025, 3, 10, 13, 0)
AFTER_CLOSE = datetime(2025, 3, 10, 18, 0)
NEXT_DAY_OPEN = datetime(2025, 3, 11, 13, 0)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """全局设置恢复为不依赖环境的默认值"""
    monkeypatch.setattr(settings, "LLM_API_KEY", "")
    monkeypatch.setattr(settings, "FORCE_ROUND_OPEN", False)
    monkeypatch.setattr(settings, "DEV_RANDOM_ROUND_PER_SESSION", False)
    monkeypatch.setattr(settings, "ADMIN_TOKEN", "CHANGE_ME")
    monkeypatch.setattr(settings, "CF_ADMIN_TOKEN", "")
    monkeypatch.setattr(settings, "MAX_QUESTIONS", 20)
    return settings


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    db = session_factory()
    PersonService(db).ensure_default_persons()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def test_settings():
    return Settings(
        LLM_API_KEY="",
        FORCE_ROUND_OPEN=False,
        DEV_RANDOM_ROUND_PER_SESSION=False,
        MAX_QUESTIONS=20,
        LLM_RETRY_DELAY_MAX=0,
    )


@pytest.fixture
def game_service(db, test_settings):
    return GameService(db, llm_service=LlmService(test_settings), app_settings=test_settings)


@pytest.fixture
def client(db, session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
