# 业务逻辑服务包
from .game_service import GameService
from .admin_service import AdminService
from .llm_service import LlmService
from .intent_service import IntentService
from .person_service import PersonService

__all__ = ["GameService", "AdminService", "LlmService", "IntentService", "PersonService"]
