"""
游戏错误定义

每个错误都带有稳定的错误码和对应的HTTP状态码，路由层直接转换为HTTPException。
"""


class GameError(ValueError):
    """游戏逻辑错误基类"""
    code = "GAME_ERROR"
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)


class SessionNotFound(GameError):
    code = "SESSION_NOT_FOUND"
    status_code = 404


class SessionRoundMismatch(GameError):
    code = "SESSION_ROUND_MISMATCH"
    status_code = 409


class RoundNotOpen(GameError):
    code = "ROUND_NOT_OPEN"
    status_code = 409


class AlreadySolved(GameError):
    code = "ALREADY_SOLVED"
    status_code = 409


class QuestionLimitReached(GameError):
    code = "QUESTION_LIMIT_REACHED"
    status_code = 409


class HintAlreadyUsed(GameError):
    code = "HINT_ALREADY_USED"
    status_code = 409


class UsernameTaken(GameError):
    code = "USERNAME_TAKEN"
    status_code = 409


class PersonNotFound(GameError):
    code = "PERSON_NOT_FOUND"
    status_code = 404


class PersonInUse(GameError):
    code = "PERSON_IN_USE"
    status_code = 409


class AdminTokenNotConfigured(GameError):
    code = "ADMIN_TOKEN_NOT_CONFIGURED"
    status_code = 503


class Unauthorized(GameError):
    code = "UNAUTHORIZED"
    status_code = 401
