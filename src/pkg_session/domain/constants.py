from enum import Enum


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class StorageTier(Enum):
    DURABLE = "durable"
    SESSION = "session"


class ResponseFormat(Enum):
    JSON = "json"
    TEXT = "text"


class CheckerPhase(Enum):
    ARMED = "armed"
    CHECKING = "checking"
    TERMINATED = "terminated"


class SessionEvent(Enum):
    RENEWED = "renewed"
    EXPIRED = "expired"
    ERROR = "error"


DEFAULT_ACCESS_KEY = "auth-key"
DEFAULT_REFRESH_KEY = "auth-key-refresh"

# Methods that carry a request body.
BODY_METHODS = frozenset({"POST", "PATCH"})
