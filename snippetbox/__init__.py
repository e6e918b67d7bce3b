"""Client core for the snippet service: token storage, authenticated requests, session state."""

from .auth_service import AuthService
from .client import ApiClient, RequestConfig
from .exceptions import (
    ApiError,
    ApiValidationError,
    AuthExpiredError,
    NetworkError,
    RefreshFailedError,
    ServerError,
    StorageUnavailableError,
)
from .models import Credential, Session, SessionStatus, User
from .refresh import RefreshCoordinator, RefreshState
from .session import SessionStore
from .snippet_service import SnippetService
from .storage import MemoryStorage, RedisStorage
from .token_store import TokenStore

__all__ = [
    "ApiClient",
    "ApiError",
    "ApiValidationError",
    "AuthExpiredError",
    "AuthService",
    "Credential",
    "MemoryStorage",
    "NetworkError",
    "RedisStorage",
    "RefreshCoordinator",
    "RefreshFailedError",
    "RefreshState",
    "RequestConfig",
    "ServerError",
    "Session",
    "SessionStatus",
    "SessionStore",
    "SnippetService",
    "StorageUnavailableError",
    "TokenStore",
    "User",
]
