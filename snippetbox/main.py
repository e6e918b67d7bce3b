from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from .auth_service import AuthService
from .client import ApiClient
from .config import Settings, settings
from .session import SessionStore
from .snippet_service import SnippetService
from .storage import KeyValueStorage, RedisStorage, build_storage
from .token_store import TokenStore


@dataclass
class Runtime:
    tokens: TokenStore
    api: ApiClient
    auth: AuthService
    session: SessionStore
    snippets: SnippetService


def build_runtime(
    s: Settings = settings,
    storage: Optional[KeyValueStorage] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Runtime:
    tokens = TokenStore(storage if storage is not None else build_storage(s))
    api = ApiClient(s.API_BASE_URL, tokens, s.HTTP_TIMEOUT_SEC, transport=transport)
    auth = AuthService(api)
    return Runtime(
        tokens=tokens,
        api=api,
        auth=auth,
        session=SessionStore(auth, tokens, api.coordinator),
        snippets=SnippetService(api),
    )


@asynccontextmanager
async def open_runtime(
    s: Settings = settings,
    storage: Optional[KeyValueStorage] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    restore: bool = True,
) -> AsyncIterator[Runtime]:
    rt = build_runtime(s, storage, transport)
    try:
        if restore:
            await rt.session.initialize_auth()
        yield rt
    finally:
        await rt.api.aclose()
        if isinstance(rt.tokens.storage, RedisStorage):
            await rt.tokens.storage.aclose()
