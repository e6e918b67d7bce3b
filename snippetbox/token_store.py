from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .exceptions import StorageUnavailableError
from .models import Credential
from .storage import KeyValueStorage, MemoryStorage

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
REFRESH_TOKEN_KEY = "refreshToken"

CredentialListener = Callable[[Optional[Credential]], None]


class TokenStore:
    """Current access/refresh pair on top of a key-value storage.

    Storage failures never escape: the store logs a warning and keeps going
    in memory for the rest of the process lifetime.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._listeners: List[CredentialListener] = []
        self._degraded = False
        # last value seen in storage, carried over when storage goes away
        self._last: Optional[Credential] = None
        # bumped before every clear so an in-flight refresh can tell it was logged out
        self.clear_count = 0

    @property
    def degraded(self) -> bool:
        return self._degraded

    def _degrade(self, err: StorageUnavailableError) -> None:
        if self._degraded:
            return
        logger.warning("token storage unavailable, keeping tokens in memory only: %s", err)
        fallback = MemoryStorage()
        if self._last is not None:
            fallback.data[TOKEN_KEY] = self._last.access_token
            fallback.data[REFRESH_TOKEN_KEY] = self._last.refresh_token
        self.storage = fallback
        self._degraded = True

    async def get(self) -> Optional[Credential]:
        try:
            access = await self.storage.get(TOKEN_KEY)
            refresh = await self.storage.get(REFRESH_TOKEN_KEY)
        except StorageUnavailableError as e:
            self._degrade(e)
            return self._last
        if not access or not refresh:
            self._last = None
            return None
        cred = Credential(access_token=access, refresh_token=refresh)
        self._last = cred
        return cred

    async def set(self, credential: Credential) -> None:
        self._last = credential
        try:
            await self.storage.set_many(
                {TOKEN_KEY: credential.access_token, REFRESH_TOKEN_KEY: credential.refresh_token}
            )
        except StorageUnavailableError as e:
            self._degrade(e)
        self._notify(credential)

    async def clear(self) -> None:
        self.clear_count += 1
        self._last = None
        try:
            await self.storage.delete(TOKEN_KEY, REFRESH_TOKEN_KEY)
        except StorageUnavailableError as e:
            self._degrade(e)
        self._notify(None)

    def subscribe(self, listener: CredentialListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, credential: Optional[Credential]) -> None:
        for listener in list(self._listeners):
            listener(credential)
