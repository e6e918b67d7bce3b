from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from .exceptions import AuthExpiredError, RefreshFailedError
from .models import Credential
from .token_store import TokenStore

logger = logging.getLogger(__name__)

# refresh_token -> new access token
RefreshCall = Callable[[str], Awaitable[str]]


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshCoordinator:
    """Single-flight access token refresh.

    At most one refresh episode is in flight. Every request that hits a 401
    while an episode is running awaits the same future instead of calling
    the refresh endpoint again. Deciding to start an episode and joining one
    happen without an ``await`` in between, so on one event loop they cannot
    interleave.

    Unlike a per-request refresh (one network call per 401), a burst of
    concurrent 401s costs exactly one refresh call.
    """

    def __init__(self, token_store: TokenStore, refresh_call: RefreshCall):
        self.token_store = token_store
        self.refresh_call = refresh_call
        self._episode: Optional[asyncio.Future] = None
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._logout_listeners: List[Callable[[], None]] = []
        self._state_listeners: List[Callable[[RefreshState], None]] = []

    @property
    def state(self) -> RefreshState:
        return RefreshState.REFRESHING if self._episode is not None else RefreshState.IDLE

    def add_logout_listener(self, callback: Callable[[], None]) -> None:
        self._logout_listeners.append(callback)

    def add_state_listener(self, callback: Callable[[RefreshState], None]) -> None:
        self._state_listeners.append(callback)

    async def refresh(self, used: Optional[Credential]) -> Credential:
        """Return a credential to retry with after a 401.

        ``used`` is the credential the rejected request was sent with.
        Raises AuthExpiredError when there is nothing to refresh and
        RefreshFailedError when the episode fails.
        """
        while self._episode is None:
            generation = self._generation
            clears = self.token_store.clear_count
            current = await self.token_store.get()
            # another caller may have started or finished an episode during the read
            if self._episode is not None:
                break
            if generation != self._generation or clears != self.token_store.clear_count:
                continue
            if current is None:
                raise AuthExpiredError("No refresh token available")
            if used is None or current.access_token != used.access_token:
                # refreshed (or logged in) since this request went out
                return current
            self._start(current, clears)

        return await asyncio.shield(self._episode)

    def cancel(self, reason: str = "Logged out") -> None:
        """Fail every waiter of the active episode. Used by logout."""
        episode, task = self._episode, self._task
        if episode is None:
            return
        self._episode = None
        self._task = None
        self._generation += 1
        if task is not None and not task.done():
            task.cancel()
        if not episode.done():
            episode.set_exception(RefreshFailedError(reason))
        logger.info("token refresh cancelled: %s", reason)
        self._emit_state()

    def _start(self, credential: Credential, clears: int) -> None:
        episode = asyncio.get_running_loop().create_future()
        self._episode = episode
        self._task = asyncio.create_task(self._run(credential, episode, clears))
        logger.info("access token expired, refreshing")
        self._emit_state()

    async def _run(self, credential: Credential, episode: asyncio.Future, clears: int) -> None:
        try:
            access = await self.refresh_call(credential.refresh_token)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("token refresh failed, ending session: %s", e)
            await self._fail(episode, e)
            return

        if self._episode is not episode or self.token_store.clear_count != clears:
            # logged out while the call was in flight; the new token must not outlive it
            logger.info("session ended during token refresh, dropping new token")
            self._end(episode)
            if not episode.done():
                episode.set_exception(RefreshFailedError("Logged out"))
            return

        new = credential.with_access(access)
        # waiters must only ever see the fully written credential
        await self.token_store.set(new)
        self._end(episode)
        if not episode.done():
            episode.set_result(new)
        logger.info("access token refreshed")

    async def _fail(self, episode: asyncio.Future, err: Exception) -> None:
        await self.token_store.clear()
        self._end(episode)
        if not episode.done():
            exc = RefreshFailedError()
            exc.__cause__ = err
            episode.set_exception(exc)
        for callback in list(self._logout_listeners):
            callback()

    def _end(self, episode: asyncio.Future) -> None:
        if self._episode is episode:
            self._episode = None
            self._task = None
            self._generation += 1
            self._emit_state()

    def _emit_state(self) -> None:
        state = self.state
        for callback in list(self._state_listeners):
            callback(state)
