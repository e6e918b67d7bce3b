from __future__ import annotations

import logging
from typing import Callable, List, Optional

from pydantic import ValidationError

from .auth_service import AuthService
from .exceptions import ApiError
from .models import Credential, Session, SessionStatus, User, UserProfile
from .refresh import RefreshCoordinator, RefreshState
from .token_store import TokenStore

logger = logging.getLogger(__name__)

SessionListener = Callable[[Session], None]

# statuses in which a user is logged in
LIVE = (SessionStatus.AUTHENTICATED, SessionStatus.REFRESHING)


def _error_message(e: Exception, fallback: str) -> str:
    if isinstance(e, ApiError):
        return e.message
    return str(e) or fallback


class SessionStore:
    """Observable login state built on AuthService.

    Only the credential survives a restart (it lives in the TokenStore);
    user, status and error are recomputed by initialize_auth().
    """

    def __init__(
        self,
        auth: AuthService,
        token_store: TokenStore,
        coordinator: Optional[RefreshCoordinator] = None,
    ):
        self.auth = auth
        self.token_store = token_store
        self.coordinator = coordinator or auth.api.coordinator
        self._session = Session()
        self._loading = False
        self._listeners: List[SessionListener] = []

        token_store.subscribe(self._on_credential)
        self.coordinator.add_state_listener(self._on_refresh_state)
        self.coordinator.add_logout_listener(self._on_refresh_failed)

    # state

    @property
    def session(self) -> Session:
        return self._session

    @property
    def user(self) -> Optional[User]:
        return self._session.user

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def error(self) -> Optional[str]:
        return self._session.error

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_authenticated(self) -> bool:
        return self._session.status in LIVE

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, status: SessionStatus, **changes) -> None:
        update = {"status": status, **changes}
        if status in (SessionStatus.ANONYMOUS, SessionStatus.ERROR):
            update["user"] = None
            update["credential"] = None
        session = self._session.model_copy(update=update)
        if session.status == SessionStatus.AUTHENTICATED and session.credential is None:
            raise RuntimeError("authenticated session without credential")
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    # reactions to the token store and the refresh coordinator

    def _on_credential(self, credential: Optional[Credential]) -> None:
        status = self._session.status
        if credential is None:
            if status in LIVE:
                self._transition(SessionStatus.ANONYMOUS, error=None)
            return
        if status in LIVE or status == SessionStatus.AUTHENTICATING:
            self._transition(status, credential=credential)

    def _on_refresh_state(self, state: RefreshState) -> None:
        status = self._session.status
        if state == RefreshState.REFRESHING and status == SessionStatus.AUTHENTICATED:
            self._transition(SessionStatus.REFRESHING)
        elif state == RefreshState.IDLE and status == SessionStatus.REFRESHING:
            if self._session.credential is None:
                self._transition(SessionStatus.ANONYMOUS, error=None)
            else:
                self._transition(SessionStatus.AUTHENTICATED)

    def _on_refresh_failed(self) -> None:
        logger.info("session ended by failed token refresh")
        if self._session.status != SessionStatus.ANONYMOUS:
            self._transition(SessionStatus.ANONYMOUS, error=None)

    # operations

    async def _login(self, email: str, password: str) -> Credential:
        tokens = await self.auth.login(email, password)
        await self.token_store.set(tokens.to_credential())
        user = await self.auth.get_current_user()
        # get_current_user may have gone through a refresh
        credential = await self.token_store.get() or tokens.to_credential()
        self._transition(SessionStatus.AUTHENTICATED, user=user, credential=credential, error=None)
        logger.info("logged in as %s", user.username)
        return credential

    async def _fail(self, e: Exception, fallback: str) -> None:
        await self.token_store.clear()
        self._transition(SessionStatus.ERROR, error=_error_message(e, fallback))

    async def login(self, email: str, password: str) -> bool:
        self._loading = True
        self._transition(SessionStatus.AUTHENTICATING, error=None)
        try:
            await self._login(email, password)
            return True
        except (ApiError, ValidationError) as e:
            logger.warning("login failed: %s", e)
            await self._fail(e, "Login failed")
            return False
        finally:
            self._loading = False

    async def register(
        self,
        username: str,
        password: str,
        password2: str,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Credential:
        """Create the account, then log in with the same credentials.

        Errors from either step are raised; a login failure after a
        successful registration surfaces as that login error.
        """
        self._loading = True
        self._transition(SessionStatus.AUTHENTICATING, error=None)
        try:
            await self.auth.register(username, password, password2, email, first_name, last_name)
        except (ApiError, ValidationError) as e:
            logger.warning("registration failed: %s", e)
            await self._fail(e, "Registration failed")
            self._loading = False
            raise

        try:
            return await self._login(email, password)
        except (ApiError, ValidationError) as e:
            logger.warning("login after registration failed: %s", e)
            await self._fail(e, "Login failed")
            raise
        finally:
            self._loading = False

    async def logout(self) -> bool:
        """End the session locally; the server call is best effort.

        Returns False only when the server-side invalidation failed.
        """
        self._loading = True
        try:
            self.coordinator.cancel("Logged out")
            server_ok = True
            if await self.token_store.get() is not None:
                server_ok = await self.auth.logout()
            # a 401 during the server call may have started another episode
            self.coordinator.cancel("Logged out")
            await self.token_store.clear()
            self._transition(SessionStatus.ANONYMOUS, error=None)
            return server_ok
        finally:
            self._loading = False

    async def initialize_auth(self) -> None:
        credential = await self.token_store.get()
        if credential is None:
            self._transition(SessionStatus.ANONYMOUS, error=None)
            return

        self._loading = True
        self._transition(SessionStatus.AUTHENTICATING, credential=credential, error=None)
        try:
            user = await self.auth.get_current_user()
        except (ApiError, ValidationError) as e:
            logger.error("could not restore session: %s", e)
            self.coordinator.cancel("Session restore failed")
            await self.token_store.clear()
            self._transition(SessionStatus.ANONYMOUS, error=None)
            return
        finally:
            self._loading = False

        credential = await self.token_store.get() or credential
        self._transition(SessionStatus.AUTHENTICATED, user=user, credential=credential)

    async def update_profile(self, profile: UserProfile) -> User:
        user = await self.auth.update_profile(profile)
        self.set_user(user)
        return user

    def set_user(self, user: Optional[User]) -> None:
        if self._session.status in LIVE:
            self._transition(self._session.status, user=user)

    def clear_error(self) -> None:
        if self._session.status == SessionStatus.ERROR:
            self._transition(SessionStatus.ANONYMOUS, error=None)
