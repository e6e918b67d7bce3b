from __future__ import annotations

import logging
from typing import Optional

from .client import ApiClient
from .exceptions import ApiError
from .models import LoginResponse, PasswordResetResponse, RegisterResponse, User, UserProfile

logger = logging.getLogger(__name__)


class AuthService:
    """Typed calls to the /auth/ endpoints. Never touches token storage."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def login(self, email: str, password: str) -> LoginResponse:
        data = await self.api.post(
            "/auth/login/",
            json={"email": email, "password": password},
            skip_auth_refresh=True,
        )
        return LoginResponse.model_validate(data)

    async def register(
        self,
        username: str,
        password: str,
        password2: str,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> RegisterResponse:
        payload = {"username": username, "password": password, "password2": password2, "email": email}
        if first_name is not None:
            payload["first_name"] = first_name
        if last_name is not None:
            payload["last_name"] = last_name
        data = await self.api.post("/auth/register/", json=payload, skip_auth_refresh=True)
        return RegisterResponse.model_validate(data or {})

    async def logout(self) -> bool:
        # best effort: the local session ends whatever the server says
        try:
            await self.api.post("/auth/logout/", skip_auth_refresh=True)
            return True
        except ApiError as e:
            logger.warning("logout request failed, proceeding with local logout: %s", e)
            return False

    async def get_current_user(self) -> User:
        return User.model_validate(await self.api.get("/auth/user/"))

    async def update_profile(self, profile: UserProfile) -> User:
        data = await self.api.patch("/auth/user/", json=profile.model_dump(exclude_none=True))
        return User.model_validate(data)

    async def request_password_reset(self, email: str) -> PasswordResetResponse:
        data = await self.api.post("/auth/password-reset/", json={"email": email}, skip_auth_refresh=True)
        return PasswordResetResponse.model_validate(data or {})

    async def confirm_password_reset(self, token: str, password: str) -> PasswordResetResponse:
        data = await self.api.post(
            "/auth/password-reset/confirm/",
            json={"token": token, "password": password},
            skip_auth_refresh=True,
        )
        return PasswordResetResponse.model_validate(data or {})
