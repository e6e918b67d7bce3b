"""Shared fixtures: an in-process fake of the snippet service.

The fake sits behind httpx.MockTransport, so the real ApiClient, refresh
coordinator and session store run unmodified against it. Every call is
recorded with the Authorization header it carried.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Optional

import httpx
import pytest
import pytest_asyncio

from snippetbox.config import Settings
from snippetbox.main import build_runtime
from snippetbox.storage import MemoryStorage


@dataclass
class Call:
    method: str
    path: str
    auth: Optional[str]
    body: Optional[dict]
    params: dict = field(default_factory=dict)


@dataclass
class FakeService:
    accounts: dict = field(default_factory=lambda: {"u@x.com": "pw"})
    valid_access: set = field(default_factory=set)
    valid_refresh: set = field(default_factory=lambda: {"R1"})
    login_tokens: tuple = ("A1", "R1")
    next_access: list = field(default_factory=lambda: ["A2", "A3", "A4"])
    # refreshed access tokens are accepted by protected endpoints
    accept_refreshed: bool = True
    login_disabled: bool = False
    logout_fails: bool = False
    # when set, the refresh endpoint blocks until the event fires
    refresh_gate: Optional[asyncio.Event] = None
    # when set, the logout endpoint blocks until the event fires
    logout_gate: Optional[asyncio.Event] = None
    calls: list = field(default_factory=list)

    def count(self, method: str, path: str, auth: Optional[str] = None) -> int:
        return sum(
            1
            for c in self.calls
            if c.method == method and c.path == path and (auth is None or c.auth == auth)
        )

    @property
    def refresh_calls(self) -> int:
        return self.count("POST", "/auth/token/refresh/")

    def user_payload(self) -> dict:
        return {"id": 1, "username": "u", "email": "u@x.com", "first_name": "U", "last_name": "X"}

    def _authorized(self, request: httpx.Request) -> bool:
        header = request.headers.get("Authorization", "")
        return header.startswith("Bearer ") and header[len("Bearer "):] in self.valid_access

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.calls.append(
            Call(request.method, path, request.headers.get("Authorization"), body, dict(request.url.params))
        )

        if path == "/auth/login/":
            if self.login_disabled or self.accounts.get(body["email"]) != body["password"]:
                return httpx.Response(401, json={"detail": "No active account found with the given credentials"})
            access, refresh = self.login_tokens
            self.valid_access.add(access)
            self.valid_refresh.add(refresh)
            return httpx.Response(200, json={"access": access, "refresh": refresh})

        if path == "/auth/register/":
            if body["email"] in self.accounts:
                return httpx.Response(400, json={"email": ["user with this email already exists."]})
            self.accounts[body["email"]] = body["password"]
            return httpx.Response(201, json={"id": 2, "username": body["username"], "email": body["email"]})

        if path == "/auth/token/refresh/":
            if self.refresh_gate is not None:
                await self.refresh_gate.wait()
            if body.get("refresh") not in self.valid_refresh:
                return httpx.Response(401, json={"detail": "Token is invalid or expired", "code": "token_not_valid"})
            access = self.next_access.pop(0)
            if self.accept_refreshed:
                self.valid_access.add(access)
            return httpx.Response(200, json={"access": access})

        if path == "/auth/logout/":
            if self.logout_gate is not None:
                await self.logout_gate.wait()
            if self.logout_fails:
                return httpx.Response(500, json={"detail": "boom"})
            return httpx.Response(205)

        if path.startswith("/auth/password-reset/"):
            return httpx.Response(200, json={"message": "Password reset e-mail has been sent."})

        if path == "/slow/":
            raise httpx.ReadTimeout("timed out", request=request)

        if path == "/offline/":
            raise httpx.ConnectError("connection refused", request=request)

        # everything else requires a valid access token
        if not self._authorized(request):
            return httpx.Response(401, json={"detail": "Given token not valid for any token type"})

        if path == "/auth/user/":
            user = self.user_payload()
            if request.method == "PATCH":
                user.update(body)
            return httpx.Response(200, json=user)

        if path == "/snippets/" and request.method == "POST":
            return httpx.Response(201, json={"id": 1, **body})

        if path == "/snippets/":
            return httpx.Response(
                200,
                json={
                    "count": 1,
                    "next": None,
                    "previous": None,
                    "results": [{"id": 1, "title": "hello", "code": "print(1)", "language": "python"}],
                },
            )

        if path.startswith("/snippets/"):
            snippet_id = path.strip("/").split("/")[-1]
            if snippet_id == "404":
                return httpx.Response(404, json={"detail": "Not found."})
            if request.method == "DELETE":
                return httpx.Response(204)
            return httpx.Response(
                200,
                json={"id": int(snippet_id), "title": "hello", "code": "print(1)", "language": "python"},
            )

        return httpx.Response(404, json={"detail": "Not found."})


@pytest.fixture
def fake():
    return FakeService()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def test_settings():
    return Settings(API_BASE_URL="http://test", TOKEN_BACKEND="memory", HTTP_TIMEOUT_SEC=5.0)


@pytest_asyncio.fixture()
async def rt(fake, storage, test_settings):
    runtime = build_runtime(test_settings, storage=storage, transport=httpx.MockTransport(fake.handler))
    try:
        yield runtime
    finally:
        await runtime.api.aclose()


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def wait_until():
    return _wait_until
