from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

import httpx

from .exceptions import ApiError, NetworkError
from .models import RefreshResponse
from .refresh import RefreshCoordinator
from .token_store import TokenStore

logger = logging.getLogger(__name__)

REFRESH_PATH = "/auth/token/refresh/"


@dataclass(frozen=True)
class RequestConfig:
    method: str
    url: str
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    # set once the request has been replayed after a token refresh
    retried: bool = False
    # requests that must never start a refresh (login, register, ...)
    skip_auth_refresh: bool = False

    def as_retry(self) -> "RequestConfig":
        return replace(self, retried=True)


class ApiClient:
    """httpx client that attaches the bearer token and recovers from 401s."""

    def __init__(
        self,
        base_url: str,
        token_store: TokenStore,
        timeout_sec: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout_sec
        self.token_store = token_store
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_sec,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self.coordinator = RefreshCoordinator(token_store, self.refresh_access_token)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _dispatch(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise NetworkError() from e

    async def send(self, config: RequestConfig) -> httpx.Response:
        credential = await self.token_store.get()
        headers = dict(config.headers)
        if credential is not None:
            headers["Authorization"] = f"Bearer {credential.access_token}"

        r = await self._dispatch(
            config.method,
            config.url,
            params=config.params,
            json=config.json,
            headers=headers,
        )

        if r.status_code == 401 and not config.retried and not config.skip_auth_refresh:
            await self.coordinator.refresh(credential)
            logger.debug("replaying %s %s with refreshed token", config.method, config.url)
            return await self.send(config.as_retry())

        if r.is_error:
            raise ApiError.from_response(r)
        return r

    async def request(self, config: RequestConfig) -> Any:
        r = await self.send(config)
        if r.status_code == 204 or not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            return r.text

    async def get(self, url: str, params: Optional[dict] = None, **kw) -> Any:
        return await self.request(RequestConfig("GET", url, params=params, **kw))

    async def post(self, url: str, json: Any = None, **kw) -> Any:
        return await self.request(RequestConfig("POST", url, json=json, **kw))

    async def put(self, url: str, json: Any = None, **kw) -> Any:
        return await self.request(RequestConfig("PUT", url, json=json, **kw))

    async def patch(self, url: str, json: Any = None, **kw) -> Any:
        return await self.request(RequestConfig("PATCH", url, json=json, **kw))

    async def delete(self, url: str, **kw) -> Any:
        return await self.request(RequestConfig("DELETE", url, **kw))

    async def refresh_access_token(self, refresh_token: str) -> str:
        # bypasses send(): a rejected refresh must not start another refresh
        r = await self._dispatch("POST", REFRESH_PATH, json={"refresh": refresh_token})
        if r.is_error:
            raise ApiError.from_response(r)
        return RefreshResponse.model_validate(r.json()).access
