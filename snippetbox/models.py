from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Credential(BaseModel):
    """Access/refresh token pair. Replaced wholesale, never mutated."""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)

    def with_access(self, access_token: str) -> "Credential":
        return Credential(access_token=access_token, refresh_token=self.refresh_token)

    def __repr__(self) -> str:
        return "Credential(access_token=***, refresh_token=***)"

    __str__ = __repr__


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    username: str
    email: str
    first_name: str = ""
    last_name: str = ""


class UserProfile(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access: str
    refresh: str

    def to_credential(self) -> Credential:
        return Credential(access_token=self.access, refresh_token=self.refresh)


class RegisterResponse(BaseModel):
    # the service answers with either the created user or a token pair
    model_config = ConfigDict(extra="allow")

    access: Optional[str] = None
    refresh: Optional[str] = None


class RefreshResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access: str


class PasswordResetResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str = ""


class SessionStatus(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"
    ERROR = "error"


class Session(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: Optional[User] = None
    credential: Optional[Credential] = None
    status: SessionStatus = SessionStatus.ANONYMOUS
    error: Optional[str] = None


# SNIPPETS

class Snippet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    title: str
    code: str
    language: str
    created: Optional[str] = None
    user: Optional[int] = None


class SnippetList(BaseModel):
    results: List[Snippet] = Field(default_factory=list)
    count: int = 0
    next: Optional[str] = None
    previous: Optional[str] = None


class SnippetFilters(BaseModel):
    language: Optional[str] = None
    created_after: Optional[str] = None
    created_before: Optional[str] = None
    search_title: Optional[str] = None
    search_code: Optional[str] = None
    page: Optional[int] = None
    page_size: Optional[int] = None

    def to_params(self) -> dict[str, str]:
        return {k: str(v) for k, v in self.model_dump(exclude_none=True).items() if v != ""}


class SnippetCreate(BaseModel):
    title: str
    code: str
    language: str


class SnippetUpdate(BaseModel):
    title: Optional[str] = None
    code: Optional[str] = None
    language: Optional[str] = None
