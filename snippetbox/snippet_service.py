from __future__ import annotations

from typing import Optional, Union

from .client import ApiClient
from .models import Snippet, SnippetCreate, SnippetFilters, SnippetList, SnippetUpdate

SnippetId = Union[int, str]


class SnippetService:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list_snippets(self, filters: Optional[SnippetFilters] = None) -> SnippetList:
        params = filters.to_params() if filters else None
        return SnippetList.model_validate(await self.api.get("/snippets/", params=params or None))

    async def get_snippet(self, snippet_id: SnippetId) -> Snippet:
        return Snippet.model_validate(await self.api.get(f"/snippets/{snippet_id}/"))

    async def create_snippet(self, data: SnippetCreate) -> Snippet:
        return Snippet.model_validate(await self.api.post("/snippets/", json=data.model_dump()))

    async def update_snippet(self, snippet_id: SnippetId, data: SnippetUpdate) -> Snippet:
        payload = data.model_dump(exclude_none=True)
        return Snippet.model_validate(await self.api.patch(f"/snippets/{snippet_id}/", json=payload))

    async def delete_snippet(self, snippet_id: SnippetId) -> None:
        await self.api.delete(f"/snippets/{snippet_id}/")
