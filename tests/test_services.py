import pytest

from snippetbox.exceptions import ApiValidationError
from snippetbox.models import Credential, SnippetCreate, SnippetFilters, SnippetUpdate


class TestAuthService:
    @pytest.mark.asyncio
    async def test_login_returns_token_pair(self, rt):
        tokens = await rt.auth.login("u@x.com", "pw")
        assert (tokens.access, tokens.refresh) == ("A1", "R1")
        # the facade never writes tokens itself
        assert await rt.tokens.get() is None

    @pytest.mark.asyncio
    async def test_register_omits_missing_names(self, rt, fake):
        await rt.auth.register("n", "p", "p", "n@x.com")
        assert fake.calls[-1].body == {"username": "n", "password": "p", "password2": "p", "email": "n@x.com"}

    @pytest.mark.asyncio
    async def test_logout_swallows_server_errors(self, rt, fake):
        fake.logout_fails = True
        assert await rt.auth.logout() is False

    @pytest.mark.asyncio
    async def test_password_reset_flow(self, rt, fake):
        res = await rt.auth.request_password_reset("u@x.com")
        assert res.message == "Password reset e-mail has been sent."
        assert fake.calls[-1].body == {"email": "u@x.com"}

        await rt.auth.confirm_password_reset("tok", "new-pw")
        assert fake.calls[-1].path == "/auth/password-reset/confirm/"
        assert fake.calls[-1].body == {"token": "tok", "password": "new-pw"}


class TestSnippetService:
    @pytest.mark.asyncio
    async def test_list_with_filters(self, rt, fake):
        await rt.tokens.set(Credential(access_token="A1", refresh_token="R1"))
        fake.valid_access.add("A1")
        result = await rt.snippets.list_snippets(
            SnippetFilters(language="python", search_title="", created_after="2024-01-01", page=2)
        )

        assert result.count == 1
        assert result.results[0].title == "hello"
        assert fake.calls[-1].path == "/snippets/"
        assert fake.calls[-1].params == {"language": "python", "created_after": "2024-01-01", "page": "2"}

    @pytest.mark.asyncio
    async def test_crud_round(self, rt, fake):
        await rt.tokens.set(Credential(access_token="A1", refresh_token="R1"))
        fake.valid_access.add("A1")

        created = await rt.snippets.create_snippet(SnippetCreate(title="t", code="c", language="python"))
        assert fake.calls[-1].body == {"title": "t", "code": "c", "language": "python"}
        assert created.id == 1

        await rt.snippets.update_snippet(1, SnippetUpdate(title="t2"))
        assert fake.calls[-1].method == "PATCH"
        assert fake.calls[-1].body == {"title": "t2"}

        assert await rt.snippets.delete_snippet(1) is None
        assert fake.calls[-1].method == "DELETE"

    @pytest.mark.asyncio
    async def test_missing_snippet(self, rt, fake):
        await rt.tokens.set(Credential(access_token="A1", refresh_token="R1"))
        fake.valid_access.add("A1")
        with pytest.raises(ApiValidationError):
            await rt.snippets.get_snippet(404)


def test_filters_drop_empty_values():
    params = SnippetFilters(language="python", search_title="", created_after="2024-01-01", page=2).to_params()
    assert params == {"language": "python", "created_after": "2024-01-01", "page": "2"}
