"""snippetbox CLI: log in once, then talk to the snippet service.

Usage:
    snippetbox login --email me@example.com      # prompts for the password
    snippetbox whoami
    snippetbox snippets --language python
    snippetbox snippet 42
    snippetbox logout
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Optional

import click

from .config import settings
from .exceptions import ApiError
from .main import open_runtime
from .models import SnippetFilters

logger = logging.getLogger(__name__)


def _run(coro):
    try:
        return asyncio.run(coro)
    except ApiError as e:
        logger.debug("request failed", exc_info=True)
        click.secho(f"Error: {e.message}", fg="red", err=True)
        sys.exit(1)


def _pretty_json(data) -> str:
    return json.dumps(data, indent=2, default=str)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging.")
def cli(verbose: bool):
    """Snippet service client."""
    logging.basicConfig(level=logging.DEBUG if verbose else settings.LOG_LEVEL)


@cli.command()
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and persist the token pair."""

    async def _go():
        async with open_runtime(restore=False) as rt:
            ok = await rt.session.login(email, password)
            if not ok:
                click.secho(f"Login failed: {rt.session.error}", fg="red", err=True)
                sys.exit(1)
            click.secho(f"Logged in as {rt.session.user.username}", fg="green")

    _run(_go())


@cli.command()
@click.option("--username", prompt=True)
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--first-name", default=None)
@click.option("--last-name", default=None)
def register(username: str, email: str, password: str, first_name: Optional[str], last_name: Optional[str]):
    """Create an account and log in."""

    async def _go():
        async with open_runtime(restore=False) as rt:
            await rt.session.register(username, password, password, email, first_name, last_name)
            click.secho(f"Registered and logged in as {rt.session.user.username}", fg="green")

    _run(_go())


@cli.command()
def logout():
    """Forget the stored tokens."""

    async def _go():
        async with open_runtime(restore=False) as rt:
            server_ok = await rt.session.logout()
            if not server_ok:
                click.secho("Server logout failed, local session cleared anyway.", fg="yellow")
            click.echo("Logged out.")

    _run(_go())


@cli.command()
def whoami():
    """Show the current user."""

    async def _go():
        async with open_runtime() as rt:
            if not rt.session.is_authenticated:
                click.echo("Not logged in.")
                return
            click.echo(_pretty_json(rt.session.user.model_dump()))

    _run(_go())


@cli.command()
@click.option("--language", default=None)
@click.option("--search-title", default=None)
@click.option("--search-code", default=None)
@click.option("--page", type=int, default=None)
@click.option("--page-size", type=int, default=None)
def snippets(language, search_title, search_code, page, page_size):
    """List snippets."""
    filters = SnippetFilters(
        language=language,
        search_title=search_title,
        search_code=search_code,
        page=page,
        page_size=page_size,
    )

    async def _go():
        async with open_runtime() as rt:
            result = await rt.snippets.list_snippets(filters)
            click.echo(f"{result.count} snippet(s)")
            for s in result.results:
                click.echo(f"  [{s.id}] {s.title} ({s.language})")

    _run(_go())


@cli.command()
@click.argument("snippet_id")
def snippet(snippet_id: str):
    """Print one snippet."""

    async def _go():
        async with open_runtime() as rt:
            s = await rt.snippets.get_snippet(snippet_id)
            click.secho(f"{s.title} ({s.language})", bold=True)
            click.echo(s.code)

    _run(_go())


@cli.command("reset-password")
@click.argument("email")
def reset_password(email: str):
    """Ask the service to send a password reset link."""

    async def _go():
        async with open_runtime(restore=False) as rt:
            res = await rt.auth.request_password_reset(email)
            click.echo(res.message or "Password reset requested.")

    _run(_go())


def main():
    cli()


if __name__ == "__main__":
    main()
