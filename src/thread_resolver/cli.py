"""Typer CLI for the review-thread MCP server."""

from __future__ import annotations

import asyncio
from typing import Annotated, Any

import typer

from thread_resolver.config import (
    ConfigError,
    GitHubAuthError,
    Settings,
    check_token_format,
    load_settings,
)
from thread_resolver.gateway import ToolGateway
from thread_resolver.github_client import (
    RemoteOperationError,
    build_graphql_client,
    fetch_viewer_login,
)
from thread_resolver.observability import configure_logging
from thread_resolver.schema import ToolEnvelope
from thread_resolver.server import serve_stdio
from thread_resolver.tools import DEFAULT_PAGE_SIZE, build_tool_catalog

app = typer.Typer(help="MCP server for GitHub pull request review threads.")


def _load_settings_or_exit() -> Settings:
    """Load settings, turning startup errors into exit code 1."""
    try:
        settings = load_settings()
    except (GitHubAuthError, ConfigError) as error:
        typer.echo(f"Startup failed: {error}", err=True)
        raise typer.Exit(code=1) from error

    warning = check_token_format(settings.token)
    if warning:
        typer.echo(f"Warning: {warning}", err=True)
    return settings


async def _run_calls(
    settings: Settings,
    calls: list[tuple[str, dict[str, Any]]],
) -> list[ToolEnvelope]:
    """Run tool calls one after another through a ready gateway."""
    async with build_graphql_client(settings) as client:
        gateway = ToolGateway(client)
        gateway.mark_ready()
        return [await gateway.call_tool(name, arguments) for name, arguments in calls]


def _run_and_report(calls: list[tuple[str, dict[str, Any]]]) -> None:
    """Run calls, print each envelope, and exit 1 when any of them failed."""
    settings = _load_settings_or_exit()
    configure_logging(settings.log_level)
    envelopes = asyncio.run(_run_calls(settings, calls))
    for envelope in envelopes:
        typer.echo(envelope.text)
    if any(envelope.is_error for envelope in envelopes):
        raise typer.Exit(code=1)


@app.command("serve")
def serve_command() -> None:
    """Run the MCP server on stdio."""
    settings = _load_settings_or_exit()
    configure_logging(settings.log_level)
    try:
        asyncio.run(serve_stdio(settings))
    except KeyboardInterrupt:
        pass
    except Exception as error:
        typer.echo(f"Server stopped: {error}", err=True)
        raise typer.Exit(code=1) from error


@app.command("tools")
def tools_command() -> None:
    """List the tools the server advertises."""
    for descriptor in build_tool_catalog().values():
        typer.echo(f"{descriptor.name}: {descriptor.description}")


@app.command("threads")
def threads_command(
    owner: Annotated[str, typer.Argument(help="Repository owner.")],
    repo: Annotated[str, typer.Argument(help="Repository name.")],
    pr: Annotated[int, typer.Argument(help="Pull request number.")],
    limit: Annotated[int, typer.Option(help="Threads to fetch in this page.")] = (
        DEFAULT_PAGE_SIZE
    ),
    after: Annotated[
        str | None, typer.Option(help="Cursor from a previous page's endCursor.")
    ] = None,
) -> None:
    """Print one page of unresolved review threads."""
    arguments: dict[str, Any] = {
        "owner": owner,
        "repo": repo,
        "pullRequestNumber": pr,
        "limit": limit,
        "after": after,
    }
    _run_and_report([("get_unresolved_threads", arguments)])


@app.command("resolve")
def resolve_command(
    thread_ids: Annotated[list[str], typer.Argument(help="Review thread IDs to resolve.")],
) -> None:
    """Resolve review threads in order, one remote call per thread."""
    _run_and_report(
        [("resolve_conversation", {"threadId": thread_id}) for thread_id in thread_ids]
    )


@app.command("reply")
def reply_command(
    thread_id: Annotated[str, typer.Argument(help="Review thread ID.")],
    body: Annotated[str, typer.Argument(help="Reply text.")],
) -> None:
    """Post a reply on a review thread."""
    _run_and_report([("reply_to_thread", {"threadId": thread_id, "body": body})])


async def _check_access(
    settings: Settings,
    repo: str | None,
    pr: int | None,
) -> tuple[str, ToolEnvelope | None]:
    """Return the viewer login and, when requested, a one-thread PR read result."""
    async with build_graphql_client(settings) as client:
        login = await fetch_viewer_login(client)
        if repo is None or pr is None:
            return login, None
        owner, _separator, name = repo.partition("/")
        gateway = ToolGateway(client)
        gateway.mark_ready()
        envelope = await gateway.call_tool(
            "get_unresolved_threads",
            {"owner": owner, "repo": name, "pullRequestNumber": pr, "limit": 1},
        )
        return login, envelope


@app.command("auth-check")
def auth_check_command(
    repo: Annotated[
        str | None,
        typer.Option(help="Optional repository in owner/repo format for permission check."),
    ] = None,
    pr: Annotated[
        int | None,
        typer.Option(help="Optional pull request number used with --repo for permission check."),
    ] = None,
) -> None:
    """Validate GitHub token setup and optional review-thread read access."""
    if (repo is None) != (pr is None):
        raise typer.BadParameter("Provide both --repo and --pr together, or neither.")
    if repo is not None and repo.count("/") != 1:
        raise typer.BadParameter(f"Invalid repo '{repo}'. Expected format is owner/repo.")

    settings = _load_settings_or_exit()
    typer.echo(f"Token detected in {settings.token_source}.")

    try:
        login, envelope = asyncio.run(_check_access(settings, repo, pr))
    except RemoteOperationError as error:
        typer.echo(f"GitHub auth check failed: {error}")
        raise typer.Exit(code=1) from error

    typer.echo(f"Authenticated as GitHub user '{login}'.")
    if envelope is not None:
        if envelope.is_error:
            typer.echo(f"GitHub auth check failed: {envelope.text}")
            raise typer.Exit(code=1)
        typer.echo(f"Review thread access check passed for {repo}#{pr}.")
    typer.echo("GitHub token setup is valid.")
