"""Shared pytest fixtures and test-run configuration."""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

import pytest
from thread_resolver.config import Settings

TEST_TOKEN = "ghp_testtoken1234567890"


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom pytest options for integration test execution."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked as integration (external dependencies).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly enabled."""
    run_integration = config.getoption("--run-integration")
    env_enabled = os.getenv("RUN_INTEGRATION_TESTS") == "1"
    if run_integration or env_enabled:
        return

    skip_marker = pytest.mark.skip(
        reason=(
            "Integration tests are disabled by default. "
            "Use --run-integration or set RUN_INTEGRATION_TESTS=1."
        )
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


class StubRemoteClient:
    """In-memory GraphQL client that records every operation it receives."""

    def __init__(
        self,
        responses: list[dict[str, Any]] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self.responses = responses or [{}]
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def __aenter__(self) -> StubRemoteClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.closed = True

    async def execute(
        self,
        document: str,
        variables: dict[str, Any] | None = None,
        *,
        operation_name: str | None = None,
    ) -> dict[str, Any]:
        self.calls.append(
            {"document": document, "variables": variables or {}, "operation_name": operation_name}
        )
        if self.error is not None:
            raise self.error
        index = min(len(self.calls), len(self.responses)) - 1
        return self.responses[index]


@pytest.fixture
def make_stub_client() -> Callable[..., StubRemoteClient]:
    """Return a factory for stub remote clients."""
    return StubRemoteClient


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the public GitHub GraphQL endpoint with a fake token."""
    return Settings(token=TEST_TOKEN, token_source="GITHUB_TOKEN")


def make_thread_node(
    thread_id: str,
    *,
    resolved: bool = False,
    author: str | None = "octocat",
    body: str = "Please rename this variable.",
    with_comment: bool = True,
) -> dict[str, Any]:
    """Build one reviewThreads node as GitHub returns it."""
    comments: list[dict[str, Any]] = []
    if with_comment:
        comments.append({"body": body, "author": {"login": author} if author else None})
    return {"id": thread_id, "isResolved": resolved, "comments": {"nodes": comments}}


def make_threads_data(
    nodes: list[dict[str, Any]],
    *,
    has_next_page: bool = False,
    end_cursor: str | None = None,
) -> dict[str, Any]:
    """Build the ``data`` object of a review threads query."""
    return {
        "repository": {
            "pullRequest": {
                "reviewThreads": {
                    "pageInfo": {"hasNextPage": has_next_page, "endCursor": end_cursor},
                    "nodes": nodes,
                }
            }
        }
    }
