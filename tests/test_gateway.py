"""Unit tests for tool dispatch through the gateway."""

from __future__ import annotations

import json
from collections.abc import Callable

import pytest
from conftest import TEST_TOKEN, StubRemoteClient, make_thread_node, make_threads_data
from thread_resolver.gateway import GatewayState, GatewayStateError, ToolGateway
from thread_resolver.github_client import build_remote_failure


def make_gateway(client: StubRemoteClient) -> ToolGateway:
    """Build a gateway in the ready state."""
    gateway = ToolGateway(client)
    gateway.mark_ready()
    return gateway


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_tool_fails_without_remote_call(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    client = make_stub_client()
    gateway = make_gateway(client)

    envelope = await gateway.call_tool("delete_repository", {"owner": "acme"})

    assert envelope.is_error is True
    assert "delete_repository" in envelope.text
    assert client.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invalid_arguments_fail_without_remote_call(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    client = make_stub_client()
    gateway = make_gateway(client)

    envelope = await gateway.call_tool(
        "get_unresolved_threads", {"owner": "acme", "pullRequestNumber": "one"}
    )

    assert envelope.is_error is True
    message = json.loads(envelope.text)["error"]
    assert "'repo' is required." in message
    assert "'pullRequestNumber' must be an integer" in message
    assert client.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_empty_page_cursor_fails_without_remote_call(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    client = make_stub_client()
    gateway = make_gateway(client)

    envelope = await gateway.call_tool(
        "get_unresolved_threads",
        {"owner": "acme", "repo": "rocket", "pullRequestNumber": 42, "after": ""},
    )

    assert envelope.is_error is True
    assert "'after' must be a non-empty string." in json.loads(envelope.text)["error"]
    assert client.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_unresolved_threads_envelope(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    client = make_stub_client(
        [
            make_threads_data(
                [
                    make_thread_node("PRRT_a", body="a"),
                    make_thread_node("PRRT_b", resolved=True),
                    make_thread_node("PRRT_c", with_comment=False),
                ],
                has_next_page=True,
                end_cursor="X",
            )
        ]
    )
    gateway = make_gateway(client)

    envelope = await gateway.call_tool(
        "get_unresolved_threads", {"owner": "acme", "repo": "rocket", "pullRequestNumber": 42}
    )

    assert envelope.is_error is False
    assert json.loads(envelope.text) == {
        "count": 2,
        "threads": [
            {"id": "PRRT_a", "firstComment": {"author": "octocat", "body": "a"}},
            {"id": "PRRT_c", "firstComment": None},
        ],
        "pageInfo": {"hasNextPage": True, "endCursor": "X"},
    }
    assert client.calls[0]["variables"]["first"] == 5
    assert len(client.calls) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resolve_conversation_twice_reports_same_result(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    client = make_stub_client(
        [{"resolveReviewThread": {"thread": {"id": "PRRT_1", "isResolved": True}}}]
    )
    gateway = make_gateway(client)

    first = await gateway.call_tool("resolve_conversation", {"threadId": "PRRT_1"})
    second = await gateway.call_tool("resolve_conversation", {"threadId": "PRRT_1"})

    expected = {"success": True, "threadId": "PRRT_1", "isResolved": True}
    assert json.loads(first.text) == expected
    assert json.loads(second.text) == expected
    assert len(client.calls) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reply_to_thread_envelope_contains_url_verbatim(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    url = "https://github.com/acme/rocket/pull/42#discussion_r987654"
    client = make_stub_client([{"addPullRequestReviewThreadReply": {"comment": {"url": url}}}])
    gateway = make_gateway(client)

    envelope = await gateway.call_tool("reply_to_thread", {"threadId": "PRRT_1", "body": ""})

    assert json.loads(envelope.text) == {"success": True, "commentUrl": url}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_remote_auth_failure_is_enveloped_without_token(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    client = make_stub_client(error=build_remote_failure(f"Bad credentials: {TEST_TOKEN}"))
    gateway = make_gateway(client)

    envelope = await gateway.call_tool("resolve_conversation", {"threadId": "PRRT_1"})

    assert envelope.is_error is True
    assert "authentication failed" in envelope.text
    assert TEST_TOKEN not in envelope.text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_remote_other_failure_passes_message_through(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    client = make_stub_client(error=build_remote_failure("Body violates content policy"))
    gateway = make_gateway(client)

    envelope = await gateway.call_tool("reply_to_thread", {"threadId": "PRRT_1", "body": "x"})

    assert json.loads(envelope.text) == {"error": "GitHub API error: Body violates content policy"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_uninitialized_gateway_does_not_service_calls(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    client = make_stub_client()
    gateway = ToolGateway(client)

    envelope = await gateway.call_tool("resolve_conversation", {"threadId": "PRRT_1"})

    assert gateway.state is GatewayState.UNINITIALIZED
    assert envelope.is_error is True
    assert "not ready" in envelope.text
    assert client.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_gateway_is_terminal(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    client = make_stub_client()
    gateway = make_gateway(client)
    gateway.mark_failed("handshake failed")

    envelope = await gateway.call_tool("resolve_conversation", {"threadId": "PRRT_1"})

    assert gateway.state is GatewayState.FAILED
    assert gateway.failure_reason == "handshake failed"
    assert envelope.is_error is True
    with pytest.raises(GatewayStateError):
        gateway.mark_ready()


@pytest.mark.unit
def test_list_tools_returns_catalog_in_order(
    make_stub_client: Callable[..., StubRemoteClient],
) -> None:
    gateway = ToolGateway(make_stub_client())

    assert [descriptor.name for descriptor in gateway.list_tools()] == [
        "get_unresolved_threads",
        "resolve_conversation",
        "reply_to_thread",
    ]
