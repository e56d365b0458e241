"""Tool registry and the review-thread tool handlers."""

from __future__ import annotations

from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Protocol

from pydantic import BaseModel

from thread_resolver.github_client import (
    ensure_mapping,
    not_found,
    optional_mapping,
    require_bool,
    require_list,
    require_object,
    require_str,
)
from thread_resolver.queries import (
    ADD_THREAD_REPLY_MUTATION,
    RESOLVE_THREAD_MUTATION,
    REVIEW_THREADS_QUERY,
)
from thread_resolver.schema import (
    UNKNOWN_AUTHOR,
    PageInfo,
    ReplyToThreadResult,
    ResolveConversationResult,
    ThreadComment,
    ThreadSummary,
    UnresolvedThreadsPage,
)
from thread_resolver.validation import ParamKind, ParamSpec, build_input_schema

DEFAULT_PAGE_SIZE = 5
MAX_PAGE_SIZE = 100


class RemoteClient(Protocol):
    """Anything able to run one GraphQL operation and return its data."""

    async def execute(
        self,
        document: str,
        variables: dict[str, Any] | None = None,
        *,
        operation_name: str | None = None,
    ) -> dict[str, Any]:
        """Run the operation and return the ``data`` object."""


class ToolHandler(Protocol):
    """Protocol for tool handlers invoked with validated arguments."""

    def __call__(self, client: RemoteClient, arguments: dict[str, Any]) -> Awaitable[BaseModel]:
        """Execute the tool and return a structured result."""


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Catalog entry describing one callable tool."""

    name: str
    description: str
    params: tuple[ParamSpec, ...]
    handler: ToolHandler

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON Schema for the tool's arguments."""
        return build_input_schema(self.params)


def _first_comment(thread: dict[str, Any]) -> ThreadComment | None:
    """Extract the opening comment of a thread, if it has one."""
    comments = optional_mapping(thread, key="comments")
    if comments is None:
        return None
    nodes = require_list(comments, key="nodes")
    if not nodes:
        return None

    comment = ensure_mapping(nodes[0], context="comments.nodes")
    author = optional_mapping(comment, key="author")
    login = author.get("login") if author is not None else None
    return ThreadComment(
        author=login if isinstance(login, str) and login else UNKNOWN_AUTHOR,
        body=require_str(comment, key="body"),
    )


def _page_info(review_threads: dict[str, Any]) -> PageInfo:
    """Read pagination state from a reviewThreads connection."""
    page_info = require_object(review_threads, key="pageInfo")
    end_cursor = page_info.get("endCursor")
    return PageInfo(
        has_next_page=require_bool(page_info, key="hasNextPage"),
        end_cursor=end_cursor if isinstance(end_cursor, str) else None,
    )


async def get_unresolved_threads(
    client: RemoteClient,
    arguments: dict[str, Any],
) -> UnresolvedThreadsPage:
    """Fetch one page of review threads and keep the unresolved ones.

    Filtering happens after the fetch, so a full page can hold zero unresolved
    threads while ``hasNextPage`` is still true. Callers keep paging with
    ``after`` set to the returned ``endCursor`` until ``hasNextPage`` is false.
    """
    owner = arguments["owner"]
    repo = arguments["repo"]
    pull_request_number = arguments["pullRequestNumber"]
    data = await client.execute(
        REVIEW_THREADS_QUERY,
        {
            "owner": owner,
            "repo": repo,
            "pullRequestNumber": pull_request_number,
            "first": arguments["limit"],
            "after": arguments["after"],
        },
        operation_name="ReviewThreads",
    )

    repository = optional_mapping(data, key="repository")
    if repository is None:
        raise not_found(f"Repository '{owner}/{repo}' not found.")
    pull_request = optional_mapping(repository, key="pullRequest")
    if pull_request is None:
        raise not_found(f"Pull request #{pull_request_number} not found in '{owner}/{repo}'.")

    review_threads = require_object(pull_request, key="reviewThreads")
    threads: list[ThreadSummary] = []
    for node in require_list(review_threads, key="nodes"):
        thread = ensure_mapping(node, context="reviewThreads.nodes")
        if require_bool(thread, key="isResolved"):
            continue
        threads.append(
            ThreadSummary(id=require_str(thread, key="id"), first_comment=_first_comment(thread))
        )

    return UnresolvedThreadsPage(
        count=len(threads),
        threads=threads,
        page_info=_page_info(review_threads),
    )


async def resolve_conversation(
    client: RemoteClient,
    arguments: dict[str, Any],
) -> ResolveConversationResult:
    """Mark a review thread resolved and report the remote post-mutation state."""
    data = await client.execute(
        RESOLVE_THREAD_MUTATION,
        {"threadId": arguments["threadId"]},
        operation_name="ResolveThread",
    )
    payload = require_object(data, key="resolveReviewThread")
    thread = require_object(payload, key="thread")
    return ResolveConversationResult(
        thread_id=require_str(thread, key="id"),
        is_resolved=require_bool(thread, key="isResolved"),
    )


async def reply_to_thread(
    client: RemoteClient,
    arguments: dict[str, Any],
) -> ReplyToThreadResult:
    """Post a reply comment on a review thread."""
    data = await client.execute(
        ADD_THREAD_REPLY_MUTATION,
        {"threadId": arguments["threadId"], "body": arguments["body"]},
        operation_name="AddThreadReply",
    )
    payload = require_object(data, key="addPullRequestReviewThreadReply")
    comment = require_object(payload, key="comment")
    return ReplyToThreadResult(comment_url=require_str(comment, key="url"))


_THREAD_ID_PARAM = ParamSpec(
    name="threadId",
    kind=ParamKind.STRING,
    description="Review thread ID (GraphQL node ID, e.g. PRRT_...).",
    non_empty=True,
)

TOOL_DESCRIPTORS: tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        name="get_unresolved_threads",
        description=(
            "List unresolved review threads of a pull request, one page at a time. "
            "Resolved threads are filtered out after fetching, so a page may contain "
            "no unresolved threads while more pages exist: keep calling with "
            "'after' set to pageInfo.endCursor until pageInfo.hasNextPage is false."
        ),
        params=(
            ParamSpec(
                name="owner",
                kind=ParamKind.STRING,
                description="Repository owner.",
                non_empty=True,
            ),
            ParamSpec(
                name="repo",
                kind=ParamKind.STRING,
                description="Repository name.",
                non_empty=True,
            ),
            ParamSpec(
                name="pullRequestNumber",
                kind=ParamKind.INTEGER,
                description="Pull request number.",
                minimum=1,
            ),
            ParamSpec(
                name="limit",
                kind=ParamKind.INTEGER,
                description="Number of review threads to fetch in this page.",
                required=False,
                default=DEFAULT_PAGE_SIZE,
                minimum=1,
                maximum=MAX_PAGE_SIZE,
            ),
            ParamSpec(
                name="after",
                kind=ParamKind.STRING,
                description="Cursor from a previous page's pageInfo.endCursor.",
                required=False,
                non_empty=True,
            ),
        ),
        handler=get_unresolved_threads,
    ),
    ToolDescriptor(
        name="resolve_conversation",
        description="Mark a review thread as resolved.",
        params=(_THREAD_ID_PARAM,),
        handler=resolve_conversation,
    ),
    ToolDescriptor(
        name="reply_to_thread",
        description="Post a reply comment on a review thread and return the comment URL.",
        params=(
            _THREAD_ID_PARAM,
            ParamSpec(name="body", kind=ParamKind.STRING, description="Reply text (Markdown)."),
        ),
        handler=reply_to_thread,
    ),
)


def build_tool_catalog() -> Mapping[str, ToolDescriptor]:
    """Return the read-only mapping of tool name to descriptor."""
    return MappingProxyType({descriptor.name: descriptor for descriptor in TOOL_DESCRIPTORS})
