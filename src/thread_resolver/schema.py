"""Result contracts returned by the review-thread tools."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN_AUTHOR = "unknown"


class _ToolModel(BaseModel):
    """Base model serializing with the camelCase keys callers expect."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class ThreadComment(_ToolModel):
    """First comment of a review thread."""

    author: str = UNKNOWN_AUTHOR
    body: str


class ThreadSummary(_ToolModel):
    """Unresolved review thread with its opening comment."""

    id: str
    first_comment: ThreadComment | None = None


class PageInfo(_ToolModel):
    """Continuation state for a paginated thread listing."""

    has_next_page: bool
    end_cursor: str | None = None


class UnresolvedThreadsPage(_ToolModel):
    """One page of unresolved review threads."""

    count: int = Field(ge=0)
    threads: list[ThreadSummary] = Field(default_factory=list)
    page_info: PageInfo


class ResolveConversationResult(_ToolModel):
    """Outcome of resolving a review thread."""

    success: Literal[True] = True
    thread_id: str
    is_resolved: bool


class ReplyToThreadResult(_ToolModel):
    """Outcome of replying to a review thread."""

    success: Literal[True] = True
    comment_url: str


class TextBlock(_ToolModel):
    """Text content block in a tool result."""

    type: Literal["text"] = "text"
    text: str


class ToolEnvelope(_ToolModel):
    """Uniform wrapper returned for every tool invocation."""

    content: list[TextBlock]
    is_error: bool = False

    @property
    def text(self) -> str:
        """Return the concatenated text of all content blocks."""
        return "\n".join(block.text for block in self.content)
