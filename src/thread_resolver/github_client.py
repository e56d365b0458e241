"""GitHub GraphQL wrapper and remote failure classification."""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Any

import httpx

from thread_resolver.config import Settings
from thread_resolver.queries import VIEWER_LOGIN_QUERY

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
USER_AGENT = "github-thread-resolver"
AUTH_FAILURE_MARKERS = ("bad credentials", "requires authentication", "unauthorized")
NOT_FOUND_MARKERS = ("could not resolve", "not found", "not_found")
AUTH_FAILURE_MESSAGE = (
    "GitHub authentication failed: the configured token was rejected. "
    "Check GITHUB_TOKEN (or GH_TOKEN) and its scopes."
)


class FailureKind(StrEnum):
    """Best-effort classification of a remote failure."""

    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    OTHER = "other"


class RemoteOperationError(RuntimeError):
    """Raised when a GraphQL operation fails or returns an unusable payload."""

    def __init__(self, message: str, *, kind: FailureKind, raw_message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.raw_message = raw_message


def classify_remote_failure(raw_message: str) -> FailureKind:
    """Classify a remote failure by inspecting its message text."""
    lowered = raw_message.lower()
    if any(marker in lowered for marker in AUTH_FAILURE_MARKERS):
        return FailureKind.AUTHENTICATION
    if any(marker in lowered for marker in NOT_FOUND_MARKERS):
        return FailureKind.NOT_FOUND
    return FailureKind.OTHER


def build_remote_failure(raw_message: str) -> RemoteOperationError:
    """Build a classified error whose message is safe to show to callers."""
    kind = classify_remote_failure(raw_message)
    if kind is FailureKind.AUTHENTICATION:
        # The raw text may echo request details, so it is not surfaced.
        return RemoteOperationError(AUTH_FAILURE_MESSAGE, kind=kind, raw_message=raw_message)
    if kind is FailureKind.NOT_FOUND:
        return RemoteOperationError(
            f"Not found: {raw_message}", kind=kind, raw_message=raw_message
        )
    return RemoteOperationError(
        f"GitHub API error: {raw_message}", kind=kind, raw_message=raw_message
    )


def not_found(message: str) -> RemoteOperationError:
    """Build a not-found failure for a resource missing from a response payload."""
    return RemoteOperationError(message, kind=FailureKind.NOT_FOUND, raw_message=message)


def _unexpected_shape(context: str) -> RemoteOperationError:
    """Build an error for a response fragment that does not match the query."""
    message = f"Unexpected GitHub response shape at '{context}'."
    return RemoteOperationError(message, kind=FailureKind.OTHER, raw_message=message)


def ensure_mapping(value: object, *, context: str) -> dict[str, Any]:
    """Ensure a response fragment is a JSON object."""
    if not isinstance(value, dict):
        raise _unexpected_shape(context)
    return value


def optional_mapping(payload: dict[str, Any], *, key: str) -> dict[str, Any] | None:
    """Read an object field that GraphQL may legitimately return as null."""
    value = payload.get(key)
    if value is None:
        return None
    return ensure_mapping(value, context=key)


def require_object(payload: dict[str, Any], *, key: str) -> dict[str, Any]:
    """Read a required object field from payload."""
    return ensure_mapping(payload.get(key), context=key)


def require_list(payload: dict[str, Any], *, key: str) -> list[Any]:
    """Read a required array field from payload."""
    value = payload.get(key)
    if not isinstance(value, list):
        raise _unexpected_shape(key)
    return value


def require_str(payload: dict[str, Any], *, key: str) -> str:
    """Read a required string field from payload."""
    value = payload.get(key)
    if not isinstance(value, str):
        raise _unexpected_shape(key)
    return value


def require_bool(payload: dict[str, Any], *, key: str) -> bool:
    """Read a required boolean field from payload."""
    value = payload.get(key)
    if not isinstance(value, bool):
        raise _unexpected_shape(key)
    return value


def _error_text_from_payload(payload: object) -> str | None:
    """Join GraphQL or REST-style error messages found in a response body."""
    if not isinstance(payload, dict):
        return None
    errors = payload.get("errors")
    if isinstance(errors, list) and errors:
        messages = [
            str(error.get("message", error)) if isinstance(error, dict) else str(error)
            for error in errors
        ]
        return "; ".join(messages)
    message = payload.get("message")
    if isinstance(message, str) and message:
        return message
    return None


def _error_text_from_response(response: httpx.Response) -> str:
    """Describe a non-success HTTP response."""
    try:
        detail = _error_text_from_payload(response.json())
    except ValueError:
        detail = None
    prefix = f"GitHub API request failed with status {response.status_code}"
    if response.reason_phrase:
        prefix = f"{prefix} ({response.reason_phrase})"
    if detail:
        return f"{prefix}: {detail}"
    return f"{prefix}."


class GraphQLClient:
    """Authenticated client issuing one GraphQL operation per call."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        url: str,
        timeout_seconds: float,
    ) -> None:
        self._http_client = http_client
        self._url = url
        self._timeout_seconds = timeout_seconds

    async def __aenter__(self) -> GraphQLClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http_client.aclose()

    async def execute(
        self,
        document: str,
        variables: dict[str, Any] | None = None,
        *,
        operation_name: str | None = None,
    ) -> dict[str, Any]:
        """Run one query or mutation and return its ``data`` object."""
        body: dict[str, Any] = {"query": document, "variables": variables or {}}
        if operation_name:
            body["operationName"] = operation_name
        logger.debug("Issuing GraphQL operation %s", operation_name or "<anonymous>")

        try:
            # httpx timeouts apply per read, so the whole exchange gets one deadline.
            async with asyncio.timeout(self._timeout_seconds):
                response = await self._http_client.post(self._url, json=body)
        except (TimeoutError, httpx.TimeoutException) as error:
            raise build_remote_failure(
                f"GitHub API request timed out after {self._timeout_seconds:g} seconds."
            ) from error
        except httpx.HTTPError as error:
            raise build_remote_failure(f"GitHub API request failed: {error}") from error

        if response.status_code >= 400:
            raise build_remote_failure(_error_text_from_response(response))

        try:
            payload = response.json()
        except ValueError as error:
            raise build_remote_failure("GitHub API returned a non-JSON response.") from error

        error_text = _error_text_from_payload(payload)
        if error_text is not None:
            raise build_remote_failure(error_text)
        return require_object(ensure_mapping(payload, context="response"), key="data")


def build_graphql_client(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GraphQLClient:
    """Build the authenticated GraphQL client from startup settings."""
    headers = {
        "Accept": "application/vnd.github+json",
        "Authorization": f"Bearer {settings.token}",
        "User-Agent": USER_AGENT,
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }
    http_client = httpx.AsyncClient(
        headers=headers,
        timeout=settings.timeout_seconds,
        transport=transport,
    )
    return GraphQLClient(
        http_client,
        url=settings.graphql_url,
        timeout_seconds=settings.timeout_seconds,
    )


async def fetch_viewer_login(client: GraphQLClient) -> str:
    """Fetch authenticated GitHub user login for token validation."""
    data = await client.execute(VIEWER_LOGIN_QUERY, operation_name="ViewerLogin")
    viewer = require_object(data, key="viewer")
    return require_str(viewer, key="login")
