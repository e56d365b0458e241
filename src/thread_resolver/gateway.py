"""Tool gateway: catalog lookup, validation, dispatch and envelopes."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from thread_resolver.github_client import RemoteOperationError
from thread_resolver.output import (
    build_envelope_from_exception,
    build_failure_envelope,
    build_success_envelope,
)
from thread_resolver.schema import ToolEnvelope
from thread_resolver.tools import RemoteClient, ToolDescriptor, build_tool_catalog
from thread_resolver.validation import ToolValidationError, validate_arguments

logger = logging.getLogger(__name__)


class GatewayState(StrEnum):
    """Lifecycle of the gateway."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    FAILED = "failed"


class UnknownToolError(LookupError):
    """Raised when a caller names a tool outside the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: '{name}'.")
        self.name = name


class GatewayStateError(RuntimeError):
    """Raised on an invalid lifecycle transition."""


class ToolGateway:
    """Dispatch tool calls to handlers and wrap every outcome in an envelope."""

    def __init__(
        self,
        client: RemoteClient,
        catalog: Mapping[str, ToolDescriptor] | None = None,
    ) -> None:
        self._client = client
        self._catalog = catalog if catalog is not None else build_tool_catalog()
        self._state = GatewayState.UNINITIALIZED
        self._failure_reason: str | None = None

    @property
    def state(self) -> GatewayState:
        return self._state

    @property
    def failure_reason(self) -> str | None:
        return self._failure_reason

    def mark_ready(self) -> None:
        """Enter the steady state once the transport handshake is underway."""
        if self._state is GatewayState.FAILED:
            raise GatewayStateError("Gateway has failed and cannot become ready.")
        self._state = GatewayState.READY

    def mark_failed(self, reason: str) -> None:
        """Enter the terminal failed state."""
        self._state = GatewayState.FAILED
        self._failure_reason = reason
        logger.error("Tool gateway failed: %s", reason)

    def list_tools(self) -> tuple[ToolDescriptor, ...]:
        """Return the catalog in registration order."""
        return tuple(self._catalog.values())

    def lookup(self, name: str) -> ToolDescriptor:
        """Return the descriptor for a tool name."""
        descriptor = self._catalog.get(name)
        if descriptor is None:
            raise UnknownToolError(name)
        return descriptor

    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None) -> ToolEnvelope:
        """Run one tool call; failures are returned, never raised."""
        if self._state is not GatewayState.READY:
            return build_failure_envelope(
                f"Tool gateway is not ready (state: {self._state}); '{name}' was not run."
            )

        try:
            descriptor = self.lookup(name)
            validated = validate_arguments(descriptor.params, arguments)
        except (UnknownToolError, ToolValidationError) as error:
            logger.warning("Rejected call to %s: %s", name, error)
            return build_envelope_from_exception(error)

        logger.debug("Dispatching tool %s", name)
        try:
            result = await descriptor.handler(self._client, validated)
        except RemoteOperationError as error:
            logger.warning("Tool %s failed (%s): %s", name, error.kind, error)
            return build_envelope_from_exception(error)
        return build_success_envelope(result)
