"""Tool result envelope construction."""

from __future__ import annotations

import json

from pydantic import BaseModel

from thread_resolver.schema import TextBlock, ToolEnvelope


def _render_json(payload: object) -> str:
    """Render a payload the way every tool result is rendered."""
    return json.dumps(payload, indent=2, ensure_ascii=False)


def build_success_envelope(result: BaseModel) -> ToolEnvelope:
    """Wrap a handler result in a success envelope."""
    payload = result.model_dump(by_alias=True, mode="json")
    return ToolEnvelope(content=[TextBlock(text=_render_json(payload))])


def build_failure_envelope(message: str) -> ToolEnvelope:
    """Wrap a failure message in an error-flagged envelope."""
    return ToolEnvelope(
        content=[TextBlock(text=_render_json({"error": message}))],
        is_error=True,
    )


def build_envelope_from_exception(error: Exception) -> ToolEnvelope:
    """Wrap a raised failure, using its message as the only detail."""
    return build_failure_envelope(str(error) or type(error).__name__)
