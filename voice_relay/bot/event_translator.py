"""
Translation of raw engine events into session signals.

The reasoning engine emits many event types; the session only cares about the
response lifecycle, transcript/text deltas, the end of caller speech, tool calls and
errors. translate_event() maps one decoded event to at most one EngineSignal and
returns None for everything else, including the engine's own audio deltas.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from voice_relay.config.constants import (
    EVENT_ERROR,
    EVENT_FUNCTION_ARGUMENTS_DONE,
    EVENT_OUTPUT_ITEM_ADDED,
    EVENT_RESPONSE_CREATED,
    EVENT_RESPONSE_DONE,
    EVENT_SPEECH_STOPPED,
    EVENT_TEXT_DELTAS,
    EVENT_TRANSCRIPT_DELTA,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)


class SignalKind(str, Enum):
    RESPONSE_STARTED = "response_started"
    TRANSCRIPT_DELTA = "transcript_delta"
    TEXT_DELTA = "text_delta"
    SPEECH_STOPPED = "speech_stopped"
    TOOL_CALL_STARTED = "tool_call_started"
    TOOL_ARGUMENTS_DONE = "tool_arguments_done"
    RESPONSE_COMPLETED = "response_completed"
    ENGINE_ERROR = "engine_error"


@dataclass
class EngineSignal:
    kind: SignalKind
    delta: str = ""
    call_id: Optional[str] = None
    request_id: Optional[str] = None
    tool_name: Optional[str] = None
    arguments: Dict[str, Any] = field(default_factory=dict)
    error: Dict[str, Any] = field(default_factory=dict)


def parse_arguments(raw: Any) -> Dict[str, Any]:
    """
    Parse tool-call arguments, falling back to an empty object.

    The engine sends arguments as a JSON string; anything that does not decode to a
    JSON object is logged and replaced with {}.
    """
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Malformed tool-call arguments, using empty object: {str(raw)[:200]}")
        return {}
    if not isinstance(parsed, dict):
        logger.warning(f"Tool-call arguments are not an object, using empty object: {str(raw)[:200]}")
        return {}
    return parsed


def translate_event(event: Dict[str, Any]) -> Optional[EngineSignal]:
    """
    Map a decoded engine event to a session signal.

    Args:
        event: The decoded JSON event

    Returns:
        The matching EngineSignal, or None for events the session ignores
    """
    event_type = event.get("type")

    if event_type == EVENT_RESPONSE_CREATED:
        response = event.get("response")
        metadata = response.get("metadata") if isinstance(response, dict) else None
        metadata = metadata if isinstance(metadata, dict) else {}
        return EngineSignal(SignalKind.RESPONSE_STARTED, request_id=metadata.get("request_id"))

    if event_type == EVENT_TRANSCRIPT_DELTA:
        delta = event.get("delta") or ""
        return EngineSignal(SignalKind.TRANSCRIPT_DELTA, delta=delta) if delta else None

    if event_type in EVENT_TEXT_DELTAS:
        delta = event.get("delta") or ""
        return EngineSignal(SignalKind.TEXT_DELTA, delta=delta) if delta else None

    if event_type == EVENT_SPEECH_STOPPED:
        return EngineSignal(SignalKind.SPEECH_STOPPED)

    if event_type == EVENT_OUTPUT_ITEM_ADDED:
        item = event.get("item") or {}
        if item.get("type") == "function_call" and item.get("call_id"):
            return EngineSignal(SignalKind.TOOL_CALL_STARTED, call_id=item["call_id"], tool_name=item.get("name"))
        return None

    if event_type == EVENT_FUNCTION_ARGUMENTS_DONE:
        return EngineSignal(
            SignalKind.TOOL_ARGUMENTS_DONE,
            call_id=event.get("call_id"),
            arguments=parse_arguments(event.get("arguments")),
        )

    if event_type == EVENT_RESPONSE_DONE:
        return EngineSignal(SignalKind.RESPONSE_COMPLETED)

    if event_type == EVENT_ERROR:
        error = event.get("error")
        if not isinstance(error, dict):
            error = {"message": str(error)}
        # event_id names the client event that failed, when the engine knows it
        return EngineSignal(SignalKind.ENGINE_ERROR, error=error, request_id=error.get("event_id"))

    return None
