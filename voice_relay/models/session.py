"""
Per-call session state for the voice relay.

This module provides the CallSession class which holds every piece of mutable state
belonging to one phone call: identifiers announced by the telephony stream, the active
agent persona, readiness and speaking flags, the response gate and the accumulators
for streamed engine output. A CallSession is owned by exactly one
CallSessionController and is never shared across calls.
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class Agent(str, Enum):
    """Agent persona currently driving the conversation."""
    ROUTER = "router"
    ITEMS = "items"
    PICKUP = "pickup"


# Personas a route classification may hand off to
SECONDARY_AGENTS = (Agent.ITEMS, Agent.PICKUP)


class SessionPhase(str, Enum):
    """Lifecycle phase of a call session."""
    CONNECTING = "connecting"
    AWAITING_START = "awaiting_start"
    ACTIVE = "active"
    CLOSED = "closed"


class Handoff(BaseModel):
    """A request to move the conversation to another agent persona."""
    from_agent: Agent
    to_agent: Agent
    question_type: str = "specific"
    question: Optional[str] = Field(None, description="Cleaned caller question to forward")


class CallSession:
    """
    State of a single phone call.

    The response gate is represented by response_in_flight, pending_response_reason,
    requested_reason/requested_id (a request sent but not yet started), response_open (the
    engine is producing a response, ours or not) and active_response_reason. A pending reason is queued when a response is requested while
    another is in flight; active_response_reason is None for responses the session never
    asked for.
    """

    def __init__(self, current_agent: Agent = Agent.ROUTER):
        self.call_id: Optional[str] = None
        self.media_stream_id: Optional[str] = None
        self.current_agent = current_agent
        self.phase = SessionPhase.CONNECTING
        self.engine_ready = False
        self.telephony_started = False
        self.greeting_delivered = False
        self.is_speaking = False
        self.response_in_flight = False
        self.response_open = False
        self.pending_response_reason: Optional[str] = None
        self.requested_reason: Optional[str] = None
        self.requested_id: Optional[str] = None
        self.active_response_reason: Optional[str] = None
        self.transcript_buffer = ""
        self.text_buffer = ""
        self.tool_calls: Dict[str, str] = {}

    @property
    def is_closed(self) -> bool:
        return self.phase == SessionPhase.CLOSED

    @property
    def label(self) -> str:
        """Identifier used in log lines."""
        return self.call_id or "pending-call"

    def reset_output(self) -> None:
        self.transcript_buffer = ""
        self.text_buffer = ""

    def take_output(self) -> str:
        """Return the text to speak for the finished response and clear the accumulators."""
        text = (self.transcript_buffer.strip() or self.text_buffer.strip())
        self.reset_output()
        return text

    def update_phase(self) -> SessionPhase:
        if self.phase == SessionPhase.CLOSED:
            return self.phase
        if self.engine_ready and self.telephony_started:
            self.phase = SessionPhase.ACTIVE
        elif self.engine_ready:
            self.phase = SessionPhase.AWAITING_START
        return self.phase
