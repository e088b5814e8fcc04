"""
Pydantic models for OpenAI Realtime API client events.

This module provides type-safe models for the events the relay sends to the
reasoning engine: session configuration, conversation items (user messages and
function results), response requests and input audio.
"""

import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from voice_relay.config.constants import ENGINE_AUDIO_FORMAT


class EngineEvent(BaseModel):
    """Base model for client events sent to the engine."""

    type: str

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class FunctionTool(BaseModel):
    """A function exposed to the engine, described with JSON schema."""

    type: Literal["function"] = "function"
    name: str
    description: str
    parameters: Dict[str, Any]


class TurnDetection(BaseModel):
    type: str = "server_vad"
    create_response: bool = False


class SessionConfig(BaseModel):
    instructions: str
    tools: List[FunctionTool] = Field(default_factory=list)
    modalities: Optional[List[str]] = None
    input_audio_format: Optional[str] = None
    output_audio_format: Optional[str] = None
    turn_detection: Optional[TurnDetection] = None

    @classmethod
    def full(cls, instructions: str, tools: List[FunctionTool]) -> "SessionConfig":
        """Initial configuration: audio formats, VAD mode and persona."""
        return cls(
            instructions=instructions,
            tools=tools,
            modalities=["audio", "text"],
            input_audio_format=ENGINE_AUDIO_FORMAT,
            output_audio_format=ENGINE_AUDIO_FORMAT,
            turn_detection=TurnDetection(),
        )


class SessionUpdateEvent(EngineEvent):
    type: Literal["session.update"] = "session.update"
    session: SessionConfig


class InputText(BaseModel):
    type: Literal["input_text"] = "input_text"
    text: str


class MessageItem(BaseModel):
    type: Literal["message"] = "message"
    role: Literal["user"] = "user"
    content: List[InputText]


class FunctionCallOutputItem(BaseModel):
    type: Literal["function_call_output"] = "function_call_output"
    call_id: str
    output: str


class ConversationItemCreateEvent(EngineEvent):
    type: Literal["conversation.item.create"] = "conversation.item.create"
    item: Union[MessageItem, FunctionCallOutputItem]

    @classmethod
    def user_message(cls, text: str) -> "ConversationItemCreateEvent":
        return cls(item=MessageItem(content=[InputText(text=text)]))

    @classmethod
    def function_output(cls, call_id: str, output: Any) -> "ConversationItemCreateEvent":
        return cls(item=FunctionCallOutputItem(call_id=call_id, output=json.dumps(output)))


class ResponseOptions(BaseModel):
    metadata: Dict[str, str] = Field(default_factory=dict)


class ResponseCreateEvent(EngineEvent):
    """
    Request for a model response.

    The request id travels as the client event_id (echoed by error events) and in
    the response metadata (echoed by response.created).
    """

    type: Literal["response.create"] = "response.create"
    event_id: Optional[str] = None
    response: Optional[ResponseOptions] = None

    @classmethod
    def tagged(cls, request_id: str, reason: str) -> "ResponseCreateEvent":
        return cls(
            event_id=request_id,
            response=ResponseOptions(metadata={"request_id": request_id, "reason": reason}),
        )


class InputAudioAppendEvent(EngineEvent):
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str = Field(..., description="Base64-encoded mu-law audio")
