"""
Pydantic models for the telephony media stream protocol.

This module defines the Twilio Media Streams frames consumed by the relay: the common
frame envelope used to route every inbound frame, the start and stop frames, and the
outbound media frame used to play audio to the caller. Inbound media payloads are read
straight from the envelope dict since they arrive every 20ms. Unknown fields are
tolerated so provider additions never break parsing.
"""

import base64
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TelephonyMessage(BaseModel):
    """Base model for all telephony stream frames."""

    model_config = ConfigDict(extra="ignore")

    event: str = Field(..., description="Frame type identifier")
    streamSid: Optional[str] = Field(None, description="Media stream identifier")


class StartDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    callSid: Optional[str] = None
    streamSid: Optional[str] = None


class StartMessage(TelephonyMessage):
    """Model for the start frame announcing the call and stream identifiers."""

    event: Literal["start"]
    start: StartDetails = Field(default_factory=StartDetails)

    @property
    def call_sid(self) -> Optional[str]:
        return self.start.callSid

    @property
    def stream_sid(self) -> Optional[str]:
        return self.start.streamSid or self.streamSid


class StopMessage(TelephonyMessage):
    """Model for the stop frame sent when the stream ends."""

    event: Literal["stop"]


class OutboundMedia(BaseModel):
    payload: str

    @field_validator("payload")
    def validate_payload(cls, v):
        """Validate that the payload is non-empty base64."""
        if not v:
            raise ValueError("Audio payload cannot be empty")
        try:
            base64.b64decode(v, validate=True)
        except Exception:
            raise ValueError("Invalid base64 encoded audio data")
        return v


class OutboundMediaMessage(BaseModel):
    """Model for a media frame sent to the caller."""

    event: Literal["media"] = "media"
    streamSid: str
    media: OutboundMedia

    @classmethod
    def from_frame(cls, stream_sid: str, frame: bytes) -> "OutboundMediaMessage":
        return cls(
            streamSid=stream_sid,
            media=OutboundMedia(payload=base64.b64encode(frame).decode("utf-8")),
        )
