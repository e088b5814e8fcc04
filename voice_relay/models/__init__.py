"""
Models module for data structures and state management in the voice relay.

Key components:
- telephony_schemas: Pydantic models for the telephony frame envelope, the start
  and stop frames and the outbound media frame.
- engine_schemas: Pydantic models for the client events sent to the reasoning engine
  (session.update, conversation.item.create, response.create, input audio).
- session: The per-call CallSession state object, the Agent persona enum, session
  phases and the Handoff model.

Usage examples:
```python
from voice_relay.models.session import Agent, CallSession
from voice_relay.models.telephony_schemas import StartMessage

session = CallSession()
start = StartMessage(**{"event": "start", "start": {"callSid": "CA1", "streamSid": "MZ1"}})
session.call_id = start.call_sid
session.media_stream_id = start.stream_sid
assert session.current_agent is Agent.ROUTER
```
"""

from voice_relay.models.engine_schemas import (
    ConversationItemCreateEvent,
    FunctionTool,
    InputAudioAppendEvent,
    ResponseCreateEvent,
    SessionConfig,
    SessionUpdateEvent,
)
from voice_relay.models.session import Agent, CallSession, Handoff, SessionPhase
from voice_relay.models.telephony_schemas import (
    OutboundMediaMessage,
    StartMessage,
    StopMessage,
    TelephonyMessage,
)
