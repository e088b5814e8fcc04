import json

import pytest
from pydantic import ValidationError

from voice_relay.models.engine_schemas import ConversationItemCreateEvent, InputAudioAppendEvent, ResponseCreateEvent
from voice_relay.models.session import CallSession, SessionPhase
from voice_relay.models.telephony_schemas import OutboundMedia, OutboundMediaMessage, StartMessage


def test_start_message_identifiers():
    start = StartMessage(
        **{"event": "start", "start": {"callSid": "CA1", "streamSid": "MZ1", "customParameters": {}}}
    )
    assert start.call_sid == "CA1"
    assert start.stream_sid == "MZ1"


def test_start_message_stream_sid_from_top_level():
    start = StartMessage(**{"event": "start", "streamSid": "MZ2", "start": {"callSid": "CA2"}})
    assert start.stream_sid == "MZ2"


def test_outbound_media_requires_base64():
    with pytest.raises(ValidationError):
        OutboundMedia(payload="not base64!")
    with pytest.raises(ValidationError):
        OutboundMedia(payload="")


def test_outbound_media_from_frame():
    message = OutboundMediaMessage.from_frame("MZ1", b"\xff\xff")
    assert json.loads(message.model_dump_json()) == {"event": "media", "streamSid": "MZ1", "media": {"payload": "//8="}}


def test_function_output_is_json_string():
    event = ConversationItemCreateEvent.function_output("call_1", {"results": [{"name": "Matzah Box"}]})
    payload = event.to_payload()
    assert payload["item"] == {
        "type": "function_call_output",
        "call_id": "call_1",
        "output": '{"results": [{"name": "Matzah Box"}]}',
    }


def test_user_message():
    payload = ConversationItemCreateEvent.user_message("hello").to_payload()
    assert payload == {
        "type": "conversation.item.create",
        "item": {"type": "message", "role": "user", "content": [{"type": "input_text", "text": "hello"}]},
    }


def test_simple_events():
    assert ResponseCreateEvent().to_payload() == {"type": "response.create"}
    assert InputAudioAppendEvent(audio="f39/").to_payload() == {"type": "input_audio_buffer.append", "audio": "f39/"}


def test_tagged_response_request():
    payload = ResponseCreateEvent.tagged("req_1", "tool-followup").to_payload()
    assert payload == {
        "type": "response.create",
        "event_id": "req_1",
        "response": {"metadata": {"request_id": "req_1", "reason": "tool-followup"}},
    }


def test_session_output_prefers_transcript():
    session = CallSession()
    session.transcript_buffer = "  spoken  "
    session.text_buffer = "written"
    assert session.take_output() == "spoken"
    assert session.transcript_buffer == "" and session.text_buffer == ""

    session.text_buffer = "written"
    assert session.take_output() == "written"


def test_session_phases():
    session = CallSession()
    assert session.phase == SessionPhase.CONNECTING
    session.telephony_started = True
    assert session.update_phase() == SessionPhase.CONNECTING
    session.engine_ready = True
    assert session.update_phase() == SessionPhase.ACTIVE
    session.phase = SessionPhase.CLOSED
    assert session.update_phase() == SessionPhase.CLOSED
    assert session.label == "pending-call"
