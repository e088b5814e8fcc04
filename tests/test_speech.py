"""
Tests for the speech synthesis bridge and greeting audio loading.
"""

import json
import struct

import httpx
import pytest

from voice_relay.services.speech import SpeechSynthesizer, SynthesisError, load_greeting_audio, split_frames


def make_synthesizer(handler):
    return SpeechSynthesizer("xi-test", "voice-1", timeout=20.0, transport=httpx.MockTransport(handler))


def mulaw_wav(data, audio_format=7, channels=1, sample_rate=8000):
    fmt = struct.pack("<HHIIHH", audio_format, channels, sample_rate, sample_rate * channels, channels, 8)
    body = b"WAVE" + b"fmt " + struct.pack("<I", len(fmt)) + fmt + b"data" + struct.pack("<I", len(data)) + data
    return b"RIFF" + struct.pack("<I", len(body)) + body


@pytest.mark.asyncio
async def test_synthesize_requests_ulaw():
    seen = {}

    def handler(request):
        seen["request"] = request
        return httpx.Response(200, content=b"\xff" * 320)

    audio = await make_synthesizer(handler).synthesize("Your package is ready")

    request = seen["request"]
    assert audio == b"\xff" * 320
    assert request.url.path == "/v1/text-to-speech/voice-1"
    assert request.url.params["output_format"] == "ulaw_8000"
    assert request.headers["xi-api-key"] == "xi-test"
    body = json.loads(request.content)
    assert body["text"] == "Your package is ready"
    assert body["model_id"] == "eleven_turbo_v2_5"
    assert body["voice_settings"]["stability"] == 0.76


@pytest.mark.asyncio
async def test_synthesize_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(SynthesisError, match="timed out"):
        await make_synthesizer(handler).synthesize("hello")


@pytest.mark.asyncio
async def test_synthesize_error_status():
    def handler(request):
        return httpx.Response(401, json={"detail": "invalid api key"})

    with pytest.raises(SynthesisError, match="401"):
        await make_synthesizer(handler).synthesize("hello")


@pytest.mark.asyncio
async def test_synthesize_empty_audio():
    def handler(request):
        return httpx.Response(200, content=b"")

    with pytest.raises(SynthesisError, match="no audio"):
        await make_synthesizer(handler).synthesize("hello")


def test_split_frames():
    frames = split_frames(b"\x01" * 400)
    assert [len(frame) for frame in frames] == [160, 160, 80]
    assert split_frames(b"") == []


def test_load_raw_greeting(tmp_path):
    path = tmp_path / "greeting.ulaw"
    path.write_bytes(b"\xff" * 800)

    assert load_greeting_audio(str(path)) == b"\xff" * 800


def test_load_wav_greeting(tmp_path):
    path = tmp_path / "greeting.wav"
    path.write_bytes(mulaw_wav(b"\x7f" * 480))

    assert load_greeting_audio(str(path)) == b"\x7f" * 480


def test_load_pcm_wav_greeting_rejected(tmp_path):
    path = tmp_path / "greeting.wav"
    path.write_bytes(mulaw_wav(b"\x00" * 480, audio_format=1))

    assert load_greeting_audio(str(path)) is None


def test_load_missing_greeting(tmp_path):
    assert load_greeting_audio(str(tmp_path / "missing.ulaw")) is None
    assert load_greeting_audio(None) is None
