"""
Speech synthesis bridge.

Converts finalized agent text into telephony-native audio through the ElevenLabs
text-to-speech API, requesting 8kHz mu-law output directly so no transcoding step is
needed, and loads the precomputed greeting asset. Audio is split into fixed-size
frames here; pacing them onto the wire is the session controller's job.
"""

import logging
import struct
from pathlib import Path
from typing import List, Optional

import httpx

from voice_relay.config.constants import (
    DEFAULT_ELEVENLABS_MODEL,
    DEFAULT_TTS_TIMEOUT,
    ELEVENLABS_OUTPUT_FORMAT,
    ELEVENLABS_URL,
    FRAME_SIZE,
    LOGGER_NAME,
    VOICE_SETTINGS,
)

logger = logging.getLogger(LOGGER_NAME)

WAVE_FORMAT_MULAW = 7


class SynthesisError(Exception):
    """Raised when the speech backend fails to return audio."""


class SpeechSynthesizer:
    """Client for the ElevenLabs text-to-speech endpoint."""

    def __init__(
        self,
        api_key: str,
        voice_id: str,
        model_id: str = DEFAULT_ELEVENLABS_MODEL,
        timeout: float = DEFAULT_TTS_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "SpeechSynthesizer":
        return cls(
            settings.elevenlabs_api_key,
            settings.elevenlabs_voice_id,
            model_id=settings.elevenlabs_model_id,
            timeout=settings.tts_timeout,
            transport=transport,
        )

    async def synthesize(self, text: str) -> bytes:
        """
        Synthesize text into raw 8kHz mu-law audio.

        Args:
            text: Text to speak

        Returns:
            bytes: Audio in telephony-native encoding

        Raises:
            SynthesisError: On timeout, network error, non-2xx status or empty audio
        """
        url = f"{ELEVENLABS_URL}/{self.voice_id}"
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": VOICE_SETTINGS,
        }
        headers = {
            "xi-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        logger.info(f"Synthesizing: {text[:40]!r}")
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    params={"output_format": ELEVENLABS_OUTPUT_FORMAT},
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException:
            raise SynthesisError(f"speech synthesis timed out after {self.timeout:.1f}s")
        except httpx.HTTPError as e:
            raise SynthesisError(f"speech synthesis request failed: {type(e).__name__}: {e}")

        if not response.is_success:
            raise SynthesisError(f"speech synthesis returned {response.status_code}: {response.text[:200]}")
        if not response.content:
            raise SynthesisError("speech synthesis returned no audio")
        return response.content


def split_frames(audio: bytes, frame_size: int = FRAME_SIZE) -> List[bytes]:
    """Split audio into frames of frame_size bytes; the last frame may be shorter."""
    return [audio[i:i + frame_size] for i in range(0, len(audio), frame_size)]


def _mulaw_wav_data(raw: bytes) -> bytes:
    """Return the sample data of a mu-law WAV file, or raise ValueError."""
    if len(raw) < 12 or raw[8:12] != b"WAVE":
        raise ValueError("not a WAVE file")
    offset = 12
    audio_format = None
    while offset + 8 <= len(raw):
        chunk_id, chunk_size = struct.unpack("<4sI", raw[offset:offset + 8])
        body = raw[offset + 8:offset + 8 + chunk_size]
        if chunk_id == b"fmt ":
            audio_format, channels, sample_rate = struct.unpack("<HHI", body[:8])
            if audio_format != WAVE_FORMAT_MULAW or channels != 1 or sample_rate != 8000:
                raise ValueError(
                    f"unsupported WAV encoding (format={audio_format}, channels={channels}, rate={sample_rate})"
                )
        elif chunk_id == b"data":
            if audio_format is None:
                raise ValueError("data chunk before fmt chunk")
            return body
        offset += 8 + chunk_size + (chunk_size % 2)
    raise ValueError("no data chunk")


def load_greeting_audio(path: Optional[str]) -> Optional[bytes]:
    """
    Load the greeting asset as raw 8kHz mu-law audio.

    Accepts headerless mu-law files or mu-law WAV files. Returns None (and logs) when
    the file is missing, empty or in another encoding; a call then proceeds without a
    greeting.
    """
    if not path:
        return None
    file_path = Path(path)
    try:
        raw = file_path.read_bytes()
    except OSError as e:
        logger.warning(f"Greeting audio not available at {file_path}: {e}")
        return None

    if raw[:4] == b"RIFF":
        try:
            raw = _mulaw_wav_data(raw)
        except (ValueError, struct.error) as e:
            logger.warning(f"Could not load greeting audio {file_path}: {e}")
            return None

    if not raw:
        logger.warning(f"Greeting audio at {file_path} is empty")
        return None

    logger.info(f"Loaded greeting audio: {len(raw)} bytes ({len(raw) / 8000:.1f}s)")
    return raw
