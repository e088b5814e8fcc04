"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names, audio parameters and defaults
so that the telephony and engine legs agree on the same values.
"""

# Logger name used throughout the application
LOGGER_NAME = "voice_relay"

# Path the telephony provider connects its media stream to
TELEPHONY_STREAM_PATH = "/twilio-stream"

# Default OpenAI model for Realtime API
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview"
REALTIME_URL = "wss://api.openai.com/v1/realtime"

# ElevenLabs defaults
ELEVENLABS_URL = "https://api.elevenlabs.io/v1/text-to-speech"
DEFAULT_ELEVENLABS_MODEL = "eleven_turbo_v2_5"
ELEVENLABS_OUTPUT_FORMAT = "ulaw_8000"
VOICE_SETTINGS = {"stability": 0.76, "similarity_boost": 0.65, "style": 0.2, "speed": 0.85}

# Audio format constants (8kHz, 8-bit mu-law)
ENGINE_AUDIO_FORMAT = "g711_ulaw"
FRAME_SIZE = 160  # 20ms of audio at 8kHz mu-law
FRAME_DURATION_S = 0.02

# Timeouts (seconds)
DEFAULT_TOOL_TIMEOUT = 15.0
DEFAULT_TTS_TIMEOUT = 20.0

# Telephony event types
TELEPHONY_EVENT_START = "start"
TELEPHONY_EVENT_MEDIA = "media"
TELEPHONY_EVENT_STOP = "stop"

# Engine event types (inbound)
EVENT_RESPONSE_CREATED = "response.created"
EVENT_RESPONSE_DONE = "response.done"
EVENT_TRANSCRIPT_DELTA = "response.audio_transcript.delta"
EVENT_TEXT_DELTAS = ("response.text.delta", "response.output_text.delta")
EVENT_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
EVENT_OUTPUT_ITEM_ADDED = "response.output_item.added"
EVENT_FUNCTION_ARGUMENTS_DONE = "response.function_call_arguments.done"
EVENT_ERROR = "error"

# Response request reasons
REASON_USER_SPEECH = "user-speech"
REASON_TOOL_FOLLOWUP = "tool-followup"
REASON_HANDOFF = "handoff"
REASON_GREETING = "greeting"

# Greeting modes and barge-in policies
GREETING_MODE_AUDIO = "audio"
GREETING_MODE_ENGINE = "engine"
GREETING_TRIGGER_TEXT = "GREETING_TRIGGER"
BARGE_IN_DROP = "drop"
BARGE_IN_QUEUE = "queue"
BARGE_IN_QUEUE_FRAMES = 250  # ~5 seconds of caller audio

# Prompt and answer storage
PROMPT_TABLE = "cl_phone_agents"
PROMPT_SLUGS = {"router-dev": "router", "item-dev": "items", "locations-dev": "pickup"}
ANSWER_TABLE = "answer_templates"
ANSWER_FALLBACK = "I don't have an answer configured for that yet."
