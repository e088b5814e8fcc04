"""
Environment-based settings for the voice relay.

Settings are read once at startup. Missing credentials for the reasoning engine or
the speech backend are fatal; missing tool endpoints or storage credentials only
degrade the feature that depends on them.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import dotenv

from voice_relay.config.constants import (
    BARGE_IN_DROP,
    BARGE_IN_QUEUE,
    DEFAULT_ELEVENLABS_MODEL,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_TOOL_TIMEOUT,
    DEFAULT_TTS_TIMEOUT,
    FRAME_DURATION_S,
    GREETING_MODE_AUDIO,
    GREETING_MODE_ENGINE,
    LOGGER_NAME,
)

DEFAULT_LOG_FILE = "logs/voice_relay.log"

logger = logging.getLogger(LOGGER_NAME)


class ConfigurationError(Exception):
    """Raised when the process cannot start with the given environment."""


@dataclass(frozen=True)
class Settings:
    openai_api_key: str
    elevenlabs_api_key: str
    elevenlabs_voice_id: str
    realtime_model: str = DEFAULT_REALTIME_MODEL
    elevenlabs_model_id: str = DEFAULT_ELEVENLABS_MODEL
    router_endpoint: Optional[str] = None
    item_search_endpoint: Optional[str] = None
    pickup_endpoint: Optional[str] = None
    prompt_refresh_secret: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    greeting_mode: str = GREETING_MODE_AUDIO
    greeting_audio_path: str = "static/greeting.ulaw"
    barge_in_policy: str = BARGE_IN_DROP
    tool_timeout: float = DEFAULT_TOOL_TIMEOUT
    tts_timeout: float = DEFAULT_TTS_TIMEOUT
    frame_pacing: float = FRAME_DURATION_S
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    log_file: Optional[str] = DEFAULT_LOG_FILE

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name, "").strip()
    return value or None


def _number(env: Mapping[str, str], name: str, default, cast=float):
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _choice(env: Mapping[str, str], name: str, default: str, choices) -> str:
    value = env.get(name, default).strip().lower() or default
    if value not in choices:
        raise ConfigurationError(f"{name} must be one of {sorted(choices)}, got {value!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Loads a .env file from the working directory first when reading from the
    process environment.

    Args:
        env: Mapping to read instead of os.environ (used by tests)

    Returns:
        Settings: The validated settings

    Raises:
        ConfigurationError: If a required credential is missing or a value is invalid
    """
    if env is None:
        env_path = Path(".") / ".env"
        if env_path.exists():
            dotenv.load_dotenv(env_path)
        env = os.environ

    missing = [
        name
        for name in ("OPENAI_API_KEY", "ELEVENLABS_API_KEY", "ELEVENLABS_VOICE_ID")
        if not _optional(env, name)
    ]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    settings = Settings(
        openai_api_key=_optional(env, "OPENAI_API_KEY"),
        elevenlabs_api_key=_optional(env, "ELEVENLABS_API_KEY"),
        elevenlabs_voice_id=_optional(env, "ELEVENLABS_VOICE_ID"),
        realtime_model=_optional(env, "OPENAI_REALTIME_MODEL") or DEFAULT_REALTIME_MODEL,
        elevenlabs_model_id=_optional(env, "ELEVENLABS_MODEL_ID") or DEFAULT_ELEVENLABS_MODEL,
        router_endpoint=_optional(env, "ROUTER_ENDPOINT"),
        item_search_endpoint=_optional(env, "ITEM_SEARCH_ENDPOINT"),
        pickup_endpoint=_optional(env, "PICKUP_ENDPOINT"),
        prompt_refresh_secret=_optional(env, "PROMPT_REFRESH_SECRET"),
        supabase_url=_optional(env, "SUPABASE_URL"),
        supabase_key=_optional(env, "SUPABASE_KEY"),
        greeting_mode=_choice(
            env, "GREETING_MODE", GREETING_MODE_AUDIO, {GREETING_MODE_AUDIO, GREETING_MODE_ENGINE}
        ),
        greeting_audio_path=_optional(env, "GREETING_AUDIO_PATH") or "static/greeting.ulaw",
        barge_in_policy=_choice(env, "BARGE_IN_POLICY", BARGE_IN_DROP, {BARGE_IN_DROP, BARGE_IN_QUEUE}),
        tool_timeout=_number(env, "TOOL_TIMEOUT_S", DEFAULT_TOOL_TIMEOUT),
        tts_timeout=_number(env, "TTS_TIMEOUT_S", DEFAULT_TTS_TIMEOUT),
        frame_pacing=_number(env, "FRAME_PACING_S", FRAME_DURATION_S),
        host=_optional(env, "HOST") or "0.0.0.0",
        port=_number(env, "PORT", 8080, int),
        log_level=(_optional(env, "LOG_LEVEL") or "INFO").upper(),
        # Set but empty means console-only logging
        log_file=env.get("LOG_FILE", DEFAULT_LOG_FILE).strip() or None,
    )

    for name, value in (
        ("ROUTER_ENDPOINT", settings.router_endpoint),
        ("ITEM_SEARCH_ENDPOINT", settings.item_search_endpoint),
        ("PICKUP_ENDPOINT", settings.pickup_endpoint),
    ):
        if not value:
            logger.warning(f"{name} not configured; that tool will always fail soft")
    if not settings.supabase_configured:
        logger.warning("SUPABASE_URL/SUPABASE_KEY not configured; using fallback prompts and answers")
    if not settings.prompt_refresh_secret:
        logger.warning("PROMPT_REFRESH_SECRET not configured; prompt refresh endpoint will reject all requests")

    return settings
