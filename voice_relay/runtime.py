"""
Process-wide collaborators shared by all calls.

Everything here is either stateless (HTTP clients) or read-only to calls (the prompt
store, the greeting audio), so calls never share mutable state.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from supabase import create_client

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.config.settings import Settings
from voice_relay.services.answers import AnswerTemplates
from voice_relay.services.prompt_store import PromptStore, SupabasePromptSource
from voice_relay.services.speech import SpeechSynthesizer, load_greeting_audio
from voice_relay.services.tool_client import ToolClient

logger = logging.getLogger(LOGGER_NAME)


@dataclass
class RelayRuntime:
    settings: Settings
    prompt_store: PromptStore
    tool_client: ToolClient
    synthesizer: SpeechSynthesizer
    answers: AnswerTemplates
    greeting_audio: Optional[bytes] = None


async def build_runtime(settings: Settings) -> RelayRuntime:
    """Create the shared collaborators and load prompts and greeting audio."""
    client = None
    if settings.supabase_configured:
        client = create_client(settings.supabase_url, settings.supabase_key)

    prompt_store = PromptStore(SupabasePromptSource(client) if client is not None else None)
    await prompt_store.reload()

    return RelayRuntime(
        settings=settings,
        prompt_store=prompt_store,
        tool_client=ToolClient.from_settings(settings),
        synthesizer=SpeechSynthesizer.from_settings(settings),
        answers=AnswerTemplates(client),
        greeting_audio=load_greeting_audio(settings.greeting_audio_path),
    )
