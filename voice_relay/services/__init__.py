"""
Services module for external API integrations in the voice relay.

This module provides clients for the services a call depends on. Every client fails
soft: errors are raised as typed exceptions or replaced by fallbacks so a single
failing backend never ends a call.

Key components:
- tool_client: HTTP client for the route, item search and pickup search endpoints.
- speech: ElevenLabs text-to-speech returning 8 kHz mu-law, frame splitting and
  greeting audio loading.
- prompt_store: Agent prompts loaded from Supabase and swapped atomically on reload.
- answers: Spoken answer templates with {{placeholder}} substitution.

Usage examples:
```python
from voice_relay.config.settings import load_settings
from voice_relay.services.speech import SpeechSynthesizer, split_frames

settings = load_settings()
synthesizer = SpeechSynthesizer.from_settings(settings)
audio = await synthesizer.synthesize("Thanks for calling.")
frames = split_frames(audio)
```
"""
