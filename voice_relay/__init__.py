"""
Voice Relay - telephony media stream to OpenAI Realtime API bridge

This application answers phone calls delivered as telephony media streams, relays the
caller's audio to the OpenAI Realtime API for speech recognition and reasoning, and
speaks the model's answers back to the caller with ElevenLabs text-to-speech.

Architecture Overview:
- FastAPI server exposing the media-stream WebSocket and a prompt refresh endpoint
- One Realtime API connection per call, configured per agent persona
- Multi-agent routing: a router agent classifies requests and hands off to the items
  or pickup agent, which can hand back to the router
- Tool calls answered by external HTTP endpoints
- Agent prompts and spoken answer templates loaded from Supabase

Key Components:
- bot: Realtime API client, agent definitions, event translation, the per-call
  session controller and tool dispatch
- config: Application-wide constants, logging setup and environment settings
- handlers: The per-call media relay and the admin router
- models: Telephony and engine message schemas and per-call session state
- services: Tool endpoint client, speech synthesis, prompt store and answer templates
- runtime: Process-wide collaborators shared by all calls

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key
   - ELEVENLABS_API_KEY, ELEVENLABS_VOICE_ID: Speech synthesis credentials
   - ROUTER_ENDPOINT, ITEM_SEARCH_ENDPOINT, PICKUP_ENDPOINT: Tool endpoints
   - SUPABASE_URL, SUPABASE_KEY: Prompt and answer storage
   - PROMPT_REFRESH_SECRET: Bearer token for POST /refresh-prompts

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the telephony media stream at ws://your-server:8080/twilio-stream
"""
