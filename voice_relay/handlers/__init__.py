"""
Handlers module for the voice relay's network surfaces.

Key components:
- media_relay: MediaRelay, which owns one call's telephony WebSocket and engine
  connection and routes start, media and stop frames to the session controller.
- admin: The authenticated POST /refresh-prompts endpoint.
"""
