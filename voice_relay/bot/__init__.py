"""
Bot module for the per-call conversation logic.

Key components:
- realtime_api: RealtimeClient, the engine leg of a call over WebSockets.
- agents: Instructions and tool schemas for the router, items and pickup agents.
- event_translator: Turns raw engine events into typed EngineSignals.
- session_controller: CallSessionController, the per-call state machine (greeting,
  response gate, speech output, tool calls and handoffs).
- tool_dispatch: ToolDispatcher, which runs tool calls against their HTTP endpoints
  and decides on follow-up responses and handoffs.
"""

from voice_relay.bot.realtime_api import RealtimeClient
from voice_relay.bot.session_controller import CallSessionController
from voice_relay.bot.tool_dispatch import ToolDispatcher

__all__ = ["RealtimeClient", "CallSessionController", "ToolDispatcher"]
