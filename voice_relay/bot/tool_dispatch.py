"""
Tool-call dispatch.

Each tool the engine can call maps to a handler here. Handlers call the matching
HTTP endpoint through ToolClient, feed the result back to the engine as a function
result and decide what happens next: a handoff to another agent, or a follow-up
response so the current agent can speak the answer. Failures never escape: the
engine receives an error payload and the call continues.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from voice_relay.config.constants import LOGGER_NAME, REASON_TOOL_FOLLOWUP
from voice_relay.models.session import SECONDARY_AGENTS, Agent, Handoff
from voice_relay.services.tool_client import (
    HANDOFF_TOOL,
    ITEM_SEARCH_TOOL,
    PICKUP_SEARCH_TOOL,
    ROUTE_TOOL,
    ToolCallError,
    ToolClient,
)

logger = logging.getLogger(LOGGER_NAME)

TOOL_ERROR_ANSWER_KEY = "tool_error"


class ToolDispatcher:
    """Routes finished tool calls to their handlers."""

    def __init__(self, tool_client: ToolClient, answers=None):
        self.tool_client = tool_client
        self.answers = answers
        self.handlers = {
            ROUTE_TOOL: self._determine_route,
            ITEM_SEARCH_TOOL: self._search,
            PICKUP_SEARCH_TOOL: self._search,
            HANDOFF_TOOL: self._handoff_to_router,
        }

    async def dispatch(self, controller, call_id: str, tool_name: str, arguments: Dict[str, Any]) -> None:
        """
        Run one tool call for a session.

        Args:
            controller: The CallSessionController owning the call
            call_id: Engine tool-call id the result must be tagged with
            tool_name: Registered name of the tool
            arguments: Parsed tool arguments
        """
        handler = self.handlers.get(tool_name)
        if handler is None:
            logger.warning(f"[{controller.session.label}] Unknown tool: {tool_name}")
            await controller.submit_tool_output(call_id, {"ok": False, "error": f"unknown tool {tool_name}"})
            return
        logger.info(f"[{controller.session.label}] Dispatching {tool_name} with {arguments}")
        await handler(controller, call_id, tool_name, arguments)

    async def _call_endpoint(
        self, controller, call_id: str, tool_name: str, arguments: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Call the endpoint and submit its result; on failure submit an error payload."""
        session = controller.session
        context = {"call_sid": session.call_id, "current_agent": session.current_agent.value}
        try:
            output = await self.tool_client.call(tool_name, arguments, context)
        except ToolCallError as e:
            logger.error(f"[{session.label}] Tool {tool_name} failed: {e.message}")
            await controller.submit_tool_output(call_id, await self._error_payload(e))
            await controller.request_response(REASON_TOOL_FOLLOWUP)
            return None

        await controller.submit_tool_output(call_id, output)
        return output

    async def _error_payload(self, error: ToolCallError) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"ok": False, "error": error.message}
        if self.answers is not None:
            payload["spoken_fallback"] = await self.answers.speak_answer(
                TOOL_ERROR_ANSWER_KEY, {"tool": error.tool_name}
            )
        return payload

    async def _determine_route(self, controller, call_id: str, tool_name: str, arguments: Dict[str, Any]) -> None:
        output = await self._call_endpoint(controller, call_id, tool_name, arguments)
        if output is None:
            return

        handoff = route_handoff(controller.session.current_agent, output)
        if handoff is not None:
            # The handoff requests its own response when it forwards a question
            await controller.apply_handoff(handoff)
        else:
            await controller.request_response(REASON_TOOL_FOLLOWUP)

    async def _search(self, controller, call_id: str, tool_name: str, arguments: Dict[str, Any]) -> None:
        output = await self._call_endpoint(controller, call_id, tool_name, arguments)
        if output is not None:
            await controller.request_response(REASON_TOOL_FOLLOWUP)

    async def _handoff_to_router(self, controller, call_id: str, tool_name: str, arguments: Dict[str, Any]) -> None:
        question = arguments.get("question")
        question = question.strip() if isinstance(question, str) and question.strip() else None

        await controller.submit_tool_output(call_id, {"ok": True})
        await controller.apply_handoff(
            Handoff(from_agent=controller.session.current_agent, to_agent=Agent.ROUTER, question=question)
        )


def route_handoff(current_agent: Agent, output: Dict[str, Any]) -> Optional[Handoff]:
    """
    Build a Handoff from a route-classification result.

    Returns None unless the result's intent names a secondary agent.
    """
    intent = output.get("intent")
    if intent not in {agent.value for agent in SECONDARY_AGENTS}:
        return None

    question = output.get("cleaned_question")
    try:
        return Handoff(
            from_agent=current_agent,
            to_agent=Agent(intent),
            question_type=output.get("question_type") or "specific",
            question=question if isinstance(question, str) and question.strip() else None,
        )
    except ValidationError as e:
        logger.warning(f"Ignoring malformed route result {output}: {e}")
        return None
