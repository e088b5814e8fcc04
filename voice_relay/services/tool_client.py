"""Async HTTP client for the external tool endpoints (routing, item search, pickup search)."""

import logging
from typing import Any, Dict, Optional

import httpx

from voice_relay.config.constants import DEFAULT_TOOL_TIMEOUT, LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

ROUTE_TOOL = "determine_route"
ITEM_SEARCH_TOOL = "search_items"
PICKUP_SEARCH_TOOL = "search_pickup_locations"
HANDOFF_TOOL = "handoff_to_router"


class ToolCallError(Exception):
    """Raised when a tool endpoint cannot produce a usable JSON response."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"{tool_name}: {message}")
        self.tool_name = tool_name
        self.message = message


class ToolClient:
    """
    Stateless caller for the HTTP tool endpoints.

    Each tool maps to one POST endpoint. The request body is the tool's parsed
    arguments merged with the call-scoped context ({call_sid, current_agent}).
    """

    def __init__(
        self,
        endpoints: Dict[str, Optional[str]],
        timeout: float = DEFAULT_TOOL_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoints = dict(endpoints)
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ToolClient":
        return cls(
            {
                ROUTE_TOOL: settings.router_endpoint,
                ITEM_SEARCH_TOOL: settings.item_search_endpoint,
                PICKUP_SEARCH_TOOL: settings.pickup_endpoint,
            },
            timeout=settings.tool_timeout,
            transport=transport,
        )

    async def call(self, tool_name: str, arguments: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a tool invocation and return the decoded JSON object.

        Args:
            tool_name: Name of the tool as exposed to the engine
            arguments: Parsed tool arguments
            context: Call-scoped fields merged into the body

        Returns:
            The endpoint's JSON object (empty dict for an empty body)

        Raises:
            ToolCallError: On missing endpoint, network error, timeout, non-2xx status
                or a body that is not a JSON object
        """
        url = self.endpoints.get(tool_name)
        if not url:
            raise ToolCallError(tool_name, "endpoint not configured")

        payload = {**arguments, **context}
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(url, json=payload)
        except httpx.TimeoutException:
            raise ToolCallError(tool_name, f"timed out after {self.timeout:.1f}s")
        except httpx.HTTPError as e:
            raise ToolCallError(tool_name, f"request failed: {type(e).__name__}: {e}")

        if not response.is_success:
            raise ToolCallError(tool_name, f"endpoint returned {response.status_code}: {response.text[:200]}")

        if not response.content.strip():
            return {}
        try:
            data = response.json()
        except ValueError:
            raise ToolCallError(tool_name, "endpoint returned invalid JSON")
        if not isinstance(data, dict):
            raise ToolCallError(tool_name, "endpoint returned a non-object JSON body")

        logger.debug(f"Tool {tool_name} returned: {str(data)[:200]}")
        return data
