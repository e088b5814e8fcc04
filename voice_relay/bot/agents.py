"""
Agent personas: fallback instructions and the fixed toolset of each agent.

The router classifies the caller's intent; the items and pickup agents answer from
their search tool and can hand the call back to the router.
"""

from typing import Dict, List

from voice_relay.models.engine_schemas import FunctionTool, SessionConfig, SessionUpdateEvent
from voice_relay.models.session import Agent
from voice_relay.services.prompt_store import PromptSet
from voice_relay.services.tool_client import (
    HANDOFF_TOOL,
    ITEM_SEARCH_TOOL,
    PICKUP_SEARCH_TOOL,
    ROUTE_TOOL,
)

FALLBACK_INSTRUCTIONS: Dict[Agent, str] = {
    Agent.ROUTER: "You are the Chasdei Lev router agent.",
    Agent.ITEMS: "You are the Chasdei Lev items agent.",
    Agent.PICKUP: "You are the Chasdei Lev pickup agent.",
}

DETERMINE_ROUTE = FunctionTool(
    name=ROUTE_TOOL,
    description="Classify caller intent for Chasdei Lev phone calls and decide which agent should handle it.",
    parameters={
        "type": "object",
        "properties": {
            "message": {"type": "string"},
            "ai_classification": {"type": "string"},
        },
        "required": ["message", "ai_classification"],
    },
)

SEARCH_ITEMS = FunctionTool(
    name=ITEM_SEARCH_TOOL,
    description=(
        "Search the Chasdei Lev items database and answer kashrus and package questions "
        "based ONLY on the provided data."
    ),
    parameters={
        "type": "object",
        "properties": {"query": {"type": "string"}},
        "required": ["query"],
    },
)

SEARCH_PICKUP_LOCATIONS = FunctionTool(
    name=PICKUP_SEARCH_TOOL,
    description="Search the Chasdei Lev distribution locations database.",
    parameters={
        "type": "object",
        "properties": {"location_query": {"type": "string"}},
        "required": ["location_query"],
    },
)


def _handoff_tool(topic: str) -> FunctionTool:
    return FunctionTool(
        name=HANDOFF_TOOL,
        description=f"Return control to the router agent when the caller asks about something other than {topic}.",
        parameters={
            "type": "object",
            "properties": {
                "question": {"type": "string", "description": "The caller's latest question, cleaned up."},
            },
            "required": ["question"],
        },
    )


AGENT_TOOLS: Dict[Agent, List[FunctionTool]] = {
    Agent.ROUTER: [DETERMINE_ROUTE],
    Agent.ITEMS: [SEARCH_ITEMS, _handoff_tool("items")],
    Agent.PICKUP: [SEARCH_PICKUP_LOCATIONS, _handoff_tool("pickup")],
}


def instructions_for(agent: Agent, prompts: PromptSet) -> str:
    """Stored prompt for the agent, or its hardcoded fallback when none is stored."""
    return prompts.get(agent.value).strip() or FALLBACK_INSTRUCTIONS[agent]


def tools_for(agent: Agent) -> List[FunctionTool]:
    return list(AGENT_TOOLS[agent])


def session_update(agent: Agent, prompts: PromptSet, initial: bool = False) -> SessionUpdateEvent:
    """
    Build the session.update event that configures the engine for an agent.

    The initial update also carries modalities, audio formats and turn detection;
    later updates only swap instructions and tools.
    """
    instructions = instructions_for(agent, prompts)
    tools = tools_for(agent)
    if initial:
        config = SessionConfig.full(instructions, tools)
    else:
        config = SessionConfig(instructions=instructions, tools=tools)
    return SessionUpdateEvent(session=config)
