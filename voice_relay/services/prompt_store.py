"""
Agent prompt storage.

Prompts live in a Supabase table keyed by slug. The relay keeps the active set in
memory and replaces it as a whole on reload, so a call reading prompts during a
refresh sees either the old set or the new one, never a mix.
"""

import asyncio
import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from voice_relay.config.constants import LOGGER_NAME, PROMPT_SLUGS, PROMPT_TABLE

logger = logging.getLogger(LOGGER_NAME)


class PromptSet:
    """Immutable mapping from agent name to instructions text."""

    def __init__(self, prompts: Optional[Mapping[str, str]] = None):
        self._prompts = MappingProxyType(dict(prompts or {}))

    def get(self, agent: str) -> str:
        """Return the prompt for agent, or an empty string if none is stored."""
        return self._prompts.get(agent, "")

    def as_dict(self) -> Dict[str, str]:
        return dict(self._prompts)

    def __len__(self) -> int:
        return sum(1 for text in self._prompts.values() if text)


class SupabasePromptSource:
    """Reads prompt rows (slug, system_prompt) from Supabase."""

    def __init__(self, client, table: str = PROMPT_TABLE, slugs: Mapping[str, str] = PROMPT_SLUGS):
        self.client = client
        self.table = table
        self.slugs = dict(slugs)

    def _query(self) -> List[Dict[str, Any]]:
        result = (
            self.client.table(self.table)
            .select("slug, system_prompt")
            .in_("slug", list(self.slugs))
            .execute()
        )
        return result.data or []

    async def fetch(self) -> List[Dict[str, Any]]:
        # supabase-py is synchronous; keep it off the event loop
        return await asyncio.to_thread(self._query)


class PromptStore:
    """
    Holds the current PromptSet and reloads it from a source.

    Without a source every agent uses its hardcoded fallback instructions.
    """

    def __init__(self, source=None, slugs: Mapping[str, str] = PROMPT_SLUGS):
        self.source = source
        self.slugs = dict(slugs)
        self._current = PromptSet()

    @property
    def current(self) -> PromptSet:
        return self._current

    async def reload(self) -> bool:
        """
        Fetch all prompts and swap in the new set.

        Returns:
            bool: True if the set was replaced, False if the source is missing or failed
                (the previous set stays active)
        """
        if self.source is None:
            logger.warning("No prompt source configured; keeping fallback prompts")
            return False

        try:
            rows = await self.source.fetch()
        except Exception as e:
            logger.error(f"Error loading prompts: {e}", exc_info=True)
            return False

        prompts = {agent: "" for agent in self.slugs.values()}
        for row in rows:
            agent = self.slugs.get(row.get("slug"))
            if agent:
                prompts[agent] = row.get("system_prompt") or ""

        self._current = PromptSet(prompts)
        logger.info(f"Reloaded prompts ({len(self._current)} of {len(prompts)} agents configured)")
        return True
