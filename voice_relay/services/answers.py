"""Templated spoken answers stored in Supabase, with literal {{name}} substitution."""

import asyncio
import logging
from typing import Any, Mapping, Optional

from voice_relay.config.constants import ANSWER_FALLBACK, ANSWER_TABLE, LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


def render_template(template: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Replace each {{name}} placeholder with the matching parameter.

    None values become empty strings. Placeholders without a parameter are left as-is.
    """
    text = template
    for name, value in (params or {}).items():
        text = text.replace("{{" + name + "}}", "" if value is None else str(value))
    return text


class AnswerTemplates:
    """Looks up active answer templates by key."""

    def __init__(self, client=None, table: str = ANSWER_TABLE, fallback: str = ANSWER_FALLBACK):
        self.client = client
        self.table = table
        self.fallback = fallback

    def _fetch_template(self, key: str) -> Optional[str]:
        result = (
            self.client.table(self.table)
            .select("spoken_template")
            .eq("key", key)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        rows = result.data or []
        return rows[0].get("spoken_template") if rows else None

    async def speak_answer(self, key: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """
        Return the rendered answer for key, or the fallback sentence if the key is
        missing, inactive or storage is unavailable.
        """
        if self.client is None:
            logger.warning(f"No answer storage configured; using fallback for key: {key}")
            return self.fallback

        try:
            template = await asyncio.to_thread(self._fetch_template, key)
        except Exception as e:
            logger.error(f"Error loading answer template {key}: {e}")
            return self.fallback

        if not template:
            logger.error(f"Missing template for key: {key}")
            return self.fallback
        return render_template(template, params)
