"""
Admin control surface.

A single authenticated endpoint reloads the prompt set from storage. Authentication
is a static bearer token compared against PROMPT_REFRESH_SECRET; with no secret
configured every request is rejected.
"""

import logging
import secrets

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from voice_relay.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

router = APIRouter()


def is_authorized(authorization: str, secret: str) -> bool:
    if not secret:
        return False
    return secrets.compare_digest(authorization.encode(), f"Bearer {secret}".encode())


@router.post("/refresh-prompts")
async def refresh_prompts(request: Request) -> PlainTextResponse:
    """Reload all agent prompts. Returns 401 unless the bearer token matches."""
    runtime = request.app.state.runtime
    authorization = request.headers.get("authorization", "")
    if not is_authorized(authorization, runtime.settings.prompt_refresh_secret or ""):
        logger.warning("Rejected unauthorized prompt refresh")
        return PlainTextResponse("unauthorized", status_code=401)

    await runtime.prompt_store.reload()
    return PlainTextResponse("ok")
