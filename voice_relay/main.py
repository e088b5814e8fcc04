"""
FastAPI server relaying phone calls between a telephony media stream and the OpenAI
Realtime API.

This module initializes and configures the FastAPI application. It exposes exactly
two surfaces: the telephony media-stream WebSocket, where each connection is one
phone call, and the authenticated prompt refresh endpoint. Every other path returns
404.

Settings are loaded and the shared runtime (prompt store, tool client, speech
synthesizer, answer templates, greeting audio) is built once at startup.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from voice_relay.config.constants import TELEPHONY_STREAM_PATH
from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import load_settings
from voice_relay.handlers import admin
from voice_relay.handlers.media_relay import MediaRelay
from voice_relay.runtime import RelayRuntime, build_runtime

# Configure logging
logger = configure_logging()


def create_app(runtime: Optional[RelayRuntime] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        runtime: Prebuilt runtime to serve with; when omitted it is built from the
            environment at startup (a missing credential aborts startup)

    Returns:
        FastAPI: The configured application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "runtime", None) is None:
            settings = load_settings()
            configure_logging(settings.log_level, settings.log_file)
            app.state.runtime = await build_runtime(settings)
        logger.info("Voice relay ready")
        yield
        logger.info("Voice relay shutting down")

    app = FastAPI(
        title="Voice Relay",
        description="Relay between telephony media streams and the OpenAI Realtime API",
        version="1.0.0",
        lifespan=lifespan,
    )
    if runtime is not None:
        app.state.runtime = runtime

    @app.websocket(TELEPHONY_STREAM_PATH)
    async def telephony_stream(websocket: WebSocket):
        """WebSocket endpoint for one phone call's media stream."""
        await MediaRelay(websocket, app.state.runtime).run()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and wrong methods look the same to callers
        if exc.status_code in (404, 405):
            return PlainTextResponse("not found", status_code=404)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    app.include_router(admin.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        websocket_ping_interval=5,
        websocket_max_size=16777216,  # 16MB - large enough for audio chunks
        websocket_ping_timeout=20,
        http="h11",
    )
