"""
Media relay for one phone call.

This module implements the server side of a telephony media stream connection. A
MediaRelay accepts the telephony WebSocket, opens the paired engine connection,
routes telephony frames (start, media, stop) into the session controller and sends
synthesized or greeting audio back to the caller as media frames.

The two sockets live and die together: when either one closes or fails, the other is
closed and the call session is discarded.
"""

import json
import logging
from typing import Any, Dict, List

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from voice_relay.bot.realtime_api import RealtimeClient
from voice_relay.bot.session_controller import CallSessionController
from voice_relay.bot.tool_dispatch import ToolDispatcher
from voice_relay.config.constants import (
    LOGGER_NAME,
    TELEPHONY_EVENT_MEDIA,
    TELEPHONY_EVENT_START,
    TELEPHONY_EVENT_STOP,
)
from voice_relay.models.session import CallSession
from voice_relay.models.telephony_schemas import OutboundMediaMessage, StartMessage, StopMessage, TelephonyMessage
from voice_relay.runtime import RelayRuntime

logger = logging.getLogger(LOGGER_NAME)


class MediaRelay:
    """Owns the telephony/engine socket pair and the session controller of one call."""

    def __init__(self, websocket: WebSocket, runtime: RelayRuntime, engine_factory=RealtimeClient):
        settings = runtime.settings
        self.websocket = websocket
        self.session = CallSession()
        self.engine = engine_factory(
            settings.openai_api_key,
            settings.realtime_model,
            on_event=self._on_engine_event,
            on_close=self.close,
        )
        self.controller = CallSessionController(
            self.session,
            self.engine,
            self,
            runtime.synthesizer,
            ToolDispatcher(runtime.tool_client, runtime.answers),
            runtime.prompt_store,
            greeting_audio=runtime.greeting_audio,
            greeting_mode=settings.greeting_mode,
            barge_in_policy=settings.barge_in_policy,
            frame_pacing=settings.frame_pacing,
        )
        self._pending_frames: List[bytes] = []
        self._closed = False

        self.handlers = {
            TELEPHONY_EVENT_START: self._handle_start,
            TELEPHONY_EVENT_MEDIA: self._handle_media,
            TELEPHONY_EVENT_STOP: self._handle_stop,
        }

    @property
    def is_open(self) -> bool:
        return not self._closed and self.websocket.client_state == WebSocketState.CONNECTED

    async def run(self) -> None:
        """
        Handle the call from connection to hang-up.

        Accepts the telephony socket, connects the engine, then processes telephony
        frames until either side closes.
        """
        await self.websocket.accept()
        logger.info("New telephony connection")

        if not await self.engine.connect():
            logger.error("Could not connect to the engine; closing call")
            await self.close()
            return

        try:
            await self.controller.on_engine_open()
            while not self._closed:
                data = await self.websocket.receive_text()
                await self.handle_message(data)
        except WebSocketDisconnect:
            logger.info(f"[{self.session.label}] Telephony socket disconnected")
        except Exception as e:
            if not self._closed:
                logger.error(f"[{self.session.label}] Error in telephony connection: {e}", exc_info=True)
        finally:
            await self.close()

    async def handle_message(self, data: str) -> None:
        """Decode one telephony frame and route it; malformed frames are ignored."""
        try:
            message = json.loads(data)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-JSON telephony frame: {str(data)[:100]}")
            return
        if not isinstance(message, dict):
            return
        try:
            frame = TelephonyMessage(**message)
        except (TypeError, ValidationError):
            logger.debug(f"Ignoring telephony frame without an event: {str(data)[:100]}")
            return

        handler = self.handlers.get(frame.event)
        if handler is not None:
            await handler(message)

    async def _handle_start(self, message: Dict[str, Any]) -> None:
        try:
            start = StartMessage(**message)
        except ValidationError as e:
            logger.warning(f"Invalid start frame: {e}")
            return

        await self.controller.on_telephony_start(start.call_sid, start.stream_sid)

        if self._pending_frames and self.session.media_stream_id:
            frames, self._pending_frames = self._pending_frames, []
            logger.info(f"[{self.session.label}] Flushing {len(frames)} buffered frames")
            for frame in frames:
                await self._send_media(frame)

    async def _handle_media(self, message: Dict[str, Any]) -> None:
        # Fast path - skip model validation for audio frames
        media = message.get("media")
        payload = media.get("payload") if isinstance(media, dict) else None
        if payload:
            await self.controller.on_caller_audio(payload)

    async def _handle_stop(self, message: Dict[str, Any]) -> None:
        stop = StopMessage(**message)
        logger.info(f"[{self.session.label}] Telephony stream stopped: {stop.streamSid or self.session.media_stream_id}")
        await self.close()

    async def _on_engine_event(self, event: Dict[str, Any]) -> None:
        await self.controller.handle_engine_event(event)

    async def send_audio_frame(self, frame: bytes) -> bool:
        """
        Send one audio frame to the caller.

        Frames produced before the stream id is known are buffered and flushed, in
        order, when the start frame arrives.
        """
        if not self.is_open:
            return False
        if not self.session.media_stream_id:
            self._pending_frames.append(frame)
            return True
        return await self._send_media(frame)

    async def _send_media(self, frame: bytes) -> bool:
        message = OutboundMediaMessage.from_frame(self.session.media_stream_id, frame)
        try:
            await self.websocket.send_text(message.model_dump_json())
            return True
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.warning(f"[{self.session.label}] Could not send audio to caller: {e}")
            return False

    async def close(self) -> None:
        """Close both legs and release the session. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        logger.info(f"[{self.session.label}] Closing call")

        await self.controller.close()
        await self.engine.close()

        if self.websocket.client_state != WebSocketState.DISCONNECTED:
            try:
                await self.websocket.close()
            except RuntimeError as e:
                logger.debug(f"Telephony socket already closed: {e}")
        logger.info(f"[{self.session.label}] Call closed")
