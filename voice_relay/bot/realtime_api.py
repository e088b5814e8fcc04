import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from voice_relay.config.constants import LOGGER_NAME, REALTIME_URL

logger = logging.getLogger(LOGGER_NAME)

CONNECTION_TIMEOUT = 30  # seconds
SEND_TIMEOUT = 5.0  # seconds

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_PING_INTERVAL = 5  # 5 seconds between pings

EventHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class RealtimeClient:
    """
    Engine leg of a call: one WebSocket connection to the OpenAI Realtime API.

    Decoded JSON events are passed to on_event in arrival order. There is no
    reconnection; when the socket closes or fails, on_close is awaited once so the
    paired telephony socket can be closed too.
    """
    def __init__(
        self,
        api_key: str,
        model: str,
        on_event: EventHandler,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
        url: str = REALTIME_URL,
    ):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.ws = None
        self._on_event = on_event
        self._on_close = on_close
        self._recv_task: Optional[asyncio.Task] = None
        self._connection_active = False
        self._is_closing = False

    @property
    def is_open(self) -> bool:
        return self._connection_active and not self._is_closing

    async def connect(self) -> bool:
        """
        Connect to the Realtime WebSocket endpoint and start the receive loop.

        Returns:
            bool: True if connection was successful, False otherwise
        """
        if self._is_closing:
            logger.warning("Cannot connect - client is closing")
            return False

        url = f"{self.url}?model={self.model}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }

        try:
            logger.info(f"Connecting to OpenAI Realtime API with model: {self.model}")
            connection_start = time.time()
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    url,
                    max_size=WS_MAX_SIZE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=10,
                    compression=None,  # Disable compression for lower latency
                    additional_headers=headers,
                ),
                timeout=CONNECTION_TIMEOUT,
            )
            logger.debug(f"WebSocket connection established in {time.time() - connection_start:.2f} seconds")
        except asyncio.TimeoutError:
            logger.error(f"Timeout while connecting to OpenAI Realtime API (after {CONNECTION_TIMEOUT}s)")
            return False
        except Exception as e:
            logger.error(f"Failed to connect to OpenAI Realtime API: {e}")
            return False

        self._connection_active = True
        self._recv_task = asyncio.create_task(self._recv_loop())
        logger.info("Connected to OpenAI Realtime API")
        return True

    async def send_event(self, event: Dict[str, Any]) -> bool:
        """
        Send one client event as JSON.

        Returns:
            bool: True if the event was sent, False if the socket is not open or the send failed
        """
        if not self.is_open or self.ws is None:
            logger.debug(f"Dropping {event.get('type')} - engine connection not open")
            return False

        try:
            await asyncio.wait_for(self.ws.send(json.dumps(event)), timeout=SEND_TIMEOUT)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Timeout while sending {event.get('type')}")
            return False
        except ConnectionClosed as e:
            logger.warning(f"Connection closed while sending {event.get('type')}: {e}")
            self._connection_active = False
            return False

    async def _recv_loop(self) -> None:
        """
        Receive events until the socket closes, handing each decoded event to on_event.
        Invalid JSON and handler errors are logged and do not end the loop.
        """
        try:
            async for message in self.ws:
                try:
                    data = json.loads(message)
                except (TypeError, ValueError):
                    logger.warning(f"Received invalid JSON: {str(message)[:100]}...")
                    continue
                if not isinstance(data, dict):
                    continue

                try:
                    await self._on_event(data)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"Error handling engine event {data.get('type')}: {e}", exc_info=True)

        except ConnectionClosedOK:
            logger.info("WebSocket connection closed normally")
        except ConnectionClosedError as e:
            logger.warning(f"WebSocket connection closed unexpectedly: {e}")
        except asyncio.CancelledError:
            logger.debug("Receive loop cancelled")
            raise
        except Exception as e:
            logger.error(f"Error in receive loop: {e}", exc_info=True)
        finally:
            self._connection_active = False
            logger.info("Receive loop exited, connection marked as inactive")

        if self._on_close and not self._is_closing:
            await self._on_close()

    async def close(self) -> None:
        """Close the WebSocket connection and stop the receive loop. Safe to call twice."""
        if self._is_closing:
            return
        logger.info("Closing OpenAI Realtime client")
        self._is_closing = True
        self._connection_active = False

        if self._recv_task and self._recv_task is not asyncio.current_task():
            self._recv_task.cancel()

        if self.ws:
            try:
                await self.ws.close()
            except Exception as e:
                logger.warning(f"Error closing engine WebSocket: {e}")

        logger.info("OpenAI Realtime client closed")
