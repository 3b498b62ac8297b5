"""Feed connection manager for the AIS WebSocket stream.

Owns the single process-wide feed connection:
- opens it lazily on demand and subscribes to position reports worldwide
- hands every inbound frame to the frame handler
- schedules one reconnect after a feed-side close
- closes it on request when it has been idle
"""

import asyncio
import json
import logging
import time
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol, Union

import websockets

from yachtops.ais.models import GLOBE, utc_now_iso

logger = logging.getLogger(__name__)

Frame = Union[str, bytes]


class FeedTransport(Protocol):
    """The part of a WebSocket client connection the manager relies on."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[Frame]: ...


Connector = Callable[[str], Awaitable[FeedTransport]]


async def websocket_connector(url: str) -> FeedTransport:
    """Open a WebSocket connection to the feed."""
    return await websockets.connect(url, open_timeout=10, close_timeout=5)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


class FeedConnectionManager:
    """Maintains at most one live connection to the AIS feed."""

    def __init__(
        self,
        api_key: str,
        url: str,
        frame_handler: Callable[[Frame], Any],
        reconnect_delay: float = 10.0,
        connector: Optional[Connector] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the manager.

        Args:
            api_key: Feed credential; empty disables the feed entirely
            url: WebSocket URL of the feed
            frame_handler: Called with every raw inbound frame
            reconnect_delay: Seconds between a feed-side close and reconnecting
            connector: Opens the transport (WebSocket by default)
            clock: Monotonic time source used for idle tracking
        """
        self.api_key = api_key
        self.url = url
        self.frame_handler = frame_handler
        self.reconnect_delay = reconnect_delay
        self._connector = connector or websocket_connector
        self._clock = clock

        self._state = ConnectionState.DISCONNECTED
        self._transport: Optional[FeedTransport] = None
        self._task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._close_requested = False
        self._stopped = False
        self._last_used = clock()
        self._last_used_at: Optional[str] = None

        # Statistics
        self._connections_opened = 0
        self._frames_received = 0
        self._frame_errors = 0
        self._reconnects_scheduled = 0
        self._forced_closes = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key.strip())

    @property
    def is_open(self) -> bool:
        return self._state == ConnectionState.SUBSCRIBED

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    @property
    def idle_seconds(self) -> float:
        """Seconds since the last touch()."""
        return self._clock() - self._last_used

    def subscription_message(self) -> dict[str, Any]:
        return {
            "APIKey": self.api_key,
            "BoundingBoxes": [GLOBE.to_subscription()],
            "FilterMessageTypes": ["PositionReport"],
        }

    def touch(self) -> None:
        """Mark the connection as in use."""
        self._last_used = self._clock()
        self._last_used_at = utc_now_iso()

    def ensure_started(self) -> bool:
        """Open the feed connection unless it is open, opening or disabled.

        Must be called from within the running event loop.

        Returns:
            True if a new connection attempt was started
        """
        if self._stopped or not self.is_configured:
            return False
        if self._state != ConnectionState.DISCONNECTED:
            return False

        self._state = ConnectionState.CONNECTING
        self._close_requested = False
        self._task = asyncio.get_running_loop().create_task(self._run())
        return True

    async def _run(self) -> None:
        """Connect, subscribe and pump frames until the connection ends."""
        try:
            logger.info(f"Connecting to AIS feed at {self.url}...")
            transport = await self._connector(self.url)
            self._transport = transport
            self._connections_opened += 1

            await transport.send(json.dumps(self.subscription_message()))
            self._state = ConnectionState.SUBSCRIBED
            logger.info("AIS feed subscribed to position reports")

            async for raw in transport:
                self.on_frame(raw)

        except asyncio.CancelledError:
            raise
        except websockets.ConnectionClosed as e:
            logger.warning(f"AIS feed connection closed: {e}")
        except Exception as e:
            logger.error(f"AIS feed connection error: {e}")
        finally:
            self.on_close()

    def on_frame(self, raw: Frame) -> None:
        """Dispatch one frame; handler errors are logged, never raised."""
        self._frames_received += 1
        try:
            self.frame_handler(raw)
        except Exception as e:
            self._frame_errors += 1
            logger.error(f"Error processing AIS frame: {e}")

    def on_close(self) -> None:
        """Record that the connection ended and schedule a reconnect.

        No reconnect follows a close requested through force_close() or
        stop(), and at most one reconnect is pending at any time.
        """
        self._state = ConnectionState.DISCONNECTED
        self._transport = None
        self._task = None

        if self._close_requested or self._stopped:
            self._close_requested = False
            logger.info("AIS feed connection closed")
            return

        if self._reconnect_handle is not None:
            return

        logger.info(f"Reconnecting to AIS feed in {self.reconnect_delay:.0f} seconds...")
        self._reconnects_scheduled += 1
        self._reconnect_handle = asyncio.get_running_loop().call_later(
            self.reconnect_delay, self._reconnect
        )

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        self.ensure_started()

    async def force_close(self) -> bool:
        """Close the connection if it is open.

        Returns:
            True if an open connection was closed
        """
        if not self.is_open or self._transport is None:
            return False

        self._close_requested = True
        self._forced_closes += 1
        transport = self._transport
        try:
            await transport.close()
        except Exception as e:
            logger.warning(f"Error closing AIS feed connection: {e}")

        task = self._task
        if task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=5.0)
            except asyncio.TimeoutError:
                task.cancel()
        return True

    async def stop(self) -> None:
        """Close the connection for good and cancel any pending reconnect."""
        self._stopped = True
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        if self._transport is not None:
            try:
                await asyncio.wait_for(self._transport.close(), timeout=5.0)
            except Exception as e:
                logger.warning(f"Error closing AIS feed connection: {e}")

        task = self._task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._state = ConnectionState.DISCONNECTED
        self._transport = None
        self._task = None

    def get_statistics(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "configured": self.is_configured,
            "last_used_at": self._last_used_at,
            "idle_seconds": round(self.idle_seconds, 1),
            "reconnect_pending": self.reconnect_pending,
            "connections_opened": self._connections_opened,
            "frames_received": self._frames_received,
            "frame_errors": self._frame_errors,
            "reconnects_scheduled": self._reconnects_scheduled,
            "forced_closes": self._forced_closes,
        }
