# -------------------------------------------------------------------------------------------------
#  Copyright (C) 2015-2025 Nautech Systems Pty Ltd. All rights reserved.
#  https://nautechsystems.io
#
#  Licensed under the GNU Lesser General Public License Version 3.0 (the "License");
#  You may not use this file except in compliance with the License.
#  You may obtain a copy of the License at https://www.gnu.org/licenses/lgpl-3.0.en.html
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.
# -------------------------------------------------------------------------------------------------

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any
from weakref import WeakSet

import msgspec
import websockets
from websockets.client import backoff
from websockets.exceptions import ConnectionClosed
from websockets.exceptions import WebSocketException

import nautilus_trader
from nautilus_trader.common.component import LiveClock
from nautilus_trader.common.component import Logger
from nautilus_trader.common.enums import LogColor
from nautilus_trader.live.cancellation import cancel_tasks_with_timeout

from lighter_trading.schemas.ws import LighterWsEnvelope


class LighterWebSocketClient:
    """
    Provides a reconnecting WebSocket client for the Lighter state stream.

    The client adds a handshake gating mechanism (``type == 'connected'``):
    subscriptions are only sent once the server has greeted the connection, and
    every tracked subscription is re-sent after each handshake. Server pings are
    answered with pongs. Reconnection is driven by the ``websockets`` reconnecting
    iterator: a lost connection is reopened immediately and failed attempts back
    off exponentially, until ``disconnect()`` is called.

    Parameters
    ----------
    clock : LiveClock
        The live clock instance.
    base_url : str
        The base WebSocket URL (``wss://...``). Trailing slashes are trimmed.
    handler : Callable[[bytes], None]
        The callback to receive raw pushed messages.
    handler_reconnect : Callable[..., Awaitable[None]] | None
        Optional callback invoked after a reconnection handshake, once the
        subscriptions have been re-sent.
    handler_disconnect : Callable[[], None] | None
        Optional callback invoked each time an established connection is lost.
    loop : asyncio.AbstractEventLoop
        The event loop used to schedule background tasks.
    heartbeat_secs : int, default 10
        Interval between client pings.
    reconnect_delay_initial_ms : int | None, optional
        First backoff delay after the initial jittered attempt.
    reconnect_delay_max_ms : int | None, optional
        Maximum delay for reconnect backoff.
    reconnect_backoff_factor : float | None, optional
        Backoff growth factor between reconnect attempts.
    reconnect_jitter_ms : int | None, optional
        Upper bound of the random delay before the first reconnect attempt.
    connector : Callable[..., Any], optional
        Factory with the ``websockets.connect`` signature whose result is
        iterated for connections (defaults to ``websockets.connect``).

    Notes
    -----
    Unset reconnect options keep the ``websockets`` backoff defaults.
    """

    def __init__(
        self,
        clock: LiveClock,
        base_url: str,
        handler: Callable[[bytes], None],
        handler_reconnect: Callable[..., Awaitable[None]] | None,
        loop: asyncio.AbstractEventLoop,
        handler_disconnect: Callable[[], None] | None = None,
        heartbeat_secs: int = 10,
        reconnect_delay_initial_ms: int | None = None,
        reconnect_delay_max_ms: int | None = None,
        reconnect_backoff_factor: float | None = None,
        reconnect_jitter_ms: int | None = None,
        connector: Callable[..., Any] | None = None,
    ) -> None:
        self._clock = clock
        self._log: Logger = Logger(type(self).__name__)

        self._base_url = base_url.rstrip("/")
        self._url = self._base_url
        self._handler = handler
        self._handler_reconnect = handler_reconnect
        self._handler_disconnect = handler_disconnect
        self._loop = loop
        self._tasks: WeakSet[asyncio.Task] = WeakSet()
        self._connector = connector or websockets.connect

        self._ws: Any | None = None
        self._run_task: asyncio.Task | None = None
        self._stopping = False
        self._subscriptions: dict[str, dict[str, Any]] = {}
        self._ready: bool = False  # True after receiving {"type": "connected"}
        self._ready_evt: asyncio.Event = asyncio.Event()
        # Initial connection should NOT invoke the external reconnect handler
        self._did_reconnect: bool = False
        self._heartbeat_secs = heartbeat_secs
        delays: dict[str, float] = {}
        if reconnect_jitter_ms is not None:
            delays["initial_delay"] = reconnect_jitter_ms / 1000.0
        if reconnect_delay_initial_ms is not None:
            delays["min_delay"] = reconnect_delay_initial_ms / 1000.0
        if reconnect_delay_max_ms is not None:
            delays["max_delay"] = reconnect_delay_max_ms / 1000.0
        if reconnect_backoff_factor is not None:
            delays["factor"] = float(reconnect_backoff_factor)
        self._reconnect_delays = partial(backoff, **delays)

    @property
    def url(self) -> str:
        """
        Return the server URL being used by the client.

        Returns
        -------
        str
        """
        return self._url

    def is_connected(self) -> bool:
        """
        Return whether the client currently holds an open connection.

        Returns
        -------
        bool
        """
        return self._ws is not None

    @property
    def is_ready(self) -> bool:
        """
        Return whether the server handshake (``type == 'connected'``) has been received.

        Returns
        -------
        bool
        """
        return self._ready

    async def connect(self) -> None:
        """
        Start the connection loop; subscriptions flush after the handshake.
        """
        if self._run_task is not None and not self._run_task.done():
            self._log.warning("Cannot connect: already running")
            return
        self._stopping = False
        self._log.debug(f"Connecting to {self._url}")
        self._run_task = self._loop.create_task(self._run())
        self._tasks.add(self._run_task)

    async def _run(self) -> None:
        connections = self._connector(
            self._url,
            user_agent_header=nautilus_trader.NAUTILUS_USER_AGENT,
            ping_interval=self._heartbeat_secs,
            reconnect_delays=self._reconnect_delays,
        )
        try:
            async for ws in connections:
                self._ws = ws
                self._log.info(f"Connected to {self._url}", LogColor.BLUE)
                try:
                    async for raw in ws:
                        self._on_message(raw)
                except ConnectionClosed as e:
                    self._log.warning(f"WebSocket connection closed: {e}")
                finally:
                    self._post_disconnect()

                if self._stopping:
                    break
                self._log.warning(f"Disconnected from {self._url}; reconnecting")
                self._did_reconnect = True
                if self._handler_disconnect:
                    self._handler_disconnect()
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            # Only non-retryable failures escape the reconnecting iterator
            self._log.error(f"WebSocket connection to {self._url} failed: {e}")

    def _post_disconnect(self) -> None:
        """
        Reset the readiness flag and event.

        Subscription flushing (and any reconnect handler) waits for the next
        handshake in ``_on_message`` to avoid racing with the server.
        """
        self._ws = None
        self._ready = False
        self._ready_evt = asyncio.Event()

    async def disconnect(self) -> None:
        """
        Disconnect the client from the server and cancel background tasks.
        """
        self._stopping = True
        ws = self._ws
        if ws is not None:
            await ws.close()
        await cancel_tasks_with_timeout(self._tasks, self._log)
        self._run_task = None
        self._log.info(f"Disconnected from {self._url}", LogColor.BLUE)

    @staticmethod
    def _key(channel: str, target: int) -> str:
        return f"{channel}/{target}"

    async def subscribe(self, channel: str, target: int) -> None:
        """
        Subscribe to a channel target. If already subscribed, a warning is logged.

        Parameters
        ----------
        channel : str
            The channel name (``orderbook`` or ``account``).
        target : int
            The market index or account index.
        """
        key = self._key(channel, target)
        if key in self._subscriptions:
            self._log.warning(f"Cannot subscribe to {key}: already subscribed")
            return
        msg = {"type": "subscribe", "channel": channel, "target": int(target)}
        self._subscriptions[key] = msg
        if self._ready:
            await self._send(msg)

    async def resubscribe(self, channel: str, target: int) -> None:
        """Re-send the subscribe request for a tracked target to obtain a fresh snapshot."""
        msg = self._subscriptions.get(self._key(channel, target))
        if msg is None:
            self._log.warning(f"Cannot resubscribe to {self._key(channel, target)}: not subscribed")
            return
        if self._ready:
            await self._send(msg)

    async def unsubscribe(self, channel: str, target: int) -> None:
        """
        Unsubscribe from a channel target and remove it locally.
        """
        key = self._key(channel, target)
        if key not in self._subscriptions:
            self._log.warning(f"Cannot unsubscribe from {key}: not subscribed")
            return
        del self._subscriptions[key]
        if self._ready:
            await self._send({"type": "unsubscribe", "channel": channel, "target": int(target)})

    async def _subscribe_all(self) -> None:
        # Send iteratively; the subscription set is typically small
        if not self._ready:
            return
        for msg in list(self._subscriptions.values()):
            await self._send(msg)

    async def _send(self, msg: dict[str, Any]) -> None:
        """
        Send a JSON message over the websocket.

        Parameters
        ----------
        msg : dict[str, Any]
            The JSON-serializable message.
        """
        ws = self._ws
        if ws is None:
            self._log.error(f"Cannot send message {msg}: not connected")
            return
        try:
            self._log.debug(f"SENDING: {msg}")
            await ws.send(msgspec.json.encode(msg).decode("utf-8"))
        except (OSError, WebSocketException) as e:
            self._log.error(f"WebSocket send error: {e}")

    # Internal message wrapper -------------------------------------------------
    def _on_message(self, raw: str | bytes) -> None:
        """
        Internal message wrapper to intercept control frames.

        ``{"type":"connected"}`` marks the client ready and flushes pending
        subscriptions; ``{"type":"ping"}`` is answered with a pong. All other
        messages are forwarded to the external handler.
        """
        data = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
        try:
            env = msgspec.json.decode(data, type=LighterWsEnvelope)
        except msgspec.DecodeError:
            env = None
        if env is not None and env.type == "connected":
            if not self._ready:
                self._ready = True
                self._ready_evt.set()
                self._log.info("WS handshake connected; flushing subscriptions", LogColor.BLUE)
                task = self._loop.create_task(self._after_ready(self._did_reconnect))
                self._tasks.add(task)
            return
        if env is not None and env.type == "ping":
            task = self._loop.create_task(self._send({"type": "pong"}))
            self._tasks.add(task)
            return

        # Forward to external handler; a handler bug must not kill the receive loop
        try:
            self._handler(data)
        except Exception as e:
            self._log.exception("WS handler error", e)

    async def wait_until_ready(self, timeout_secs: float | None = 10.0) -> bool:
        """
        Await the server handshake (``type == 'connected'``).

        Parameters
        ----------
        timeout_secs : float | None, default 10.0
            Optional timeout in seconds to wait for readiness.

        Returns
        -------
        bool
            ``True`` when ready; ``False`` if the wait timed out.
        """
        if self._ready:
            return True
        try:
            await asyncio.wait_for(self._ready_evt.wait(), timeout=timeout_secs)
            return True
        except asyncio.TimeoutError:
            return False

    async def _after_ready(self, reconnected: bool) -> None:
        """
        Flush subscriptions after the handshake and invoke the reconnect handler.
        """
        await self._subscribe_all()
        if reconnected and self._handler_reconnect:
            self._did_reconnect = False
            await self._handler_reconnect()

    @property
    def subscriptions(self) -> list[str]:
        """
        Return the current active subscriptions for the client.

        Returns
        -------
        list[str]
        """
        return sorted(self._subscriptions)

    @property
    def has_subscriptions(self) -> bool:
        """
        Return whether the client has any subscriptions.

        Returns
        -------
        bool
        """
        return bool(self._subscriptions)
