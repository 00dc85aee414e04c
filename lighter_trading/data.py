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
from decimal import InvalidOperation
from typing import Any, Callable
from weakref import WeakSet

import msgspec

from nautilus_trader.common.component import LiveClock
from nautilus_trader.common.component import Logger
from nautilus_trader.common.enums import LogColor

from lighter_trading.common.book import LighterAccountCache
from lighter_trading.common.book import LighterAccountSnapshot
from lighter_trading.common.book import LighterOrderBook
from lighter_trading.common.book import LighterOrderBookSnapshot
from lighter_trading.common.channel import LighterMessageChannel
from lighter_trading.common.enums import LighterOverflowPolicy
from lighter_trading.common.enums import LighterSyncChannel
from lighter_trading.common.enums import LighterSyncEventKind
from lighter_trading.common.errors import LighterSyncError
from lighter_trading.common.errors import LighterSyncErrorKind
from lighter_trading.schemas.ws import LighterAccountPayload
from lighter_trading.schemas.ws import LighterOrderBookPayload
from lighter_trading.schemas.ws import LighterWsEnvelope
from lighter_trading.schemas.ws import LighterWsSyncMsg
from lighter_trading.websocket.client import LighterWebSocketClient


class LighterSyncEvent(msgspec.Struct, frozen=True):
    """
    One update delivered to a subscription's channel.

    ``SNAPSHOT`` and ``DELTA`` carry the post-update cache view. ``RESYNC`` and
    ``DISCONNECTED`` mark a discontinuity: the cache is invalid until the next
    ``SNAPSHOT``.
    """

    kind: LighterSyncEventKind
    channel: LighterSyncChannel
    target: int
    seq: int | None = None
    order_book: LighterOrderBookSnapshot | None = None
    account: LighterAccountSnapshot | None = None
    error: LighterSyncErrorKind | None = None
    reason: str | None = None

    @property
    def is_discontinuity(self) -> bool:
        return self.kind in (LighterSyncEventKind.RESYNC, LighterSyncEventKind.DISCONNECTED)

    def raise_for_discontinuity(self) -> LighterSyncEvent:
        """Raise ``LighterSyncError`` for ``RESYNC`` and ``DISCONNECTED`` events."""
        if self.is_discontinuity:
            raise LighterSyncError(self.error or LighterSyncErrorKind.SEQUENCE_GAP, self.reason or "")
        return self


class _Subscription:
    """Per-subscription state: cache, sequence counter, stale flag and output channel."""

    def __init__(
        self,
        channel: LighterSyncChannel,
        target: int,
        queue: LighterMessageChannel[LighterSyncEvent],
    ) -> None:
        self.channel = channel
        self.target = target
        self.queue = queue
        self.last_seq: int | None = None
        # Stale until the first snapshot arrives
        self.stale = True
        self.cache: LighterOrderBook | LighterAccountCache
        if channel == LighterSyncChannel.ORDER_BOOK:
            self.cache = LighterOrderBook(target)
        else:
            self.cache = LighterAccountCache(target)

    def invalidate(self) -> None:
        self.stale = True
        self.last_seq = None
        self.cache.clear()

    def view(self) -> dict[str, Any]:
        if isinstance(self.cache, LighterOrderBook):
            return {"order_book": self.cache.to_snapshot()}
        return {"account": self.cache.to_snapshot()}


class LighterRealtimeStateSync:
    """
    Mirrors venue order book and account state from sequenced snapshots and deltas.

    Each subscription keeps its own sequence counter and bounded output channel,
    so ordering holds within one subscription and a slow consumer never blocks
    the network receive loop. A delta whose ``seq`` is not exactly ``last + 1``
    invalidates the cache, emits a ``RESYNC`` event and requests a fresh snapshot;
    deltas are ignored until that snapshot arrives. A dropped connection emits
    ``DISCONNECTED`` on every subscription; the WebSocket client reconnects with
    backoff and re-sends every subscription.

    Parameters
    ----------
    loop : asyncio.AbstractEventLoop
        The event loop for background tasks.
    clock : LiveClock
        The clock passed to the WebSocket client.
    base_url_ws : str
        The stream URL.
    queue_size : int, default 1024
        Capacity of each subscription channel.
    overflow : LighterOverflowPolicy, default DROP_OLDEST
        Backpressure policy applied to snapshot/delta events.
    ws_kwargs : dict[str, Any], optional
        Reconnect settings forwarded to ``LighterWebSocketClient``.
    connector : Callable[[str], Any], optional
        Connection factory forwarded to ``LighterWebSocketClient``.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        clock: LiveClock,
        base_url_ws: str,
        queue_size: int = 1_024,
        overflow: LighterOverflowPolicy = LighterOverflowPolicy.DROP_OLDEST,
        ws_kwargs: dict[str, Any] | None = None,
        connector: Callable[[str], Any] | None = None,
    ) -> None:
        self._log = Logger(type(self).__name__)
        self._loop = loop
        self._queue_size = queue_size
        self._overflow = overflow
        self._ws = LighterWebSocketClient(
            clock=clock,
            base_url=base_url_ws,
            handler=self._handle_ws_message,
            handler_reconnect=self._on_ws_reconnect,
            handler_disconnect=self._on_ws_disconnect,
            loop=loop,
            connector=connector,
            **(ws_kwargs or {}),
        )
        self._decoder_envelope = msgspec.json.Decoder(LighterWsEnvelope)
        self._decoder_sync = msgspec.json.Decoder(LighterWsSyncMsg)
        self._decoder_order_book = msgspec.json.Decoder(LighterOrderBookPayload)
        self._decoder_account = msgspec.json.Decoder(LighterAccountPayload)
        self._subs: dict[tuple[LighterSyncChannel, int], _Subscription] = {}
        self._tasks: WeakSet[asyncio.Task] = WeakSet()

    @property
    def ws(self) -> LighterWebSocketClient:
        return self._ws

    # -- Lifecycle --------------------------------------------------------------------------------

    async def connect(self) -> None:
        await self._ws.connect()

    async def disconnect(self) -> None:
        await self._ws.disconnect()
        for sub in self._subs.values():
            sub.invalidate()
            sub.queue.close()
        self._subs.clear()

    async def subscribe(
        self,
        channel: LighterSyncChannel,
        target: int,
    ) -> LighterMessageChannel[LighterSyncEvent]:
        """
        Subscribe to a market's order book or an account's state.

        Returns the subscription's event channel (the existing one if already subscribed).
        """
        key = (channel, int(target))
        sub = self._subs.get(key)
        if sub is not None:
            return sub.queue
        queue: LighterMessageChannel[LighterSyncEvent] = LighterMessageChannel(
            maxsize=self._queue_size,
            policy=self._overflow,
            name=f"{channel.value}/{target}",
        )
        sub = _Subscription(channel, int(target), queue)
        self._subs[key] = sub
        await self._ws.subscribe(channel.value, int(target))
        self._log.info(f"Subscribed {channel.value}/{target}", LogColor.BLUE)
        return queue

    async def unsubscribe(self, channel: LighterSyncChannel, target: int) -> None:
        sub = self._subs.pop((channel, int(target)), None)
        if sub is None:
            self._log.warning(f"Cannot unsubscribe {channel.value}/{target}: not subscribed")
            return
        await self._ws.unsubscribe(channel.value, int(target))
        sub.invalidate()
        sub.queue.close()
        self._log.info(f"Unsubscribed {channel.value}/{target}", LogColor.BLUE)

    # -- Queries ----------------------------------------------------------------------------------

    def events(self, channel: LighterSyncChannel, target: int) -> LighterMessageChannel[LighterSyncEvent] | None:
        sub = self._subs.get((channel, int(target)))
        return None if sub is None else sub.queue

    def is_stale(self, channel: LighterSyncChannel, target: int) -> bool:
        sub = self._subs.get((channel, int(target)))
        return True if sub is None else sub.stale

    def last_seq(self, channel: LighterSyncChannel, target: int) -> int | None:
        sub = self._subs.get((channel, int(target)))
        return None if sub is None else sub.last_seq

    def order_book(self, market_index: int) -> LighterOrderBookSnapshot | None:
        """Return the current book, or None while stale or unsubscribed."""
        sub = self._subs.get((LighterSyncChannel.ORDER_BOOK, int(market_index)))
        if sub is None or sub.stale or not isinstance(sub.cache, LighterOrderBook):
            return None
        return sub.cache.to_snapshot()

    def account(self, account_index: int) -> LighterAccountSnapshot | None:
        """Return the current account state, or None while stale or unsubscribed."""
        sub = self._subs.get((LighterSyncChannel.ACCOUNT, int(account_index)))
        if sub is None or sub.stale or not isinstance(sub.cache, LighterAccountCache):
            return None
        return sub.cache.to_snapshot()

    # -- Message handling -------------------------------------------------------------------------

    def _handle_ws_message(self, raw: bytes) -> None:
        try:
            msg = self._decoder_sync.decode(raw)
        except msgspec.DecodeError:
            try:
                env = self._decoder_envelope.decode(raw)
            except msgspec.DecodeError:
                self._log.warning(f"Undecodable WS message: {raw[:200]!r}")
                return
            if env.seq is not None:
                self._on_invalid_frame(env, raw)
            elif env.type == "error":
                self._log.error(f"WS error message: {raw[:200]!r}")
            else:
                self._log.debug(f"Ignoring WS message type={env.type} channel={env.channel}")
            return

        sub = self._lookup(msg.channel, msg.target)
        if sub is None:
            self._log.debug(f"Ignoring message for unsubscribed {msg.channel}/{msg.target}")
            return

        if msg.is_snapshot:
            self._apply_snapshot(sub, msg)
        elif msg.diff:
            self._apply_delta(sub, msg)
        else:
            self._log.warning(f"Message for {msg.channel}/{msg.target} has neither fullState nor diff")

    def _lookup(self, channel: str | None, target: int | None) -> _Subscription | None:
        try:
            key = (LighterSyncChannel(channel), target)
        except ValueError:
            return None
        return self._subs.get(key)

    def _on_invalid_frame(self, env: LighterWsEnvelope, raw: bytes) -> None:
        # A sequenced frame that fails validation breaks continuity just like a gap.
        # Without a target every subscription on the channel is suspect.
        subs = [
            sub
            for (channel, target), sub in self._subs.items()
            if channel.value == env.channel and env.target in (None, target)
        ]
        if not subs:
            self._log.warning(f"Invalid sync frame for {env.channel}/{env.target}: {raw[:200]!r}")
            return
        for sub in subs:
            self._resync(sub, f"invalid sync frame seq={env.seq}")

    def _decode_payload(self, sub: _Subscription, raw: msgspec.Raw) -> Any:
        if sub.channel == LighterSyncChannel.ORDER_BOOK:
            return self._decoder_order_book.decode(raw)
        return self._decoder_account.decode(raw)

    def _apply_snapshot(self, sub: _Subscription, msg: LighterWsSyncMsg) -> None:
        try:
            payload = self._decode_payload(sub, msg.full_state)
            sub.cache.apply_snapshot(payload, msg.seq)
        except (msgspec.DecodeError, ValueError, InvalidOperation) as e:
            self._resync(sub, f"invalid snapshot seq={msg.seq}: {e}")
            return
        was_stale = sub.stale
        sub.last_seq = msg.seq
        sub.stale = False
        if was_stale:
            self._log.info(f"Synced {sub.channel.value}/{sub.target} at seq={msg.seq}", LogColor.GREEN)
        # Snapshots are recovery points and are never dropped
        sub.queue.put_control(
            LighterSyncEvent(
                kind=LighterSyncEventKind.SNAPSHOT,
                channel=sub.channel,
                target=sub.target,
                seq=msg.seq,
                **sub.view(),
            ),
        )

    def _apply_delta(self, sub: _Subscription, msg: LighterWsSyncMsg) -> None:
        if sub.stale:
            self._log.debug(f"Dropping delta seq={msg.seq} for stale {sub.channel.value}/{sub.target}")
            return
        expected = (sub.last_seq or 0) + 1
        if msg.seq != expected:
            self._resync(sub, f"sequence gap: expected {expected}, received {msg.seq}")
            return
        try:
            payload = self._decode_payload(sub, msg.diff)
            sub.cache.apply_delta(payload, msg.seq)
        except (msgspec.DecodeError, ValueError, InvalidOperation) as e:
            self._resync(sub, f"invalid delta seq={msg.seq}: {e}")
            return
        sub.last_seq = msg.seq
        sub.queue.put(
            LighterSyncEvent(
                kind=LighterSyncEventKind.DELTA,
                channel=sub.channel,
                target=sub.target,
                seq=msg.seq,
                **sub.view(),
            ),
        )

    def _resync(self, sub: _Subscription, reason: str) -> None:
        self._log.warning(f"Resync {sub.channel.value}/{sub.target}: {reason}")
        sub.invalidate()
        sub.queue.put_control(
            LighterSyncEvent(
                kind=LighterSyncEventKind.RESYNC,
                channel=sub.channel,
                target=sub.target,
                error=LighterSyncErrorKind.SEQUENCE_GAP,
                reason=reason,
            ),
        )
        task = self._loop.create_task(self._ws.resubscribe(sub.channel.value, sub.target))
        self._tasks.add(task)

    def _on_ws_disconnect(self) -> None:
        for sub in self._subs.values():
            sub.invalidate()
            sub.queue.put_control(
                LighterSyncEvent(
                    kind=LighterSyncEventKind.DISCONNECTED,
                    channel=sub.channel,
                    target=sub.target,
                    error=LighterSyncErrorKind.DISCONNECTED,
                    reason="stream connection lost",
                ),
            )

    async def _on_ws_reconnect(self) -> None:
        self._log.info(
            f"Stream reconnected; awaiting snapshots for {len(self._subs)} subscription(s)",
            LogColor.BLUE,
        )
