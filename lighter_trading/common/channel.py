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
from typing import Generic, TypeVar

from nautilus_trader.common.component import Logger

from lighter_trading.common.enums import LighterOverflowPolicy
from lighter_trading.common.errors import LighterError


T = TypeVar("T")

_CLOSED = object()


class LighterChannelClosed(LighterError):
    pass


class LighterMessageChannel(Generic[T]):
    """
    Bounded single-consumer message channel.

    Producers never block: when the queue is full, ``put`` either evicts the
    oldest item (``DROP_OLDEST``) or refuses the new one (``REJECT_NEW``).
    ``put_control`` always enqueues, evicting the oldest item if needed, so
    discontinuity notifications are never lost.

    Parameters
    ----------
    maxsize : int
        The queue capacity (must be positive).
    policy : LighterOverflowPolicy, default DROP_OLDEST
        What to do with a new item when the queue is full.
    name : str, optional
        Label used in log messages.
    """

    def __init__(
        self,
        maxsize: int = 1_024,
        policy: LighterOverflowPolicy = LighterOverflowPolicy.DROP_OLDEST,
        name: str = "",
    ) -> None:
        if maxsize <= 0:
            raise ValueError(f"maxsize must be positive, was {maxsize}")
        self._log = Logger(type(self).__name__)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize)
        self._policy = policy
        self._name = name
        self._closed = False
        self.dropped: int = 0

    @property
    def policy(self) -> LighterOverflowPolicy:
        return self._policy

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    @property
    def is_closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()

    def _evict_oldest(self) -> None:
        self._queue.get_nowait()
        self.dropped += 1

    def put(self, item: T) -> bool:
        """Enqueue without blocking; return False if the item was refused."""
        if self._closed:
            return False
        if self._queue.full():
            if self._policy == LighterOverflowPolicy.REJECT_NEW:
                self.dropped += 1
                self._log.warning(f"Channel {self._name} full; rejected new item (dropped={self.dropped})")
                return False
            self._evict_oldest()
            self._log.warning(f"Channel {self._name} full; dropped oldest item (dropped={self.dropped})")
        self._queue.put_nowait(item)
        return True

    def put_control(self, item: T) -> None:
        """Enqueue regardless of policy, evicting the oldest item when full."""
        if self._closed:
            return
        if self._queue.full():
            self._evict_oldest()
        self._queue.put_nowait(item)

    def get_nowait(self) -> T:
        item = self._queue.get_nowait()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise LighterChannelClosed(f"channel {self._name} closed")
        return item

    async def get(self) -> T:
        """Wait for the next item; raise ``LighterChannelClosed`` once closed and drained."""
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise LighterChannelClosed(f"channel {self._name} closed")
        return item

    def close(self) -> None:
        """Stop accepting items; consumers drain what is queued, then stop."""
        if self._closed:
            return
        if self._queue.full():
            self._evict_oldest()
        self._queue.put_nowait(_CLOSED)
        self._closed = True

    def __aiter__(self) -> LighterMessageChannel[T]:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.get()
        except LighterChannelClosed:
            raise StopAsyncIteration from None
