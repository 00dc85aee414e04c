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

"""Local caches mirrored from the Lighter state stream.

Caches are mutated only by the realtime sync; consumers receive immutable
snapshots (``LighterOrderBookSnapshot`` / ``LighterAccountSnapshot``).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

import msgspec

from lighter_trading.schemas.ws import LighterAccountOrder
from lighter_trading.schemas.ws import LighterAccountPayload
from lighter_trading.schemas.ws import LighterAccountPosition
from lighter_trading.schemas.ws import LighterOrderBookLevel
from lighter_trading.schemas.ws import LighterOrderBookPayload


_BPS = Decimal(10_000)


def _to_decimal(value: str, what: str) -> Decimal:
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"invalid {what} {value!r}") from None


class LighterOrderBookSnapshot(msgspec.Struct, frozen=True):
    """Immutable view of one market's book; bids best-first (descending), asks ascending."""

    market_index: int
    seq: int
    bids: tuple[tuple[Decimal, Decimal], ...]
    asks: tuple[tuple[Decimal, Decimal], ...]


class LighterAccountSnapshot(msgspec.Struct, frozen=True):
    account_index: int
    seq: int
    balances: dict[str, str]
    orders: tuple[LighterAccountOrder, ...]
    positions: tuple[LighterAccountPosition, ...]
    margin: dict[str, str]


class LighterOrderBook:
    """
    Price-level order book for one market.

    A snapshot replaces every level; a delta upserts the levels it carries and a
    level with size zero is removed.
    """

    def __init__(self, market_index: int) -> None:
        self.market_index = market_index
        self.seq: int | None = None
        self._bids: dict[Decimal, Decimal] = {}
        self._asks: dict[Decimal, Decimal] = {}

    @staticmethod
    def _load(side: dict[Decimal, Decimal], levels: list[LighterOrderBookLevel], replace: bool) -> None:
        parsed = [
            (_to_decimal(lvl.price, "price"), _to_decimal(lvl.size, "size"))
            for lvl in levels
        ]
        if replace:
            side.clear()
        for price, size in parsed:
            if size > 0:
                side[price] = size
            else:
                side.pop(price, None)

    def apply_snapshot(self, payload: LighterOrderBookPayload, seq: int) -> None:
        bids: dict[Decimal, Decimal] = {}
        asks: dict[Decimal, Decimal] = {}
        self._load(bids, payload.bids, replace=True)
        self._load(asks, payload.asks, replace=True)
        self._bids, self._asks = bids, asks
        self.seq = seq

    def apply_delta(self, payload: LighterOrderBookPayload, seq: int) -> None:
        # Parse both sides before mutating so a malformed level leaves the book untouched
        bids = dict(self._bids)
        asks = dict(self._asks)
        self._load(bids, payload.bids, replace=False)
        self._load(asks, payload.asks, replace=False)
        self._bids, self._asks = bids, asks
        self.seq = seq

    def clear(self) -> None:
        self._bids.clear()
        self._asks.clear()
        self.seq = None

    def bids(self) -> list[tuple[Decimal, Decimal]]:
        return sorted(self._bids.items(), key=lambda kv: kv[0], reverse=True)

    def asks(self) -> list[tuple[Decimal, Decimal]]:
        return sorted(self._asks.items(), key=lambda kv: kv[0])

    def best_bid(self) -> tuple[Decimal, Decimal] | None:
        if not self._bids:
            return None
        price = max(self._bids)
        return price, self._bids[price]

    def best_ask(self) -> tuple[Decimal, Decimal] | None:
        if not self._asks:
            return None
        price = min(self._asks)
        return price, self._asks[price]

    def spread(self) -> Decimal | None:
        bid, ask = self.best_bid(), self.best_ask()
        if bid is None or ask is None:
            return None
        return ask[0] - bid[0]

    def spread_bps(self) -> Decimal | None:
        """Return the spread relative to the best bid, in basis points."""
        bid, ask = self.best_bid(), self.best_ask()
        if bid is None or ask is None or bid[0] <= 0:
            return None
        return (ask[0] - bid[0]) / bid[0] * _BPS

    def mid_price(self) -> Decimal | None:
        bid, ask = self.best_bid(), self.best_ask()
        if bid is None or ask is None:
            return None
        return (ask[0] + bid[0]) / 2

    def top_bids(self, n: int) -> list[tuple[Decimal, Decimal]]:
        return self.bids()[:n]

    def top_asks(self, n: int) -> list[tuple[Decimal, Decimal]]:
        return self.asks()[:n]

    def bid_depth(self) -> int:
        return len(self._bids)

    def ask_depth(self) -> int:
        return len(self._asks)

    def total_bid_volume(self) -> Decimal:
        return sum(self._bids.values(), Decimal(0))

    def total_ask_volume(self) -> Decimal:
        return sum(self._asks.values(), Decimal(0))

    def ask_volume_to_price(self, price: Decimal) -> Decimal:
        """Return the ask size available at or below ``price``."""
        return sum((size for p, size in self._asks.items() if p <= price), Decimal(0))

    def bid_volume_to_price(self, price: Decimal) -> Decimal:
        """Return the bid size available at or above ``price``."""
        return sum((size for p, size in self._bids.items() if p >= price), Decimal(0))

    def to_snapshot(self) -> LighterOrderBookSnapshot:
        return LighterOrderBookSnapshot(
            market_index=self.market_index,
            seq=self.seq if self.seq is not None else -1,
            bids=tuple(self.bids()),
            asks=tuple(self.asks()),
        )


class LighterAccountCache:
    """
    Balances, open orders, positions and margin for one account.

    Deltas upsert what they carry: orders that are no longer open and positions
    that are flat are removed.
    """

    def __init__(self, account_index: int) -> None:
        self.account_index = account_index
        self.seq: int | None = None
        self._balances: dict[str, str] = {}
        self._orders: dict[int, LighterAccountOrder] = {}
        self._positions: dict[int, LighterAccountPosition] = {}
        self._margin: dict[str, str] = {}

    def apply_snapshot(self, payload: LighterAccountPayload, seq: int) -> None:
        self._balances = dict(payload.balances)
        self._orders = {o.order_index: o for o in payload.orders if o.is_open}
        self._positions = {
            p.market_id: p for p in payload.positions if _to_decimal(p.position, "position") != 0
        }
        self._margin = dict(payload.margin)
        self.seq = seq

    def apply_delta(self, payload: LighterAccountPayload, seq: int) -> None:
        flat = {p.market_id for p in payload.positions if _to_decimal(p.position, "position") == 0}
        self._balances.update(payload.balances)
        for order in payload.orders:
            if order.is_open:
                self._orders[order.order_index] = order
            else:
                self._orders.pop(order.order_index, None)
        for pos in payload.positions:
            if pos.market_id in flat:
                self._positions.pop(pos.market_id, None)
            else:
                self._positions[pos.market_id] = pos
        self._margin.update(payload.margin)
        self.seq = seq

    def clear(self) -> None:
        self._balances.clear()
        self._orders.clear()
        self._positions.clear()
        self._margin.clear()
        self.seq = None

    def open_orders(self, market_index: int | None = None) -> list[LighterAccountOrder]:
        orders = sorted(self._orders.values(), key=lambda o: o.order_index)
        if market_index is None:
            return orders
        return [o for o in orders if o.market_index == market_index]

    def position(self, market_index: int) -> LighterAccountPosition | None:
        return self._positions.get(market_index)

    def balance(self, asset: str) -> str | None:
        return self._balances.get(asset)

    def to_snapshot(self) -> LighterAccountSnapshot:
        return LighterAccountSnapshot(
            account_index=self.account_index,
            seq=self.seq if self.seq is not None else -1,
            balances=dict(self._balances),
            orders=tuple(self.open_orders()),
            positions=tuple(sorted(self._positions.values(), key=lambda p: p.market_id)),
            margin=dict(self._margin),
        )
