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

"""WebSocket message schemas for the Lighter state stream.

Snapshot: ``{"seq", "channel", "target", "fullState"}``
Delta:    ``{"seq", "channel", "target", "diff"}``

The payload is kept raw on the envelope and decoded once the channel is known.
"""

from __future__ import annotations

from decimal import Decimal

import msgspec


class LighterWsEnvelope(msgspec.Struct, frozen=True, omit_defaults=True):
    """Minimal envelope used to route control frames (connected/ping/error)."""

    type: str | None = None
    channel: str | None = None
    target: int | None = None
    seq: int | None = None


class LighterWsSyncMsg(msgspec.Struct, frozen=True, omit_defaults=True):
    channel: str
    target: int
    seq: int
    full_state: msgspec.Raw = msgspec.field(default=msgspec.Raw(), name="fullState")
    diff: msgspec.Raw = msgspec.Raw()
    type: str | None = None

    @property
    def is_snapshot(self) -> bool:
        return bool(self.full_state)


# Order book --------------------------------------------------------------------------------------

class LighterOrderBookLevel(msgspec.Struct, frozen=True):
    price: str
    size: str


class LighterOrderBookPayload(msgspec.Struct, frozen=True, omit_defaults=True):
    """Full book (snapshot) or changed levels (delta; size "0" removes a level)."""

    asks: list[LighterOrderBookLevel] = []
    bids: list[LighterOrderBookLevel] = []


# Account ----------------------------------------------------------------------------------------

class LighterAccountOrder(msgspec.Struct, frozen=True, omit_defaults=True):
    order_index: int
    market_index: int
    status: str = "open"
    is_ask: bool = False
    client_order_index: int | None = None
    price: str | None = None
    base_amount: str | None = None
    remaining_base_amount: str | None = None
    trigger_price: str | None = None
    reduce_only: bool | None = None

    @property
    def is_open(self) -> bool:
        if self.status.lower() not in ("open", "pending", "in-progress", "in_progress"):
            return False
        if self.remaining_base_amount is not None:
            return Decimal(self.remaining_base_amount) != 0
        return True


class LighterAccountPosition(msgspec.Struct, frozen=True, omit_defaults=True):
    market_id: int
    position: str  # signed base amount
    avg_entry_price: str | None = None
    unrealized_pnl: str | None = None
    realized_pnl: str | None = None
    liquidation_price: str | None = None
    margin_mode: int | None = None
    allocated_margin: str | None = None


class LighterAccountPayload(msgspec.Struct, frozen=True, omit_defaults=True):
    """Full account state (snapshot) or changed entries (delta)."""

    balances: dict[str, str] = {}
    orders: list[LighterAccountOrder] = []
    positions: list[LighterAccountPosition] = []
    margin: dict[str, str] = {}
