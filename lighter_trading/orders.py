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

"""Convenience builders for common Lighter transaction requests.

Amounts and prices are venue integers (already scaled by the market's size and
price decimals). Builders only assemble requests; validation happens in the
encoder.
"""

from __future__ import annotations

from lighter_trading.common.constants import MARGIN_FRACTION_TICK
from lighter_trading.common.constants import MEMO_LENGTH
from lighter_trading.common.constants import NIL_CLIENT_ORDER_INDEX
from lighter_trading.common.constants import NIL_ORDER_EXPIRY
from lighter_trading.common.enums import LighterCancelAllTif
from lighter_trading.common.enums import LighterGroupingType
from lighter_trading.common.enums import LighterMarginMode
from lighter_trading.common.enums import LighterOrderType
from lighter_trading.common.enums import LighterTimeInForce
from lighter_trading.common.errors import LighterValidationError
from lighter_trading.schemas.tx import LighterCancelAllOrders
from lighter_trading.schemas.tx import LighterCreateGroupedOrders
from lighter_trading.schemas.tx import LighterCreateOrder
from lighter_trading.schemas.tx import LighterOrderInfo
from lighter_trading.schemas.tx import LighterUpdateLeverage


def _order(
    order_type: LighterOrderType,
    time_in_force: LighterTimeInForce,
    *,
    market_index: int,
    base_amount: int,
    price: int,
    is_ask: bool,
    client_order_index: int,
    reduce_only: bool,
    trigger_price: int = 0,
    order_expiry: int = NIL_ORDER_EXPIRY,
) -> LighterOrderInfo:
    return LighterOrderInfo(
        market_index=market_index,
        client_order_index=client_order_index,
        base_amount=base_amount,
        price=price,
        is_ask=is_ask,
        order_type=order_type,
        time_in_force=time_in_force,
        reduce_only=reduce_only,
        trigger_price=trigger_price,
        order_expiry=order_expiry,
    )


def limit_order(
    market_index: int,
    base_amount: int,
    price: int,
    is_ask: bool,
    client_order_index: int = NIL_CLIENT_ORDER_INDEX,
    reduce_only: bool = False,
    time_in_force: LighterTimeInForce = LighterTimeInForce.GTT,
    order_expiry: int = NIL_ORDER_EXPIRY,
) -> LighterCreateOrder:
    """Return a limit order request (good-till-time unless overridden)."""
    return LighterCreateOrder(
        order=_order(
            LighterOrderType.LIMIT,
            time_in_force,
            market_index=market_index,
            base_amount=base_amount,
            price=price,
            is_ask=is_ask,
            client_order_index=client_order_index,
            reduce_only=reduce_only,
            order_expiry=order_expiry,
        ),
    )


def market_order(
    market_index: int,
    base_amount: int,
    worst_price: int,
    is_ask: bool,
    client_order_index: int = NIL_CLIENT_ORDER_INDEX,
    reduce_only: bool = False,
) -> LighterCreateOrder:
    """Return an immediate-or-cancel market order; ``worst_price`` bounds the fill."""
    return LighterCreateOrder(
        order=_order(
            LighterOrderType.MARKET,
            LighterTimeInForce.IOC,
            market_index=market_index,
            base_amount=base_amount,
            price=worst_price,
            is_ask=is_ask,
            client_order_index=client_order_index,
            reduce_only=reduce_only,
        ),
    )


def take_profit_order(
    market_index: int,
    base_amount: int,
    trigger_price: int,
    price: int,
    is_ask: bool,
    client_order_index: int = NIL_CLIENT_ORDER_INDEX,
    reduce_only: bool = False,
    limit: bool = False,
) -> LighterOrderInfo:
    """Return take-profit order terms (market on trigger, or limit when ``limit``)."""
    return _order(
        LighterOrderType.TAKE_PROFIT_LIMIT if limit else LighterOrderType.TAKE_PROFIT,
        LighterTimeInForce.GTT if limit else LighterTimeInForce.IOC,
        market_index=market_index,
        base_amount=base_amount,
        price=price,
        is_ask=is_ask,
        client_order_index=client_order_index,
        reduce_only=reduce_only,
        trigger_price=trigger_price,
    )


def stop_loss_order(
    market_index: int,
    base_amount: int,
    trigger_price: int,
    price: int,
    is_ask: bool,
    client_order_index: int = NIL_CLIENT_ORDER_INDEX,
    reduce_only: bool = False,
    limit: bool = False,
) -> LighterOrderInfo:
    """Return stop-loss order terms (market on trigger, or limit when ``limit``)."""
    return _order(
        LighterOrderType.STOP_LOSS_LIMIT if limit else LighterOrderType.STOP_LOSS,
        LighterTimeInForce.GTT if limit else LighterTimeInForce.IOC,
        market_index=market_index,
        base_amount=base_amount,
        price=price,
        is_ask=is_ask,
        client_order_index=client_order_index,
        reduce_only=reduce_only,
        trigger_price=trigger_price,
    )


def grouped_orders(
    grouping_type: LighterGroupingType,
    *orders: LighterOrderInfo,
) -> LighterCreateGroupedOrders:
    return LighterCreateGroupedOrders(grouping_type=grouping_type, orders=tuple(orders))


def cancel_all_orders(time: int = 0, scheduled: bool = False) -> LighterCancelAllOrders:
    """
    Return a cancel-all request.

    ``scheduled=True`` arms a dead-man switch at ``time`` (ms); otherwise the
    cancel is immediate.
    """
    tif = LighterCancelAllTif.SCHEDULED if scheduled else LighterCancelAllTif.IMMEDIATE
    return LighterCancelAllOrders(time_in_force=tif, time=time)


def abort_scheduled_cancel_all() -> LighterCancelAllOrders:
    return LighterCancelAllOrders(time_in_force=LighterCancelAllTif.ABORT, time=0)


def leverage_to_margin_fraction(leverage: int) -> int:
    """
    Convert a leverage multiplier to an initial margin fraction in 1/10_000 units.

    Raises
    ------
    LighterValidationError
        If ``leverage`` is not a positive integer.
    """
    if isinstance(leverage, bool) or not isinstance(leverage, int) or leverage <= 0:
        raise LighterValidationError("leverage", "must be a positive integer")
    return MARGIN_FRACTION_TICK // leverage


def update_leverage(
    market_index: int,
    leverage: int,
    margin_mode: LighterMarginMode = LighterMarginMode.CROSS,
) -> LighterUpdateLeverage:
    return LighterUpdateLeverage(
        market_index=market_index,
        initial_margin_fraction=leverage_to_margin_fraction(leverage),
        margin_mode=margin_mode,
    )


def memo(text: str | bytes = b"") -> bytes:
    """Return a fixed 32-byte memo, right-padded with zero bytes."""
    raw = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    if len(raw) > MEMO_LENGTH:
        raise LighterValidationError("memo", f"must be at most {MEMO_LENGTH} bytes, was {len(raw)}")
    return raw.ljust(MEMO_LENGTH, b"\x00")
