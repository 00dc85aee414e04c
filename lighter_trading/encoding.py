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

"""Canonical binary encoding of Lighter transactions.

Layout
------
Every body starts with the one-byte transaction type tag, followed by the
variant's fields in declaration order, big-endian and fixed width:

- ``u8``: market index, API key index, enum values and flags
- ``u32``: prices, trigger prices, chain id, initial margin fraction
- ``i64``: indices, amounts, fees, shares, expiries and nonces
- memo / public key: fixed 32-byte blocks

The signed message is the body followed by the common envelope
``chain_id:u32 | account_index:i64 | api_key_index:u8 | nonce:i64 | expired_at:i64``.
Nothing is length-prefixed and nothing is optional, so a third party can rebuild
the exact bytes from the logical fields.
"""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import Any, Callable, get_args

from lighter_trading.common.constants import FEE_TICK
from lighter_trading.common.constants import MARGIN_FRACTION_TICK
from lighter_trading.common.constants import MAX_ACCOUNT_INDEX
from lighter_trading.common.constants import MAX_API_KEY_INDEX
from lighter_trading.common.constants import MAX_CHAIN_ID
from lighter_trading.common.constants import MAX_CLIENT_ORDER_INDEX
from lighter_trading.common.constants import MAX_EXCHANGE_USDC
from lighter_trading.common.constants import MAX_GROUPED_ORDER_COUNT
from lighter_trading.common.constants import MAX_INITIAL_TOTAL_SHARES
from lighter_trading.common.constants import MAX_MARKET_INDEX
from lighter_trading.common.constants import MAX_NONCE
from lighter_trading.common.constants import MAX_ORDER_BASE_AMOUNT
from lighter_trading.common.constants import MAX_ORDER_EXPIRY
from lighter_trading.common.constants import MAX_ORDER_INDEX
from lighter_trading.common.constants import MAX_ORDER_PRICE
from lighter_trading.common.constants import MAX_ORDER_TRIGGER_PRICE
from lighter_trading.common.constants import MAX_POOL_SHARES_TO_MINT_OR_BURN
from lighter_trading.common.constants import MAX_TIMESTAMP
from lighter_trading.common.constants import MAX_TRANSFER_AMOUNT
from lighter_trading.common.constants import MAX_WITHDRAWAL_AMOUNT
from lighter_trading.common.constants import MEMO_LENGTH
from lighter_trading.common.constants import MIN_ACCOUNT_INDEX
from lighter_trading.common.constants import MIN_CLIENT_ORDER_INDEX
from lighter_trading.common.constants import MIN_INITIAL_TOTAL_SHARES
from lighter_trading.common.constants import MIN_MARKET_INDEX
from lighter_trading.common.constants import MIN_NONCE
from lighter_trading.common.constants import MIN_ORDER_BASE_AMOUNT
from lighter_trading.common.constants import MIN_ORDER_INDEX
from lighter_trading.common.constants import MIN_ORDER_PRICE
from lighter_trading.common.constants import MIN_ORDER_TRIGGER_PRICE
from lighter_trading.common.constants import MIN_POOL_SHARES_TO_MINT_OR_BURN
from lighter_trading.common.constants import MIN_TRANSFER_AMOUNT
from lighter_trading.common.constants import MIN_WITHDRAWAL_AMOUNT
from lighter_trading.common.constants import NIL_CLIENT_ORDER_INDEX
from lighter_trading.common.constants import NIL_ORDER_TRIGGER_PRICE
from lighter_trading.common.constants import PUBLIC_KEY_LENGTH
from lighter_trading.common.constants import SHARE_TICK
from lighter_trading.common.enums import GROUPED_ORDER_CHILD_COUNT
from lighter_trading.common.enums import LighterCancelAllTif
from lighter_trading.common.enums import LighterEnumParser
from lighter_trading.common.enums import LighterGroupingType
from lighter_trading.common.enums import LighterMarginDirection
from lighter_trading.common.enums import LighterMarginMode
from lighter_trading.common.enums import LighterOrderType
from lighter_trading.common.enums import LighterPoolStatus
from lighter_trading.common.enums import LighterTimeInForce
from lighter_trading.common.errors import LighterEncodingError
from lighter_trading.common.errors import LighterValidationError
from lighter_trading.schemas.tx import LighterBurnShares
from lighter_trading.schemas.tx import LighterCancelAllOrders
from lighter_trading.schemas.tx import LighterCancelOrder
from lighter_trading.schemas.tx import LighterChangePubKey
from lighter_trading.schemas.tx import LighterCreateGroupedOrders
from lighter_trading.schemas.tx import LighterCreateOrder
from lighter_trading.schemas.tx import LighterCreatePublicPool
from lighter_trading.schemas.tx import LighterCreateSubAccount
from lighter_trading.schemas.tx import LighterMintShares
from lighter_trading.schemas.tx import LighterModifyOrder
from lighter_trading.schemas.tx import LighterOrderInfo
from lighter_trading.schemas.tx import LighterTransactionRequest
from lighter_trading.schemas.tx import LighterTransfer
from lighter_trading.schemas.tx import LighterUpdateLeverage
from lighter_trading.schemas.tx import LighterUpdateMargin
from lighter_trading.schemas.tx import LighterUpdatePublicPool
from lighter_trading.schemas.tx import LighterWithdraw


_TAG = struct.Struct(">B")
_ENVELOPE = struct.Struct(">IqBqq")
_ORDER_INFO = struct.Struct(">BqqIBBBBIq")
_GROUP_HEADER = struct.Struct(">BB")
_CANCEL_ORDER = struct.Struct(">Bq")
_CANCEL_ALL = struct.Struct(">Bq")
_MODIFY_ORDER = struct.Struct(">BqqII")
_TRANSFER = struct.Struct(f">qqq{MEMO_LENGTH}s")
_WITHDRAW = struct.Struct(">q")
_CREATE_POOL = struct.Struct(">qqq")
_UPDATE_POOL = struct.Struct(">qBqq")
_SHARES = struct.Struct(">qq")
_CHANGE_PUB_KEY = struct.Struct(f">{PUBLIC_KEY_LENGTH}s")
_UPDATE_LEVERAGE = struct.Struct(">BIB")
_UPDATE_MARGIN = struct.Struct(">BqB")


# -- Field checks ---------------------------------------------------------------------------------


def _check_int(field: str, value: Any, lo: int, hi: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise LighterValidationError(field, f"must be an integer, was {type(value).__name__}")
    if value < lo:
        raise LighterValidationError(field, f"{value} is below minimum {lo}")
    if value > hi:
        raise LighterValidationError(field, f"{value} is above maximum {hi}")
    return value


def _check_bool(field: str, value: Any) -> None:
    if not isinstance(value, bool):
        raise LighterValidationError(field, f"must be a bool, was {type(value).__name__}")


def _check_enum(field: str, value: Any, enum_type: type[IntEnum]) -> None:
    if isinstance(value, bool):
        raise LighterValidationError(field, "must be an enum value, was bool")
    try:
        enum_type(value)
    except ValueError:
        raise LighterValidationError(field, f"{value!r} is not a valid {enum_type.__name__}") from None


def _check_bytes(field: str, value: Any, length: int) -> None:
    if not isinstance(value, (bytes, bytearray)):
        raise LighterValidationError(field, f"must be bytes, was {type(value).__name__}")
    if len(value) != length:
        raise LighterValidationError(field, f"must be exactly {length} bytes, was {len(value)}")


def _check_market(field: str, value: Any) -> None:
    _check_int(field, value, MIN_MARKET_INDEX, MAX_MARKET_INDEX)


# -- Validators -----------------------------------------------------------------------------------


def _validate_order_info(o: LighterOrderInfo, prefix: str = "") -> None:
    _check_market(f"{prefix}market_index", o.market_index)
    if o.client_order_index != NIL_CLIENT_ORDER_INDEX:
        _check_int(
            f"{prefix}client_order_index",
            o.client_order_index,
            MIN_CLIENT_ORDER_INDEX,
            MAX_CLIENT_ORDER_INDEX,
        )
    _check_int(f"{prefix}base_amount", o.base_amount, MIN_ORDER_BASE_AMOUNT, MAX_ORDER_BASE_AMOUNT)
    _check_int(f"{prefix}price", o.price, MIN_ORDER_PRICE, MAX_ORDER_PRICE)
    _check_bool(f"{prefix}is_ask", o.is_ask)
    _check_enum(f"{prefix}order_type", o.order_type, LighterOrderType)
    _check_enum(f"{prefix}time_in_force", o.time_in_force, LighterTimeInForce)
    _check_bool(f"{prefix}reduce_only", o.reduce_only)
    if LighterEnumParser.requires_trigger_price(LighterOrderType(o.order_type)):
        _check_int(
            f"{prefix}trigger_price",
            o.trigger_price,
            MIN_ORDER_TRIGGER_PRICE,
            MAX_ORDER_TRIGGER_PRICE,
        )
    elif o.trigger_price != NIL_ORDER_TRIGGER_PRICE:
        raise LighterValidationError(
            f"{prefix}trigger_price",
            f"must be {NIL_ORDER_TRIGGER_PRICE} for {LighterOrderType(o.order_type).name} orders",
        )
    # -1 requests the venue default (28 days)
    _check_int(f"{prefix}order_expiry", o.order_expiry, -1, MAX_ORDER_EXPIRY)


def _validate_create_order(req: LighterCreateOrder) -> None:
    if not isinstance(req.order, LighterOrderInfo):
        raise LighterValidationError("order", "must be a LighterOrderInfo")
    _validate_order_info(req.order)


def _validate_grouped_orders(req: LighterCreateGroupedOrders) -> None:
    _check_enum("grouping_type", req.grouping_type, LighterGroupingType)
    count = len(req.orders)
    expected = GROUPED_ORDER_CHILD_COUNT[LighterGroupingType(req.grouping_type)]
    if count != expected:
        raise LighterValidationError(
            "orders",
            f"{LighterGroupingType(req.grouping_type).name} requires exactly {expected} orders, got {count}",
        )
    if count > MAX_GROUPED_ORDER_COUNT:
        raise LighterValidationError("orders", f"at most {MAX_GROUPED_ORDER_COUNT} orders per group")
    for i, child in enumerate(req.orders):
        if not isinstance(child, LighterOrderInfo):
            raise LighterValidationError(f"orders[{i}]", "must be a LighterOrderInfo")
        _validate_order_info(child, prefix=f"orders[{i}].")
    markets = {child.market_index for child in req.orders}
    if len(markets) != 1:
        raise LighterValidationError("orders", "all orders in a group must share one market")


def _validate_cancel_order(req: LighterCancelOrder) -> None:
    _check_market("market_index", req.market_index)
    _check_int("order_index", req.order_index, MIN_ORDER_INDEX, MAX_ORDER_INDEX)


def _validate_cancel_all(req: LighterCancelAllOrders) -> None:
    _check_enum("time_in_force", req.time_in_force, LighterCancelAllTif)
    if LighterCancelAllTif(req.time_in_force) == LighterCancelAllTif.SCHEDULED:
        _check_int("time", req.time, 1, MAX_TIMESTAMP)
    elif req.time != 0:
        raise LighterValidationError("time", "must be 0 unless the cancel is scheduled")


def _validate_modify_order(req: LighterModifyOrder) -> None:
    _check_market("market_index", req.market_index)
    _check_int("order_index", req.order_index, MIN_ORDER_INDEX, MAX_ORDER_INDEX)
    _check_int("base_amount", req.base_amount, MIN_ORDER_BASE_AMOUNT, MAX_ORDER_BASE_AMOUNT)
    _check_int("price", req.price, MIN_ORDER_PRICE, MAX_ORDER_PRICE)
    _check_int("trigger_price", req.trigger_price, NIL_ORDER_TRIGGER_PRICE, MAX_ORDER_TRIGGER_PRICE)


def _validate_transfer(req: LighterTransfer) -> None:
    _check_int("to_account_index", req.to_account_index, MIN_ACCOUNT_INDEX, MAX_ACCOUNT_INDEX)
    _check_int("usdc_amount", req.usdc_amount, MIN_TRANSFER_AMOUNT, MAX_TRANSFER_AMOUNT)
    _check_int("fee", req.fee, 0, MAX_EXCHANGE_USDC)
    _check_bytes("memo", req.memo, MEMO_LENGTH)


def _validate_withdraw(req: LighterWithdraw) -> None:
    _check_int("usdc_amount", req.usdc_amount, MIN_WITHDRAWAL_AMOUNT, MAX_WITHDRAWAL_AMOUNT)


def _validate_create_pool(req: LighterCreatePublicPool) -> None:
    _check_int("operator_fee", req.operator_fee, 0, FEE_TICK)
    _check_int(
        "initial_total_shares",
        req.initial_total_shares,
        MIN_INITIAL_TOTAL_SHARES,
        MAX_INITIAL_TOTAL_SHARES,
    )
    _check_int("min_operator_share_rate", req.min_operator_share_rate, 1, SHARE_TICK)


def _validate_update_pool(req: LighterUpdatePublicPool) -> None:
    _check_int("public_pool_index", req.public_pool_index, MIN_ACCOUNT_INDEX, MAX_ACCOUNT_INDEX)
    _check_enum("status", req.status, LighterPoolStatus)
    _check_int("operator_fee", req.operator_fee, 0, FEE_TICK)
    _check_int("min_operator_share_rate", req.min_operator_share_rate, 1, SHARE_TICK)


def _validate_shares(req: LighterMintShares | LighterBurnShares) -> None:
    _check_int("public_pool_index", req.public_pool_index, MIN_ACCOUNT_INDEX, MAX_ACCOUNT_INDEX)
    _check_int(
        "share_amount",
        req.share_amount,
        MIN_POOL_SHARES_TO_MINT_OR_BURN,
        MAX_POOL_SHARES_TO_MINT_OR_BURN,
    )


def _validate_change_pub_key(req: LighterChangePubKey) -> None:
    _check_bytes("pub_key", req.pub_key, PUBLIC_KEY_LENGTH)


def _validate_create_sub_account(req: LighterCreateSubAccount) -> None:
    return None


def _validate_update_leverage(req: LighterUpdateLeverage) -> None:
    _check_market("market_index", req.market_index)
    _check_int("initial_margin_fraction", req.initial_margin_fraction, 1, MARGIN_FRACTION_TICK)
    _check_enum("margin_mode", req.margin_mode, LighterMarginMode)


def _validate_update_margin(req: LighterUpdateMargin) -> None:
    _check_market("market_index", req.market_index)
    _check_int("usdc_amount", req.usdc_amount, 1, MAX_EXCHANGE_USDC)
    _check_enum("direction", req.direction, LighterMarginDirection)


# -- Body encoders --------------------------------------------------------------------------------


def _pack_order_info(o: LighterOrderInfo) -> bytes:
    return _ORDER_INFO.pack(
        o.market_index,
        o.client_order_index,
        o.base_amount,
        o.price,
        int(o.is_ask),
        int(o.order_type),
        int(o.time_in_force),
        int(o.reduce_only),
        o.trigger_price,
        o.order_expiry,
    )


def _encode_create_order(req: LighterCreateOrder) -> bytes:
    return _pack_order_info(req.order)


def _encode_grouped_orders(req: LighterCreateGroupedOrders) -> bytes:
    header = _GROUP_HEADER.pack(int(req.grouping_type), len(req.orders))
    return header + b"".join(_pack_order_info(o) for o in req.orders)


def _encode_cancel_order(req: LighterCancelOrder) -> bytes:
    return _CANCEL_ORDER.pack(req.market_index, req.order_index)


def _encode_cancel_all(req: LighterCancelAllOrders) -> bytes:
    return _CANCEL_ALL.pack(int(req.time_in_force), req.time)


def _encode_modify_order(req: LighterModifyOrder) -> bytes:
    return _MODIFY_ORDER.pack(
        req.market_index,
        req.order_index,
        req.base_amount,
        req.price,
        req.trigger_price,
    )


def _encode_transfer(req: LighterTransfer) -> bytes:
    return _TRANSFER.pack(req.to_account_index, req.usdc_amount, req.fee, bytes(req.memo))


def _encode_withdraw(req: LighterWithdraw) -> bytes:
    return _WITHDRAW.pack(req.usdc_amount)


def _encode_create_pool(req: LighterCreatePublicPool) -> bytes:
    return _CREATE_POOL.pack(req.operator_fee, req.initial_total_shares, req.min_operator_share_rate)


def _encode_update_pool(req: LighterUpdatePublicPool) -> bytes:
    return _UPDATE_POOL.pack(
        req.public_pool_index,
        int(req.status),
        req.operator_fee,
        req.min_operator_share_rate,
    )


def _encode_shares(req: LighterMintShares | LighterBurnShares) -> bytes:
    return _SHARES.pack(req.public_pool_index, req.share_amount)


def _encode_change_pub_key(req: LighterChangePubKey) -> bytes:
    return _CHANGE_PUB_KEY.pack(bytes(req.pub_key))


def _encode_create_sub_account(req: LighterCreateSubAccount) -> bytes:
    return b""


def _encode_update_leverage(req: LighterUpdateLeverage) -> bytes:
    return _UPDATE_LEVERAGE.pack(req.market_index, req.initial_margin_fraction, int(req.margin_mode))


def _encode_update_margin(req: LighterUpdateMargin) -> bytes:
    return _UPDATE_MARGIN.pack(req.market_index, req.usdc_amount, int(req.direction))


_HANDLERS: dict[type, tuple[Callable[[Any], None], Callable[[Any], bytes]]] = {
    LighterCreateOrder: (_validate_create_order, _encode_create_order),
    LighterCreateGroupedOrders: (_validate_grouped_orders, _encode_grouped_orders),
    LighterCancelOrder: (_validate_cancel_order, _encode_cancel_order),
    LighterCancelAllOrders: (_validate_cancel_all, _encode_cancel_all),
    LighterModifyOrder: (_validate_modify_order, _encode_modify_order),
    LighterTransfer: (_validate_transfer, _encode_transfer),
    LighterWithdraw: (_validate_withdraw, _encode_withdraw),
    LighterCreatePublicPool: (_validate_create_pool, _encode_create_pool),
    LighterUpdatePublicPool: (_validate_update_pool, _encode_update_pool),
    LighterMintShares: (_validate_shares, _encode_shares),
    LighterBurnShares: (_validate_shares, _encode_shares),
    LighterChangePubKey: (_validate_change_pub_key, _encode_change_pub_key),
    LighterCreateSubAccount: (_validate_create_sub_account, _encode_create_sub_account),
    LighterUpdateLeverage: (_validate_update_leverage, _encode_update_leverage),
    LighterUpdateMargin: (_validate_update_margin, _encode_update_margin),
}

# Every request variant must have a handler; fail at import rather than at first use
_UNHANDLED = set(get_args(LighterTransactionRequest)) - set(_HANDLERS)
if _UNHANDLED:
    raise ImportError(
        "No encoder registered for: " + ", ".join(sorted(t.__name__ for t in _UNHANDLED)),
    )


class LighterTransactionEncoder:
    """
    Stateless validator and encoder for every ``LighterTransactionRequest`` variant.

    ``encode`` is a pure function of the request's logical fields: the same
    request always yields the same bytes.
    """

    @staticmethod
    def _handlers(request: Any) -> tuple[Callable[[Any], None], Callable[[Any], bytes]]:
        handlers = _HANDLERS.get(type(request))
        if handlers is None:
            raise LighterValidationError("request", f"unsupported transaction type {type(request).__name__}")
        return handlers

    def validate(self, request: LighterTransactionRequest) -> None:
        """
        Validate all fields of the request.

        Raises
        ------
        LighterValidationError
            On the first field that is out of range or inconsistent.
        """
        validate, _ = self._handlers(request)
        validate(request)

    def encode(self, request: LighterTransactionRequest) -> bytes:
        """Validate and return the canonical body: type tag followed by the variant fields."""
        validate, encode = self._handlers(request)
        validate(request)
        try:
            return _TAG.pack(int(request.TX_TYPE)) + encode(request)
        except struct.error as e:
            raise LighterEncodingError(f"cannot encode {type(request).__name__}: {e}") from e

    def validate_envelope(
        self,
        *,
        chain_id: int,
        account_index: int,
        api_key_index: int,
        expired_at: int,
    ) -> None:
        """Validate the envelope fields known before a nonce is allocated."""
        _check_int("chain_id", chain_id, 0, MAX_CHAIN_ID)
        _check_int("account_index", account_index, MIN_ACCOUNT_INDEX, MAX_ACCOUNT_INDEX)
        _check_int("api_key_index", api_key_index, 0, MAX_API_KEY_INDEX)
        _check_int("expired_at", expired_at, 0, MAX_TIMESTAMP)

    def encode_envelope(
        self,
        *,
        chain_id: int,
        account_index: int,
        api_key_index: int,
        nonce: int,
        expired_at: int,
    ) -> bytes:
        """Validate and return the common envelope appended to every body before hashing."""
        self.validate_envelope(
            chain_id=chain_id,
            account_index=account_index,
            api_key_index=api_key_index,
            expired_at=expired_at,
        )
        _check_int("nonce", nonce, MIN_NONCE, MAX_NONCE)
        try:
            return _ENVELOPE.pack(chain_id, account_index, api_key_index, nonce, expired_at)
        except struct.error as e:
            raise LighterEncodingError(f"cannot encode envelope: {e}") from e

    def signing_payload(
        self,
        request: LighterTransactionRequest,
        *,
        chain_id: int,
        account_index: int,
        api_key_index: int,
        nonce: int,
        expired_at: int,
    ) -> bytes:
        """Return the exact bytes that are hashed and signed for the request."""
        return self.encode(request) + self.encode_envelope(
            chain_id=chain_id,
            account_index=account_index,
            api_key_index=api_key_index,
            nonce=nonce,
            expired_at=expired_at,
        )
