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

"""Transaction request variants and the signed transaction envelope.

Every request variant is a frozen msgspec struct tagged by ``type``; the
``LighterTransactionRequest`` union is the exhaustive set the encoder accepts.
"""

from __future__ import annotations

from typing import Any, ClassVar, Union

import msgspec

from lighter_trading.common.constants import NIL_CLIENT_ORDER_INDEX
from lighter_trading.common.constants import NIL_ORDER_EXPIRY
from lighter_trading.common.constants import NIL_ORDER_TRIGGER_PRICE
from lighter_trading.common.enums import LighterCancelAllTif
from lighter_trading.common.enums import LighterGroupingType
from lighter_trading.common.enums import LighterMarginDirection
from lighter_trading.common.enums import LighterMarginMode
from lighter_trading.common.enums import LighterOrderType
from lighter_trading.common.enums import LighterPoolStatus
from lighter_trading.common.enums import LighterTimeInForce
from lighter_trading.common.enums import LighterTxType


class LighterOrderInfo(msgspec.Struct, frozen=True, kw_only=True):
    """Order terms shared by single and grouped order creation."""

    market_index: int
    base_amount: int
    price: int
    is_ask: bool
    client_order_index: int = NIL_CLIENT_ORDER_INDEX
    order_type: LighterOrderType = LighterOrderType.LIMIT
    time_in_force: LighterTimeInForce = LighterTimeInForce.GTT
    reduce_only: bool = False
    trigger_price: int = NIL_ORDER_TRIGGER_PRICE
    order_expiry: int = NIL_ORDER_EXPIRY


class LighterCreateOrder(msgspec.Struct, frozen=True, kw_only=True, tag_field="type", tag="create_order"):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.CREATE_ORDER

    order: LighterOrderInfo


class LighterCreateGroupedOrders(
    msgspec.Struct,
    frozen=True,
    kw_only=True,
    tag_field="type",
    tag="create_grouped_orders",
):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.CREATE_GROUPED_ORDERS

    grouping_type: LighterGroupingType
    orders: tuple[LighterOrderInfo, ...]


class LighterCancelOrder(msgspec.Struct, frozen=True, kw_only=True, tag_field="type", tag="cancel_order"):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.CANCEL_ORDER

    market_index: int
    order_index: int


class LighterCancelAllOrders(
    msgspec.Struct,
    frozen=True,
    kw_only=True,
    tag_field="type",
    tag="cancel_all_orders",
):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.CANCEL_ALL_ORDERS

    time_in_force: LighterCancelAllTif = LighterCancelAllTif.IMMEDIATE
    time: int = 0


class LighterModifyOrder(msgspec.Struct, frozen=True, kw_only=True, tag_field="type", tag="modify_order"):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.MODIFY_ORDER

    market_index: int
    order_index: int
    base_amount: int
    price: int
    trigger_price: int = NIL_ORDER_TRIGGER_PRICE


class LighterTransfer(msgspec.Struct, frozen=True, kw_only=True, tag_field="type", tag="transfer"):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.TRANSFER

    to_account_index: int
    usdc_amount: int
    fee: int = 0
    memo: bytes = bytes(32)


class LighterWithdraw(msgspec.Struct, frozen=True, kw_only=True, tag_field="type", tag="withdraw"):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.WITHDRAW

    usdc_amount: int


class LighterCreatePublicPool(
    msgspec.Struct,
    frozen=True,
    kw_only=True,
    tag_field="type",
    tag="create_public_pool",
):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.CREATE_PUBLIC_POOL

    operator_fee: int
    initial_total_shares: int
    min_operator_share_rate: int


class LighterUpdatePublicPool(
    msgspec.Struct,
    frozen=True,
    kw_only=True,
    tag_field="type",
    tag="update_public_pool",
):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.UPDATE_PUBLIC_POOL

    public_pool_index: int
    status: LighterPoolStatus
    operator_fee: int
    min_operator_share_rate: int


class LighterMintShares(msgspec.Struct, frozen=True, kw_only=True, tag_field="type", tag="mint_shares"):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.MINT_SHARES

    public_pool_index: int
    share_amount: int


class LighterBurnShares(msgspec.Struct, frozen=True, kw_only=True, tag_field="type", tag="burn_shares"):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.BURN_SHARES

    public_pool_index: int
    share_amount: int


class LighterChangePubKey(msgspec.Struct, frozen=True, kw_only=True, tag_field="type", tag="change_pub_key"):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.CHANGE_PUB_KEY

    pub_key: bytes


class LighterCreateSubAccount(
    msgspec.Struct,
    frozen=True,
    kw_only=True,
    tag_field="type",
    tag="create_sub_account",
):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.CREATE_SUB_ACCOUNT


class LighterUpdateLeverage(
    msgspec.Struct,
    frozen=True,
    kw_only=True,
    tag_field="type",
    tag="update_leverage",
):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.UPDATE_LEVERAGE

    market_index: int
    initial_margin_fraction: int
    margin_mode: LighterMarginMode = LighterMarginMode.CROSS


class LighterUpdateMargin(msgspec.Struct, frozen=True, kw_only=True, tag_field="type", tag="update_margin"):
    TX_TYPE: ClassVar[LighterTxType] = LighterTxType.UPDATE_MARGIN

    market_index: int
    usdc_amount: int
    direction: LighterMarginDirection


LighterTransactionRequest = Union[
    LighterCreateOrder,
    LighterCreateGroupedOrders,
    LighterCancelOrder,
    LighterCancelAllOrders,
    LighterModifyOrder,
    LighterTransfer,
    LighterWithdraw,
    LighterCreatePublicPool,
    LighterUpdatePublicPool,
    LighterMintShares,
    LighterBurnShares,
    LighterChangePubKey,
    LighterCreateSubAccount,
    LighterUpdateLeverage,
    LighterUpdateMargin,
]


def _hexify(obj: Any) -> Any:
    if isinstance(obj, bytes):
        return "0x" + obj.hex()
    if isinstance(obj, dict):
        return {k: _hexify(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_hexify(v) for v in obj]
    return obj


class LighterSignedTransaction(msgspec.Struct, frozen=True, kw_only=True):
    """
    A signed transaction, immutable once produced by the signing pipeline.

    ``encoded`` holds the exact bytes the digest was computed over (variant body
    followed by the common envelope), so a third party can recompute ``digest``
    from the logical fields alone.
    """

    tx_type: LighterTxType
    request: LighterTransactionRequest
    encoded: bytes
    digest: bytes
    signature: bytes
    nonce: int
    expired_at: int
    chain_id: int
    account_index: int
    api_key_index: int

    @property
    def tx_hash(self) -> str:
        """Return the digest as lower-case hex (no prefix), the status query key."""
        return self.digest.hex()

    @property
    def identity(self) -> tuple[int, int, int]:
        return (self.account_index, self.api_key_index, self.nonce)

    def to_tx_info(self) -> str:
        """Return the JSON ``tx_info`` payload sent to the venue."""
        body = _hexify(msgspec.to_builtins(self.request, builtin_types=(bytes,)))
        body.update(
            {
                "account_index": self.account_index,
                "api_key_index": self.api_key_index,
                "chain_id": self.chain_id,
                "nonce": self.nonce,
                "expired_at": self.expired_at,
                "sig": "0x" + self.signature.hex(),
            },
        )
        return msgspec.json.encode(body).decode("utf-8")

    def describe(self) -> str:
        return (
            f"{self.tx_type.name}(account={self.account_index}, key={self.api_key_index}, "
            f"nonce={self.nonce}, digest={self.tx_hash[:16]}...)"
        )
