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

"""Lighter transport service: signing, nonce and HTTP send orchestration.

The HTTP clients stay transport-only and the pipeline makes no network calls.
"""

from __future__ import annotations

from nautilus_trader.common.component import Logger
from nautilus_trader.common.enums import LogColor

from lighter_trading.common.enums import LighterGroupingType
from lighter_trading.common.enums import LighterMarginMode
from lighter_trading.common.enums import LighterNonceMode
from lighter_trading.orders import cancel_all_orders
from lighter_trading.orders import update_leverage
from lighter_trading.schemas.http import LighterTxResult
from lighter_trading.schemas.http import LighterTxStatusReport
from lighter_trading.schemas.tx import LighterCancelOrder
from lighter_trading.schemas.tx import LighterCreateGroupedOrders
from lighter_trading.schemas.tx import LighterCreateOrder
from lighter_trading.schemas.tx import LighterModifyOrder
from lighter_trading.schemas.tx import LighterOrderInfo
from lighter_trading.schemas.tx import LighterTransactionRequest
from lighter_trading.signer import LighterSigningPipeline
from lighter_trading.submission import LighterSubmissionClient


class LighterTransportService:
    """High-level orchestrator for Lighter private actions.

    Responsibilities
    - Sign via the signing pipeline (which allocates the nonce)
    - Submit through the submission client (fat-finger check, outcome classification)
    - Recover once from a venue nonce conflict: invalidate the cached nonce,
      re-sign with a freshly fetched one and resubmit

    Notes
    - The signature of a conflicted transaction is discarded, never reused.
    - Ambiguous outcomes are returned as-is; reconcile with ``query_status``.
    """

    def __init__(
        self,
        *,
        pipeline: LighterSigningPipeline,
        submission: LighterSubmissionClient,
    ) -> None:
        self._log = Logger(type(self).__name__)
        self._pipeline = pipeline
        self._submission = submission

    @property
    def pipeline(self) -> LighterSigningPipeline:
        return self._pipeline

    # --- Nonce helpers -----------------------------------------------------------------
    async def refresh_nonce(self) -> int:
        """Force refresh the local nonce from the venue (on nonce error)."""
        return await self._pipeline.nonce_manager.refresh(
            self._pipeline.account_index,
            self._pipeline.api_key_index,
        )

    # --- Generic -----------------------------------------------------------------------
    async def execute(
        self,
        request: LighterTransactionRequest,
        *,
        reference_price: int | None = None,
        nonce: int | None = None,
    ) -> LighterTxResult:
        """
        Sign and submit a request.

        The fat-finger check runs before signing so a rejected order never
        consumes a nonce.
        """
        self._submission.check_fat_finger(request, reference_price)
        signed = await self._pipeline.sign(request, nonce=nonce)
        result = await self._submission.submit(signed, reference_price)
        if not result.nonce_conflict:
            return result

        nonces = self._pipeline.nonce_manager
        if nonces.mode == LighterNonceMode.MANUAL:
            return result
        self._log.warning(
            f"Nonce conflict for {signed.describe()}; refetching nonce and re-signing once",
        )
        nonces.invalidate(self._pipeline.account_index, self._pipeline.api_key_index)
        resigned = await self._pipeline.sign(request)
        return await self._submission.submit(resigned, reference_price)

    async def query_status(self, tx_hash: str) -> LighterTxStatusReport:
        return await self._submission.query_status(tx_hash)

    # --- Create ------------------------------------------------------------------------
    async def submit_order(
        self,
        order: LighterOrderInfo | LighterCreateOrder,
        reference_price: int | None = None,
    ) -> LighterTxResult:
        request = order if isinstance(order, LighterCreateOrder) else LighterCreateOrder(order=order)
        return await self.execute(request, reference_price=reference_price)

    async def submit_order_list(
        self,
        grouping_type: LighterGroupingType,
        orders: list[LighterOrderInfo],
        reference_price: int | None = None,
    ) -> LighterTxResult:
        request = LighterCreateGroupedOrders(grouping_type=grouping_type, orders=tuple(orders))
        return await self.execute(request, reference_price=reference_price)

    # --- Cancel / Modify / Leverage ----------------------------------------------------
    async def cancel_order(self, market_index: int, order_index: int) -> LighterTxResult:
        return await self.execute(LighterCancelOrder(market_index=market_index, order_index=order_index))

    async def cancel_all(self) -> LighterTxResult:
        return await self.execute(cancel_all_orders())

    async def modify_order(
        self,
        market_index: int,
        order_index: int,
        *,
        base_amount: int,
        price: int,
        trigger_price: int = 0,
        reference_price: int | None = None,
    ) -> LighterTxResult:
        request = LighterModifyOrder(
            market_index=market_index,
            order_index=order_index,
            base_amount=base_amount,
            price=price,
            trigger_price=trigger_price,
        )
        self._log.info(
            f"Sending modify_order tx (market={market_index}, order_index={order_index}, "
            f"base_amount={base_amount}, price={price})",
            LogColor.BLUE,
        )
        return await self.execute(request, reference_price=reference_price)

    async def update_leverage(
        self,
        market_index: int,
        leverage: int,
        margin_mode: LighterMarginMode = LighterMarginMode.CROSS,
    ) -> LighterTxResult:
        return await self.execute(update_leverage(market_index, leverage, margin_mode))
