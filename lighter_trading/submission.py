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

import msgspec
from tenacity import RetryCallState

from nautilus_trader.common.component import Logger
from nautilus_trader.common.enums import LogColor

from lighter_trading.common.enums import LighterEnumParser
from lighter_trading.common.enums import LighterSubmitStatus
from lighter_trading.common.enums import LighterTxStatus
from lighter_trading.common.errors import LighterApiError
from lighter_trading.common.errors import LighterFatFingerError
from lighter_trading.common.utils import is_nonce_error
from lighter_trading.http.base import build_retrying
from lighter_trading.http.errors import LighterClientError
from lighter_trading.http.errors import LighterServerError
from lighter_trading.http.errors import LighterTransportError
from lighter_trading.http.transaction import LighterTransactionHttpClient
from lighter_trading.schemas.http import LighterTxResult
from lighter_trading.schemas.http import LighterTxStatusReport
from lighter_trading.schemas.tx import LighterCreateGroupedOrders
from lighter_trading.schemas.tx import LighterCreateOrder
from lighter_trading.schemas.tx import LighterModifyOrder
from lighter_trading.schemas.tx import LighterSignedTransaction
from lighter_trading.schemas.tx import LighterTransactionRequest


_VENUE_OK_CODE = 200


def order_terms(request: LighterTransactionRequest) -> list[tuple[int, int]]:
    """Return the ``(price, base_amount)`` pairs a request would put on the book."""
    if isinstance(request, LighterCreateOrder):
        return [(request.order.price, request.order.base_amount)]
    if isinstance(request, LighterCreateGroupedOrders):
        return [(o.price, o.base_amount) for o in request.orders]
    if isinstance(request, LighterModifyOrder):
        return [(request.price, request.base_amount)]
    return []


class LighterSubmissionClient:
    """
    Sends signed transactions and classifies the outcome.

    A submission is never blindly retried: a timeout, transport failure or 5xx
    yields an ``AMBIGUOUS`` result to be reconciled with ``query_status``. Only
    HTTP 429 is retried, since the venue rate limiter rejects before any state
    change.

    Parameters
    ----------
    http_tx : LighterTransactionHttpClient
        The transaction REST client.
    max_price_deviation : float, default 0.1
        Maximum fractional distance between an order price and the supplied
        reference price.
    max_order_base_amount : int, optional
        Ceiling on any single order's base amount.
    """

    def __init__(
        self,
        http_tx: LighterTransactionHttpClient,
        *,
        max_price_deviation: float = 0.1,
        max_order_base_amount: int | None = None,
        max_retries: int = 3,
        retry_initial_ms: int = 100,
        retry_max_ms: int = 5_000,
        retry_backoff_factor: float = 2.0,
    ) -> None:
        self._log = Logger(type(self).__name__)
        self._http_tx = http_tx
        self._max_price_deviation = float(max_price_deviation)
        self._max_order_base_amount = max_order_base_amount
        self._max_retries = int(max_retries)
        self._retry_initial_ms = retry_initial_ms
        self._retry_max_ms = retry_max_ms
        self._retry_backoff_factor = retry_backoff_factor

    def check_fat_finger(
        self,
        request: LighterTransactionRequest,
        reference_price: int | None = None,
    ) -> None:
        """
        Reject orders priced too far from ``reference_price`` or sized above the ceiling.

        Raises
        ------
        LighterFatFingerError
        """
        for price, base_amount in order_terms(request):
            if self._max_order_base_amount is not None and base_amount > self._max_order_base_amount:
                raise LighterFatFingerError(
                    "base_amount",
                    f"{base_amount} exceeds ceiling {self._max_order_base_amount}",
                )
            if reference_price is not None and reference_price > 0:
                deviation = abs(price - reference_price) / reference_price
                if deviation > self._max_price_deviation:
                    raise LighterFatFingerError(
                        "price",
                        f"{price} deviates {deviation:.2%} from reference {reference_price} "
                        f"(limit {self._max_price_deviation:.2%})",
                    )

    @staticmethod
    def _is_rate_limited(exc: BaseException) -> bool:
        return isinstance(exc, LighterClientError) and exc.is_rate_limited

    def _log_retry(self, signed: LighterSignedTransaction):
        def before_sleep(state: RetryCallState) -> None:
            delay = state.next_action.sleep if state.next_action else 0.0
            self._log.warning(f"Submit {signed.describe()} rate limited; retrying in {delay:.3f}s")

        return before_sleep

    async def submit(
        self,
        signed: LighterSignedTransaction,
        reference_price: int | None = None,
    ) -> LighterTxResult:
        """
        Submit a signed transaction.

        Raises
        ------
        LighterFatFingerError
            If the pre-flight check fails (nothing is sent).
        """
        self.check_fat_finger(signed.request, reference_price)

        retrying = build_retrying(
            self._is_rate_limited,
            max_retries=self._max_retries,
            retry_initial_ms=self._retry_initial_ms,
            retry_max_ms=self._retry_max_ms,
            retry_backoff_factor=self._retry_backoff_factor,
            before_sleep=self._log_retry(signed),
        )
        try:
            resp = await retrying(
                self._http_tx.send_tx,
                signed.tx_type,
                signed.to_tx_info(),
                signed.tx_hash,
            )
        except LighterClientError as e:
            return self._rejected(signed, e.code, e.reason, is_nonce_error(e.message, e.code))
        except (LighterServerError, LighterTransportError) as e:
            return self._ambiguous(signed, e.status or None, str(e))
        except msgspec.DecodeError as e:
            # The venue answered, but with a body that cannot be classified
            return self._ambiguous(signed, None, f"undecodable response: {e}")

        if resp.code is not None and resp.code != _VENUE_OK_CODE:
            return self._rejected(signed, resp.code, resp.message, is_nonce_error(resp.message, resp.code))
        if resp.tx_hash and resp.tx_hash.lower().removeprefix("0x") != signed.tx_hash:
            self._log.warning(f"Venue tx_hash {resp.tx_hash} differs from local digest {signed.tx_hash}")
        self._log.info(f"Submitted {signed.describe()}", LogColor.BLUE)
        return LighterTxResult(
            status=LighterSubmitStatus.ACCEPTED,
            tx_hash=signed.tx_hash,
            nonce=signed.nonce,
            code=resp.code,
            message=resp.message,
        )

    def _ambiguous(
        self,
        signed: LighterSignedTransaction,
        code: int | None,
        message: str,
    ) -> LighterTxResult:
        self._log.warning(f"Submit {signed.describe()} outcome unknown ({message}); reconcile via status query")
        return LighterTxResult(
            status=LighterSubmitStatus.AMBIGUOUS,
            tx_hash=signed.tx_hash,
            nonce=signed.nonce,
            code=code,
            message=message,
        )

    def _rejected(
        self,
        signed: LighterSignedTransaction,
        code: int | None,
        message: str | None,
        nonce_conflict: bool,
    ) -> LighterTxResult:
        self._log.error(f"Rejected {signed.describe()}: ({code}) {message}")
        return LighterTxResult(
            status=LighterSubmitStatus.REJECTED,
            tx_hash=signed.tx_hash,
            nonce=signed.nonce,
            code=code,
            message=message,
            nonce_conflict=nonce_conflict,
        )

    async def query_status(self, tx_hash: str) -> LighterTxStatusReport:
        """
        Query the venue status of a transaction by digest.

        Unknown status text is reported as ``PENDING``.

        Raises
        ------
        LighterNetworkError
            ``TRANSIENT`` once retries are exhausted.
        LighterApiError
            For non-retryable client errors, or a response carrying a venue
            error code (e.g. unknown digest).
        """
        digest = tx_hash.lower().removeprefix("0x")
        resp = await self._http_tx.get_tx(digest)
        if resp.code is not None and resp.code != _VENUE_OK_CODE:
            raise LighterApiError(resp.code, resp.message or resp.reason or "status query failed")
        status = LighterEnumParser.parse_tx_status(resp.status) or LighterTxStatus.PENDING
        return LighterTxStatusReport(
            tx_hash=digest,
            status=status,
            reason=resp.reason or resp.message,
        )
