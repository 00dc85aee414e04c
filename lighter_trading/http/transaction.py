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

from nautilus_trader.core.nautilus_pyo3 import HttpClient, Quota

from lighter_trading.http.base import LighterHttpBase
from lighter_trading.schemas.http import LighterSendTxResponse
from lighter_trading.schemas.http import LighterTxStatusResponse


class LighterTransactionHttpClient(LighterHttpBase):
    """Thin REST wrapper around the Lighter transaction endpoints."""

    def __init__(
        self,
        base_url: str,
        ratelimiter_quotas: list[tuple[str, Quota]] | None = None,
        ratelimiter_default_quota: Quota | None = None,
        retry_initial_ms: int = 100,
        retry_max_ms: int = 5_000,
        retry_backoff_factor: float = 2.0,
        max_retries: int = 3,
        timeout_secs: int = 10,
        client: HttpClient | None = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            ratelimiter_quotas=ratelimiter_quotas,
            ratelimiter_default_quota=ratelimiter_default_quota,
            retry_initial_ms=retry_initial_ms,
            retry_max_ms=retry_max_ms,
            retry_backoff_factor=retry_backoff_factor,
            max_retries=max_retries,
            timeout_secs=timeout_secs,
            client=client,
        )
        self._send_decoder = msgspec.json.Decoder(LighterSendTxResponse)

    async def send_tx(self, tx_type: int, tx_info: str, tx_hash: str) -> LighterSendTxResponse:
        """
        Invoke ``POST /tx`` with a signed transaction payload.

        Exactly one attempt is made; HTTP and transport failures propagate as
        ``LighterHttpError`` for the caller to classify.
        """
        body = msgspec.json.encode(
            {
                "tx_type": int(tx_type),
                "tx_info": tx_info,
                "tx_hash": tx_hash,
            },
        )
        resp = await self._post_raw("/tx", body)
        return self._send_decoder.decode(resp.body) if resp.body else LighterSendTxResponse()

    async def get_tx(self, tx_hash: str) -> LighterTxStatusResponse:
        """Invoke ``GET /tx/{digest}``, retrying transient failures."""
        return await self._get_json(
            f"/tx/{tx_hash}",
            None,
            LighterTxStatusResponse,
            op="status query",
        )
