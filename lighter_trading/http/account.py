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

from nautilus_trader.core.nautilus_pyo3 import HttpClient, Quota

from lighter_trading.common.errors import LighterApiError
from lighter_trading.common.utils import parse_hex_int
from lighter_trading.http.base import LighterHttpBase
from lighter_trading.schemas.http import LighterNextNonceResponse


class LighterAccountHttpClient(LighterHttpBase):
    """
    Minimal REST client for Lighter account-facing endpoints.

    Currently used for nonce initialisation.
    """

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

    async def get_next_nonce(self, account_index: int, api_key_index: int) -> int:
        """
        Return the next nonce for the given API key.

        The endpoint responds with either ``{"nonce": "0x..."}``, ``{"nonce": 123}``
        or the ``next_nonce`` spelling; all forms are supported. Transient failures
        are retried with backoff.
        """
        payload = await self._get_json(
            "/nonce",
            {"account": int(account_index), "key": int(api_key_index)},
            LighterNextNonceResponse,
            op="nonce fetch",
        )
        raw = payload.nonce if payload.nonce is not None else payload.next_nonce
        parsed = parse_hex_int(raw)
        if parsed is None or parsed < 0:
            raise LighterApiError(payload.code, f"invalid nonce format: {raw!r}")
        return parsed
