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
from typing import Any, Callable

from nautilus_trader.common.component import Clock
from nautilus_trader.common.component import LiveClock
from nautilus_trader.core.nautilus_pyo3 import HttpClient
from nautilus_trader.core.nautilus_pyo3 import Quota

from lighter_trading.common.crypto import LighterCryptoPrimitive
from lighter_trading.common.keys import LighterKeyManager
from lighter_trading.common.nonce import NonceManager
from lighter_trading.config import LighterClientConfig
from lighter_trading.config import LighterRateLimitConfig
from lighter_trading.data import LighterRealtimeStateSync
from lighter_trading.http.account import LighterAccountHttpClient
from lighter_trading.http.transaction import LighterTransactionHttpClient
from lighter_trading.signer import LighterSigningPipeline
from lighter_trading.submission import LighterSubmissionClient
from lighter_trading.transport import LighterTransportService


def _assemble_limits(ratelimit: LighterRateLimitConfig | None):
    """Build quotas/retry/WS kwargs from LighterRateLimitConfig (shared by factories)."""
    rl = ratelimit or LighterRateLimitConfig()
    http_keyed_quotas = []
    http_default_quota = None
    if rl.http_default_per_minute:
        http_default_quota = Quota.rate_per_minute(int(rl.http_default_per_minute))
    if rl.http_endpoint_per_minute:
        for ep, per_min in rl.http_endpoint_per_minute.items():
            http_keyed_quotas.append((f"lighter:{ep}", Quota.rate_per_minute(int(per_min))))
    retry_kwargs = dict(
        retry_initial_ms=rl.retry_initial_ms,
        retry_max_ms=rl.retry_max_ms,
        retry_backoff_factor=rl.retry_backoff_factor,
        max_retries=rl.max_retries,
    )
    ws_kwargs = dict(
        reconnect_delay_initial_ms=rl.ws_reconnect_delay_initial_ms,
        reconnect_delay_max_ms=rl.ws_reconnect_delay_max_ms,
        reconnect_backoff_factor=rl.ws_reconnect_backoff_factor,
        reconnect_jitter_ms=rl.ws_reconnect_jitter_ms,
    )
    return http_keyed_quotas, http_default_quota, retry_kwargs, ws_kwargs


def get_lighter_key_manager(
    config: LighterClientConfig,
    primitive: LighterCryptoPrimitive | None = None,
) -> LighterKeyManager:
    """Load the signing key from the config, falling back to ``config.private_key_env``."""
    if config.private_key:
        return LighterKeyManager(config.private_key, config.api_key_index, primitive=primitive)
    return LighterKeyManager.from_env(
        config.api_key_index,
        env_var=config.private_key_env,
        primitive=primitive,
    )


class LighterTransportFactory:
    """Factory for creating ``LighterTransportService`` instances."""

    @staticmethod
    def create(
        config: LighterClientConfig,
        clock: Clock,
        keys: LighterKeyManager | None = None,
        nonce: NonceManager | None = None,
        http_client: HttpClient | None = None,
    ) -> LighterTransportService:
        """
        Wire the key manager, nonce manager, signing pipeline and submission client.

        Pass ``nonce`` to share one allocator between services signing with the same key.
        """
        http_keyed_quotas, http_default_quota, retry_kwargs, _ = _assemble_limits(config.ratelimit)

        http_account = LighterAccountHttpClient(
            config.http_url,
            ratelimiter_quotas=http_keyed_quotas,
            ratelimiter_default_quota=http_default_quota,
            timeout_secs=config.timeout_secs,
            client=http_client,
            **retry_kwargs,
        )
        http_tx = LighterTransactionHttpClient(
            config.http_url,
            ratelimiter_quotas=http_keyed_quotas,
            ratelimiter_default_quota=http_default_quota,
            timeout_secs=config.timeout_secs,
            client=http_client,
            **retry_kwargs,
        )

        pipeline = LighterSigningPipeline(
            clock=clock,
            keys=keys or get_lighter_key_manager(config),
            nonce=nonce or NonceManager(mode=config.nonce_mode, fetcher=http_account.get_next_nonce),
            chain_id=config.resolved_chain_id,
            account_index=config.account_index,
            tx_expiry_ms=config.tx_expiry_ms,
        )
        submission = LighterSubmissionClient(
            http_tx,
            max_price_deviation=config.max_price_deviation,
            max_order_base_amount=config.max_order_base_amount,
            **retry_kwargs,
        )
        return LighterTransportService(pipeline=pipeline, submission=submission)


class LighterStateSyncFactory:
    """Factory for creating ``LighterRealtimeStateSync`` instances."""

    @staticmethod
    def create(
        loop: asyncio.AbstractEventLoop,
        config: LighterClientConfig,
        clock: LiveClock,
        connector: Callable[[str], Any] | None = None,
    ) -> LighterRealtimeStateSync:
        _, _, _, ws_kwargs = _assemble_limits(config.ratelimit)
        return LighterRealtimeStateSync(
            loop=loop,
            clock=clock,
            base_url_ws=config.ws_url,
            queue_size=config.sync_queue_size,
            overflow=config.sync_overflow,
            ws_kwargs=ws_kwargs,
            connector=connector,
        )
