# -------------------------------------------------------------------------------------------------
#  Copyright (C) 2015-2025 Nautech Systems Pty Ltd.
# -------------------------------------------------------------------------------------------------

from __future__ import annotations

from nautilus_trader.config import NautilusConfig

from lighter_trading.common.constants import DEFAULT_TX_EXPIRY_MS
from lighter_trading.common.constants import LIGHTER_MAINNET_CHAIN_ID
from lighter_trading.common.constants import LIGHTER_PRIVATE_KEY_ENV
from lighter_trading.common.constants import LIGHTER_TESTNET_CHAIN_ID
from lighter_trading.common.constants import LIGHTER_TESTNET_HTTP
from lighter_trading.common.constants import LIGHTER_TESTNET_WS
from lighter_trading.common.enums import LighterNonceMode
from lighter_trading.common.enums import LighterOverflowPolicy


class LighterRateLimitConfig:
    """
    Optional rate limit, retry and reconnect configuration.

    Notes
    -----
    By default no client-side rate limiting is applied and only standard retry
    logic is used for transient HTTP errors. You can provide quotas to enable
    client-side throttling when required.
    """

    def __init__(
        self,
        # HTTP quotas (per-minute)
        http_default_per_minute: int | None = None,
        http_endpoint_per_minute: dict[str, int] | None = None,
        # Retry/backoff
        retry_initial_ms: int = 100,
        retry_max_ms: int = 5_000,
        retry_backoff_factor: float = 2.0,
        max_retries: int = 3,
        # Reconnect (WS)
        ws_reconnect_delay_initial_ms: int | None = None,
        ws_reconnect_delay_max_ms: int | None = None,
        ws_reconnect_backoff_factor: float | None = None,
        ws_reconnect_jitter_ms: int | None = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, was {max_retries}")
        self.http_default_per_minute = http_default_per_minute
        self.http_endpoint_per_minute = http_endpoint_per_minute or {}
        self.retry_initial_ms = int(retry_initial_ms)
        self.retry_max_ms = int(retry_max_ms)
        self.retry_backoff_factor = float(retry_backoff_factor)
        self.max_retries = int(max_retries)
        self.ws_reconnect_delay_initial_ms = ws_reconnect_delay_initial_ms
        self.ws_reconnect_delay_max_ms = ws_reconnect_delay_max_ms
        self.ws_reconnect_backoff_factor = ws_reconnect_backoff_factor
        self.ws_reconnect_jitter_ms = ws_reconnect_jitter_ms


def infer_chain_id(base_url_http: str | None) -> int:
    """Return 304 for mainnet URLs and 300 otherwise."""
    if base_url_http and "mainnet" in base_url_http.lower():
        return LIGHTER_MAINNET_CHAIN_ID
    return LIGHTER_TESTNET_CHAIN_ID


class LighterClientConfig(NautilusConfig, frozen=True):
    """
    Configuration for the Lighter transport service and realtime state sync.

    Parameters
    ----------
    base_url_http : str, optional
        The REST base URL (defaults to testnet).
    base_url_ws : str, optional
        The state stream URL (defaults to testnet).
    chain_id : int, optional
        The signing chain id (304 mainnet / 300 testnet). If None, inferred from base_url_http.
    account_index : int
        The account transactions are signed for.
    api_key_index : int
        The API key slot of the signing key.
    private_key : str, optional
        Hex private key. Prefer ``private_key_env``.
    private_key_env : str, default "LIGHTER_PRIVATE_KEY"
        Environment variable holding the private key when ``private_key`` is unset.
    timeout_secs : int, default 10
        HTTP request timeout.
    nonce_mode : LighterNonceMode, default MANAGED
        Managed (fetch once, count locally) or manual (caller supplies nonces).
    max_price_deviation : float, default 0.1
        Fat-finger guard: maximum fractional distance from the reference price.
    max_order_base_amount : int, optional
        Fat-finger guard: ceiling on any single order's base amount.
    tx_expiry_ms : int, default 10 minutes
        Lifetime of a signed transaction.
    sync_queue_size : int, default 1024
        Capacity of each state sync subscription channel.
    sync_overflow : LighterOverflowPolicy, default DROP_OLDEST
        Backpressure policy for full subscription channels.
    ratelimit : LighterRateLimitConfig, optional
        Client-side rate limit, retry and reconnect configuration.

    Notes
    -----
    Do not persist private keys in code or config files.
    """

    account_index: int = 0
    api_key_index: int = 0
    base_url_http: str | None = None
    base_url_ws: str | None = None
    chain_id: int | None = None
    private_key: str | None = None
    private_key_env: str = LIGHTER_PRIVATE_KEY_ENV
    timeout_secs: int = 10
    nonce_mode: LighterNonceMode = LighterNonceMode.MANAGED
    max_price_deviation: float = 0.1
    max_order_base_amount: int | None = None
    tx_expiry_ms: int = DEFAULT_TX_EXPIRY_MS
    sync_queue_size: int = 1_024
    sync_overflow: LighterOverflowPolicy = LighterOverflowPolicy.DROP_OLDEST
    ratelimit: LighterRateLimitConfig | None = None

    def __repr__(self) -> str:
        parts = []
        for name in self.__struct_fields__:
            value = getattr(self, name)
            if name == "private_key" and value is not None:
                parts.append(f"{name}=<redacted>")
            else:
                parts.append(f"{name}={value!r}")
        return f"{type(self).__name__}({', '.join(parts)})"

    @property
    def http_url(self) -> str:
        return self.base_url_http or LIGHTER_TESTNET_HTTP

    @property
    def ws_url(self) -> str:
        return self.base_url_ws or LIGHTER_TESTNET_WS

    @property
    def resolved_chain_id(self) -> int:
        if self.chain_id is not None:
            return self.chain_id
        return infer_chain_id(self.base_url_http)
