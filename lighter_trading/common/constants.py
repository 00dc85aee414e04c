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

"""Constants for the Lighter trading client (base URLs, chain ids and protocol limits)."""

from __future__ import annotations

from typing import Final


LIGHTER: Final[str] = "LIGHTER"

# Public base URLs (subject to change by operator)
LIGHTER_MAINNET_HTTP: Final[str] = "https://mainnet.zklighter.elliot.ai"
LIGHTER_TESTNET_HTTP: Final[str] = "https://testnet.zklighter.elliot.ai"
LIGHTER_MAINNET_WS: Final[str] = "wss://mainnet.zklighter.elliot.ai/stream"
LIGHTER_TESTNET_WS: Final[str] = "wss://testnet.zklighter.elliot.ai/stream"

LIGHTER_MAINNET_CHAIN_ID: Final[int] = 304
LIGHTER_TESTNET_CHAIN_ID: Final[int] = 300

LIGHTER_PRIVATE_KEY_ENV: Final[str] = "LIGHTER_PRIVATE_KEY"

# Crypto sizes (bytes)
HASH_LENGTH: Final[int] = 32
PRIVATE_KEY_LENGTH: Final[int] = 32
PUBLIC_KEY_LENGTH: Final[int] = 32
SIGNATURE_LENGTH: Final[int] = 64
MEMO_LENGTH: Final[int] = 32

# Precision ticks
ONE_USDC: Final[int] = 1_000_000
FEE_TICK: Final[int] = 1_000_000
MARGIN_FRACTION_TICK: Final[int] = 10_000
SHARE_TICK: Final[int] = 10_000

# Account / API key / market indices
MIN_ACCOUNT_INDEX: Final[int] = 0
MAX_ACCOUNT_INDEX: Final[int] = (1 << 48) - 2
MIN_API_KEY_INDEX: Final[int] = 0
MAX_API_KEY_INDEX: Final[int] = (1 << 8) - 2
MIN_MARKET_INDEX: Final[int] = 0
MAX_MARKET_INDEX: Final[int] = (1 << 8) - 2

# Chain id is carried as an unsigned 32-bit field
MAX_CHAIN_ID: Final[int] = (1 << 32) - 1

# Pools
INITIAL_POOL_SHARE_VALUE: Final[int] = 1_000  # 0.001 USDC
MIN_INITIAL_TOTAL_SHARES: Final[int] = 1_000 * (ONE_USDC // INITIAL_POOL_SHARE_VALUE)
MAX_INITIAL_TOTAL_SHARES: Final[int] = 1_000_000_000 * (ONE_USDC // INITIAL_POOL_SHARE_VALUE)
MIN_POOL_SHARES_TO_MINT_OR_BURN: Final[int] = 1
MAX_POOL_SHARES_TO_MINT_OR_BURN: Final[int] = (1 << 60) - 1

# Nonces
MIN_NONCE: Final[int] = 0
MAX_NONCE: Final[int] = (1 << 63) - 1

# Orders
NIL_CLIENT_ORDER_INDEX: Final[int] = 0
MIN_CLIENT_ORDER_INDEX: Final[int] = 1
MAX_CLIENT_ORDER_INDEX: Final[int] = (1 << 48) - 1
MIN_ORDER_INDEX: Final[int] = 1
MAX_ORDER_INDEX: Final[int] = (1 << 56) - 1
MIN_ORDER_BASE_AMOUNT: Final[int] = 1
MAX_ORDER_BASE_AMOUNT: Final[int] = (1 << 48) - 1
NIL_ORDER_PRICE: Final[int] = 0
MIN_ORDER_PRICE: Final[int] = 1
MAX_ORDER_PRICE: Final[int] = (1 << 32) - 1
NIL_ORDER_TRIGGER_PRICE: Final[int] = 0
MIN_ORDER_TRIGGER_PRICE: Final[int] = 1
MAX_ORDER_TRIGGER_PRICE: Final[int] = (1 << 32) - 1
NIL_ORDER_EXPIRY: Final[int] = 0
MAX_ORDER_EXPIRY: Final[int] = (1 << 63) - 1
MAX_GROUPED_ORDER_COUNT: Final[int] = 3

# Order expiry conventions
DEFAULT_IOC_EXPIRY: Final[int] = 0
DEFAULT_28_DAY_ORDER_EXPIRY: Final[int] = -1

# Transactions expire 10 minutes after signing by default (milliseconds)
DEFAULT_TX_EXPIRY_MS: Final[int] = 10 * 60 * 1000
MAX_TIMESTAMP: Final[int] = (1 << 48) - 1

# Exchange / transfers / withdrawals
MAX_EXCHANGE_USDC: Final[int] = (1 << 60) - 1
MIN_TRANSFER_AMOUNT: Final[int] = 1
MAX_TRANSFER_AMOUNT: Final[int] = MAX_EXCHANGE_USDC
MIN_WITHDRAWAL_AMOUNT: Final[int] = 1
MAX_WITHDRAWAL_AMOUNT: Final[int] = MAX_EXCHANGE_USDC

# Venue error code for a stale or out-of-order nonce
LIGHTER_INVALID_NONCE_CODE: Final[int] = 21104
