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
"""
Lighter perpetual DEX trading client.

Signs and submits venue transactions (canonical encoding, key custody, nonce
allocation, fat-finger checks, ambiguity-aware submission) and mirrors order
book and account state from the sequenced WebSocket stream.
"""

from lighter_trading.common.constants import LIGHTER
from lighter_trading.config import LighterClientConfig
from lighter_trading.config import LighterRateLimitConfig
from lighter_trading.data import LighterRealtimeStateSync
from lighter_trading.data import LighterSyncEvent
from lighter_trading.encoding import LighterTransactionEncoder
from lighter_trading.factories import LighterStateSyncFactory
from lighter_trading.factories import LighterTransportFactory
from lighter_trading.signer import LighterSigningPipeline
from lighter_trading.submission import LighterSubmissionClient
from lighter_trading.transport import LighterTransportService

__all__ = [
    "LIGHTER",
    "LighterClientConfig",
    "LighterRateLimitConfig",
    "LighterRealtimeStateSync",
    "LighterSyncEvent",
    "LighterTransactionEncoder",
    "LighterStateSyncFactory",
    "LighterTransportFactory",
    "LighterSigningPipeline",
    "LighterSubmissionClient",
    "LighterTransportService",
]
