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

"""Venue-specific enums and helpers for the Lighter trading client.

These enums mirror the transaction and order types used by the venue signing
library and API. The encoder accepts only these values; anything outside the
enumerations is rejected during validation.
"""

from __future__ import annotations

from enum import Enum, IntEnum, unique


@unique
class LighterTxType(IntEnum):
    CHANGE_PUB_KEY = 8
    CREATE_SUB_ACCOUNT = 9
    CREATE_PUBLIC_POOL = 10
    UPDATE_PUBLIC_POOL = 11
    TRANSFER = 12
    WITHDRAW = 13
    CREATE_ORDER = 14
    CANCEL_ORDER = 15
    CANCEL_ALL_ORDERS = 16
    MODIFY_ORDER = 17
    MINT_SHARES = 18
    BURN_SHARES = 19
    UPDATE_LEVERAGE = 20
    CREATE_GROUPED_ORDERS = 28
    UPDATE_MARGIN = 29


class LighterOrderType(IntEnum):
    LIMIT = 0
    MARKET = 1
    STOP_LOSS = 2
    STOP_LOSS_LIMIT = 3
    TAKE_PROFIT = 4
    TAKE_PROFIT_LIMIT = 5
    TWAP = 6


class LighterTimeInForce(IntEnum):
    IOC = 0
    GTT = 1
    POST_ONLY = 2


class LighterCancelAllTif(IntEnum):
    IMMEDIATE = 0
    SCHEDULED = 1
    ABORT = 2


class LighterMarginMode(IntEnum):
    CROSS = 0
    ISOLATED = 1


class LighterMarginDirection(IntEnum):
    REMOVE_FROM_ISOLATED = 0
    ADD_TO_ISOLATED = 1


class LighterGroupingType(IntEnum):
    ONE_TRIGGERS_THE_OTHER = 1
    ONE_CANCELS_THE_OTHER = 2
    ONE_TRIGGERS_A_ONE_CANCELS_THE_OTHER = 3


class LighterPoolStatus(IntEnum):
    ACTIVE = 0
    FROZEN = 1


class LighterNonceMode(Enum):
    MANAGED = "managed"
    MANUAL = "manual"


class LighterTxStage(Enum):
    BUILT = "built"
    VALIDATED = "validated"
    ENCODED = "encoded"
    HASHED = "hashed"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class LighterSubmitStatus(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    AMBIGUOUS = "ambiguous"


class LighterTxStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class LighterSyncChannel(Enum):
    ORDER_BOOK = "orderbook"
    ACCOUNT = "account"


class LighterSyncEventKind(Enum):
    SNAPSHOT = "snapshot"
    DELTA = "delta"
    RESYNC = "resync"
    DISCONNECTED = "disconnected"


class LighterOverflowPolicy(Enum):
    DROP_OLDEST = "drop_oldest"
    REJECT_NEW = "reject_new"


# Exact child counts per grouping type
GROUPED_ORDER_CHILD_COUNT: dict[LighterGroupingType, int] = {
    LighterGroupingType.ONE_TRIGGERS_THE_OTHER: 2,
    LighterGroupingType.ONE_CANCELS_THE_OTHER: 2,
    LighterGroupingType.ONE_TRIGGERS_A_ONE_CANCELS_THE_OTHER: 3,
}


class LighterEnumParser:
    """Order type semantics and venue status parsing."""

    @staticmethod
    def requires_trigger_price(order_type: LighterOrderType) -> bool:
        """Return True if the order type requires a trigger price field."""
        return order_type in (
            LighterOrderType.STOP_LOSS,
            LighterOrderType.STOP_LOSS_LIMIT,
            LighterOrderType.TAKE_PROFIT,
            LighterOrderType.TAKE_PROFIT_LIMIT,
        )

    @staticmethod
    def parse_tx_status(status: str | None) -> LighterTxStatus | None:
        """Map venue transaction status text to ``LighterTxStatus``.

        Unknown statuses return None so the caller keeps polling.
        """
        if not status:
            return None
        s = str(status).strip().lower()
        if s in {"pending", "queued", "in-progress", "in_progress", "accepted"}:
            return LighterTxStatus.PENDING
        if s in {"confirmed", "executed", "committed", "verified"}:
            return LighterTxStatus.CONFIRMED
        if "reject" in s or s in {"failed", "invalid"}:
            return LighterTxStatus.REJECTED
        return None
