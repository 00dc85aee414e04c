# -------------------------------------------------------------------------------------------------
#  Copyright (C) 2015-2025 Nautech Systems Pty Ltd. All rights reserved.
# -------------------------------------------------------------------------------------------------

from __future__ import annotations

import msgspec

from lighter_trading.common.enums import LighterSubmitStatus
from lighter_trading.common.enums import LighterTxStatus
from lighter_trading.common.errors import LighterApiError
from lighter_trading.common.errors import LighterNetworkError
from lighter_trading.common.errors import LighterNetworkErrorKind


# Wire responses ---------------------------------------------------------------------------------

class LighterNextNonceResponse(msgspec.Struct, frozen=True, omit_defaults=True):
    code: int | None = None
    # The venue returns either an integer or a 0x-prefixed hex string
    nonce: int | str | None = None
    next_nonce: int | str | None = None


class LighterSendTxResponse(msgspec.Struct, frozen=True, omit_defaults=True):
    code: int | None = None
    message: str | None = None
    tx_hash: str | None = None


class LighterTxStatusResponse(msgspec.Struct, frozen=True, omit_defaults=True):
    code: int | None = None
    tx_hash: str | None = None
    status: str | None = None
    reason: str | None = None
    message: str | None = None


# Client results ---------------------------------------------------------------------------------

class LighterTxResult(msgspec.Struct, frozen=True, omit_defaults=True):
    """Outcome of one submission attempt.

    ``AMBIGUOUS`` means the request may or may not have reached the venue; the
    caller must resolve it with a status query by ``tx_hash``.
    """

    status: LighterSubmitStatus
    tx_hash: str
    nonce: int
    code: int | None = None
    message: str | None = None
    nonce_conflict: bool = False

    @property
    def accepted(self) -> bool:
        return self.status == LighterSubmitStatus.ACCEPTED

    def raise_for_status(self) -> LighterTxResult:
        if self.status == LighterSubmitStatus.REJECTED:
            raise LighterApiError(self.code, self.message or "rejected")
        if self.status == LighterSubmitStatus.AMBIGUOUS:
            raise LighterNetworkError(
                LighterNetworkErrorKind.AMBIGUOUS,
                self.message or "submission outcome unknown",
                tx_hash=self.tx_hash,
            )
        return self


class LighterTxStatusReport(msgspec.Struct, frozen=True, omit_defaults=True):
    tx_hash: str
    status: LighterTxStatus
    reason: str | None = None
