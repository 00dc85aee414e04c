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

"""Error taxonomy for the Lighter trading client.

Validation, encoding and signing errors are raised before any network call and
leave no side effect. Network errors are split by what the caller may safely do
next: retry (``TRANSIENT``), give up (``FATAL``) or reconcile through a status
query (``AMBIGUOUS``).
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class LighterSigningErrorKind(Enum):
    KEY_UNAVAILABLE = "key_unavailable"
    INVALID_SIGNATURE = "invalid_signature"


class LighterNonceErrorKind(Enum):
    UNAVAILABLE = "unavailable"
    CONFLICT = "conflict"


class LighterNetworkErrorKind(Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"
    AMBIGUOUS = "ambiguous"


class LighterSyncErrorKind(Enum):
    SEQUENCE_GAP = "sequence_gap"
    DISCONNECTED = "disconnected"


class LighterError(Exception):
    """Base class for all Lighter trading client errors."""


class LighterValidationError(LighterError):
    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"invalid {field}: {reason}")
        self.field = field
        self.reason = reason


class LighterFatFingerError(LighterValidationError):
    """Raised by the local pre-flight check; the transaction never reaches the network."""


class LighterEncodingError(LighterError):
    pass


class LighterSigningError(LighterError):
    def __init__(self, kind: LighterSigningErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


class LighterNonceError(LighterError):
    def __init__(self, kind: LighterNonceErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


class LighterNetworkError(LighterError):
    def __init__(
        self,
        kind: LighterNetworkErrorKind,
        message: str = "",
        *,
        tx_hash: str | None = None,
    ) -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        # Set for AMBIGUOUS submissions so the caller can query status by digest
        self.tx_hash = tx_hash

    @property
    def is_retryable(self) -> bool:
        return self.kind == LighterNetworkErrorKind.TRANSIENT


class LighterApiError(LighterError):
    def __init__(self, code: int | None, message: Any) -> None:
        super().__init__(f"({code}) {message}")
        self.code = code
        self.message = message


class LighterSyncError(LighterError):
    def __init__(self, kind: LighterSyncErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind
