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

from typing import Any

from lighter_trading.common.errors import LighterError
from lighter_trading.common.utils import parse_hex_int


class LighterHttpError(LighterError):
    """
    Raised by the HTTP layer for a failed exchange with the venue.

    Parameters
    ----------
    status : int
        The HTTP status (0 when no response was received).
    message : Any
        The decoded error payload, or a description.
    headers : dict[str, Any]
        The response headers.
    """

    def __init__(self, status: int, message: Any, headers: dict[str, Any] | None = None) -> None:
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message
        self.headers = headers or {}

    @property
    def code(self) -> int | None:
        """Return the venue error code from the payload, or the HTTP status."""
        if isinstance(self.message, dict):
            parsed = parse_hex_int(self.message.get("code"))
            if parsed is not None:
                return parsed
        return self.status or None

    @property
    def reason(self) -> str:
        if isinstance(self.message, dict):
            text = self.message.get("message") or self.message.get("error")
            if text:
                return str(text)
        return str(self.message)


class LighterClientError(LighterHttpError):
    """HTTP 4xx."""

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429

    @property
    def is_auth_failure(self) -> bool:
        return self.status in (401, 403)


class LighterServerError(LighterHttpError):
    """HTTP 5xx."""


class LighterTransportError(LighterHttpError):
    """No HTTP response: connection failure or per-call timeout."""

    def __init__(self, message: Any, *, timeout: bool = False) -> None:
        super().__init__(status=0, message=message)
        self.timeout = timeout
