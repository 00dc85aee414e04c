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

from lighter_trading.common.constants import LIGHTER_INVALID_NONCE_CODE


def parse_hex_int(value: Any) -> int | None:
    """Parse an integer from int/str, supporting 0x-prefixed hex.

    Returns None on failure instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        s = str(value).strip()
        return int(s, 16) if s.lower().startswith("0x") else int(s)
    except (TypeError, ValueError):
        return None


def hex_to_bytes(value: str) -> bytes:
    """Decode a hex string, with or without a 0x prefix.

    Raises ValueError on malformed input.
    """
    s = value.strip()
    if s[:2].lower() == "0x":
        s = s[2:]
    return bytes.fromhex(s)


def bytes_to_hex(value: bytes, prefix: bool = True) -> str:
    return ("0x" if prefix else "") + value.hex()


def is_nonce_error(err: object, code: int | None = None) -> bool:
    """Heuristic detector for nonce-related rejections from server responses.

    Accepts strings or dict-like objects (with 'error'/'message' keys). Returns True
    if the venue code or the textual content indicates a nonce mismatch/invalid nonce.
    """
    if code == LIGHTER_INVALID_NONCE_CODE:
        return True
    text = None
    if isinstance(err, dict):
        if parse_hex_int(err.get("code")) == LIGHTER_INVALID_NONCE_CODE:
            return True
        text = err.get("error") or err.get("message") or err.get("reason")
    if text is None and err is not None:
        text = str(err)
    if not isinstance(text, str):
        return False
    lower = text.lower()
    return "nonce" in lower and ("invalid" in lower or "mismatch" in lower or "stale" in lower)
