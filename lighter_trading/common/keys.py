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

import os

from nautilus_trader.common.component import Logger

from lighter_trading.common.constants import LIGHTER_PRIVATE_KEY_ENV
from lighter_trading.common.constants import MAX_API_KEY_INDEX
from lighter_trading.common.constants import MIN_API_KEY_INDEX
from lighter_trading.common.constants import PRIVATE_KEY_LENGTH
from lighter_trading.common.crypto import Ed25519Blake2bPrimitive
from lighter_trading.common.crypto import LighterCryptoPrimitive
from lighter_trading.common.errors import LighterSigningError
from lighter_trading.common.errors import LighterSigningErrorKind
from lighter_trading.common.utils import bytes_to_hex
from lighter_trading.common.utils import hex_to_bytes


class LighterKeyManager:
    """
    Holds the signing key of one API key slot.

    The private scalar is copied once into a private buffer at construction and
    never leaves this object: it is not part of ``repr``, not logged and not
    serialized. ``release()`` zeroes the buffer; any later signing attempt fails
    with ``LighterSigningError(KEY_UNAVAILABLE)``.

    Parameters
    ----------
    private_key : bytes | str
        The 32-byte private scalar, raw or hex (``0x`` prefix optional).
    api_key_index : int
        The API key slot the key is registered under.
    primitive : LighterCryptoPrimitive, optional
        The hash/signature collaborator. Defaults to Ed25519 over BLAKE2b-256.
    """

    def __init__(
        self,
        private_key: bytes | str,
        api_key_index: int,
        primitive: LighterCryptoPrimitive | None = None,
    ) -> None:
        self._log = Logger(type(self).__name__)
        if not (MIN_API_KEY_INDEX <= int(api_key_index) <= MAX_API_KEY_INDEX):
            raise LighterSigningError(
                LighterSigningErrorKind.KEY_UNAVAILABLE,
                f"api_key_index {api_key_index} out of range",
            )
        try:
            raw = hex_to_bytes(private_key) if isinstance(private_key, str) else bytes(private_key)
        except ValueError:
            raise LighterSigningError(
                LighterSigningErrorKind.KEY_UNAVAILABLE,
                "private key is not valid hex",
            ) from None
        if len(raw) != PRIVATE_KEY_LENGTH:
            raise LighterSigningError(
                LighterSigningErrorKind.KEY_UNAVAILABLE,
                f"private key must be {PRIVATE_KEY_LENGTH} bytes, was {len(raw)}",
            )
        self._scalar = bytearray(raw)
        self._api_key_index = int(api_key_index)
        self._primitive: LighterCryptoPrimitive = primitive or Ed25519Blake2bPrimitive()
        self._public_key = bytes(self._primitive.derive(bytes(self._scalar)))
        self._released = False

    @classmethod
    def from_env(
        cls,
        api_key_index: int,
        env_var: str = LIGHTER_PRIVATE_KEY_ENV,
        primitive: LighterCryptoPrimitive | None = None,
    ) -> LighterKeyManager:
        """Load the private key from an environment variable."""
        value = os.getenv(env_var)
        if not value:
            raise LighterSigningError(
                LighterSigningErrorKind.KEY_UNAVAILABLE,
                f"environment variable {env_var} is not set",
            )
        return cls(value, api_key_index=api_key_index, primitive=primitive)

    def __repr__(self) -> str:
        state = "released" if self._released else "active"
        return (
            f"{type(self).__name__}(api_key_index={self._api_key_index}, "
            f"public_key={self.public_key_hex}, private_key=<redacted>, {state})"
        )

    @property
    def api_key_index(self) -> int:
        return self._api_key_index

    @property
    def primitive(self) -> LighterCryptoPrimitive:
        return self._primitive

    @property
    def public_key_hex(self) -> str:
        return bytes_to_hex(self._public_key)

    @property
    def is_released(self) -> bool:
        return self._released

    def derive_public_key(self) -> bytes:
        """Return the public key, a pure function of the private scalar."""
        return self._public_key

    def hash(self, data: bytes) -> bytes:
        return self._primitive.hash(data)

    def sign(self, digest: bytes) -> bytes:
        """
        Sign a digest.

        Raises
        ------
        LighterSigningError
            If the key has been released.
        """
        if self._released:
            raise LighterSigningError(LighterSigningErrorKind.KEY_UNAVAILABLE, "signing key was released")
        return self._primitive.sign(bytes(self._scalar), digest)

    def verify(self, public_key: bytes, digest: bytes, signature: bytes) -> bool:
        return self._primitive.verify(public_key, digest, signature)

    def release(self) -> None:
        """Zero the private scalar. Idempotent."""
        if self._released:
            return
        for i in range(len(self._scalar)):
            self._scalar[i] = 0
        self._released = True
        self._log.info(f"Released signing key for api_key_index={self._api_key_index}")
