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

"""Pluggable hash/signature primitive.

The signing pipeline only ever talks to ``LighterCryptoPrimitive``; swapping the
venue's field-arithmetic scheme in means providing another implementation of
these four calls.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from nacl.encoding import RawEncoder
from nacl.exceptions import CryptoError
from nacl.hash import blake2b
from nacl.signing import SigningKey, VerifyKey

from lighter_trading.common.constants import HASH_LENGTH


@runtime_checkable
class LighterCryptoPrimitive(Protocol):
    """Narrow contract for the cryptographic collaborator."""

    def hash(self, data: bytes) -> bytes: ...

    def sign(self, scalar: bytes, digest: bytes) -> bytes: ...

    def derive(self, scalar: bytes) -> bytes: ...

    def verify(self, public_key: bytes, digest: bytes, signature: bytes) -> bool: ...


class Ed25519Blake2bPrimitive:
    """
    Default primitive: BLAKE2b-256 digests with Ed25519 signatures (PyNaCl).

    Ed25519 derives the per-message signing nonce from the private scalar and the
    message, so signatures are deterministic and need no external randomness.
    """

    def hash(self, data: bytes) -> bytes:
        return blake2b(bytes(data), digest_size=HASH_LENGTH, encoder=RawEncoder)

    def sign(self, scalar: bytes, digest: bytes) -> bytes:
        return SigningKey(bytes(scalar)).sign(digest).signature

    def derive(self, scalar: bytes) -> bytes:
        return bytes(SigningKey(bytes(scalar)).verify_key)

    def verify(self, public_key: bytes, digest: bytes, signature: bytes) -> bool:
        try:
            VerifyKey(bytes(public_key)).verify(digest, bytes(signature))
        except (CryptoError, ValueError, TypeError):
            return False
        return True
