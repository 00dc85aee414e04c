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

from nautilus_trader.common.component import Clock
from nautilus_trader.common.component import Logger

from lighter_trading.common.constants import DEFAULT_TX_EXPIRY_MS
from lighter_trading.common.enums import LighterTxStage
from lighter_trading.common.errors import LighterSigningError
from lighter_trading.common.errors import LighterSigningErrorKind
from lighter_trading.common.keys import LighterKeyManager
from lighter_trading.common.nonce import NonceManager
from lighter_trading.encoding import LighterTransactionEncoder
from lighter_trading.schemas.tx import LighterSignedTransaction
from lighter_trading.schemas.tx import LighterTransactionRequest


class LighterSigningPipeline:
    """
    Turns a transaction request into an immutable ``LighterSignedTransaction``.

    Stages run in a fixed order: validate and encode the body, check the key,
    allocate the nonce, build the envelope, hash, sign and self-verify. Anything
    that can fail without network or nonce side effects is checked before the
    nonce is allocated, so a rejected request never consumes a nonce.

    Parameters
    ----------
    clock : Clock
        The clock used for default transaction expiry.
    keys : LighterKeyManager
        The signing key (and its API key index).
    nonce : NonceManager
        The nonce allocator shared by every pipeline signing for the same key.
    chain_id : int
        The venue chain id (304 mainnet, 300 testnet).
    account_index : int
        The account the transactions are signed for.
    encoder : LighterTransactionEncoder, optional
        The canonical encoder.
    tx_expiry_ms : int, default 10 minutes
        Lifetime of a signed transaction.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        keys: LighterKeyManager,
        nonce: NonceManager,
        chain_id: int,
        account_index: int,
        encoder: LighterTransactionEncoder | None = None,
        tx_expiry_ms: int = DEFAULT_TX_EXPIRY_MS,
    ) -> None:
        self._log = Logger(type(self).__name__)
        self._clock = clock
        self._keys = keys
        self._nonce = nonce
        self._chain_id = int(chain_id)
        self._account_index = int(account_index)
        self._encoder = encoder or LighterTransactionEncoder()
        self._tx_expiry_ms = int(tx_expiry_ms)

    @property
    def account_index(self) -> int:
        return self._account_index

    @property
    def api_key_index(self) -> int:
        return self._keys.api_key_index

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def nonce_manager(self) -> NonceManager:
        return self._nonce

    @property
    def public_key(self) -> bytes:
        return self._keys.derive_public_key()

    def default_expiry(self) -> int:
        """Return ``now + tx_expiry_ms - 1s`` in milliseconds."""
        return int(self._clock.timestamp_ms()) + self._tx_expiry_ms - 1_000

    async def sign(
        self,
        request: LighterTransactionRequest,
        *,
        nonce: int | None = None,
        expired_at: int | None = None,
    ) -> LighterSignedTransaction:
        """
        Sign a request with a freshly allocated nonce.

        Parameters
        ----------
        request : LighterTransactionRequest
            The transaction to sign.
        nonce : int, optional
            Caller-supplied nonce (manual nonce mode only).
        expired_at : int, optional
            Expiry timestamp (ms). Defaults to ``default_expiry()``.

        Raises
        ------
        LighterValidationError
            If any request or envelope field is invalid (no nonce consumed).
        LighterEncodingError
            If the body cannot be encoded (no nonce consumed).
        LighterSigningError
            If the key is unavailable or the fresh signature does not verify.
        LighterNonceError
            If no nonce can be allocated.
        """
        body = self._encoder.encode(request)
        expiry = self.default_expiry() if expired_at is None else expired_at
        self._encoder.validate_envelope(
            chain_id=self._chain_id,
            account_index=self._account_index,
            api_key_index=self._keys.api_key_index,
            expired_at=expiry,
        )
        if self._keys.is_released:
            raise LighterSigningError(LighterSigningErrorKind.KEY_UNAVAILABLE, "signing key was released")
        self._log.debug(f"{type(request).__name__}: {LighterTxStage.ENCODED.value}")

        nonce_val = await self._nonce.allocate(self._account_index, self._keys.api_key_index, nonce)
        encoded = body + self._encoder.encode_envelope(
            chain_id=self._chain_id,
            account_index=self._account_index,
            api_key_index=self._keys.api_key_index,
            nonce=nonce_val,
            expired_at=expiry,
        )
        digest = self._keys.hash(encoded)
        signature = self._keys.sign(digest)
        if not self._keys.verify(self._keys.derive_public_key(), digest, signature):
            raise LighterSigningError(
                LighterSigningErrorKind.INVALID_SIGNATURE,
                f"signature for nonce {nonce_val} failed self-verification",
            )

        signed = LighterSignedTransaction(
            tx_type=request.TX_TYPE,
            request=request,
            encoded=encoded,
            digest=digest,
            signature=signature,
            nonce=nonce_val,
            expired_at=expiry,
            chain_id=self._chain_id,
            account_index=self._account_index,
            api_key_index=self._keys.api_key_index,
        )
        self._log.debug(f"{signed.describe()}: {LighterTxStage.SIGNED.value}")
        return signed

    def verify(self, signed: LighterSignedTransaction, public_key: bytes | None = None) -> bool:
        """
        Recompute the digest from the logical fields and check the signature.

        Returns False if the stored bytes or digest do not match the fields, or
        the signature does not verify against ``public_key`` (default: own key).
        """
        encoded = self._encoder.signing_payload(
            signed.request,
            chain_id=signed.chain_id,
            account_index=signed.account_index,
            api_key_index=signed.api_key_index,
            nonce=signed.nonce,
            expired_at=signed.expired_at,
        )
        if encoded != signed.encoded:
            return False
        digest = self._keys.hash(encoded)
        if digest != signed.digest:
            return False
        key = self._keys.derive_public_key() if public_key is None else public_key
        return self._keys.verify(key, digest, signed.signature)
