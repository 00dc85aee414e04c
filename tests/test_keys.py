from __future__ import annotations

import pytest

from lighter_trading.common.crypto import Ed25519Blake2bPrimitive
from lighter_trading.common.crypto import LighterCryptoPrimitive
from lighter_trading.common.errors import LighterSigningError
from lighter_trading.common.errors import LighterSigningErrorKind
from lighter_trading.common.keys import LighterKeyManager
from tests.conftest import TEST_PRIVATE_KEY
from tests.conftest import FakePrimitive


def test_default_primitive_signs_and_verifies():
    keys = LighterKeyManager(TEST_PRIVATE_KEY, api_key_index=0)
    digest = keys.hash(b"payload")
    signature = keys.sign(digest)

    assert isinstance(keys.primitive, LighterCryptoPrimitive)
    assert len(digest) == 32
    assert len(signature) == 64
    assert keys.verify(keys.derive_public_key(), digest, signature)
    # Deterministic
    assert keys.sign(digest) == signature


def test_tampered_digest_or_signature_fails_verification():
    keys = LighterKeyManager(TEST_PRIVATE_KEY, api_key_index=0)
    digest = keys.hash(b"payload")
    signature = keys.sign(digest)
    tampered = bytes([signature[0] ^ 0x01]) + signature[1:]

    assert not keys.verify(keys.derive_public_key(), keys.hash(b"payloaD"), signature)
    assert not keys.verify(keys.derive_public_key(), digest, tampered)
    assert not keys.verify(b"\x00" * 5, digest, signature)


def test_public_key_is_pure_function_of_scalar():
    a = LighterKeyManager(TEST_PRIVATE_KEY, api_key_index=0)
    b = LighterKeyManager("0x" + TEST_PRIVATE_KEY.hex(), api_key_index=1)

    assert a.derive_public_key() == b.derive_public_key()
    assert a.derive_public_key() == Ed25519Blake2bPrimitive().derive(TEST_PRIVATE_KEY)


@pytest.mark.parametrize(
    ("private_key", "api_key_index"),
    [
        (b"\x01" * 31, 0),
        ("zz" * 32, 0),
        (TEST_PRIVATE_KEY, 255),
        (TEST_PRIVATE_KEY, -1),
    ],
)
def test_invalid_key_material_is_unavailable(private_key, api_key_index):
    with pytest.raises(LighterSigningError) as exc:
        LighterKeyManager(private_key, api_key_index=api_key_index)

    assert exc.value.kind == LighterSigningErrorKind.KEY_UNAVAILABLE


def test_release_zeroes_and_blocks_signing():
    keys = LighterKeyManager(TEST_PRIVATE_KEY, api_key_index=0, primitive=FakePrimitive())
    digest = keys.hash(b"x")
    keys.release()
    keys.release()

    assert keys.is_released
    assert bytes(keys._scalar) == bytes(32)
    with pytest.raises(LighterSigningError) as exc:
        keys.sign(digest)
    assert exc.value.kind == LighterSigningErrorKind.KEY_UNAVAILABLE


def test_repr_never_contains_private_key():
    keys = LighterKeyManager(TEST_PRIVATE_KEY, api_key_index=2)

    text = repr(keys)
    assert TEST_PRIVATE_KEY.hex() not in text
    assert "<redacted>" in text
    assert keys.public_key_hex in text


def test_from_env(monkeypatch):
    monkeypatch.setenv("LIGHTER_TEST_KEY", TEST_PRIVATE_KEY.hex())
    keys = LighterKeyManager.from_env(4, env_var="LIGHTER_TEST_KEY")
    assert keys.api_key_index == 4

    monkeypatch.delenv("LIGHTER_TEST_KEY")
    with pytest.raises(LighterSigningError):
        LighterKeyManager.from_env(4, env_var="LIGHTER_TEST_KEY")
