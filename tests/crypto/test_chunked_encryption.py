import base64

import pytest

from domain.common.exceptions import CryptoError
from infrastructure.crypto import CHUNK_SIZE, CryptoEngine, decrypt_with_public_key, encrypt


@pytest.mark.parametrize("size", [CHUNK_SIZE, CHUNK_SIZE + 1, 300])
def test_round_trip_across_chunk_boundaries(size, merchant_private, merchant_public):
    plaintext = ("x" * size)
    ciphertext = encrypt(plaintext, merchant_private)
    blocks = -(-size // CHUNK_SIZE)
    assert len(base64.b64decode(ciphertext)) == blocks * 128
    assert decrypt_with_public_key(ciphertext, merchant_public) == plaintext


def test_round_trip_multibyte_text(merchant_private, merchant_public):
    plaintext = '{"subject":"Pagamento de água ç"}' * 5
    assert decrypt_with_public_key(encrypt(plaintext, merchant_private), merchant_public) == plaintext


def test_encryption_is_deterministic(merchant_private):
    # block type 1 padding carries no randomness
    assert encrypt("hello", merchant_private) == encrypt("hello", merchant_private)


def test_blinded_block_matches_plain_exponentiation(merchant_private):
    numbers = merchant_private.key.private_numbers()
    n = numbers.public_numbers.n
    em = b"\x00\x01" + b"\xff" * (128 - 3 - 5) + b"\x00" + b"hello"
    expected = pow(int.from_bytes(em, "big"), numbers.d, n).to_bytes(128, "big")
    for _ in range(3):
        assert base64.b64decode(encrypt("hello", merchant_private)) == expected


def test_wrong_public_key_cannot_decrypt(merchant_private, gateway_public):
    with pytest.raises(CryptoError):
        decrypt_with_public_key(encrypt("hello", merchant_private), gateway_public)


def test_encrypt_requires_private_key(merchant_public):
    with pytest.raises(CryptoError):
        encrypt("hello", merchant_public)


def test_engine_after_clear_fails_fast(merchant_private, gateway_public):
    engine = CryptoEngine(merchant_private, gateway_public)
    assert engine.can_verify
    assert engine.key_info()["private_key_bits"] == 1024
    engine.clear()
    assert not engine.can_verify
    with pytest.raises(CryptoError):
        engine.encrypt("hello")
    with pytest.raises(CryptoError):
        engine.sign({"a": "1"})


def test_engine_without_counterparty_cannot_verify(merchant_private):
    engine = CryptoEngine(merchant_private)
    with pytest.raises(CryptoError):
        engine.verify({"a": "1"}, "sig")
