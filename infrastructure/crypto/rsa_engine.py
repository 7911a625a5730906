"""
RSA primitives required by the PayPay gateway.

- biz_content is encrypted with the merchant *private* key in 117-byte chunks
  using PKCS#1 v1.5 block type 1 padding (what OpenSSL `privateEncrypt` does).
  The gateway reverses it with the merchant public key.
- The envelope is signed with SHA1withRSA over the canonical string.

Chunk size and hash are fixed by the gateway protocol.
"""
from __future__ import annotations

import base64
import binascii
import math
import secrets
from typing import Any, Mapping, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from core.logging_config import get_logger
from domain.common.exceptions import CryptoError
from infrastructure.crypto.canonical import canonicalize
from infrastructure.crypto.keys import KeyKind, KeyMaterial


logger = get_logger(__name__)

CHUNK_SIZE = 117
MIN_KEY_BITS = 1024
_PKCS1_MIN_PADDING = 8


def _private_key(material: KeyMaterial) -> rsa.RSAPrivateKey:
    if material.kind is not KeyKind.PRIVATE:
        raise CryptoError("A PRIVATE KEY is required for this operation")
    key = material.key
    if key.key_size < MIN_KEY_BITS:
        raise CryptoError(f"RSA key must be at least {MIN_KEY_BITS} bits", details={"key_size": key.key_size})
    return key  # type: ignore[return-value]


def _public_key(material: KeyMaterial) -> rsa.RSAPublicKey:
    key = material.key
    if isinstance(key, rsa.RSAPrivateKey):
        return key.public_key()
    return key


def _modulus_bytes(n: int) -> int:
    return (n.bit_length() + 7) // 8


def _blinding_factor(n: int) -> int:
    while True:
        r = secrets.randbelow(n - 2) + 2
        if math.gcd(r, n) == 1:
            return r


def _private_encrypt_block(numbers: rsa.RSAPrivateNumbers, block: bytes) -> bytes:
    n = numbers.public_numbers.n
    k = _modulus_bytes(n)
    pad_len = k - 3 - len(block)
    if pad_len < _PKCS1_MIN_PADDING:
        raise CryptoError("Chunk too large for RSA modulus", details={"chunk": len(block), "modulus_bytes": k})
    em = b"\x00\x01" + b"\xff" * pad_len + b"\x00" + block
    m = int.from_bytes(em, "big")
    # blind with r^e so the exponentiation never runs on the padded block itself
    r = _blinding_factor(n)
    blinded = (m * pow(r, numbers.public_numbers.e, n)) % n
    # CRT form of blinded^d mod n
    m1 = pow(blinded, numbers.dmp1, numbers.p)
    m2 = pow(blinded, numbers.dmq1, numbers.q)
    h = (numbers.iqmp * (m1 - m2)) % numbers.p
    c = ((m2 + h * numbers.q) * pow(r, -1, n)) % n
    return c.to_bytes(k, "big")


def _public_decrypt_block(numbers: rsa.RSAPublicNumbers, block: bytes) -> bytes:
    k = _modulus_bytes(numbers.n)
    c = int.from_bytes(block, "big")
    if c >= numbers.n:
        raise CryptoError("Ciphertext block out of range")
    em = pow(c, numbers.e, numbers.n).to_bytes(k, "big")
    if em[:2] != b"\x00\x01":
        raise CryptoError("Invalid padding in ciphertext block")
    sep = em.find(b"\x00", 2)
    if sep < 2 + _PKCS1_MIN_PADDING or em[2:sep].strip(b"\xff"):
        raise CryptoError("Invalid padding in ciphertext block")
    return em[sep + 1:]


def encrypt(plaintext: str, private_key: KeyMaterial) -> str:
    """Encrypt with the private key in 117-byte chunks and base64 the concatenation."""
    key = _private_key(private_key)
    data = plaintext.encode("utf-8")
    numbers = key.private_numbers()
    chunks = [
        _private_encrypt_block(numbers, data[offset:offset + CHUNK_SIZE])
        for offset in range(0, len(data), CHUNK_SIZE)
    ]
    logger.debug("biz_content_encrypted", plaintext_bytes=len(data), chunks=len(chunks))
    return base64.b64encode(b"".join(chunks)).decode("ascii")


def decrypt_with_public_key(ciphertext_b64: str, public_key: KeyMaterial) -> str:
    """Reverse `encrypt` using the matching public key."""
    key = _public_key(public_key)
    try:
        raw = base64.b64decode(ciphertext_b64, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise CryptoError("Ciphertext is not valid base64") from exc
    numbers = key.public_numbers()
    k = _modulus_bytes(numbers.n)
    if not raw or len(raw) % k:
        raise CryptoError("Ciphertext length is not a multiple of the key size", details={"modulus_bytes": k})
    plain = b"".join(_public_decrypt_block(numbers, raw[i:i + k]) for i in range(0, len(raw), k))
    try:
        return plain.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CryptoError("Decrypted content is not valid UTF-8") from exc


def sign(params: Mapping[str, Any], private_key: KeyMaterial) -> str:
    """SHA1withRSA over the canonical string, base64 encoded. Deterministic."""
    key = _private_key(private_key)
    content = canonicalize(params)
    try:
        signature = key.sign(content.encode("utf-8"), padding.PKCS1v15(), hashes.SHA1())
    except (ValueError, TypeError) as exc:
        raise CryptoError("Failed to generate signature") from exc
    return base64.b64encode(signature).decode("ascii")


def verify(params: Mapping[str, Any], signature_b64: Optional[str], public_key: KeyMaterial) -> bool:
    """Check a signature against the canonical string; malformed input yields False."""
    key = _public_key(public_key)
    if not signature_b64 or not isinstance(signature_b64, str):
        return False
    try:
        signature = base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError):
        return False
    try:
        key.verify(signature, canonicalize(params).encode("utf-8"), padding.PKCS1v15(), hashes.SHA1())
    except (InvalidSignature, ValueError):
        return False
    return True


class CryptoEngine:
    """Binds the configured key pair to the protocol primitives."""

    def __init__(self, private_key: KeyMaterial, counterparty_key: Optional[KeyMaterial] = None) -> None:
        if private_key.kind is not KeyKind.PRIVATE:
            raise CryptoError("CryptoEngine requires a PRIVATE KEY")
        self._private_key = private_key
        self._counterparty_key = counterparty_key

    @property
    def can_verify(self) -> bool:
        return self._counterparty_key is not None and not self._counterparty_key.cleared

    def encrypt(self, plaintext: str) -> str:
        return encrypt(plaintext, self._private_key)

    def sign(self, params: Mapping[str, Any]) -> str:
        return sign(params, self._private_key)

    def verify(self, params: Mapping[str, Any], signature_b64: Optional[str]) -> bool:
        if self._counterparty_key is None:
            raise CryptoError("Counterparty public key is not configured")
        return verify(params, signature_b64, self._counterparty_key)

    def decrypt(self, ciphertext_b64: str) -> str:
        if self._counterparty_key is None:
            raise CryptoError("Counterparty public key is not configured")
        return decrypt_with_public_key(ciphertext_b64, self._counterparty_key)

    def key_info(self) -> dict[str, Any]:
        info: dict[str, Any] = {
            "has_private_key": not self._private_key.cleared,
            "has_counterparty_key": self.can_verify,
        }
        if not self._private_key.cleared:
            info["private_key_bits"] = self._private_key.key_size
        if self.can_verify:
            info["counterparty_key_bits"] = self._counterparty_key.key_size  # type: ignore[union-attr]
        return info

    def clear(self) -> None:
        self._private_key.clear()
        if self._counterparty_key is not None:
            self._counterparty_key.clear()
