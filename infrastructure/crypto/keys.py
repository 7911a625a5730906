"""
PEM key material for the gateway protocol.

Keys are validated once at configuration time (markers first, then a
structural parse with `cryptography`) and then shared read-only by the
crypto engine. `clear()` drops both the PEM text and the parsed key; any
later use fails fast with CryptoError.
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from domain.common.exceptions import CryptoError, KeyFormatError


class KeyKind(str, Enum):
    PRIVATE = "PRIVATE KEY"
    PUBLIC = "PUBLIC KEY"


RSAKey = Union[rsa.RSAPrivateKey, rsa.RSAPublicKey]


class KeyMaterial:
    __slots__ = ("_kind", "_pem", "_key")

    def __init__(self, kind: KeyKind, pem: str, key: RSAKey) -> None:
        self._kind = kind
        self._pem: Optional[str] = pem
        self._key: Optional[RSAKey] = key

    @property
    def kind(self) -> KeyKind:
        return self._kind

    @property
    def cleared(self) -> bool:
        return self._key is None

    @property
    def key(self) -> RSAKey:
        if self._key is None:
            raise CryptoError(f"{self._kind.value} has been cleared", details={"key_kind": self._kind.value})
        return self._key

    @property
    def pem(self) -> str:
        if self._pem is None:
            raise CryptoError(f"{self._kind.value} has been cleared", details={"key_kind": self._kind.value})
        return self._pem

    @property
    def key_size(self) -> int:
        return self.key.key_size

    def clear(self) -> None:
        self._pem = None
        self._key = None

    def __repr__(self) -> str:
        state = "cleared" if self.cleared else f"{self._key.key_size} bits"  # type: ignore[union-attr]
        return f"KeyMaterial({self._kind.name}, {state})"


def validate_key(pem: str, kind: Union[KeyKind, str]) -> KeyMaterial:
    """Validate a PEM string and return immutable key material.

    Raises KeyFormatError with a readable reason; the key text itself never
    appears in the message.
    """
    kind = KeyKind(kind)
    if not isinstance(pem, str) or not pem.strip():
        raise KeyFormatError(f"{kind.value} is empty", key_kind=kind.value)
    begin, end = f"-----BEGIN {kind.value}-----", f"-----END {kind.value}-----"
    if begin not in pem or end not in pem:
        raise KeyFormatError(f"Invalid {kind.value} format: missing PEM headers", key_kind=kind.value)

    data = pem.strip().encode("ascii", errors="replace")
    try:
        if kind is KeyKind.PRIVATE:
            key = serialization.load_pem_private_key(data, password=None)
        else:
            key = serialization.load_pem_public_key(data)
    except (ValueError, TypeError) as exc:
        raise KeyFormatError(
            f"Failed to parse {kind.value}: malformed or encrypted key", key_kind=kind.value
        ) from exc
    except UnsupportedAlgorithm as exc:
        raise KeyFormatError(f"Failed to parse {kind.value}: unsupported key encoding", key_kind=kind.value) from exc

    if not isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        raise KeyFormatError(f"{kind.value} is not an RSA key", key_kind=kind.value)
    return KeyMaterial(kind, pem, key)


def load_key(value: str, kind: Union[KeyKind, str]) -> KeyMaterial:
    """Accept either a filesystem path or an inline PEM."""
    text = value
    if "-----BEGIN" not in value:
        p = Path(value)
        if not p.exists():
            raise KeyFormatError(f"{KeyKind(kind).value} file not found", key_kind=KeyKind(kind).value)
        text = p.read_text(encoding="utf-8")
    return validate_key(text, kind)


def public_key_of(private: KeyMaterial) -> KeyMaterial:
    """Derive the matching public key material from a private key."""
    if private.kind is not KeyKind.PRIVATE:
        raise KeyFormatError("Expected a PRIVATE KEY", key_kind=private.kind.value)
    public = private.key.public_key()  # type: ignore[union-attr]
    pem = public.public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode("ascii")
    return KeyMaterial(KeyKind.PUBLIC, pem, public)
