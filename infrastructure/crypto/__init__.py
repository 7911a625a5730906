"""
RSA key handling, canonical encoding and the gateway crypto primitives.
"""
from .canonical import canonicalize
from .keys import KeyKind, KeyMaterial, load_key, public_key_of, validate_key
from .rsa_engine import CHUNK_SIZE, CryptoEngine, decrypt_with_public_key, encrypt, sign, verify

__all__ = [
    "CHUNK_SIZE",
    "CryptoEngine",
    "KeyKind",
    "KeyMaterial",
    "canonicalize",
    "decrypt_with_public_key",
    "encrypt",
    "load_key",
    "public_key_of",
    "sign",
    "verify",
]
