"""Pytest bootstrap configuration.

Settings are read at import time, so the environment is pinned before any
application module is collected. Key pairs are generated once per session.
"""
import os

os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("PAYPAY__PARTNER_ID", "200001234567")
os.environ.setdefault("PAYPAY__DEFAULT_PAYER_IP", "127.0.0.1")

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


def _pem_pair(bits: int = 1024) -> tuple[str, str]:
    key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return private_pem, public_pem


@pytest.fixture(scope="session")
def merchant_pems() -> tuple[str, str]:
    return _pem_pair()


@pytest.fixture(scope="session")
def gateway_pems() -> tuple[str, str]:
    """Key pair standing in for the gateway's own keys."""
    return _pem_pair()


@pytest.fixture()
def merchant_private(merchant_pems):
    from infrastructure.crypto import KeyKind, validate_key
    return validate_key(merchant_pems[0], KeyKind.PRIVATE)


@pytest.fixture()
def merchant_public(merchant_pems):
    from infrastructure.crypto import KeyKind, validate_key
    return validate_key(merchant_pems[1], KeyKind.PUBLIC)


@pytest.fixture()
def gateway_private(gateway_pems):
    from infrastructure.crypto import KeyKind, validate_key
    return validate_key(gateway_pems[0], KeyKind.PRIVATE)


@pytest.fixture()
def gateway_public(gateway_pems):
    from infrastructure.crypto import KeyKind, validate_key
    return validate_key(gateway_pems[1], KeyKind.PUBLIC)
