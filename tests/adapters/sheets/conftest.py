"""Shared fixtures for Google Sheets adapter tests."""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from jobsync.config.sheets import ServiceAccountKey


@pytest.fixture(scope="session")
def rsa_private_key_pem() -> str:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def service_account_key(rsa_private_key_pem: str) -> ServiceAccountKey:
    return ServiceAccountKey(
        client_email="importer@acme-project.iam.gserviceaccount.com",
        private_key=rsa_private_key_pem,
        private_key_id="key-1",
    )
