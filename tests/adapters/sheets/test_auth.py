from __future__ import annotations

import asyncio

import httpx
import pytest
from jose import jwt

from jobsync.adapters.sheets import ServiceAccountTokenProvider
from jobsync.config.sheets import (
    GOOGLE_TOKEN_URL,
    SHEETS_READONLY_SCOPE,
    ServiceAccountKey,
    default_sheets_resilience,
)
from jobsync.domain.errors import ConfigurationError, SourceAccessDeniedError
from tests.helpers.transport import make_client_factory


def test_assertion_carries_service_account_claims(service_account_key: ServiceAccountKey) -> None:
    provider = ServiceAccountTokenProvider(service_account_key)

    token = provider.build_assertion(1_700_000_000)

    claims = jwt.get_unverified_claims(token)
    assert claims == {
        "iss": service_account_key.client_email,
        "scope": SHEETS_READONLY_SCOPE,
        "aud": GOOGLE_TOKEN_URL,
        "iat": 1_700_000_000,
        "exp": 1_700_003_600,
    }
    header = jwt.get_unverified_header(token)
    assert header["alg"] == "RS256"
    assert header["kid"] == "key-1"


def test_invalid_private_key_is_a_configuration_error() -> None:
    provider = ServiceAccountTokenProvider(
        ServiceAccountKey(client_email="a@b.iam.gserviceaccount.com", private_key="not a key")
    )

    with pytest.raises(ConfigurationError, match="private key"):
        provider.build_assertion(1_700_000_000)


def test_access_token_is_reused_until_close_to_expiry(
    service_account_key: ServiceAccountKey,
) -> None:
    requests: list[httpx.Request] = []
    now = [1_700_000_000.0]
    issued = iter(["token-1", "token-2"])

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == GOOGLE_TOKEN_URL
        return httpx.Response(200, json={"access_token": next(issued), "expires_in": 3600})

    provider = ServiceAccountTokenProvider(service_account_key, clock=lambda: now[0])
    factory = make_client_factory(handler, requests)

    async def scenario() -> list[str]:
        tokens: list[str] = []
        async with factory(default_sheets_resilience()) as client:
            tokens.append(await provider.access_token(client))
            now[0] += 3000
            tokens.append(await provider.access_token(client))
            now[0] += 550
            tokens.append(await provider.access_token(client))
        return tokens

    assert asyncio.run(scenario()) == ["token-1", "token-1", "token-2"]
    assert len(requests) == 2


def test_rejected_assertion_reports_google_error(service_account_key: ServiceAccountKey) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Invalid JWT Signature."},
        )

    provider = ServiceAccountTokenProvider(service_account_key)
    factory = make_client_factory(handler)

    async def scenario() -> str:
        async with factory(default_sheets_resilience()) as client:
            return await provider.access_token(client)

    with pytest.raises(SourceAccessDeniedError, match="Invalid JWT Signature"):
        asyncio.run(scenario())
