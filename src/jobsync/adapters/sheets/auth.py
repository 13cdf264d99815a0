"""Service-account authentication for the Google Sheets API."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from jose import jwt
from jose.exceptions import JOSEError
from pydantic import ValidationError

from jobsync.config.sheets import SHEETS_READONLY_SCOPE
from jobsync.domain.errors import (
    ConfigurationError,
    SourceAccessDeniedError,
    SourceUnavailableError,
)

from .schema import ErrorResponse, TokenResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from jobsync.adapters.http_resilience import ResilientClient
    from jobsync.config.sheets import ServiceAccountKey

log = getLogger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600
EXPIRY_MARGIN_SECONDS = 60


@dataclass(slots=True)
class ServiceAccountTokenProvider:
    """Exchange a signed RS256 assertion for an OAuth access token and reuse it until expiry."""

    key: ServiceAccountKey
    scope: str = SHEETS_READONLY_SCOPE
    clock: Callable[[], float] = time.time
    _token: str | None = field(default=None, init=False)
    _expires_at: float = field(default=0.0, init=False)

    def build_assertion(self, now: int) -> str:
        claims = {
            "iss": self.key.client_email,
            "scope": self.scope,
            "aud": self.key.token_uri,
            "iat": now,
            "exp": now + ASSERTION_LIFETIME_SECONDS,
        }
        headers = {"kid": self.key.private_key_id} if self.key.private_key_id else None
        try:
            return jwt.encode(claims, self.key.private_key, algorithm="RS256", headers=headers)
        except JOSEError as exc:
            raise ConfigurationError(
                "Failed to process the Google service account private key. "
                "Please check the credential format."
            ) from exc

    async def access_token(self, client: ResilientClient) -> str:
        now = self.clock()
        if self._token is not None and now < self._expires_at - EXPIRY_MARGIN_SECONDS:
            return self._token

        assertion = self.build_assertion(int(now))
        try:
            response = await client.post(
                self.key.token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(
                f"Could not reach the Google token endpoint: {exc}",
                hint="Try again later.",
            ) from exc

        if response.status_code >= 400:
            raise SourceAccessDeniedError(
                f"Failed to authenticate with Google API: {_error_message(response)}",
                hint=f"Check the service account key for {self.key.client_email}.",
            )
        try:
            token = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SourceAccessDeniedError(
                "Failed to authenticate with Google API: no access token returned"
            ) from exc

        log.debug(f"Obtained Google access token for {self.key.client_email}")
        self._token = token.access_token
        self._expires_at = now + token.expires_in
        return token.access_token


def _error_message(response: httpx.Response) -> str:
    try:
        return ErrorResponse.model_validate(response.json()).message
    except (ValueError, ValidationError):
        return f"HTTP {response.status_code}"
