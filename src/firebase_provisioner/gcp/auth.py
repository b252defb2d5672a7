"""Service account → OAuth bearer token exchange."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import structlog
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.service_account import Credentials

from firebase_provisioner.errors import AuthError
from firebase_provisioner.models import BearerToken

logger = structlog.get_logger()

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
FIREBASE_SCOPE = "https://www.googleapis.com/auth/firebase"
SCOPES: tuple[str, ...] = (CLOUD_PLATFORM_SCOPE, FIREBASE_SCOPE)

CredentialsFactory = Callable[[Mapping[str, Any], Sequence[str]], Any]


def _service_account_credentials(
    info: Mapping[str, Any], scopes: Sequence[str]
) -> Credentials:
    return Credentials.from_service_account_info(info, scopes=scopes)  # type: ignore[no-untyped-call]


class AuthSession:
    """Stateless exchange of a service account record for a bearer token.

    The token is returned to the caller and never cached here; each
    provisioning attempt performs its own exchange.
    """

    def __init__(
        self,
        credentials_factory: CredentialsFactory = _service_account_credentials,
        request_factory: Callable[[], Any] = Request,
    ) -> None:
        self._credentials_factory = credentials_factory
        self._request_factory = request_factory

    async def acquire_token(self, credential: Any) -> BearerToken:
        if not isinstance(credential, Mapping):
            raise AuthError(
                AuthError.MALFORMED_CREDENTIAL,
                detail=f"expected a JSON object, got {type(credential).__name__}",
            )
        try:
            creds = self._credentials_factory(credential, SCOPES)
        except (GoogleAuthError, ValueError, KeyError, TypeError) as exc:
            raise AuthError(AuthError.MALFORMED_CREDENTIAL, detail=str(exc)) from exc

        # google-auth's transport is synchronous; keep the event loop free.
        try:
            await asyncio.to_thread(creds.refresh, self._request_factory())
        except GoogleAuthError as exc:
            logger.error("auth.exchange_rejected", error=str(exc))
            raise AuthError(AuthError.EXCHANGE_REJECTED, detail=str(exc)) from exc

        if not creds.token:
            raise AuthError(AuthError.EXCHANGE_REJECTED, detail="empty access token")

        logger.info("auth.token_acquired", expiry=str(creds.expiry))
        return BearerToken(value=creds.token, expiry=creds.expiry)
