"""Bearer-authenticated async HTTP client for Google REST APIs."""

from __future__ import annotations

from typing import Any

import httpx

from firebase_provisioner.errors import ProvisioningError
from firebase_provisioner.models import BearerToken


def describe_response(resp: httpx.Response) -> str:
    """Render a failed response as ``"<status> <body>"`` for error details."""
    return f"{resp.status_code} {resp.text}".strip()


def json_object(
    resp: httpx.Response, error: type[ProvisioningError], reason: str
) -> dict[str, Any]:
    """Decode a successful response body that must be a JSON object.

    Anything else raises *error* with *reason*.
    """
    try:
        payload = resp.json()
    except ValueError as exc:
        raise error(
            reason, detail=f"invalid response body: {describe_response(resp)}"
        ) from exc
    if not isinstance(payload, dict):
        raise error(
            reason,
            detail=f"expected a JSON object, got {type(payload).__name__}",
        )
    return payload


class PlatformClient:
    """Thin async wrapper holding one bearer token for one provisioning attempt."""

    def __init__(
        self,
        token: BearerToken,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {token.value}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> PlatformClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.get(url, **kwargs)

    async def post(
        self, url: str, json: Any | None = None, **kwargs: Any
    ) -> httpx.Response:
        return await self._client.post(url, json=json, **kwargs)

    async def patch(
        self, url: str, json: Any | None = None, **kwargs: Any
    ) -> httpx.Response:
        return await self._client.patch(url, json=json, **kwargs)
