"""HTTP client for the provisioning service, used by the CLI ``setup`` flow."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

import httpx
import structlog

from firebase_provisioner.client.store import ClientStore
from firebase_provisioner.models import AppConfig

logger = structlog.get_logger()

DEFAULT_BACKEND_URL = "http://localhost:3001"
UNREACHABLE_MESSAGE = (
    "Cannot connect to provisioning service. Make sure the backend is running."
)


@dataclass(frozen=True)
class SetupResponse:
    success: bool
    project_id: str | None = None
    config: AppConfig | None = None
    error: str | None = None
    details: str | None = None
    warnings: list[dict[str, str]] | None = None

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> SetupResponse:
        config = body.get("config")
        return cls(
            success=bool(body.get("success")),
            project_id=body.get("projectId"),
            config=AppConfig.from_mapping(config) if isinstance(config, dict) else None,
            error=body.get("error"),
            details=body.get("details"),
            warnings=body.get("warnings"),
        )


class ProvisioningClient:
    """Async client for the setup, verify and health endpoints."""

    def __init__(
        self,
        store: ClientStore,
        base_url: str = DEFAULT_BACKEND_URL,
        *,
        timeout_seconds: float = 600.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._store = store
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ProvisioningClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def setup_project(self, project_name: str | None = None) -> SetupResponse:
        """Request a new project; persist its config on success."""
        payload = {
            "userId": self._store.requester_id(),
            "projectName": project_name or f"AI Blog {date.today().isoformat()}",
        }
        logger.info("client.setup_requested", backend=self._base_url)
        try:
            resp = await self._client.post("/api/setupFirebase", json=payload)
        except httpx.TransportError as exc:
            logger.error("client.backend_unreachable", error=str(exc))
            return SetupResponse(success=False, error=UNREACHABLE_MESSAGE)

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not resp.is_success:
            return SetupResponse(
                success=False,
                error=body.get("error")
                or f"Setup failed with status {resp.status_code}",
                details=body.get("details"),
            )

        result = SetupResponse.from_body(body)
        if result.success and result.config is not None:
            self._store.save_config(result.config)
            logger.info("client.project_created", project_id=result.project_id)
        return result

    async def verify_config(self, config: AppConfig) -> bool:
        try:
            resp = await self._client.post(
                "/api/verifyFirebase", json={"config": config.to_dict()}
            )
            return bool(resp.json().get("success") is True)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("client.verify_failed", error=str(exc))
            return False

    async def check_health(self, timeout_seconds: float = 5.0) -> bool:
        try:
            resp = await self._client.get("/health", timeout=timeout_seconds)
        except httpx.HTTPError as exc:
            logger.error("client.health_check_failed", error=str(exc))
            return False
        return resp.is_success
