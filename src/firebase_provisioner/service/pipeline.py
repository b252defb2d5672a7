"""Provisioning orchestrator: credential → project → Firebase app → config.

The pipeline is a fixed linear sequence.  Fatal steps short-circuit with a
``Failure``; nothing already created is rolled back.  Firestore and rules
setup are best-effort and only contribute warnings to the ``Success``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from typing import Any

import httpx
import structlog

from firebase_provisioner.config.models import ServiceConfig
from firebase_provisioner.errors import ConfigFetchError, ProvisioningError
from firebase_provisioner.gcp.apps import AppRegistrar
from firebase_provisioner.gcp.auth import AuthSession
from firebase_provisioner.gcp.client import PlatformClient
from firebase_provisioner.gcp.credentials import NOT_CONFIGURED, CredentialLoader
from firebase_provisioner.gcp.firestore import DatabaseEnabler
from firebase_provisioner.gcp.operations import OperationPoller, Sleep
from firebase_provisioner.gcp.projects import ProjectProvisioner
from firebase_provisioner.gcp.rules import RulesPublisher
from firebase_provisioner.models import (
    AppConfig,
    Failure,
    ProvisioningRequest,
    ProvisioningResult,
    ProvisioningWarning,
    Success,
    utc_now_iso,
)

logger = structlog.get_logger()


class ProvisioningService:
    """Runs one provisioning pipeline per request.

    Requests share nothing but the immutable config; each gets its own token,
    HTTP client and poller, so concurrent requests never block each other.
    """

    def __init__(
        self,
        config: ServiceConfig,
        *,
        auth_session: AuthSession | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config
        self._auth = auth_session or AuthSession()
        self._transport = transport
        self._sleep = sleep

    async def provision(self, request: ProvisioningRequest) -> ProvisioningResult:
        loader = CredentialLoader(self._config.gcp)
        if not loader.configured:
            logger.error("pipeline.not_configured", requester_id=request.requester_id)
            return Failure(
                reason=NOT_CONFIGURED,
                detail="Service account credentials not configured",
            )

        logger.info("pipeline.started", requester_id=request.requester_id)
        try:
            credential = loader.load()
            token = await self._auth.acquire_token(credential)
            async with PlatformClient(
                token,
                timeout_seconds=self._config.http.timeout_seconds,
                transport=self._transport,
            ) as client:
                result = await self._run(client, request)
        except ProvisioningError as exc:
            logger.error(
                "pipeline.step_failed",
                requester_id=request.requester_id,
                error_type=type(exc).__name__,
                reason=exc.reason,
                detail=str(exc.detail) if exc.detail is not None else None,
            )
            return Failure(
                reason=exc.reason,
                is_fatal=exc.is_fatal,
                detail=str(exc.detail) if exc.detail is not None else None,
            )
        except httpx.HTTPError as exc:
            logger.error(
                "pipeline.transport_error",
                requester_id=request.requester_id,
                error=str(exc),
            )
            return Failure(reason="platform-unreachable", detail=str(exc))

        logger.info(
            "pipeline.completed",
            requester_id=request.requester_id,
            project_id=result.project_id,
            warnings=len(result.warnings),
        )
        return result

    async def _run(
        self, client: PlatformClient, request: ProvisioningRequest
    ) -> Success:
        endpoints = self._config.endpoints
        gcp = self._config.gcp
        poller = OperationPoller(
            client,
            max_attempts=self._config.poller.max_attempts,
            interval_seconds=self._config.poller.interval_seconds,
            sleep=self._sleep,
        )
        projects = ProjectProvisioner(
            client,
            poller,
            base_url=endpoints.resource_manager,
            prefix=self._config.naming.prefix,
        )
        apps = AppRegistrar(client, poller, base_url=endpoints.firebase)

        project_id = await projects.create(
            self._display_name(request),
            request.requester_id,
            parent_org=gcp.organization_id,
            parent_folder=gcp.folder_id,
        )
        await apps.enable_managed_platform(project_id)
        app_id = await apps.register_app(
            project_id, label=self._config.naming.web_app_display_name
        )
        config = await apps.fetch_config(project_id, app_id)

        warnings: list[ProvisioningWarning] = []
        database = DatabaseEnabler(
            client,
            poller,
            service_usage_url=endpoints.service_usage,
            firestore_url=endpoints.firestore,
        )
        warnings += await self._best_effort(
            "firestore",
            project_id,
            database.ensure_database(project_id, gcp.firestore_location),
        )
        rules = RulesPublisher(client, base_url=endpoints.rules)
        warnings += await self._best_effort(
            "rules", project_id, rules.publish_default_rules(project_id)
        )

        return Success(
            project_id=project_id,
            config=self._assemble(config),
            warnings=warnings,
        )

    def _display_name(self, request: ProvisioningRequest) -> str:
        if request.display_name:
            return request.display_name
        return self._config.naming.default_display_name.format(
            user_id=request.requester_id
        )

    @staticmethod
    async def _best_effort(
        step: str, project_id: str, call: Awaitable[list[ProvisioningWarning]]
    ) -> list[ProvisioningWarning]:
        try:
            return list(await call)
        except Exception as exc:
            logger.warning(
                "pipeline.best_effort_step_failed",
                step=step,
                project_id=project_id,
                error=str(exc),
            )
            return [ProvisioningWarning(step=step, message=str(exc))]

    @staticmethod
    def _assemble(config: AppConfig) -> AppConfig:
        missing = config.missing_fields()
        if missing:
            raise ConfigFetchError(
                "config-incomplete", detail=f"missing fields: {', '.join(missing)}"
            )
        return config

    # -- Stateless surface -----------------------------------------------------

    @staticmethod
    def verify(candidate: Mapping[str, Any] | AppConfig | None) -> bool:
        """Schema check only: non-empty ``apiKey`` and ``projectId``."""
        if isinstance(candidate, AppConfig):
            candidate = candidate.to_dict()
        if not isinstance(candidate, Mapping):
            return False
        return bool(candidate.get("apiKey")) and bool(candidate.get("projectId"))

    @staticmethod
    def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": utc_now_iso()}
