"""DatabaseEnabler: best-effort Firestore activation for a new project."""

from __future__ import annotations

import httpx
import structlog

from firebase_provisioner.errors import ProvisioningError
from firebase_provisioner.gcp.client import (
    PlatformClient,
    describe_response,
    json_object,
)
from firebase_provisioner.gcp.operations import OperationPoller, is_operation
from firebase_provisioner.models import ProvisioningWarning

logger = structlog.get_logger()

FIRESTORE_SERVICE = "firestore.googleapis.com"
DEFAULT_DATABASE_ID = "(default)"


class DatabaseEnabler:
    """Enables the Firestore API and creates the ``(default)`` database.

    Never raises for platform failures; problems are logged and returned as
    warnings.
    """

    def __init__(
        self,
        client: PlatformClient,
        poller: OperationPoller,
        *,
        service_usage_url: str,
        firestore_url: str,
    ) -> None:
        self._client = client
        self._poller = poller
        self._service_usage_url = service_usage_url
        self._firestore_url = firestore_url

    async def ensure_database(
        self, project_id: str, location: str
    ) -> list[ProvisioningWarning]:
        warnings: list[ProvisioningWarning] = []
        enable_warning = await self._enable_service(project_id)
        if enable_warning is not None:
            warnings.append(enable_warning)
        create_warning = await self._create_database(project_id, location)
        if create_warning is not None:
            warnings.append(create_warning)
        if not warnings:
            logger.info("firestore.enabled", project_id=project_id, location=location)
        return warnings

    async def _enable_service(self, project_id: str) -> ProvisioningWarning | None:
        url = (
            f"{self._service_usage_url}/projects/{project_id}"
            f"/services/{FIRESTORE_SERVICE}:enable"
        )
        try:
            resp = await self._client.post(url, json={})
            if not resp.is_success:
                return self._warn(
                    project_id, "firestore.enable_service", describe_response(resp)
                )
            payload = json_object(resp, ProvisioningError, "firestore-enable-failed")
            if is_operation(payload):
                await self._poller.complete(payload, self._service_usage_url)
        except (httpx.HTTPError, ProvisioningError) as exc:
            return self._warn(project_id, "firestore.enable_service", str(exc))
        return None

    async def _create_database(
        self, project_id: str, location: str
    ) -> ProvisioningWarning | None:
        url = f"{self._firestore_url}/projects/{project_id}/databases"
        body = {"locationId": location, "type": "FIRESTORE_NATIVE"}
        try:
            resp = await self._client.post(
                url, json=body, params={"databaseId": DEFAULT_DATABASE_ID}
            )
        except httpx.HTTPError as exc:
            return self._warn(project_id, "firestore.create_database", str(exc))

        if resp.status_code == 409:
            logger.info("firestore.database_exists", project_id=project_id)
            return None
        if not resp.is_success:
            return self._warn(
                project_id, "firestore.create_database", describe_response(resp)
            )
        return None

    @staticmethod
    def _warn(project_id: str, step: str, message: str) -> ProvisioningWarning:
        logger.warning(
            "firestore.setup_warning", project_id=project_id, step=step, error=message
        )
        return ProvisioningWarning(step=step, message=message)
