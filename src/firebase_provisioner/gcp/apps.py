"""AppRegistrar: Firebase activation, web app registration and config fetch.

All three calls are fatal to the pipeline.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from firebase_provisioner.errors import ConfigFetchError, FeatureError, RegisterError
from firebase_provisioner.gcp.client import (
    PlatformClient,
    describe_response,
    json_object,
)
from firebase_provisioner.gcp.operations import OperationPoller, is_operation
from firebase_provisioner.models import AppConfig

logger = structlog.get_logger()


def app_id_from_resource(web_app: dict[str, Any]) -> str:
    """Extract the app id from a WebApp resource.

    Prefers ``appId``; falls back to the last segment of
    ``projects/<project>/webApps/<appId>``.
    """
    if web_app.get("appId"):
        return str(web_app["appId"])
    name = str(web_app.get("name", ""))
    return name.rsplit("/", 1)[-1]


class AppRegistrar:
    def __init__(
        self, client: PlatformClient, poller: OperationPoller, *, base_url: str
    ) -> None:
        self._client = client
        self._poller = poller
        self._base_url = base_url

    async def enable_managed_platform(self, project_id: str) -> None:
        """Add Firebase to an existing Cloud project (``projects:addFirebase``)."""
        url = f"{self._base_url}/projects/{project_id}:addFirebase"
        logger.info("firebase.add_submitted", project_id=project_id)
        try:
            resp = await self._client.post(url, json={})
        except httpx.HTTPError as exc:
            raise FeatureError("add-firebase-failed", detail=str(exc)) from exc
        if not resp.is_success:
            raise FeatureError("add-firebase-failed", detail=describe_response(resp))

        payload = json_object(resp, FeatureError, "add-firebase-failed")
        if is_operation(payload):
            await self._poller.complete(payload, self._base_url)
        logger.info("firebase.added", project_id=project_id)

    async def register_app(self, project_id: str, label: str = "") -> str:
        """Create a web app and return its app id."""
        url = f"{self._base_url}/projects/{project_id}/webApps"
        try:
            resp = await self._client.post(url, json={"displayName": label})
        except httpx.HTTPError as exc:
            raise RegisterError("web-app-create-failed", detail=str(exc)) from exc
        if not resp.is_success:
            raise RegisterError(
                "web-app-create-failed", detail=describe_response(resp)
            )

        payload = json_object(resp, RegisterError, "web-app-create-failed")
        web_app = payload
        if is_operation(payload):
            operation = await self._poller.complete(payload, self._base_url)
            web_app = operation.get("response") or {}

        app_id = app_id_from_resource(web_app)
        if not app_id:
            raise RegisterError(
                "web-app-create-failed", detail="response carried no app id"
            )
        logger.info("firebase.web_app_created", project_id=project_id, app_id=app_id)
        return app_id

    async def fetch_config(self, project_id: str, app_handle: str) -> AppConfig:
        """Fetch the web SDK config.

        A successful response lacking ``apiKey`` or ``projectId`` is a
        :class:`ConfigFetchError`.
        """
        url = f"{self._base_url}/projects/{project_id}/webApps/{app_handle}/config"
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise ConfigFetchError("config-fetch-failed", detail=str(exc)) from exc
        if not resp.is_success:
            raise ConfigFetchError(
                "config-fetch-failed", detail=describe_response(resp)
            )

        data = json_object(resp, ConfigFetchError, "config-fetch-failed")
        missing = [key for key in ("apiKey", "projectId") if not data.get(key)]
        if missing:
            raise ConfigFetchError(
                "config-incomplete", detail=f"missing fields: {', '.join(missing)}"
            )
        logger.info("firebase.config_fetched", project_id=project_id)
        return AppConfig.from_mapping(data)
