"""ProjectProvisioner: creates the Google Cloud project for a requester."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from firebase_provisioner.errors import CreateError
from firebase_provisioner.gcp.client import (
    PlatformClient,
    describe_response,
    json_object,
)
from firebase_provisioner.gcp.naming import generate_project_id
from firebase_provisioner.gcp.operations import OperationPoller

logger = structlog.get_logger()


def project_parent(
    organization_id: str | None, folder_id: str | None
) -> dict[str, str] | None:
    """Resolve the placement hint; a folder wins over an organization."""
    if folder_id:
        return {"type": "folder", "id": folder_id}
    if organization_id:
        return {"type": "organization", "id": organization_id}
    return None


class ProjectProvisioner:
    """Submits ``projects.create`` and waits for the operation to finish.

    An identifier collision is reported as :class:`CreateError` and is not
    retried with a fresh suffix; re-running the pipeline yields a new id.
    """

    def __init__(
        self,
        client: PlatformClient,
        poller: OperationPoller,
        *,
        base_url: str,
        prefix: str = "blog",
    ) -> None:
        self._client = client
        self._poller = poller
        self._base_url = base_url
        self._prefix = prefix

    async def create(
        self,
        display_name: str,
        owner_user_id: str,
        parent_org: str | None = None,
        parent_folder: str | None = None,
    ) -> str:
        project_id = generate_project_id(self._prefix, owner_user_id)
        body: dict[str, Any] = {"projectId": project_id, "name": display_name}
        parent = project_parent(parent_org, parent_folder)
        if parent is not None:
            body["parent"] = parent

        logger.info(
            "project.create_submitted",
            project_id=project_id,
            parent=parent["type"] if parent else None,
        )
        try:
            resp = await self._client.post(f"{self._base_url}/projects", json=body)
        except httpx.HTTPError as exc:
            raise CreateError("project-create-failed", detail=str(exc)) from exc

        if resp.status_code == 409:
            logger.error("project.id_collision", project_id=project_id)
            raise CreateError(
                "project-id-collision", detail=describe_response(resp)
            )
        if not resp.is_success:
            logger.error(
                "project.create_rejected",
                project_id=project_id,
                status=resp.status_code,
            )
            raise CreateError("project-create-failed", detail=describe_response(resp))

        payload = json_object(resp, CreateError, "project-create-failed")
        await self._poller.complete(payload, self._base_url)
        logger.info("project.created", project_id=project_id)
        return project_id
