"""RulesPublisher: best-effort default Firestore security rules."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from firebase_provisioner.errors import ProvisioningError
from firebase_provisioner.gcp.client import (
    PlatformClient,
    describe_response,
    json_object,
)
from firebase_provisioner.models import ProvisioningWarning

logger = structlog.get_logger()

RULES_FILE_NAME = "firestore.rules"
FIRESTORE_RELEASE = "cloud.firestore"

# Public read/write on posts, everything else denied.
DEFAULT_RULES = """rules_version = '2';
service cloud.firestore {
  match /databases/{database}/documents {
    match /posts/{postId} {
      allow read: if true;
      allow write: if true;
    }

    match /{document=**} {
      allow read, write: if false;
    }
  }
}
"""


def ruleset_payload(source: str = DEFAULT_RULES) -> dict[str, Any]:
    return {"source": {"files": [{"name": RULES_FILE_NAME, "content": source}]}}


class RulesPublisher:
    """Creates a ruleset and releases it as the active Firestore policy.

    Never raises for platform failures; each failed call yields one warning.
    """

    def __init__(self, client: PlatformClient, *, base_url: str) -> None:
        self._client = client
        self._base_url = base_url

    async def publish_default_rules(
        self, project_id: str, source: str = DEFAULT_RULES
    ) -> list[ProvisioningWarning]:
        ruleset_name, warning = await self._create_ruleset(project_id, source)
        if warning is not None:
            return [warning]
        warning = await self._release(project_id, ruleset_name)
        if warning is not None:
            return [warning]
        logger.info("rules.published", project_id=project_id, ruleset=ruleset_name)
        return []

    async def _create_ruleset(
        self, project_id: str, source: str
    ) -> tuple[str, ProvisioningWarning | None]:
        url = f"{self._base_url}/projects/{project_id}/rulesets"
        try:
            resp = await self._client.post(url, json=ruleset_payload(source))
        except httpx.HTTPError as exc:
            return "", self._warn(project_id, "rules.create_ruleset", str(exc))
        if not resp.is_success:
            return "", self._warn(
                project_id, "rules.create_ruleset", describe_response(resp)
            )
        try:
            payload = json_object(resp, ProvisioningError, "ruleset-create-failed")
        except ProvisioningError as exc:
            return "", self._warn(project_id, "rules.create_ruleset", str(exc))
        ruleset_name = str(payload.get("name", ""))
        if not ruleset_name:
            return "", self._warn(
                project_id, "rules.create_ruleset", "response carried no ruleset name"
            )
        return ruleset_name, None

    async def _release(
        self, project_id: str, ruleset_name: str
    ) -> ProvisioningWarning | None:
        release_name = f"projects/{project_id}/releases/{FIRESTORE_RELEASE}"
        release = {"name": release_name, "rulesetName": ruleset_name}
        try:
            resp = await self._client.patch(
                f"{self._base_url}/{release_name}", json={"release": release}
            )
            if resp.status_code == 404:
                # First publish on a fresh project: the release does not exist yet.
                resp = await self._client.post(
                    f"{self._base_url}/projects/{project_id}/releases", json=release
                )
        except httpx.HTTPError as exc:
            return self._warn(project_id, "rules.release", str(exc))
        if not resp.is_success:
            return self._warn(project_id, "rules.release", describe_response(resp))
        return None

    @staticmethod
    def _warn(project_id: str, step: str, message: str) -> ProvisioningWarning:
        logger.warning(
            "rules.publish_warning", project_id=project_id, step=step, error=message
        )
        return ProvisioningWarning(step=step, message=message)
