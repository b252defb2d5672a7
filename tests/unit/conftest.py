"""Shared fixtures: service config, a bearer client and mocked Google REST APIs."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import httpx
import pytest
import respx
from fakes import (
    APP_ID,
    FB,
    FS,
    PROJECT_ID,
    RM,
    RULES,
    SERVICE_ACCOUNT,
    SU,
    WEB_CONFIG,
    done_operation,
    encode_credential,
)

from firebase_provisioner.config.models import GcpConfig, PollerConfig, ServiceConfig
from firebase_provisioner.gcp.client import PlatformClient
from firebase_provisioner.models import BearerToken


@pytest.fixture
def service_config() -> ServiceConfig:
    return ServiceConfig(
        gcp=GcpConfig(service_account_key=encode_credential(SERVICE_ACCOUNT)),
        poller=PollerConfig(max_attempts=3, interval_seconds=0.0),
    )


@pytest.fixture
def fixed_project_id(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setattr(
        "firebase_provisioner.gcp.projects.generate_project_id",
        lambda prefix, owner_id: PROJECT_ID,
    )
    return PROJECT_ID


@pytest.fixture
async def platform_client() -> AsyncIterator[PlatformClient]:
    async with PlatformClient(BearerToken(value="test-token")) as client:
        yield client


@pytest.fixture
def google() -> Iterator[respx.MockRouter]:
    """Happy-path routes for every Google API the pipeline touches.

    Routes are named so individual tests can swap a response, e.g.
    ``google.routes["add_firebase"].mock(return_value=httpx.Response(403))``.
    """
    with respx.mock(assert_all_called=False) as router:
        router.post(f"{RM}/projects", name="create_project").mock(
            return_value=httpx.Response(200, json={"name": "operations/cp.1"})
        )
        router.get(f"{RM}/operations/cp.1", name="project_operation").mock(
            return_value=httpx.Response(
                200, json=done_operation("operations/cp.1", {"projectId": PROJECT_ID})
            )
        )
        router.post(
            f"{FB}/projects/{PROJECT_ID}:addFirebase", name="add_firebase"
        ).mock(return_value=httpx.Response(200, json={"name": "operations/add.1"}))
        router.get(f"{FB}/operations/add.1", name="add_operation").mock(
            return_value=httpx.Response(200, json=done_operation("operations/add.1"))
        )
        router.post(
            f"{FB}/projects/{PROJECT_ID}/webApps", name="create_web_app"
        ).mock(return_value=httpx.Response(200, json={"name": "operations/app.1"}))
        router.get(f"{FB}/operations/app.1", name="web_app_operation").mock(
            return_value=httpx.Response(
                200,
                json=done_operation(
                    "operations/app.1",
                    {
                        "name": f"projects/{PROJECT_ID}/webApps/{APP_ID}",
                        "appId": APP_ID,
                    },
                ),
            )
        )
        router.get(
            f"{FB}/projects/{PROJECT_ID}/webApps/{APP_ID}/config", name="web_config"
        ).mock(return_value=httpx.Response(200, json=WEB_CONFIG))
        router.post(
            f"{SU}/projects/{PROJECT_ID}/services/firestore.googleapis.com:enable",
            name="enable_firestore",
        ).mock(
            return_value=httpx.Response(200, json=done_operation("operations/acf.1"))
        )
        router.post(
            f"{FS}/projects/{PROJECT_ID}/databases", name="create_database"
        ).mock(return_value=httpx.Response(200, json={"name": "operations/db.1"}))
        router.post(
            f"{RULES}/projects/{PROJECT_ID}/rulesets", name="create_ruleset"
        ).mock(
            return_value=httpx.Response(
                200, json={"name": f"projects/{PROJECT_ID}/rulesets/rs-1"}
            )
        )
        router.patch(
            f"{RULES}/projects/{PROJECT_ID}/releases/cloud.firestore",
            name="update_release",
        ).mock(return_value=httpx.Response(200, json={}))
        router.post(
            f"{RULES}/projects/{PROJECT_ID}/releases", name="create_release"
        ).mock(return_value=httpx.Response(200, json={}))
        yield router
