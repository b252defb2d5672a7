"""Unit tests for the provisioning service HTTP client."""

from __future__ import annotations

import json
from datetime import date

import httpx
import pytest
from fakes import PROJECT_ID, WEB_CONFIG

from firebase_provisioner.client.backend import (
    DEFAULT_BACKEND_URL,
    UNREACHABLE_MESSAGE,
    ProvisioningClient,
    SetupResponse,
)
from firebase_provisioner.client.store import ClientStore
from firebase_provisioner.config.models import ServiceConfig
from firebase_provisioner.models import AppConfig, ProvisioningRequest, Success
from firebase_provisioner.service.api import create_app
from firebase_provisioner.service.pipeline import ProvisioningService

SETUP_URL = f"{DEFAULT_BACKEND_URL}/api/setupFirebase"
VERIFY_URL = f"{DEFAULT_BACKEND_URL}/api/verifyFirebase"
HEALTH_URL = f"{DEFAULT_BACKEND_URL}/health"


@pytest.fixture
def store(tmp_path) -> ClientStore:
    return ClientStore(tmp_path / "client.json")


@pytest.fixture
async def client(store):
    async with ProvisioningClient(store) as c:
        yield c


class TestSetupResponse:
    def test_from_success_body(self):
        resp = SetupResponse.from_body(
            {"success": True, "projectId": PROJECT_ID, "config": WEB_CONFIG}
        )
        assert resp.success
        assert resp.config == AppConfig.from_mapping(WEB_CONFIG)

    def test_from_error_body(self):
        resp = SetupResponse.from_body({"success": False, "error": "boom"})
        assert not resp.success
        assert resp.config is None
        assert resp.error == "boom"


class TestSetupProject:
    async def test_success_persists_config(self, client, store, respx_mock):
        route = respx_mock.post(SETUP_URL).mock(
            return_value=httpx.Response(
                200,
                json={"success": True, "projectId": PROJECT_ID, "config": WEB_CONFIG},
            )
        )

        result = await client.setup_project()

        assert result.success
        assert result.project_id == PROJECT_ID
        assert store.load_config() == AppConfig.from_mapping(WEB_CONFIG)
        sent = json.loads(route.calls.last.request.content)
        assert sent == {
            "userId": store.requester_id(),
            "projectName": f"AI Blog {date.today().isoformat()}",
        }

    async def test_explicit_project_name(self, client, respx_mock):
        route = respx_mock.post(SETUP_URL).mock(
            return_value=httpx.Response(
                200,
                json={"success": True, "projectId": PROJECT_ID, "config": WEB_CONFIG},
            )
        )
        await client.setup_project("Travel Notes")
        assert json.loads(route.calls.last.request.content)["projectName"] == (
            "Travel Notes"
        )

    async def test_server_failure(self, client, store, respx_mock):
        respx_mock.post(SETUP_URL).mock(
            return_value=httpx.Response(
                500,
                json={
                    "success": False,
                    "error": "add-firebase-failed",
                    "details": "403",
                },
            )
        )

        result = await client.setup_project()

        assert not result.success
        assert result.error == "add-firebase-failed"
        assert result.details == "403"
        assert store.load_config() is None

    async def test_non_json_failure(self, client, respx_mock):
        respx_mock.post(SETUP_URL).mock(
            return_value=httpx.Response(502, text="Bad Gateway")
        )
        result = await client.setup_project()
        assert result.error == "Setup failed with status 502"

    async def test_backend_unreachable(self, client, store, respx_mock):
        respx_mock.post(SETUP_URL).mock(side_effect=httpx.ConnectError("refused"))
        result = await client.setup_project()
        assert not result.success
        assert result.error == UNREACHABLE_MESSAGE
        assert store.load_config() is None


class TestVerifyAndHealth:
    async def test_verify_valid(self, client, respx_mock):
        route = respx_mock.post(VERIFY_URL).mock(
            return_value=httpx.Response(200, json={"success": True})
        )
        assert await client.verify_config(AppConfig.from_mapping(WEB_CONFIG))
        assert json.loads(route.calls.last.request.content) == {"config": WEB_CONFIG}

    async def test_verify_invalid(self, client, respx_mock):
        respx_mock.post(VERIFY_URL).mock(
            return_value=httpx.Response(400, json={"success": False})
        )
        assert not await client.verify_config(AppConfig(api_key="k"))

    async def test_verify_unreachable(self, client, respx_mock):
        respx_mock.post(VERIFY_URL).mock(side_effect=httpx.ConnectError("refused"))
        assert not await client.verify_config(AppConfig(api_key="k"))

    async def test_health(self, client, respx_mock):
        respx_mock.get(HEALTH_URL).mock(
            return_value=httpx.Response(200, json={"status": "ok"})
        )
        assert await client.check_health()

    async def test_health_unreachable(self, client, respx_mock):
        respx_mock.get(HEALTH_URL).mock(side_effect=httpx.ConnectTimeout("slow"))
        assert not await client.check_health()


class _CannedService(ProvisioningService):
    def __init__(self) -> None:
        super().__init__(ServiceConfig())
        self.requests: list[ProvisioningRequest] = []

    async def provision(self, request: ProvisioningRequest) -> Success:
        self.requests.append(request)
        return Success(project_id=PROJECT_ID, config=AppConfig.from_mapping(WEB_CONFIG))


async def test_against_service_app(store):
    service = _CannedService()
    transport = httpx.ASGITransport(app=create_app(ServiceConfig(), service))

    async with ProvisioningClient(store, "http://test", transport=transport) as client:
        assert await client.check_health()
        result = await client.setup_project("Travel Notes")
        assert await client.verify_config(result.config)

    assert result.success
    assert store.load_config() == AppConfig.from_mapping(WEB_CONFIG)
    assert service.requests == [
        ProvisioningRequest(
            requester_id=store.requester_id(), display_name="Travel Notes"
        )
    ]
