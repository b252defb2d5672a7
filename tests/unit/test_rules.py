"""Unit tests for default security rules publication."""

from __future__ import annotations

import json

import httpx
import pytest
from fakes import PROJECT_ID, RULES

from firebase_provisioner.gcp.rules import (
    DEFAULT_RULES,
    RulesPublisher,
    ruleset_payload,
)

RULESETS_URL = f"{RULES}/projects/{PROJECT_ID}/rulesets"
RELEASE_URL = f"{RULES}/projects/{PROJECT_ID}/releases/cloud.firestore"
RELEASES_URL = f"{RULES}/projects/{PROJECT_ID}/releases"
RULESET_NAME = f"projects/{PROJECT_ID}/rulesets/rs-1"


@pytest.fixture
def publisher(platform_client) -> RulesPublisher:
    return RulesPublisher(platform_client, base_url=RULES)


def _ruleset_ok(respx_mock):
    return respx_mock.post(RULESETS_URL).mock(
        return_value=httpx.Response(200, json={"name": RULESET_NAME})
    )


def test_default_rules_policy():
    assert "rules_version = '2'" in DEFAULT_RULES
    assert "match /posts/{postId}" in DEFAULT_RULES
    assert "allow read, write: if false;" in DEFAULT_RULES


def test_ruleset_payload_shape():
    payload = ruleset_payload("rules")
    assert payload == {
        "source": {"files": [{"name": "firestore.rules", "content": "rules"}]}
    }


class TestPublishDefaultRules:
    async def test_updates_existing_release(self, publisher, respx_mock):
        ruleset = _ruleset_ok(respx_mock)
        update = respx_mock.patch(RELEASE_URL).mock(
            return_value=httpx.Response(200, json={})
        )
        create = respx_mock.post(RELEASES_URL)

        assert await publisher.publish_default_rules(PROJECT_ID) == []

        sent = json.loads(ruleset.calls.last.request.content)
        assert sent["source"]["files"][0]["content"] == DEFAULT_RULES
        assert json.loads(update.calls.last.request.content) == {
            "release": {
                "name": f"projects/{PROJECT_ID}/releases/cloud.firestore",
                "rulesetName": RULESET_NAME,
            }
        }
        assert not create.called

    async def test_creates_release_when_missing(self, publisher, respx_mock):
        _ruleset_ok(respx_mock)
        respx_mock.patch(RELEASE_URL).mock(return_value=httpx.Response(404))
        create = respx_mock.post(RELEASES_URL).mock(
            return_value=httpx.Response(200, json={})
        )

        assert await publisher.publish_default_rules(PROJECT_ID) == []
        assert json.loads(create.calls.last.request.content)["rulesetName"] == (
            RULESET_NAME
        )

    async def test_ruleset_failure_skips_release(self, publisher, respx_mock):
        respx_mock.post(RULESETS_URL).mock(return_value=httpx.Response(400, text="bad"))
        update = respx_mock.patch(RELEASE_URL)

        warnings = await publisher.publish_default_rules(PROJECT_ID)

        assert [w.step for w in warnings] == ["rules.create_ruleset"]
        assert "400" in warnings[0].message
        assert not update.called

    async def test_release_failure_is_a_warning(self, publisher, respx_mock):
        _ruleset_ok(respx_mock)
        respx_mock.patch(RELEASE_URL).mock(return_value=httpx.Response(403))

        warnings = await publisher.publish_default_rules(PROJECT_ID)

        assert [w.step for w in warnings] == ["rules.release"]

    async def test_transport_error_is_a_warning(self, publisher, respx_mock):
        respx_mock.post(RULESETS_URL).mock(side_effect=httpx.ConnectError("down"))
        warnings = await publisher.publish_default_rules(PROJECT_ID)
        assert [w.step for w in warnings] == ["rules.create_ruleset"]

    async def test_unreadable_ruleset_body_is_a_warning(self, publisher, respx_mock):
        respx_mock.post(RULESETS_URL).mock(
            return_value=httpx.Response(200, text="not json")
        )
        update = respx_mock.patch(RELEASE_URL)

        warnings = await publisher.publish_default_rules(PROJECT_ID)

        assert [w.step for w in warnings] == ["rules.create_ruleset"]
        assert "ruleset-create-failed" in warnings[0].message
        assert not update.called
