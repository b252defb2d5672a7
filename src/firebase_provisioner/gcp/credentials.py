"""Service account credential decoding."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

import structlog

from firebase_provisioner.config.models import GcpConfig
from firebase_provisioner.errors import ConfigurationError

logger = structlog.get_logger()

NOT_CONFIGURED = "not-configured"


def decode_service_account_b64(blob: str, *, source: str) -> str:
    try:
        decoded = base64.b64decode(blob.strip().encode("utf-8"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError(
            "malformed-credential", detail=f"{source} is not valid base64"
        ) from exc
    try:
        return decoded.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigurationError(
            "malformed-credential", detail=f"{source} must decode to UTF-8 JSON"
        ) from exc


def load_service_account_info(serialized: str, *, source: str) -> Any:
    """Parse the serialized credential.

    The structure is not checked here; :class:`AuthSession` rejects
    non-mapping or incomplete records as ``malformed-credential``.
    """
    try:
        return json.loads(serialized)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            "malformed-credential", detail=f"{source} is not valid JSON"
        ) from exc


class CredentialLoader:
    """Decodes the service identity from environment-supplied settings.

    ``GCP_SERVICE_ACCOUNT_KEY`` (base64 JSON) takes precedence over
    ``GCP_SERVICE_ACCOUNT_JSON`` (raw JSON).
    """

    def __init__(self, config: GcpConfig) -> None:
        self._config = config

    @property
    def configured(self) -> bool:
        return self._config.credential_configured

    def load(self) -> Any:
        if self._config.service_account_key is not None:
            serialized = decode_service_account_b64(
                self._config.service_account_key.get_secret_value(),
                source="GCP_SERVICE_ACCOUNT_KEY",
            )
            info = load_service_account_info(
                serialized, source="GCP_SERVICE_ACCOUNT_KEY"
            )
        elif self._config.service_account_json is not None:
            info = load_service_account_info(
                self._config.service_account_json.get_secret_value(),
                source="GCP_SERVICE_ACCOUNT_JSON",
            )
        else:
            raise ConfigurationError(
                NOT_CONFIGURED, detail="Service account credentials not configured"
            )
        if isinstance(info, dict):
            logger.debug(
                "credentials.loaded", client_email=info.get("client_email", "unknown")
            )
        return info
