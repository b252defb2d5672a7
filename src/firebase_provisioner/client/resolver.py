"""Client-side precedence between environment and persisted app configs."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from firebase_provisioner.models import AppConfig, ConfigSource

logger = structlog.get_logger()

# Environment variable → AppConfig wire key.
ENV_VARS: dict[str, str] = {
    "FIREBASE_API_KEY": "apiKey",
    "FIREBASE_AUTH_DOMAIN": "authDomain",
    "FIREBASE_PROJECT_ID": "projectId",
    "FIREBASE_STORAGE_BUCKET": "storageBucket",
    "FIREBASE_MESSAGING_SENDER_ID": "messagingSenderId",
    "FIREBASE_APP_ID": "appId",
    "FIREBASE_MEASUREMENT_ID": "measurementId",
}

# Minimum a persisted record needs before the client trusts it.
STORED_REQUIRED_FIELDS: tuple[str, ...] = ("apiKey", "projectId", "authDomain")


def environment_config(environ: Mapping[str, str] | None = None) -> AppConfig | None:
    """Read an AppConfig from ``FIREBASE_*`` variables.

    Presence is decided by ``FIREBASE_API_KEY`` alone; the other fields are
    taken as-is, possibly empty.
    """
    environ = os.environ if environ is None else environ
    if not environ.get("FIREBASE_API_KEY"):
        return None
    return AppConfig.from_mapping(
        {key: environ.get(var, "") for var, key in ENV_VARS.items()}
    )


def stored_config_is_usable(record: Mapping[str, Any] | None) -> bool:
    if not isinstance(record, Mapping):
        return False
    return all(record.get(name) for name in STORED_REQUIRED_FIELDS)


@dataclass(frozen=True)
class ResolvedConfig:
    config: AppConfig | None
    source: ConfigSource


@dataclass(frozen=True)
class ConfigResolver:
    """Pure precedence policy over two explicit sources.

    The environment always wins and is never merged with the stored record.
    Evaluate on every start; nothing is cached and the environment is never
    written back to the store.
    """

    environment: AppConfig | None = None
    stored: Mapping[str, Any] | None = None

    def resolve(self) -> ResolvedConfig:
        if self.environment is not None and self.environment.api_key:
            logger.debug("config.resolved", source=ConfigSource.ENVIRONMENT.value)
            return ResolvedConfig(self.environment, ConfigSource.ENVIRONMENT)

        if stored_config_is_usable(self.stored):
            assert self.stored is not None
            logger.debug(
                "config.resolved", source=ConfigSource.PERSISTED_CLIENT_STORE.value
            )
            return ResolvedConfig(
                AppConfig.from_mapping(dict(self.stored)),
                ConfigSource.PERSISTED_CLIENT_STORE,
            )

        logger.debug("config.resolved", source=ConfigSource.NONE.value)
        return ResolvedConfig(None, ConfigSource.NONE)
