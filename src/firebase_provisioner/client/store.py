"""File-backed client state: last app config and the stable requester id."""

from __future__ import annotations

import json
import random
import string
import time
from pathlib import Path
from typing import Any

import structlog

from firebase_provisioner.client.resolver import stored_config_is_usable
from firebase_provisioner.models import AppConfig

logger = structlog.get_logger()

CONFIG_KEY = "firebase_auto_config"
REQUESTER_ID_KEY = "firebase_user_id"
DEFAULT_STORE_PATH = Path.home() / ".config" / "firebase-provisioner" / "client.json"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_requester_id() -> str:
    """``user_<epoch ms>_<9 base36 chars>``."""
    token = "".join(random.choices(_ID_ALPHABET, k=9))  # noqa: S311
    return f"user_{int(time.time() * 1000)}_{token}"


class ClientStore:
    """Small JSON document holding independently updated keys.

    A corrupt or unreadable file is treated as empty rather than fatal.
    """

    def __init__(self, path: str | Path = DEFAULT_STORE_PATH) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("store.read_failed", path=str(self._path), error=str(exc))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self._path)

    # -- App config ------------------------------------------------------------

    def raw_config(self) -> dict[str, Any] | None:
        record = self._read().get(CONFIG_KEY)
        return record if isinstance(record, dict) else None

    def load_config(self) -> AppConfig | None:
        """Return the stored config if it has apiKey, projectId and authDomain."""
        record = self.raw_config()
        if not stored_config_is_usable(record):
            return None
        assert record is not None
        return AppConfig.from_mapping(record)

    def save_config(self, config: AppConfig) -> None:
        data = self._read()
        data[CONFIG_KEY] = config.to_dict()
        self._write(data)
        logger.info("store.config_saved", project_id=config.project_id)

    def clear_config(self) -> None:
        data = self._read()
        if data.pop(CONFIG_KEY, None) is not None:
            self._write(data)
        logger.info("store.config_cleared")

    # -- Requester id ----------------------------------------------------------

    def requester_id(self) -> str:
        """Return the persisted requester id, generating it on first use."""
        data = self._read()
        existing = data.get(REQUESTER_ID_KEY)
        if isinstance(existing, str) and existing:
            return existing
        requester_id = generate_requester_id()
        data[REQUESTER_ID_KEY] = requester_id
        self._write(data)
        logger.info("store.requester_id_created", requester_id=requester_id)
        return requester_id
