"""Domain types shared by the provisioning service and its clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Fields that must be non-empty for a config to be usable by the web SDK.
REQUIRED_CONFIG_FIELDS: tuple[str, ...] = (
    "apiKey",
    "authDomain",
    "projectId",
    "storageBucket",
    "appId",
)


class AppConfig(BaseModel):
    """Firebase web app connection config.

    Attribute names are snake_case; the wire format uses the camelCase keys
    the Firebase JS SDK expects (``apiKey``, ``authDomain``, ...).  Empty
    strings are accepted at construction so that partially filled sources can
    be represented; use :meth:`missing_fields` / :attr:`is_valid` to check the
    mandatory-field invariant.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    api_key: str
    auth_domain: str = ""
    project_id: str = ""
    storage_bucket: str = ""
    messaging_sender_id: str = ""
    app_id: str = ""
    measurement_id: str | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> AppConfig:
        """Build from a camelCase mapping, treating ``None`` as empty."""
        values = {
            key: ("" if data.get(key) is None else str(data[key]))
            for key in (*REQUIRED_CONFIG_FIELDS, "messagingSenderId")
        }
        measurement_id = data.get("measurementId")
        return cls.model_validate(
            {**values, "measurementId": str(measurement_id) if measurement_id else None}
        )

    def missing_fields(self) -> list[str]:
        """Return the camelCase names of empty mandatory fields, in order."""
        data = self.to_dict()
        return [name for name in REQUIRED_CONFIG_FIELDS if not data.get(name)]

    @property
    def is_valid(self) -> bool:
        return not self.missing_fields()

    def to_dict(self) -> dict[str, str]:
        """Wire representation; ``measurementId`` only when set."""
        data = self.model_dump(by_alias=True)
        if not data.get("measurementId"):
            data.pop("measurementId", None)
        return data


@dataclass(frozen=True)
class ProvisioningRequest:
    requester_id: str
    display_name: str = ""

    def __post_init__(self) -> None:
        if not self.requester_id:
            msg = "requester_id must be non-empty"
            raise ValueError(msg)


@dataclass(frozen=True)
class OperationHandle:
    """Reference to a long-running platform operation.

    ``base_url`` is the API root that owns the operation, e.g.
    ``https://cloudresourcemanager.googleapis.com/v1``.
    """

    name: str
    base_url: str


@dataclass(frozen=True)
class BearerToken:
    value: str = field(repr=False)
    expiry: datetime | None = None


@dataclass(frozen=True)
class ProvisioningWarning:
    """Diagnostic from a best-effort step that did not abort the pipeline."""

    step: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"step": self.step, "message": self.message}


@dataclass(frozen=True)
class Success:
    project_id: str
    config: AppConfig
    warnings: list[ProvisioningWarning] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)


@dataclass(frozen=True)
class Failure:
    reason: str
    is_fatal: bool = True
    detail: str | None = None


ProvisioningResult = Success | Failure


class ConfigSource(StrEnum):
    """Where the authoritative app config came from."""

    ENVIRONMENT = "environment"
    PERSISTED_CLIENT_STORE = "persisted_client_store"
    NONE = "none"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
