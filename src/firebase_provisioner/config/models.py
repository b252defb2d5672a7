"""Pydantic configuration models for the provisioning service."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Self

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator


class Environment(StrEnum):
    """Deployment mode; controls how much diagnostic detail is exposed."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


ProjectPrefix = Annotated[str, Field(pattern=r"^[a-z][a-z0-9-]{0,11}$")]


class GcpConfig(BaseModel):
    """Service identity and resource placement for new projects."""

    # Base64-encoded service account JSON (preferred).
    service_account_key: SecretStr | None = None
    # Raw service account JSON, used only when no encoded key is set.
    service_account_json: SecretStr | None = None
    organization_id: str | None = None
    folder_id: str | None = None
    firestore_location: str = "us-central1"

    @field_validator(
        "service_account_key",
        "service_account_json",
        "organization_id",
        "folder_id",
        mode="before",
    )
    @classmethod
    def empty_as_none(cls, v: object) -> object:
        """Unset ``${VAR:-}`` placeholders resolve to ``""``; treat as absent."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("firestore_location", mode="before")
    @classmethod
    def default_location(cls, v: object) -> object:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "us-central1"
        return v

    @property
    def credential_configured(self) -> bool:
        return (
            self.service_account_key is not None
            or self.service_account_json is not None
        )


class PollerConfig(BaseModel):
    """Fixed-interval polling of long-running operations."""

    max_attempts: int = Field(default=30, ge=1)
    interval_seconds: float = Field(default=2.0, ge=0.0)


class HttpConfig(BaseModel):
    timeout_seconds: float = Field(default=30.0, gt=0)


class EndpointsConfig(BaseModel):
    """Google API roots.  Overridable for emulators and tests."""

    resource_manager: str = "https://cloudresourcemanager.googleapis.com/v1"
    firebase: str = "https://firebase.googleapis.com/v1beta1"
    service_usage: str = "https://serviceusage.googleapis.com/v1"
    firestore: str = "https://firestore.googleapis.com/v1"
    rules: str = "https://firebaserules.googleapis.com/v1"

    @field_validator("*")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ProjectNamingConfig(BaseModel):
    prefix: ProjectPrefix = "blog"
    default_display_name: str = "AI Blog - {user_id}"
    web_app_display_name: str = "AI Blogger Web App"


class CorsConfig(BaseModel):
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"]
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def split_origins(cls, v: object) -> object:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=3001, ge=1, le=65535)


class ServiceConfig(BaseModel):
    """Top-level configuration for the provisioning service."""

    environment: Environment = Environment.DEVELOPMENT
    gcp: GcpConfig = GcpConfig()
    poller: PollerConfig = PollerConfig()
    http: HttpConfig = HttpConfig()
    endpoints: EndpointsConfig = EndpointsConfig()
    naming: ProjectNamingConfig = ProjectNamingConfig()
    cors: CorsConfig = CorsConfig()
    server: ServerConfig = ServerConfig()

    @model_validator(mode="after")
    def check_cors_not_empty(self) -> Self:
        """Require at least one allowed origin."""
        if not self.cors.allowed_origins:
            msg = "cors.allowed_origins must contain at least one origin"
            raise ValueError(msg)
        return self

    @property
    def expose_details(self) -> bool:
        return self.environment != Environment.PRODUCTION
