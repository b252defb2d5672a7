"""Error taxonomy for the provisioning pipeline.

Every fatal pipeline step raises a subclass of :class:`ProvisioningError`.
The orchestrator converts these into a ``Failure`` result; nothing here is
retried automatically except operation polling.
"""

from __future__ import annotations

from typing import Any


class ProvisioningError(Exception):
    """Base class for fatal provisioning failures."""

    is_fatal = True

    def __init__(self, reason: str, *, detail: Any = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.detail = detail

    def __str__(self) -> str:
        if self.detail is None:
            return self.reason
        return f"{self.reason}: {self.detail}"


class ConfigurationError(ProvisioningError):
    """Service credential is absent or cannot be decoded."""


class AuthError(ProvisioningError):
    """Token exchange with the identity provider failed."""

    MALFORMED_CREDENTIAL = "malformed-credential"
    EXCHANGE_REJECTED = "exchange-rejected"


class CreateError(ProvisioningError):
    """Project creation was rejected (including identifier collisions)."""


class OperationTimeout(ProvisioningError):
    """A long-running operation did not finish within the attempt budget."""


class OperationFailed(ProvisioningError):
    """A long-running operation finished with an error payload."""


class FeatureError(ProvisioningError):
    """Adding the managed Firebase platform to the project failed."""


class RegisterError(ProvisioningError):
    """Web app registration failed."""


class ConfigFetchError(ProvisioningError):
    """Web app configuration could not be fetched or was incomplete."""
