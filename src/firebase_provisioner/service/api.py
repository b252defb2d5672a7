"""HTTP boundary for the provisioning service.

Every response, including validation and unexpected errors, is a JSON body;
stack-level detail is only attached outside production.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from firebase_provisioner import __version__
from firebase_provisioner.config.models import ServiceConfig
from firebase_provisioner.models import Failure, ProvisioningRequest
from firebase_provisioner.service.pipeline import ProvisioningService

logger = structlog.get_logger()


class SetupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    userId: str | None = None  # noqa: N815
    projectName: str | None = None  # noqa: N815


class VerifyRequest(BaseModel):
    config: dict[str, Any] | None = None


def _error(status: int, error: str, details: str | None = None) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status, content=body)


def create_app(
    config: ServiceConfig, service: ProvisioningService | None = None
) -> FastAPI:
    """Build the FastAPI app; *service* is injectable for tests."""
    service = service or ProvisioningService(config)
    app = FastAPI(title="Firebase Provisioning Service", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = str(exc.errors()) if config.expose_details else None
        return _error(400, "Invalid request body", details)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("api.unhandled_error", path=request.url.path, exc_info=exc)
        details = repr(exc) if config.expose_details else None
        return _error(500, str(exc) or type(exc).__name__, details)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return service.health()

    @app.post("/api/setupFirebase")
    async def setup_firebase(body: SetupRequest) -> JSONResponse:
        if not body.userId:
            return _error(400, "userId is required")

        logger.info("api.setup_requested", user_id=body.userId)
        result = await service.provision(
            ProvisioningRequest(
                requester_id=body.userId, display_name=body.projectName or ""
            )
        )
        if isinstance(result, Failure):
            details = result.detail if config.expose_details else None
            return _error(500, result.reason, details)

        content: dict[str, Any] = {
            "success": True,
            "projectId": result.project_id,
            "config": result.config.to_dict(),
        }
        if result.warnings:
            content["warnings"] = [w.to_dict() for w in result.warnings]
        return JSONResponse(content=content)

    @app.post("/api/verifyFirebase")
    async def verify_firebase(body: VerifyRequest) -> JSONResponse:
        if not service.verify(body.config):
            return _error(400, "Invalid Firebase configuration")
        return JSONResponse(
            content={"success": True, "message": "Configuration appears valid"}
        )

    return app
