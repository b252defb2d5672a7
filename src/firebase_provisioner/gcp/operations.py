"""Polling of Google long-running operations.

This is the only retry loop in the service.  Polling uses a fixed interval
with no backoff.  Only unfinished operations are polled again; a poll that
fails in any way ends the wait with :class:`OperationFailed`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from firebase_provisioner.errors import OperationFailed, OperationTimeout
from firebase_provisioner.gcp.client import (
    PlatformClient,
    describe_response,
    json_object,
)
from firebase_provisioner.models import OperationHandle

logger = structlog.get_logger()

Sleep = Callable[[float], Awaitable[None]]


def _not_done(operation: dict[str, Any]) -> bool:
    return not operation.get("done", False)


def is_operation(payload: dict[str, Any]) -> bool:
    """True if a create/enable response is an Operation rather than the resource."""
    return "done" in payload or str(payload.get("name", "")).startswith("operations/")


class OperationPoller:
    """Blocks the calling task until an operation is done, failed or timed out."""

    def __init__(
        self,
        client: PlatformClient,
        *,
        max_attempts: int = 30,
        interval_seconds: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._max_attempts = max_attempts
        self._interval = interval_seconds
        self._sleep = sleep

    async def wait(
        self,
        handle: OperationHandle,
        *,
        max_attempts: int | None = None,
        interval_seconds: float | None = None,
    ) -> dict[str, Any]:
        """Poll *handle* until done.

        Raises :class:`OperationFailed` as soon as the operation reports
        ``done`` with an ``error`` payload, and :class:`OperationTimeout`
        after exactly ``max_attempts`` unfinished polls.
        """
        attempts = max_attempts if max_attempts is not None else self._max_attempts
        interval = interval_seconds if interval_seconds is not None else self._interval

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(interval),
            retry=retry_if_result(_not_done),
            sleep=self._sleep,
        )
        try:
            operation: dict[str, Any] = await retrying(self._poll_once, handle)
        except RetryError as exc:
            logger.error(
                "operation.timed_out", operation=handle.name, attempts=attempts
            )
            raise OperationTimeout(
                "operation-timeout",
                detail=f"{handle.name} not done after {attempts} polls",
            ) from exc

        logger.info(
            "operation.completed",
            operation=handle.name,
            attempts=retrying.statistics.get("attempt_number"),
        )
        return operation

    async def complete(self, payload: dict[str, Any], base_url: str) -> dict[str, Any]:
        """Return the finished operation for a create/enable response.

        Responses that are already ``done`` are checked for an error without
        polling.
        """
        if payload.get("done"):
            self._raise_if_failed(payload)
            return payload
        name = payload.get("name")
        if not name:
            raise OperationFailed(
                "operation-poll-failed",
                detail="response is neither done nor an operation handle",
            )
        return await self.wait(OperationHandle(name=str(name), base_url=base_url))

    async def _poll_once(self, handle: OperationHandle) -> dict[str, Any]:
        url = f"{handle.base_url}/{handle.name}"
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise OperationFailed("operation-poll-failed", detail=str(exc)) from exc
        if not resp.is_success:
            raise OperationFailed(
                "operation-poll-failed", detail=describe_response(resp)
            )
        operation = json_object(resp, OperationFailed, "operation-poll-failed")
        self._raise_if_failed(operation)
        logger.debug(
            "operation.polled", operation=handle.name, done=operation.get("done", False)
        )
        return operation

    @staticmethod
    def _raise_if_failed(operation: dict[str, Any]) -> None:
        if operation.get("done") and operation.get("error"):
            logger.error(
                "operation.failed",
                operation=operation.get("name"),
                error=operation["error"],
            )
            raise OperationFailed("operation-failed", detail=operation["error"])
