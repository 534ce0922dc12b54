"""
Readiness polling for asynchronously produced provider resources.

pending -> pending   status query says not yet complete
pending -> ready     status query says complete
pending -> failed    status query says the provider gave up
pending -> unknown   attempts exhausted (we gave up)

Transport and decode failures on a single attempt count as a consumed,
non-terminal attempt.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import anyio

from callflow.shared.logging import get_logger
from callflow.telephony.interface import (
    INFRASTRUCTURE_ERRORS,
    PROVIDER_ERROR,
    ReadinessState,
    RemoteResult,
)

logger = get_logger(__name__)

StatusQuery = Callable[[str], Awaitable[RemoteResult]]
Sleep = Callable[[float], Awaitable[None]]

READY_STATES = frozenset({"ready", "done", "completed", "complete", "success"})
FAILED_STATES = frozenset({"failed", "error", "rejected", "cancelled", "canceled"})


def classify_readiness(result: RemoteResult) -> ReadinessState:
    """Derive the readiness of a resource from one status response."""
    payload = result.payload
    if not isinstance(payload, dict):
        return ReadinessState.PENDING
    if payload.get("status") == PROVIDER_ERROR:
        return ReadinessState.FAILED

    state = str(payload.get("state", "")).strip().lower()
    if state in READY_STATES:
        return ReadinessState.READY
    if state in FAILED_STATES:
        return ReadinessState.FAILED
    return ReadinessState.PENDING


@dataclass(frozen=True)
class PollReport:
    state: ReadinessState
    attempts: int
    last_result: RemoteResult | None = None
    last_error: Exception | None = None


class ResourceReadinessPoller:
    """Polls a status query until a terminal readiness state.

    Blocks the calling task for at most ``max_attempts * interval`` seconds of
    idle time plus request time; there is no separate wall-clock timeout.
    """

    def __init__(
        self,
        status_query: StatusQuery,
        classify: Callable[[RemoteResult], ReadinessState] = classify_readiness,
        sleep: Sleep = anyio.sleep,
    ) -> None:
        self._status_query = status_query
        self._classify = classify
        self._sleep = sleep

    async def wait_until_ready(
        self,
        resource_id: str,
        max_attempts: int,
        interval: float,
    ) -> ReadinessState:
        report = await self.poll(resource_id, max_attempts, interval)
        return report.state

    async def poll(
        self,
        resource_id: str,
        max_attempts: int,
        interval: float,
    ) -> PollReport:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if interval < 0:
            raise ValueError("interval must not be negative")

        last_result: RemoteResult | None = None
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                last_result = await self._status_query(resource_id)
                state = self._classify(last_result)
            except INFRASTRUCTURE_ERRORS as exc:
                last_error = exc
                state = ReadinessState.PENDING
                logger.warning(
                    "Readiness query failed; counting attempt",
                    extra={
                        "resource_id": resource_id,
                        "attempt": attempt,
                        "error": exc.kind,
                    },
                )

            if state.is_terminal:
                logger.info(
                    "Resource reached terminal state",
                    extra={"resource_id": resource_id, "state": state.value, "attempts": attempt},
                )
                return PollReport(state, attempt, last_result, last_error)

            if attempt < max_attempts:
                await self._sleep(interval)

        logger.warning(
            "Resource readiness unknown; attempts exhausted",
            extra={"resource_id": resource_id, "attempts": max_attempts},
        )
        return PollReport(ReadinessState.UNKNOWN, max_attempts, last_result, last_error)
