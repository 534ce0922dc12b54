"""
Mock provider dispatcher for testing and local runs.

Answers every provider path in memory with happy-path payloads unless a
response or failure has been queued for that path.
"""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Mapping

from callflow.shared.logging import get_logger
from callflow.telephony import api as provider_api
from callflow.telephony.interface import RemoteResult, TransportError
from callflow.telephony.signing import canonicalize_params

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecordedRequest:
    method: str
    path: str
    params: dict[str, str]


class MockProviderDispatcher:
    """In-memory stand-in for RequestDispatcher."""

    def __init__(self) -> None:
        self._requests: list[RecordedRequest] = []
        self._queued: dict[str, deque[RemoteResult | Exception]] = defaultdict(deque)
        self._next_resource_id: int = 1
        self._next_call_id: int = 1
        self._should_fail: bool = False
        self._fail_error: str = "Mock failure"

    def reset(self) -> None:
        self._requests.clear()
        self._queued.clear()
        self._next_resource_id = 1
        self._next_call_id = 1
        self._should_fail = False
        self._fail_error = "Mock failure"

    def configure_failure(
        self,
        should_fail: bool = True,
        error_message: str = "Mock failure",
    ) -> None:
        """Make every request fail with a TransportError."""
        self._should_fail = should_fail
        self._fail_error = error_message

    def queue(self, path: str, *responses: RemoteResult | Exception) -> None:
        """Queue responses (or exceptions to raise) for the next requests to ``path``."""
        self._queued[path].extend(responses)

    def queue_payload(self, path: str, payload: Any, status_code: int = 200) -> None:
        self.queue(path, RemoteResult(status_code=status_code, payload=payload))

    @property
    def requests(self) -> list[RecordedRequest]:
        return self._requests.copy()

    def requests_to(self, path: str) -> list[RecordedRequest]:
        return [r for r in self._requests if r.path == path]

    def count(self, path: str) -> int:
        return len(self.requests_to(path))

    async def aclose(self) -> None:
        return None

    async def execute(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> RemoteResult:
        request = RecordedRequest(method.upper(), path, canonicalize_params(params))
        self._requests.append(request)
        logger.info("Mock: provider request", extra={"method": request.method, "path": path})

        if self._should_fail:
            raise TransportError(message=self._fail_error, error_code="MOCK_ERROR")

        queued = self._queued.get(path)
        if queued:
            item = queued.popleft()
            if isinstance(item, Exception):
                raise item
            return item

        return RemoteResult(status_code=200, payload=self._default_payload(request))

    def _default_payload(self, request: RecordedRequest) -> dict[str, Any]:
        if request.path == provider_api.SYNTHESIS_PATH:
            resource_id = f"MOCK_RES_{self._next_resource_id:06d}"
            self._next_resource_id += 1
            return {"status": "success", "id": resource_id}
        if request.path == provider_api.SYNTHESIS_STATUS_PATH:
            return {"status": "success", "id": request.params.get("id"), "state": "ready"}
        if request.path == provider_api.CALLBACK_PATH:
            call_id = f"MOCK_CALL_{self._next_call_id:06d}"
            self._next_call_id += 1
            return {
                "status": "success",
                "call_id": call_id,
                "from": request.params.get("from"),
                "to": request.params.get("to"),
            }
        if request.path == provider_api.BALANCE_PATH:
            return {"status": "success", "balance": 10.0, "currency": "USD"}
        if request.path == provider_api.NUMBERS_PATH:
            return {"status": "success", "info": []}
        if request.path == provider_api.TARIFF_PATH:
            return {"status": "success", "info": {"tariff_name": "mock"}}
        if request.path == provider_api.SMS_PATH:
            return {"status": "success", "messages": 1, "cost": 0.0}
        return {"status": "error", "message": f"Unknown mock path {request.path}"}
