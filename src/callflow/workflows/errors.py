"""
Workflow-level failures.

Each names the step that failed, the provider's raw payload when one was
received, and the classified error underneath when the step never got a
usable answer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from callflow.shared.exceptions import CallflowError
from callflow.telephony.interface import INFRASTRUCTURE_ERRORS, ReadinessState, TelephonyProviderError

if TYPE_CHECKING:  # pragma: no cover
    from callflow.workflows.voice_call import OrchestrationRun


class WorkflowError(CallflowError):
    """Base exception for a failed orchestration step."""

    kind = "workflow_error"

    def __init__(
        self,
        message: str,
        step: str,
        provider_payload: Any = None,
        cause: TelephonyProviderError | None = None,
        run: "OrchestrationRun | None" = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.provider_payload = provider_payload
        self.cause = cause
        self.run = run

    @property
    def is_infrastructure(self) -> bool:
        """True when the step failed because the provider was unreachable."""
        return isinstance(self.cause, INFRASTRUCTURE_ERRORS)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["step"] = self.step
        data["cause"] = self.cause.to_dict() if self.cause is not None else None
        data["provider_payload"] = self.provider_payload
        if self.run is not None:
            data["run"] = self.run.to_dict()
        return data


class SynthesisFailed(WorkflowError):
    kind = "synthesis_failed"


class ResourceNotReady(WorkflowError):
    """Polling ended in a terminal state other than ready."""

    kind = "resource_not_ready"

    def __init__(self, message: str, step: str, state: ReadinessState, **kwargs: Any) -> None:
        super().__init__(message, step, **kwargs)
        self.state = state

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["state"] = self.state.value
        return data


class CallInitiationFailed(WorkflowError):
    kind = "call_initiation_failed"
