"""
Voice call workflow.

Synthesize a message, wait for the audio to be ready, then call the target
and play it. Steps run strictly in order and the first failure ends the run.
Nothing is rolled back: a synthesized but unused resource is left on the
provider, which has no cancellation primitive for finished synthesis jobs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

from callflow.shared.exceptions import InvalidInput
from callflow.shared.logging import get_logger, mask
from callflow.telephony.api import CALL_ID_KEYS, RESOURCE_ID_KEYS, ProviderAPI, first_present
from callflow.telephony.config import TelephonyConfig
from callflow.telephony.interface import INFRASTRUCTURE_ERRORS, ReadinessState, RemoteResult
from callflow.telephony.poller import ResourceReadinessPoller
from callflow.workflows.errors import CallInitiationFailed, ResourceNotReady, SynthesisFailed

logger = get_logger(__name__)


class WorkflowStep(str, Enum):
    SUBMIT_SYNTHESIS = "submit_synthesis"
    AWAIT_RESOURCE = "await_resource"
    ORIGINATE_CALL = "originate_call"


@dataclass(frozen=True)
class StepRecord:
    step: WorkflowStep
    ok: bool
    payload: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"step": self.step.value, "ok": self.ok, "payload": self.payload}


@dataclass
class OrchestrationRun:
    """Transient state of one workflow execution. Never persisted."""

    run_id: str = field(default_factory=lambda: uuid4().hex)
    resource_id: str | None = None
    poll_attempts: int = 0
    steps: list[StepRecord] = field(default_factory=list)

    def record(self, step: WorkflowStep, ok: bool, payload: Any = None) -> None:
        self.steps.append(StepRecord(step, ok, payload))

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "resourceId": self.resource_id,
            "pollAttempts": self.poll_attempts,
            "steps": [s.to_dict() for s in self.steps],
        }


@dataclass(frozen=True)
class OrchestrationOutcome:
    run_id: str
    resource_id: str
    call_id: str | None
    poll_attempts: int
    steps: tuple[StepRecord, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "resourceId": self.resource_id,
            "callId": self.call_id,
            "pollAttempts": self.poll_attempts,
            "steps": [s.to_dict() for s in self.steps],
        }


def _payload_of(result: RemoteResult | None) -> Any:
    return result.payload if result is not None else None


class CallOrchestrator:
    """Runs the synthesize -> await -> call pipeline.

    Holds no per-run state, so one instance can serve concurrent runs.
    """

    def __init__(
        self,
        api: ProviderAPI,
        poller: ResourceReadinessPoller | None = None,
        default_caller_id: str = "",
        poll_max_attempts: int = 10,
        poll_interval_seconds: float = 2.0,
    ) -> None:
        self._api = api
        self._poller = poller or ResourceReadinessPoller(api.get_synthesis_status)
        self._default_caller_id = default_caller_id
        self._poll_max_attempts = poll_max_attempts
        self._poll_interval = poll_interval_seconds

    @classmethod
    def from_config(cls, api: ProviderAPI, config: TelephonyConfig) -> "CallOrchestrator":
        return cls(
            api,
            default_caller_id=config.default_caller_id,
            poll_max_attempts=config.poll_max_attempts,
            poll_interval_seconds=config.poll_interval_seconds,
        )

    def _validate(
        self,
        target_number: str | None,
        message: str | None,
        caller_identity: str | None,
    ) -> tuple[str, str, str]:
        target = (target_number or "").strip()
        text = (message or "").strip()
        caller = (caller_identity or "").strip() or self._default_caller_id.strip()

        missing = []
        if not target:
            missing.append("targetNumber")
        if not text:
            missing.append("message")
        if not caller:
            missing.append("callerIdentity")
        if missing:
            raise InvalidInput(
                f"Missing required fields: {', '.join(missing)}",
                fields=missing,
            )
        return target, text, caller

    async def run_voice_call_workflow(
        self,
        target_number: str | None,
        message: str | None,
        caller_identity: str | None = None,
    ) -> OrchestrationOutcome:
        target, text, caller = self._validate(target_number, message, caller_identity)
        run = OrchestrationRun()

        logger.info(
            "Voice call workflow started",
            extra={"run_id": run.run_id, "target_number": mask(target, keep=4)},
        )

        resource_id = await self._submit_synthesis(run, text)
        await self._await_resource(run, resource_id)
        call_id = await self._originate_call(run, caller, target, resource_id)

        logger.info(
            "Voice call workflow completed",
            extra={
                "run_id": run.run_id,
                "resource_id": resource_id,
                "call_id": call_id,
                "poll_attempts": run.poll_attempts,
            },
        )
        return OrchestrationOutcome(
            run_id=run.run_id,
            resource_id=resource_id,
            call_id=call_id,
            poll_attempts=run.poll_attempts,
            steps=tuple(run.steps),
        )

    async def _submit_synthesis(self, run: OrchestrationRun, text: str) -> str:
        step = WorkflowStep.SUBMIT_SYNTHESIS
        try:
            result = await self._api.submit_synthesis(text)
        except INFRASTRUCTURE_ERRORS as e:
            run.record(step, ok=False)
            raise SynthesisFailed(
                f"Synthesis submission failed: {e.message}",
                step.value,
                cause=e,
                run=run,
            ) from e

        resource_id = first_present(result.payload, RESOURCE_ID_KEYS)
        if not result.is_success or resource_id is None:
            run.record(step, ok=False, payload=result.payload)
            reason = result.provider_message or (
                "no resource identifier in response" if result.is_success else "provider rejected synthesis"
            )
            logger.warning(
                "Synthesis submission rejected",
                extra={"run_id": run.run_id, "status_code": result.status_code},
            )
            raise SynthesisFailed(
                f"Synthesis submission failed: {reason}",
                step.value,
                provider_payload=result.payload,
                run=run,
            )

        run.resource_id = resource_id
        run.record(step, ok=True, payload=result.payload)
        return resource_id

    async def _await_resource(self, run: OrchestrationRun, resource_id: str) -> None:
        step = WorkflowStep.AWAIT_RESOURCE
        report = await self._poller.poll(resource_id, self._poll_max_attempts, self._poll_interval)
        run.poll_attempts = report.attempts
        payload = _payload_of(report.last_result)

        if report.state is not ReadinessState.READY:
            run.record(step, ok=False, payload=payload)
            # Only blame infrastructure when no status answer ever arrived.
            cause = report.last_error if report.last_result is None else None
            raise ResourceNotReady(
                f"Resource {resource_id} not ready: {report.state.value}",
                step.value,
                state=report.state,
                provider_payload=payload,
                cause=cause,
                run=run,
            )

        run.record(step, ok=True, payload=payload)

    async def _originate_call(
        self,
        run: OrchestrationRun,
        caller: str,
        target: str,
        resource_id: str,
    ) -> str | None:
        step = WorkflowStep.ORIGINATE_CALL
        try:
            result = await self._api.originate_call(caller, target, resource_id)
        except INFRASTRUCTURE_ERRORS as e:
            run.record(step, ok=False)
            raise CallInitiationFailed(
                f"Call initiation failed: {e.message}",
                step.value,
                cause=e,
                run=run,
            ) from e

        if not result.is_success:
            run.record(step, ok=False, payload=result.payload)
            raise CallInitiationFailed(
                f"Call initiation failed: {result.provider_message or 'provider rejected call'}",
                step.value,
                provider_payload=result.payload,
                run=run,
            )

        run.record(step, ok=True, payload=result.payload)
        return first_present(result.payload, CALL_ID_KEYS)
