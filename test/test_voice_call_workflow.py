"""Tests for the voice call orchestration workflow (mock provider, no network)."""

from __future__ import annotations

import pytest

from callflow.shared.exceptions import InvalidInput
from callflow.telephony.api import (
    CALLBACK_PATH,
    SYNTHESIS_PATH,
    SYNTHESIS_STATUS_PATH,
    ProviderAPI,
)
from callflow.telephony.interface import DecodeError, ReadinessState, TransportError
from callflow.telephony.mock_adapter import MockProviderDispatcher
from callflow.telephony.poller import ResourceReadinessPoller
from callflow.workflows.errors import CallInitiationFailed, ResourceNotReady, SynthesisFailed
from callflow.workflows.voice_call import CallOrchestrator, OrchestrationOutcome, WorkflowStep


def _orchestrator(
    dispatcher: MockProviderDispatcher,
    sleep,
    max_attempts: int = 3,
    default_caller_id: str = "+15550000",
) -> CallOrchestrator:
    api = ProviderAPI(dispatcher)
    return CallOrchestrator(
        api,
        poller=ResourceReadinessPoller(api.get_synthesis_status, sleep=sleep),
        default_caller_id=default_caller_id,
        poll_max_attempts=max_attempts,
        poll_interval_seconds=1.0,
    )


class TestVoiceCallHappyPath:
    @pytest.mark.asyncio
    async def test_end_to_end_outcome(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        mock_dispatcher.queue_payload(SYNTHESIS_PATH, {"status": "success", "id": "r1"})
        mock_dispatcher.queue_payload(SYNTHESIS_STATUS_PATH, {"status": "success", "state": "ready"})
        mock_dispatcher.queue_payload(CALLBACK_PATH, {"status": "success", "call_id": "c1"})
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        outcome = await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert outcome.resource_id == "r1"
        assert outcome.call_id == "c1"
        assert outcome.poll_attempts == 1
        assert outcome.to_dict()["resourceId"] == "r1"
        assert outcome.to_dict()["callId"] == "c1"
        assert [s.step for s in outcome.steps] == [
            WorkflowStep.SUBMIT_SYNTHESIS,
            WorkflowStep.AWAIT_RESOURCE,
            WorkflowStep.ORIGINATE_CALL,
        ]
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_requests_issued_in_order_with_expected_params(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        mock_dispatcher.queue_payload(SYNTHESIS_PATH, {"status": "success", "id": "r1"})
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        await orchestrator.run_voice_call_workflow("+15551234", "Hello", caller_identity="+15559999")

        requests = mock_dispatcher.requests
        assert [r.path for r in requests] == [SYNTHESIS_PATH, SYNTHESIS_STATUS_PATH, CALLBACK_PATH]
        assert requests[0].params == {"text": "Hello"}
        assert requests[1].params == {"id": "r1"}
        assert requests[2].params == {
            "from": "+15559999",
            "predicted": "0",
            "sound": "r1",
            "to": "+15551234",
        }

    @pytest.mark.asyncio
    async def test_default_caller_identity_used(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert mock_dispatcher.requests_to(CALLBACK_PATH)[0].params["from"] == "+15550000"

    @pytest.mark.asyncio
    async def test_waits_through_pending_states(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        mock_dispatcher.queue_payload(SYNTHESIS_STATUS_PATH, {"status": "success", "state": "processing"})
        mock_dispatcher.queue_payload(SYNTHESIS_STATUS_PATH, {"status": "success", "state": "processing"})
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        outcome = await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert outcome.poll_attempts == 3
        assert recording_sleep.delays == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_missing_call_id_is_allowed(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        mock_dispatcher.queue_payload(CALLBACK_PATH, {"status": "success", "time": 1700000000})
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        outcome = await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert outcome.call_id is None

    @pytest.mark.asyncio
    async def test_independent_runs_have_identical_shapes(self, recording_sleep) -> None:
        first = await _orchestrator(MockProviderDispatcher(), recording_sleep).run_voice_call_workflow(
            "+15551234", "Hello"
        )
        second = await _orchestrator(MockProviderDispatcher(), recording_sleep).run_voice_call_workflow(
            "+15551234", "Hello"
        )

        assert isinstance(first, OrchestrationOutcome)
        assert first.to_dict().keys() == second.to_dict().keys()
        assert [s.step for s in first.steps] == [s.step for s in second.steps]
        assert first.run_id != second.run_id


class TestVoiceCallInputValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "target,message,missing",
        [
            ("", "Hello", ["targetNumber"]),
            ("+15551234", "   ", ["message"]),
            (None, None, ["targetNumber", "message"]),
        ],
    )
    async def test_missing_fields_rejected_before_remote_calls(
        self,
        target,
        message,
        missing,
        mock_dispatcher: MockProviderDispatcher,
        recording_sleep,
    ) -> None:
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        with pytest.raises(InvalidInput) as exc_info:
            await orchestrator.run_voice_call_workflow(target, message)

        assert exc_info.value.fields == missing
        assert mock_dispatcher.requests == []

    @pytest.mark.asyncio
    async def test_caller_identity_required_without_default(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep, default_caller_id="")

        with pytest.raises(InvalidInput) as exc_info:
            await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert exc_info.value.fields == ["callerIdentity"]
        assert mock_dispatcher.requests == []


class TestVoiceCallShortCircuit:
    @pytest.mark.asyncio
    async def test_synthesis_rejected_stops_pipeline(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        payload = {"status": "error", "message": "Text too long"}
        mock_dispatcher.queue_payload(SYNTHESIS_PATH, payload, status_code=400)
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        with pytest.raises(SynthesisFailed) as exc_info:
            await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert exc_info.value.step == "submit_synthesis"
        assert exc_info.value.provider_payload == payload
        assert exc_info.value.is_infrastructure is False
        assert "Text too long" in str(exc_info.value)
        assert mock_dispatcher.count(SYNTHESIS_STATUS_PATH) == 0
        assert mock_dispatcher.count(CALLBACK_PATH) == 0

    @pytest.mark.asyncio
    async def test_synthesis_without_resource_id_fails(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        mock_dispatcher.queue_payload(SYNTHESIS_PATH, {"status": "success"})
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        with pytest.raises(SynthesisFailed):
            await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert mock_dispatcher.count(SYNTHESIS_STATUS_PATH) == 0

    @pytest.mark.asyncio
    async def test_synthesis_transport_error_is_wrapped(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        mock_dispatcher.queue(SYNTHESIS_PATH, TransportError("Connection refused"))
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        with pytest.raises(SynthesisFailed) as exc_info:
            await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert isinstance(exc_info.value.cause, TransportError)
        assert exc_info.value.is_infrastructure is True
        assert exc_info.value.to_dict()["cause"]["error"] == "transport_error"
        assert mock_dispatcher.count(CALLBACK_PATH) == 0

    @pytest.mark.asyncio
    async def test_never_ready_gives_resource_not_ready_unknown(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        mock_dispatcher.queue_payload(SYNTHESIS_PATH, {"status": "success", "id": "r1"})
        for _ in range(3):
            mock_dispatcher.queue_payload(SYNTHESIS_STATUS_PATH, {"status": "success", "state": "processing"})
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep, max_attempts=3)

        with pytest.raises(ResourceNotReady) as exc_info:
            await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        error = exc_info.value
        assert error.state is ReadinessState.UNKNOWN
        assert error.step == "await_resource"
        assert error.run is not None and error.run.poll_attempts == 3
        assert error.to_dict()["state"] == "unknown"
        assert mock_dispatcher.count(SYNTHESIS_STATUS_PATH) == 3
        assert mock_dispatcher.count(CALLBACK_PATH) == 0

    @pytest.mark.asyncio
    async def test_provider_reported_failure(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        mock_dispatcher.queue_payload(SYNTHESIS_STATUS_PATH, {"status": "success", "state": "failed"})
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        with pytest.raises(ResourceNotReady) as exc_info:
            await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert exc_info.value.state is ReadinessState.FAILED
        assert exc_info.value.is_infrastructure is False
        assert mock_dispatcher.count(CALLBACK_PATH) == 0

    @pytest.mark.asyncio
    async def test_unreachable_status_endpoint_is_infrastructure(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        mock_dispatcher.queue(
            SYNTHESIS_STATUS_PATH,
            TransportError("timeout"),
            TransportError("timeout"),
            DecodeError("bad body", raw_body="<html>"),
        )
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep, max_attempts=3)

        with pytest.raises(ResourceNotReady) as exc_info:
            await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert exc_info.value.state is ReadinessState.UNKNOWN
        assert exc_info.value.is_infrastructure is True
        assert mock_dispatcher.count(CALLBACK_PATH) == 0

    @pytest.mark.asyncio
    async def test_call_rejected(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        payload = {"status": "error", "message": "Insufficient balance"}
        mock_dispatcher.queue_payload(CALLBACK_PATH, payload)
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        with pytest.raises(CallInitiationFailed) as exc_info:
            await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        error = exc_info.value
        assert error.step == "originate_call"
        assert error.provider_payload == payload
        assert error.run is not None
        assert error.run.resource_id == "MOCK_RES_000001"
        assert [s.ok for s in error.run.steps] == [True, True, False]

    @pytest.mark.asyncio
    async def test_call_decode_error_is_wrapped(
        self, mock_dispatcher: MockProviderDispatcher, recording_sleep
    ) -> None:
        mock_dispatcher.queue(CALLBACK_PATH, DecodeError("bad body", raw_body="oops", status_code=500))
        orchestrator = _orchestrator(mock_dispatcher, recording_sleep)

        with pytest.raises(CallInitiationFailed) as exc_info:
            await orchestrator.run_voice_call_workflow("+15551234", "Hello")

        assert isinstance(exc_info.value.cause, DecodeError)
        assert exc_info.value.to_dict()["cause"]["raw_body"] == "oops"
