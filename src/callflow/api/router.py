"""
FastAPI router for the voice call workflow and provider pass-through endpoints.

No business logic lives here: handlers validate input, call the orchestrator
or the provider API, and wrap the result. Failures propagate as typed
exceptions and are mapped to HTTP responses by the application.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from callflow.api.schemas import CallbackRequest, SmsRequest, VoiceCallWorkflowRequest
from callflow.shared.exceptions import InvalidInput
from callflow.shared.logging import get_logger, mask
from callflow.telephony.api import ProviderAPI
from callflow.telephony.config import TelephonyConfig
from callflow.telephony.factory import get_call_orchestrator, get_provider_api, get_telephony_config
from callflow.telephony.interface import ProviderRejectedError, RemoteResult
from callflow.workflows.voice_call import CallOrchestrator

logger = get_logger(__name__)

router = APIRouter(tags=["telephony"])

ProviderAPIDep = Annotated[ProviderAPI, Depends(get_provider_api)]
OrchestratorDep = Annotated[CallOrchestrator, Depends(get_call_orchestrator)]
TelephonyConfigDep = Annotated[TelephonyConfig, Depends(get_telephony_config)]

ENDPOINTS = {
    "voice_call_workflow": "POST /workflow/voice-call",
    "balance": "GET /api/balance",
    "callback": "POST /api/callback",
    "numbers": "GET /api/numbers",
    "sms": "POST /api/sms",
    "tariffs": "GET /api/tariffs",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _success(data: Any, **extra: Any) -> dict[str, Any]:
    return {"status": "success", "data": data, **extra, "timestamp": _now()}


def _require_success(result: RemoteResult, operation: str) -> Any:
    if not result.is_success:
        raise ProviderRejectedError(
            message=f"{operation} rejected by provider: {result.provider_message or 'unknown error'}",
            error_code=str(result.status_code),
            provider_response=result.payload,
        )
    return result.payload


@router.get("/")
async def index() -> dict[str, Any]:
    return {
        "status": "success",
        "message": "callflow service is running",
        "endpoints": ENDPOINTS,
    }


@router.post("/workflow/voice-call")
async def run_voice_call_workflow(
    body: VoiceCallWorkflowRequest,
    orchestrator: OrchestratorDep,
) -> dict[str, Any]:
    outcome = await orchestrator.run_voice_call_workflow(
        target_number=body.target_number,
        message=body.message,
        caller_identity=body.caller_identity,
    )
    return _success(outcome.to_dict())


@router.get("/api/balance")
async def get_balance(api: ProviderAPIDep) -> dict[str, Any]:
    result = await api.get_balance()
    return _success(_require_success(result, "Balance query"))


@router.post("/api/callback")
async def request_callback(
    body: CallbackRequest,
    api: ProviderAPIDep,
    config: TelephonyConfigDep,
) -> dict[str, Any]:
    phone_number = (body.phone_number or "").strip()
    if not phone_number:
        raise InvalidInput("Missing phone number (phone_number)", fields=["phone_number"])

    # The provider picks an outbound number itself for "auto".
    from_number = body.from_number or config.default_caller_id or "auto"
    logger.info("Requesting callback", extra={"to": mask(phone_number, keep=4)})

    result = await api.request_callback(from_number, phone_number, predicted=False)
    return _success(
        _require_success(result, "Callback request"),
        contact_name=body.contact_name or "unknown",
    )


@router.get("/api/numbers")
async def get_numbers(api: ProviderAPIDep) -> dict[str, Any]:
    result = await api.get_numbers()
    return _success(_require_success(result, "Numbers query"))


@router.post("/api/sms")
async def send_sms(body: SmsRequest, api: ProviderAPIDep) -> dict[str, Any]:
    missing = [name for name in ("number", "message") if not (getattr(body, name) or "").strip()]
    if missing:
        raise InvalidInput("Missing phone number or message text", fields=missing)

    result = await api.send_sms(body.number, body.message)
    return _success(_require_success(result, "SMS send"))


@router.get("/api/tariffs")
async def get_tariffs(api: ProviderAPIDep) -> dict[str, Any]:
    result = await api.get_tariffs()
    return _success(_require_success(result, "Tariff query"))
