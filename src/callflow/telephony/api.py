"""
Logical provider operations on top of the signed dispatcher.

Each method maps to one remote endpoint and returns the dispatcher's
RemoteResult unchanged.
"""

from __future__ import annotations

from typing import Any

from callflow.telephony.interface import Dispatcher, RemoteResult

BALANCE_PATH = "/v1/info/balance/"
NUMBERS_PATH = "/v1/info/numbers/"
TARIFF_PATH = "/v1/tariff/"
CALLBACK_PATH = "/v1/request/callback/"
SMS_PATH = "/v1/sms/send/"
SYNTHESIS_PATH = "/v1/speech/synthesize/"
SYNTHESIS_STATUS_PATH = "/v1/speech/status/"

RESOURCE_ID_KEYS = ("id", "resource_id", "file_id")
CALL_ID_KEYS = ("call_id", "pbx_call_id", "id")


def first_present(payload: Any, keys: tuple[str, ...]) -> str | None:
    """Return the first non-empty value among ``keys`` of a dict payload."""
    if not isinstance(payload, dict):
        return None
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return str(value)
    return None


class ProviderAPI:
    """Provider endpoints used by the service."""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    # Speech synthesis

    async def submit_synthesis(
        self,
        text: str,
        language: str | None = None,
        voice: str | None = None,
    ) -> RemoteResult:
        return await self._dispatcher.execute(
            "POST",
            SYNTHESIS_PATH,
            {"text": text, "language": language, "voice": voice},
        )

    async def get_synthesis_status(self, resource_id: str) -> RemoteResult:
        return await self._dispatcher.execute(
            "GET",
            SYNTHESIS_STATUS_PATH,
            {"id": resource_id},
        )

    # Calls

    async def originate_call(
        self,
        caller_id: str,
        target_number: str,
        resource_id: str,
    ) -> RemoteResult:
        """Start a call to ``target_number`` that plays ``resource_id``."""
        return await self.request_callback(
            caller_id,
            target_number,
            predicted=False,
            sound=resource_id,
        )

    async def request_callback(
        self,
        from_number: str,
        to_number: str,
        predicted: bool = False,
        sound: str | None = None,
    ) -> RemoteResult:
        return await self._dispatcher.execute(
            "POST",
            CALLBACK_PATH,
            {
                "from": from_number,
                "to": to_number,
                "predicted": predicted,
                "sound": sound,
            },
        )

    # Account

    async def get_balance(self) -> RemoteResult:
        return await self._dispatcher.execute("GET", BALANCE_PATH)

    async def get_numbers(self) -> RemoteResult:
        return await self._dispatcher.execute("GET", NUMBERS_PATH)

    async def get_tariffs(self) -> RemoteResult:
        return await self._dispatcher.execute("GET", TARIFF_PATH)

    async def send_sms(self, number: str, message: str) -> RemoteResult:
        return await self._dispatcher.execute(
            "POST",
            SMS_PATH,
            {"number": number, "message": message},
        )
