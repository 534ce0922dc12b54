"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import pytest

from callflow.telephony.api import ProviderAPI
from callflow.telephony.config import ProviderType, TelephonyConfig
from callflow.telephony.mock_adapter import MockProviderDispatcher
from callflow.telephony.signing import Credentials


class RecordingSleep:
    """Stands in for anyio.sleep and remembers requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(key="testkey", secret="testsecret")


@pytest.fixture
def telephony_config() -> TelephonyConfig:
    return TelephonyConfig(
        provider_type=ProviderType.MOCK,
        api_key="testkey",
        api_secret="testsecret",
        sandbox=True,
        default_caller_id="+15550000",
        poll_max_attempts=3,
        poll_interval_seconds=0,
        request_timeout_seconds=5,
    )


@pytest.fixture
def mock_dispatcher() -> MockProviderDispatcher:
    return MockProviderDispatcher()


@pytest.fixture
def provider_api(mock_dispatcher: MockProviderDispatcher) -> ProviderAPI:
    return ProviderAPI(mock_dispatcher)
