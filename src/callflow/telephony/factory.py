"""
Telephony provider factory.

Single source of truth for configuration:
- use TelephonyConfig (Pydantic Settings) which loads from OS env + .env
- never read raw os.getenv("TELEPHONY_*") here
"""

from __future__ import annotations

from functools import lru_cache

from callflow.shared.logging import get_logger, mask
from callflow.telephony.api import ProviderAPI
from callflow.telephony.config import ProviderType, TelephonyConfig
from callflow.telephony.config import get_telephony_config as _get_settings_telephony_config
from callflow.telephony.dispatcher import RequestDispatcher
from callflow.telephony.interface import Dispatcher
from callflow.telephony.mock_adapter import MockProviderDispatcher
from callflow.workflows.voice_call import CallOrchestrator

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_telephony_config() -> TelephonyConfig:
    """Return cached TelephonyConfig loaded from OS env + .env."""
    return _get_settings_telephony_config()


@lru_cache(maxsize=1)
def get_dispatcher() -> Dispatcher:
    """Create and cache the dispatcher for the configured provider."""
    cfg = get_telephony_config()

    logger.info(
        "Telephony config resolved",
        extra={
            "provider_type": cfg.provider_type.value,
            "api_key": mask(cfg.api_key),
            "api_host": cfg.get_api_host(),
            "default_caller_id": mask(cfg.default_caller_id, keep=4),
            "poll_max_attempts": cfg.poll_max_attempts,
            "poll_interval_seconds": cfg.poll_interval_seconds,
        },
    )

    if cfg.provider_type == ProviderType.ZADARMA:
        return RequestDispatcher.from_config(cfg)

    if cfg.provider_type == ProviderType.MOCK:
        return MockProviderDispatcher()

    raise ValueError(f"Unsupported telephony provider_type: {cfg.provider_type}")


def get_provider_api() -> ProviderAPI:
    return ProviderAPI(get_dispatcher())


def get_call_orchestrator() -> CallOrchestrator:
    return CallOrchestrator.from_config(get_provider_api(), get_telephony_config())


async def close_dispatcher() -> None:
    """Release the cached dispatcher's connections, if one was built."""
    if get_dispatcher.cache_info().currsize:
        await get_dispatcher().aclose()
        get_dispatcher.cache_clear()
