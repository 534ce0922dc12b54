"""
Telephony provider configuration.

Credentials, host selection and polling defaults are read from the
environment once and handed to the dispatcher and orchestrator explicitly.
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from callflow.telephony.signing import Credentials

PRODUCTION_HOST = "api.zadarma.com"
SANDBOX_HOST = "api-sandbox.zadarma.com"


class ProviderType(str, Enum):
    """Supported telephony provider types."""

    ZADARMA = "zadarma"
    MOCK = "mock"


class TelephonyConfig(BaseSettings):
    """Telephony provider configuration from environment."""

    model_config = SettingsConfigDict(
        env_prefix="TELEPHONY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider selection
    provider_type: ProviderType = Field(default=ProviderType.ZADARMA)

    # Provider credentials
    api_key: str = Field(default="")
    api_secret: str = Field(default="", repr=False)

    # Host selection: explicit host wins over the sandbox flag
    sandbox: bool = Field(default=False)
    api_host: str = Field(default="")

    # Caller identity used when a request does not name one
    default_caller_id: str = Field(default="")

    # Synthesis readiness polling
    poll_max_attempts: int = Field(default=10, ge=1, le=120)
    poll_interval_seconds: float = Field(default=2.0, ge=0, le=60)

    request_timeout_seconds: float = Field(default=30.0, gt=0, le=300)

    def get_api_host(self) -> str:
        if self.api_host:
            return self.api_host
        return SANDBOX_HOST if self.sandbox else PRODUCTION_HOST

    def get_api_base_url(self) -> str:
        host = self.get_api_host().rstrip("/")
        if host.startswith(("http://", "https://")):
            return host
        return f"https://{host}"

    def credentials(self) -> Credentials:
        return Credentials(key=self.api_key, secret=self.api_secret)


def get_telephony_config() -> TelephonyConfig:
    return TelephonyConfig()
