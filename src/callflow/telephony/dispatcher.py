"""
Signed request dispatcher for the provider HTTP API.

One call to ``execute`` is one signed HTTP exchange. Results are returned
as-is; the provider's own success/error convention is interpreted by callers.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

import httpx

from callflow.shared.logging import get_logger, mask
from callflow.telephony.config import TelephonyConfig
from callflow.telephony.interface import (
    GET_LIKE_METHODS,
    DecodeError,
    RemoteResult,
    TransportError,
)
from callflow.telephony.signing import Credentials, SignedRequest, build_signed_request

logger = get_logger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class RequestDispatcher:
    """Executes signed requests against a fixed provider host.

    Uses httpx for HTTP requests. An injected client is never closed by the
    dispatcher.
    """

    def __init__(
        self,
        credentials: Credentials,
        base_url: str,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._credentials = credentials
        self._base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds)
        self._http_client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_config(
        cls,
        config: TelephonyConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> "RequestDispatcher":
        return cls(
            credentials=config.credentials(),
            base_url=config.get_api_base_url(),
            timeout_seconds=config.request_timeout_seconds,
            http_client=http_client,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _build_http_request(self, signed: SignedRequest) -> tuple[str, dict[str, str], bytes | None]:
        headers = {
            "Authorization": signed.authorization,
            "Accept": "application/json",
        }
        url = f"{self._base_url}{signed.path}"

        if signed.method in GET_LIKE_METHODS:
            if signed.encoded_params:
                url = f"{url}?{signed.encoded_params}"
            return url, headers, None

        body = signed.encoded_params.encode("utf-8")
        headers["Content-Type"] = FORM_CONTENT_TYPE
        headers["Content-Length"] = str(len(body))
        return url, headers, body

    async def execute(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> RemoteResult:
        """Sign and send one request, returning status code and decoded payload.

        Raises:
            TransportError: connection failure or timeout.
            DecodeError: response body is not valid JSON.
        """
        signed = build_signed_request(method, path, params, self._credentials)
        url, headers, body = self._build_http_request(signed)

        logger.debug(
            "Dispatching provider request",
            extra={
                "method": signed.method,
                "path": signed.path,
                "param_keys": sorted(signed.params),
                "api_key": mask(self._credentials.key),
            },
        )

        client = self._get_client()
        try:
            response = await client.request(
                signed.method,
                url,
                headers=headers,
                content=body,
            )
        except httpx.RequestError as e:
            logger.warning(
                "Provider request failed in transport",
                extra={"method": signed.method, "path": signed.path, "error": type(e).__name__},
            )
            raise TransportError(
                message=f"HTTP error: {e!s}",
                error_code="TIMEOUT" if isinstance(e, httpx.TimeoutException) else "HTTP_ERROR",
            ) from e

        raw_body = response.text
        try:
            payload = json.loads(raw_body)
        except ValueError as e:
            logger.error(
                "Provider response is not valid JSON",
                extra={
                    "method": signed.method,
                    "path": signed.path,
                    "status_code": response.status_code,
                },
            )
            raise DecodeError(
                message=f"Failed to decode provider response: {e!s}",
                raw_body=raw_body,
                status_code=response.status_code,
            ) from e

        logger.info(
            "Provider request completed",
            extra={
                "method": signed.method,
                "path": signed.path,
                "status_code": response.status_code,
            },
        )
        return RemoteResult(status_code=response.status_code, payload=payload)
