"""
Request signing for the provider API.

The provider verifies every request against this exact canonical form:

    METHOD + path + urlencoded(sorted params) + md5hex(urlencoded) + key

HMAC-SHA1 over that string, keyed with the secret, base64 encoded. MD5 here is
a checksum term the verifier expects, not a security control.

The provider's published examples disagree on details (digest term, hex vs.
raw HMAC before base64). Re-check against current provider documentation
before changing anything below; the regression vector lives in
test/test_signing.py.
"""

from __future__ import annotations

import hashlib
import hmac
from base64 import b64encode
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

from callflow.shared.logging import mask


@dataclass(frozen=True)
class Credentials:
    """API key pair. The secret is only ever used as HMAC key material."""

    key: str
    secret: str = field(repr=False)

    def __repr__(self) -> str:
        return f"Credentials(key={mask(self.key)!r}, secret='***')"


@dataclass(frozen=True)
class SignedRequest:
    """A request ready to be transmitted. Never mutated after construction."""

    method: str
    path: str
    params: dict[str, str]
    encoded_params: str
    signature: str = field(repr=False)
    key: str = field(repr=False)

    @property
    def authorization(self) -> str:
        return f"{self.key}:{self.signature}"


def _coerce(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def canonicalize_params(params: Mapping[str, Any] | None) -> dict[str, str]:
    """Return params as a string-valued dict ordered by raw key codepoints.

    ``None`` values are dropped so optional fields can be passed through
    unconditionally.
    """
    if not params:
        return {}
    return {
        str(key): _coerce(params[key])
        for key in sorted(params, key=str)
        if params[key] is not None
    }


def encode_params(canonical: Mapping[str, str]) -> str:
    """Form-encode an already canonical mapping (empty mapping -> "")."""
    return urlencode(list(canonical.items()))


def _signature(method: str, path: str, encoded: str, credentials: Credentials) -> str:
    digest = hashlib.md5(encoded.encode("utf-8")).hexdigest()
    signing_input = f"{method.upper()}{path}{encoded}{digest}{credentials.key}"
    mac = hmac.new(
        credentials.secret.encode("utf-8"),
        signing_input.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return b64encode(mac).decode("ascii")


def sign(
    method: str,
    path: str,
    params: Mapping[str, Any] | None,
    credentials: Credentials,
) -> str:
    """Derive the request signature. Total over any input."""
    encoded = encode_params(canonicalize_params(params))
    return _signature(method, path, encoded, credentials)


def build_signed_request(
    method: str,
    path: str,
    params: Mapping[str, Any] | None,
    credentials: Credentials,
) -> SignedRequest:
    canonical = canonicalize_params(params)
    encoded = encode_params(canonical)
    return SignedRequest(
        method=method.upper(),
        path=path,
        params=canonical,
        encoded_params=encoded,
        signature=_signature(method, path, encoded, credentials),
        key=credentials.key,
    )
