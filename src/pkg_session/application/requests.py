from __future__ import annotations

from typing import Any, Mapping, Optional

from ..domain.constants import BODY_METHODS, TokenKind
from ..domain.value_objects import RenewalConfig, TransportRequest


def build_headers(config: RenewalConfig, bearer_token: str) -> dict[str, str]:
    """
    Caller headers (minus any Authorization header) + Authorization +
    Content-Type.
    """
    headers = {
        key: value
        for key, value in config.headers.items()
        if key.lower() not in ("authorization", "content-type")
    }
    headers["Authorization"] = f"{config.prefix or 'Bearer'} {bearer_token}"
    headers["Content-Type"] = config.content_type
    return headers


def build_request(
    config: RenewalConfig,
    kind: TokenKind,
    bearer_token: str,
    body: Optional[Mapping[str, Any]] = None,
) -> TransportRequest:
    """
    Build the request for the check (`TokenKind.ACCESS`) or refresh
    (`TokenKind.REFRESH`) endpoint.

    The body is only attached for methods that carry one.
    """
    if kind is TokenKind.ACCESS:
        endpoint, method = config.endpoints.check, config.methods.check
    else:
        endpoint, method = config.endpoints.refresh or "", config.methods.refresh

    return TransportRequest(
        method=method,
        url=config.url_for(endpoint),
        headers=build_headers(config, bearer_token),
        body=dict(body or {}) if method in BODY_METHODS else None,
        response_format=config.response_format,
    )


def refresh_body(config: RenewalConfig, refresh_token: str) -> dict[str, Any]:
    """Configured refresh body with the refresh token merged in."""
    return {**config.bodies.refresh, config.keys.refresh: refresh_token}
