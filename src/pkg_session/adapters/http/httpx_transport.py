from __future__ import annotations

from typing import Any, Optional

import httpx

from ...domain.constants import ResponseFormat
from ...domain.exceptions import ConnectivityError, ProtocolError
from ...domain.ports import Transport
from ...domain.value_objects import TransportRequest, TransportResponse


class HttpxTransport(Transport):
    """
    Async transport built on httpx.

    - sends JSON bodies as JSON, mappings with any other content type as form data
    - parses 2xx bodies as JSON or text, returns only the status otherwise
    - maps transport-level failures to ConnectivityError
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        verify_ssl: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(verify=verify_ssl, timeout=timeout)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def send(self, request: TransportRequest) -> TransportResponse:
        kwargs: dict[str, Any] = {}
        if request.body is not None:
            content_type = _content_type(request)
            if "json" in content_type:
                kwargs["json"] = dict(request.body)
            else:
                kwargs["data"] = dict(request.body)

        try:
            resp = await self._client.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                **kwargs,
            )
        except httpx.RequestError as e:
            raise ConnectivityError(f"Could not reach {request.url}: {e}") from e

        if not resp.is_success:
            return TransportResponse(status=resp.status_code)

        if request.response_format is ResponseFormat.TEXT:
            return TransportResponse(status=resp.status_code, body=resp.text)

        try:
            body = resp.json() if resp.content else None
        except ValueError as e:
            raise ProtocolError(
                resp.status_code,
                message=f"Response from {request.url} is not valid JSON",
            ) from e
        return TransportResponse(status=resp.status_code, body=body)


def _content_type(request: TransportRequest) -> str:
    for key, value in request.headers.items():
        if key.lower() == "content-type":
            return value.lower()
    return "application/json"
