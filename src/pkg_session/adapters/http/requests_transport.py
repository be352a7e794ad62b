from __future__ import annotations

import asyncio
from typing import Any, Optional

import requests
from requests import Session

from ...domain.constants import ResponseFormat
from ...domain.exceptions import ConnectivityError, ProtocolError
from ...domain.ports import Transport
from ...domain.value_objects import TransportRequest, TransportResponse


class RequestsTransport(Transport):
    """
    Transport for hosts already built on `requests`.

    The blocking call runs in a worker thread so the event loop driving the
    session controller never stalls.
    """

    def __init__(self, session: Optional[Session] = None, *, timeout: float = 30.0) -> None:
        self._owns_session = session is None
        self._session = session or Session()
        self._timeout = timeout

    async def close(self) -> None:
        if self._owns_session:
            self._session.close()

    async def send(self, request: TransportRequest) -> TransportResponse:
        return await asyncio.to_thread(self._send_sync, request)

    def _send_sync(self, request: TransportRequest) -> TransportResponse:
        kwargs: dict[str, Any] = {}
        if request.body is not None:
            content_type = next(
                (v.lower() for k, v in request.headers.items() if k.lower() == "content-type"),
                "application/json",
            )
            if "json" in content_type:
                kwargs["json"] = dict(request.body)
            else:
                kwargs["data"] = dict(request.body)

        try:
            resp = self._session.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                timeout=self._timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise ConnectivityError(f"Could not reach {request.url}: {e}") from e

        if not 200 <= resp.status_code < 300:
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
