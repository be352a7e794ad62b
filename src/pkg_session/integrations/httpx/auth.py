from __future__ import annotations

from typing import Callable, Generator

import httpx

from ...application.session_controller import SessionController
from ...domain.constants import SessionEvent


class SessionBearerAuth(httpx.Auth):
    """
    httpx auth flow reading the access token from a SessionController on
    every request, so renewals are picked up without touching the client.

        client = httpx.AsyncClient(auth=SessionBearerAuth(controller))
    """

    def __init__(self, controller: SessionController) -> None:
        self._controller = controller

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._controller.tokens.access
        if token:
            prefix = self._controller.config.prefix or "Bearer"
            request.headers["Authorization"] = f"{prefix} {token}"
        yield request


def bind_client_headers(
        controller: SessionController,
        client: httpx.Client | httpx.AsyncClient,
) -> Callable[[], None]:
    """
    Keep `client.headers["Authorization"]` in step with the session.

    The header is set on every RENEWED event and dropped on EXPIRED.
    Returns a function that detaches both subscriptions.
    """

    def on_renewed() -> None:
        token = controller.tokens.access
        if token:
            prefix = controller.config.prefix or "Bearer"
            client.headers["Authorization"] = f"{prefix} {token}"

    def on_expired() -> None:
        client.headers.pop("Authorization", None)

    detach_renewed = controller.events.subscribe(SessionEvent.RENEWED, on_renewed)
    detach_expired = controller.events.subscribe(SessionEvent.EXPIRED, on_expired)
    on_renewed()

    def detach() -> None:
        detach_renewed()
        detach_expired()

    return detach
