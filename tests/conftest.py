"""Pytest fixtures and port fakes for pkg_session tests."""

from __future__ import annotations

import asyncio
from typing import Any, List

import jwt
import pytest
import pytest_asyncio

from pkg_session import (
    Endpoints,
    InMemoryCredentialStore,
    JWTClaimsDecoder,
    RenewalConfig,
    ResponseKeys,
    SessionController,
    TokenPair,
    TransportRequest,
    TransportResponse,
)

NOW = 1_700_000_000.0
SECRET = "pkg-session-test-secret-long-enough-for-hs256"


def make_token(exp_offset: float | None, now: float = NOW, **claims: Any) -> str:
    """Mint a JWT whose `exp` is `now + exp_offset` (no exp when None)."""
    payload: dict[str, Any] = {"sub": "user-1", **claims}
    if exp_offset is not None:
        payload["exp"] = int(now + exp_offset)
    return jwt.encode(payload, SECRET, algorithm="HS256")


class FakeScheduler:
    """Frozen clock; the checker loop parks so tests drive `tick()` themselves."""

    def __init__(self, now: float = NOW) -> None:
        self.current = now
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        await asyncio.Event().wait()


class ScriptedTransport:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, *outcomes: Any) -> None:
        self.requests: List[TransportRequest] = []
        self._outcomes = list(outcomes)
        self.default = TransportResponse(status=200, body={})

    def queue(self, *outcomes: Any) -> None:
        self._outcomes.extend(outcomes)

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        outcome = self._outcomes.pop(0) if self._outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def calls_to(self, endpoint: str) -> List[TransportRequest]:
        return [r for r in self.requests if r.url.endswith("/" + endpoint)]


@pytest.fixture
def config() -> RenewalConfig:
    return RenewalConfig(
        base_url="https://api.example.com",
        endpoints=Endpoints(check="auth/check", refresh="auth/refresh"),
        keys=ResponseKeys(access="accessToken", refresh="refreshToken"),
        expected_status=401,
        max_attempts=2,
    )


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest_asyncio.fixture
async def build(config, scheduler, transport, store):
    """Factory for controllers wired to the fakes; checkers are stopped afterwards."""
    built: List[SessionController] = []

    def _build(
        access: str | None = None,
        refresh: str | None = None,
        **kwargs: Any,
    ) -> SessionController:
        kwargs.setdefault("config", config)
        kwargs.setdefault("transport", transport)
        kwargs.setdefault("scheduler", scheduler)
        controller = SessionController(
            decoder=JWTClaimsDecoder(),
            store=store,
            tokens=TokenPair(access=access, refresh=refresh),
            **kwargs,
        )
        built.append(controller)
        return controller

    yield _build

    for controller in built:
        await controller.close()
