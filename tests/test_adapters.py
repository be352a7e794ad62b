"""Tests for the claims decoder, credential stores and transports."""

from __future__ import annotations

import json
import time
from unittest.mock import MagicMock

import httpx
import pytest
import requests

from conftest import NOW, make_token
from pkg_session import (
    AsyncioScheduler,
    ConfigurationError,
    ConnectivityError,
    DecodeError,
    HttpxTransport,
    InMemoryCredentialStore,
    JsonFileCredentialStore,
    JWTClaimsDecoder,
    ProtocolError,
    RequestsTransport,
    ResponseFormat,
    SessionController,
    StorageTier,
    TokenPair,
    TransportRequest,
)


# ---------------------------------------------------------------------- #
# JWTClaimsDecoder
# ---------------------------------------------------------------------- #


def test_decoder_reads_claims_without_verifying():
    token = make_token(-3600, role="admin")

    claims = JWTClaimsDecoder().decode(token)

    assert claims["exp"] == int(NOW - 3600)
    assert claims["role"] == "admin"


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c", None])
def test_decoder_rejects_malformed_tokens(token):
    with pytest.raises(DecodeError):
        JWTClaimsDecoder().decode(token)


# ---------------------------------------------------------------------- #
# Credential stores
# ---------------------------------------------------------------------- #


def test_memory_store_tiers():
    store = InMemoryCredentialStore()
    store.set(StorageTier.SESSION, "k", "session-value")
    store.set(StorageTier.DURABLE, "k", "durable-value")

    assert store.get("k") == "durable-value"
    assert store.contains(StorageTier.SESSION, "k")
    assert not store.contains(StorageTier.DURABLE, "other")

    store.remove("k")
    assert store.get("k") is None
    assert not store.contains(StorageTier.SESSION, "k")


def test_file_store_durable_tier_survives_instances(tmp_path):
    path = tmp_path / "state" / "tokens.json"
    store = JsonFileCredentialStore(path)
    store.set(StorageTier.DURABLE, "auth-key", "durable")
    store.set(StorageTier.SESSION, "auth-key-refresh", "session-only")

    reopened = JsonFileCredentialStore(path)

    assert reopened.get("auth-key") == "durable"
    assert reopened.contains(StorageTier.DURABLE, "auth-key")
    assert reopened.get("auth-key-refresh") is None
    assert json.loads(path.read_text()) == {"auth-key": "durable"}
    assert (path.stat().st_mode & 0o777) == 0o600


def test_file_store_remove_clears_both_tiers(tmp_path):
    store = JsonFileCredentialStore(tmp_path / "tokens.json")
    store.set(StorageTier.DURABLE, "k", "d")
    store.set(StorageTier.SESSION, "k", "s")

    store.remove("k")

    assert store.get("k") is None
    assert json.loads((tmp_path / "tokens.json").read_text()) == {}


def test_file_store_rejects_corrupt_file(tmp_path):
    path = tmp_path / "tokens.json"
    path.write_text("{not json")

    with pytest.raises(ConfigurationError):
        JsonFileCredentialStore(path).get("k")


def test_file_store_missing_file_is_empty(tmp_path):
    store = JsonFileCredentialStore(tmp_path / "missing.json")
    assert store.get("k") is None
    assert not store.contains(StorageTier.DURABLE, "k")


# ---------------------------------------------------------------------- #
# HttpxTransport
# ---------------------------------------------------------------------- #


def _request(**overrides) -> TransportRequest:
    values = dict(
        method="POST",
        url="https://api.example.com/auth/refresh",
        headers={"Authorization": "Bearer rt", "Content-Type": "application/json"},
        body={"refresh": "rt"},
    )
    values.update(overrides)
    return TransportRequest(**values)


@pytest.mark.asyncio
async def test_httpx_transport_sends_json_and_parses_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"access": "new"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        response = await HttpxTransport(client).send(_request())

    assert response.status == 200
    assert response.body == {"access": "new"}
    assert seen == {"method": "POST", "auth": "Bearer rt", "body": {"refresh": "rt"}}


@pytest.mark.asyncio
async def test_httpx_transport_sends_form_bodies():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content.decode()
        return httpx.Response(200, text="token-value")

    headers = {"Authorization": "Bearer rt", "Content-Type": "application/x-www-form-urlencoded"}
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        response = await HttpxTransport(client).send(
            _request(headers=headers, response_format=ResponseFormat.TEXT)
        )

    assert seen["body"] == "refresh=rt"
    assert response.body == "token-value"


@pytest.mark.asyncio
async def test_httpx_transport_returns_status_for_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": "expired"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        response = await HttpxTransport(client).send(_request(method="GET", body=None))

    assert response.status == 401
    assert response.body is None


@pytest.mark.asyncio
async def test_httpx_transport_maps_network_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ConnectivityError):
            await HttpxTransport(client).send(_request())


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [httpx.DecodingError, httpx.TooManyRedirects, httpx.ReadTimeout])
async def test_httpx_transport_maps_every_request_error(error):
    def handler(request: httpx.Request) -> httpx.Response:
        raise error("broken stream", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ConnectivityError):
            await HttpxTransport(client).send(_request())


@pytest.mark.asyncio
async def test_httpx_transport_rejects_invalid_json():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ProtocolError):
            await HttpxTransport(client).send(_request())


# ---------------------------------------------------------------------- #
# RequestsTransport
# ---------------------------------------------------------------------- #


def _requests_response(status: int, payload=None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.content = text.encode() or (b"{}" if payload is not None else b"")
    resp.json.return_value = payload
    return resp


@pytest.mark.asyncio
async def test_requests_transport_success():
    session = MagicMock(spec=requests.Session)
    session.request.return_value = _requests_response(200, {"access": "new"})

    response = await RequestsTransport(session, timeout=5).send(_request())

    assert response.status == 200
    assert response.body == {"access": "new"}
    _, kwargs = session.request.call_args
    assert kwargs["json"] == {"refresh": "rt"}
    assert kwargs["timeout"] == 5


@pytest.mark.asyncio
async def test_requests_transport_failure_status():
    session = MagicMock(spec=requests.Session)
    session.request.return_value = _requests_response(500)

    response = await RequestsTransport(session).send(_request())

    assert response.status == 500
    assert response.body is None


@pytest.mark.asyncio
async def test_requests_transport_maps_network_errors():
    session = MagicMock(spec=requests.Session)
    session.request.side_effect = requests.ConnectionError("down")

    with pytest.raises(ConnectivityError):
        await RequestsTransport(session).send(_request())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        requests.exceptions.ChunkedEncodingError,
        requests.exceptions.ContentDecodingError,
        requests.exceptions.TooManyRedirects,
        requests.exceptions.ReadTimeout,
    ],
)
async def test_requests_transport_maps_every_request_exception(error):
    session = MagicMock(spec=requests.Session)
    session.request.side_effect = error("conn dropped")

    with pytest.raises(ConnectivityError):
        await RequestsTransport(session).send(_request())


@pytest.mark.asyncio
async def test_init_returns_connectivity_error_for_dropped_stream(config):
    session = MagicMock(spec=requests.Session)
    session.request.side_effect = requests.exceptions.ChunkedEncodingError("conn dropped")
    controller = SessionController(
        config=config,
        decoder=JWTClaimsDecoder(),
        store=InMemoryCredentialStore(),
        transport=RequestsTransport(session),
        scheduler=AsyncioScheduler(),
        tokens=TokenPair(access=make_token(600, now=time.time())),
    )
    try:
        result = await controller.init()
    finally:
        await controller.close()

    assert isinstance(result, ConnectivityError)
