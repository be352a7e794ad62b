"""Tests for request building and location parsing."""

from pkg_session import (
    Endpoints,
    Methods,
    RenewalConfig,
    ResponseFormat,
    TokenKind,
    build_request,
    parse_location,
)
from pkg_session.application.requests import refresh_body


def _config(**kwargs):
    return RenewalConfig(
        base_url="https://api.example.com",
        endpoints=Endpoints(check="auth/check", refresh="auth/refresh"),
        **kwargs,
    )


def test_check_request_uses_access_endpoint_and_method():
    cfg = _config(methods=Methods(check="GET"), bodies={"check": {"ignored": True}})

    request = build_request(cfg, TokenKind.ACCESS, "at", cfg.bodies.check)

    assert request.method == "GET"
    assert request.url == "https://api.example.com/auth/check"
    assert request.body is None
    assert request.headers["Authorization"] == "Bearer at"


def test_body_only_for_post_and_patch():
    for method, has_body in (("POST", True), ("PATCH", True), ("PUT", False), ("DELETE", False)):
        cfg = _config(methods=Methods(refresh=method))
        request = build_request(cfg, TokenKind.REFRESH, "rt", {"a": 1})
        assert (request.body is not None) is has_body, method


def test_headers_drop_caller_authorization_and_content_type():
    cfg = _config(
        headers={"AUTHORIZATION": "Basic x", "content-type": "text/plain", "X-Trace": "1"},
        content_type="application/x-www-form-urlencoded",
        prefix="Token",
    )

    request = build_request(cfg, TokenKind.REFRESH, "rt")

    assert request.headers == {
        "X-Trace": "1",
        "Authorization": "Token rt",
        "Content-Type": "application/x-www-form-urlencoded",
    }


def test_request_carries_response_format():
    cfg = _config(response_format=ResponseFormat.TEXT)
    assert build_request(cfg, TokenKind.REFRESH, "rt").response_format is ResponseFormat.TEXT


def test_refresh_body_merges_token_without_mutating_config():
    cfg = _config(bodies={"refresh": {"client_id": "web"}})

    body = refresh_body(cfg, "rt")

    assert body == {"client_id": "web", "refresh": "rt"}
    assert dict(cfg.bodies.refresh) == {"client_id": "web"}


def test_parse_location_full_url():
    info = parse_location("https://app.example.com/app/users/42?tab=profile&empty=#section-2")

    assert info.plain == "/app/users/42"
    assert [(s.path, s.level) for s in info.segments] == [("app", 0), ("users", 1), ("42", 2)]
    assert info.search == {"tab": "profile", "empty": ""}
    assert info.hash == "section-2"


def test_parse_location_relative_path():
    info = parse_location("/docs/getting%20started")

    assert [s.path for s in info.segments] == ["docs", "getting started"]
    assert info.search == {}
    assert info.hash is None


def test_parse_location_empty():
    info = parse_location(None)

    assert info.plain == "/"
    assert info.segments == ()
