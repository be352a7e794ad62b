from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from .constants import (
    DEFAULT_ACCESS_KEY,
    DEFAULT_REFRESH_KEY,
    ResponseFormat,
    TokenKind,
)
from .exceptions import ConfigurationError

_HTTP_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})


def _frozen_mapping(values: Mapping[str, Any] | None) -> Mapping[str, Any]:
    """
    Copy a mapping into a read-only proxy so a config can't be mutated
    through a reference the caller kept.
    """
    return MappingProxyType(dict(values or {}))


# --- Storage --------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StorageKeys:
    """
    Names under which the tokens are kept in the credential store.
    """
    access: str = DEFAULT_ACCESS_KEY
    refresh: str = DEFAULT_REFRESH_KEY

    def for_kind(self, kind: TokenKind) -> str:
        return self.access if kind is TokenKind.ACCESS else self.refresh


# --- Renewal configuration ------------------------------------------------


@dataclass(frozen=True, slots=True)
class Endpoints:
    """
    Endpoint paths relative to `RenewalConfig.base_url`.

    - check:   validates the current access token
    - refresh: trades the refresh token for a new access token
    """
    check: str
    refresh: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ResponseKeys:
    """
    Key names used for tokens in renewal responses and in the refresh body.
    """
    access: str = "access"
    refresh: str = "refresh"


@dataclass(frozen=True, slots=True)
class Methods:
    check: str = "POST"
    refresh: str = "POST"

    def __post_init__(self) -> None:
        for name in ("check", "refresh"):
            value = str(getattr(self, name)).upper()
            if value not in _HTTP_METHODS:
                raise ConfigurationError(f"Unsupported HTTP method for {name}: {value!r}")
            object.__setattr__(self, name, value)


@dataclass(frozen=True, slots=True)
class Bodies:
    check: Mapping[str, Any] = field(default_factory=dict)
    refresh: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("check", "refresh"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, Mapping):
                raise ConfigurationError(f"Body for {name} must be a mapping, got {type(value).__name__}")
            object.__setattr__(self, name, _frozen_mapping(value))


@dataclass(frozen=True, slots=True)
class RenewalConfig:
    """
    Immutable description of how to talk to the check and refresh endpoints.

    Only `base_url` and `endpoints.check` are mandatory; everything else has
    a working default. Validation happens here, once, so the controller never
    has to probe for missing fields.

    `expected_status` is what the check endpoint answers when the access
    token is no longer accepted. `refresh_invalid_status` is what the refresh
    endpoint answers when the refresh token itself is rejected; it falls back
    to `expected_status` when not given.
    """

    base_url: str
    endpoints: Endpoints
    keys: ResponseKeys = field(default_factory=ResponseKeys)
    expected_status: Optional[int] = None
    refresh_invalid_status: Optional[int] = None
    methods: Methods = field(default_factory=Methods)
    content_type: str = "application/json"
    prefix: str = "Bearer"
    headers: Mapping[str, str] = field(default_factory=dict)
    bodies: Bodies = field(default_factory=Bodies)
    max_attempts: int = 3
    response_format: ResponseFormat = ResponseFormat.JSON
    update_hook: Optional[Callable[[], Any]] = None
    check_interval: float = 1.0

    def __post_init__(self) -> None:
        # Nested sections may be given as plain mappings.
        for name, section in (
            ("endpoints", Endpoints),
            ("keys", ResponseKeys),
            ("methods", Methods),
            ("bodies", Bodies),
        ):
            value = getattr(self, name)
            if isinstance(value, Mapping):
                try:
                    object.__setattr__(self, name, section(**value))
                except TypeError as exc:
                    raise ConfigurationError(f"Invalid {name} section: {exc}") from exc

        if not isinstance(self.base_url, str) or not self.base_url.strip():
            raise ConfigurationError("RenewalConfig.base_url is required")
        if not isinstance(self.endpoints, Endpoints) or not (self.endpoints.check or "").strip():
            raise ConfigurationError("RenewalConfig.endpoints.check is required")
        if self.max_attempts < 0:
            raise ConfigurationError("RenewalConfig.max_attempts must be >= 0")
        if self.check_interval <= 0:
            raise ConfigurationError("RenewalConfig.check_interval must be > 0")
        if self.update_hook is not None and not callable(self.update_hook):
            raise ConfigurationError("RenewalConfig.update_hook must be callable")
        if not isinstance(self.response_format, ResponseFormat):
            try:
                object.__setattr__(self, "response_format", ResponseFormat(self.response_format))
            except ValueError as exc:
                raise ConfigurationError(f"Unknown response format: {self.response_format!r}") from exc
        if self.refresh_invalid_status is None:
            object.__setattr__(self, "refresh_invalid_status", self.expected_status)
        object.__setattr__(self, "headers", _frozen_mapping(self.headers))

    # ------------------------------------------------------------------ #
    # helpers
    # ------------------------------------------------------------------ #

    @property
    def base_url_slash(self) -> str:
        b = self.base_url.strip()
        return b if b.endswith("/") else b + "/"

    @property
    def has_refresh_endpoint(self) -> bool:
        return bool((self.endpoints.refresh or "").strip())

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url_slash}{endpoint.lstrip('/')}"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "RenewalConfig":
        """
        Build a config from a loosely-typed nested mapping, e.g.::

            {
                "url": {
                    "base": "https://api.example.com",
                    "endpoints": {"check": "auth/check", "refresh": "auth/refresh"},
                    "keys": {"access": "accessToken", "refresh": "refreshToken"},
                    "status": 401,
                },
                "methods": {"check": "GET"},
                "max_attempts": 5,
            }

        Raises:
            ConfigurationError if the mapping is missing required entries.
        """
        if not isinstance(raw, Mapping):
            raise ConfigurationError("Configuration must be a mapping")

        url = raw.get("url") or {}
        if not isinstance(url, Mapping):
            raise ConfigurationError("Configuration key 'url' must be a mapping")

        endpoints = url.get("endpoints") or {}
        if not isinstance(endpoints, Mapping) or not endpoints.get("check"):
            raise ConfigurationError("Please check the endpoints object in config key")

        keys = url.get("keys") or {}
        methods = raw.get("methods") or {}
        bodies = raw.get("bodies") or {}

        kwargs: dict[str, Any] = {}
        for src, dst in (
            ("prefix", "prefix"),
            ("headers", "headers"),
            ("max_attempts", "max_attempts"),
            ("update_hook", "update_hook"),
            ("check_interval", "check_interval"),
        ):
            if raw.get(src) is not None:
                kwargs[dst] = raw[src]
        for src, dst in (
            ("content_type", "content_type"),
            ("format", "response_format"),
            ("refresh_status", "refresh_invalid_status"),
        ):
            if url.get(src) is not None:
                kwargs[dst] = url[src]

        return cls(
            base_url=url.get("base") or "",
            endpoints=Endpoints(check=endpoints["check"], refresh=endpoints.get("refresh")),
            keys=ResponseKeys(**{k: v for k, v in keys.items() if k in ("access", "refresh")}),
            expected_status=url.get("status"),
            methods=Methods(**{k: v for k, v in methods.items() if k in ("check", "refresh")}),
            bodies=Bodies(**{k: v for k, v in bodies.items() if k in ("check", "refresh")}),
            **kwargs,
        )


# --- Transport ------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransportRequest:
    method: str
    url: str
    headers: Mapping[str, str]
    body: Optional[Mapping[str, Any]] = None
    response_format: ResponseFormat = ResponseFormat.JSON


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """
    Outcome of a request that reached the server.

    `body` is the parsed payload for 2xx answers and None otherwise.
    """
    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
