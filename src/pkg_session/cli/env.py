from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from ..domain.exceptions import ConfigurationError
from ..domain.value_objects import Endpoints, Methods, RenewalConfig, ResponseKeys, StorageKeys
from .settings import SessionSettings

ENV_PREFIX = "PKG_SESSION_"


def settings_from_env(environ: Optional[Mapping[str, str]] = None) -> SessionSettings:
    env = os.environ if environ is None else environ

    def _get(key: str) -> Optional[str]:
        raw = env.get(ENV_PREFIX + key)
        if raw is None or not raw.strip():
            return None
        return raw.strip()

    def _bool(key: str, default: bool = False) -> bool:
        raw = _get(key)
        if raw is None:
            return default
        return raw.lower() in {"1", "true", "yes", "on"}

    def _int(key: str) -> Optional[int]:
        raw = _get(key)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{ENV_PREFIX}{key} must be an integer, got {raw!r}") from exc

    def _float(key: str) -> Optional[float]:
        raw = _get(key)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{ENV_PREFIX}{key} must be a number, got {raw!r}") from exc

    base_url = _get("BASE_URL")
    check = _get("CHECK_ENDPOINT")
    if not all([base_url, check]):
        missing = [
            ENV_PREFIX + n
            for n, v in [("BASE_URL", base_url), ("CHECK_ENDPOINT", check)]
            if not v
        ]
        raise ConfigurationError(f"Missing session settings: {', '.join(missing)}")

    optional: dict[str, Any] = {}
    for key, field_name, parse in (
        ("MAX_ATTEMPTS", "max_attempts", _int),
        ("CHECK_INTERVAL", "check_interval", _float),
        ("PREFIX", "prefix", _get),
        ("CONTENT_TYPE", "content_type", _get),
        ("RESPONSE_FORMAT", "response_format", _get),
        ("REFRESH_INVALID_STATUS", "refresh_invalid_status", _int),
    ):
        value = parse(key)
        if value is not None:
            optional[field_name] = value

    config = RenewalConfig(
        base_url=base_url,
        endpoints=Endpoints(check=check, refresh=_get("REFRESH_ENDPOINT")),
        keys=ResponseKeys(
            access=_get("RESPONSE_ACCESS_KEY") or "access",
            refresh=_get("RESPONSE_REFRESH_KEY") or "refresh",
        ),
        methods=Methods(
            check=_get("CHECK_METHOD") or "POST",
            refresh=_get("REFRESH_METHOD") or "POST",
        ),
        expected_status=_int("EXPECTED_STATUS"),
        **optional,
    )

    return SessionSettings(
        config=config,
        access_token=_get("ACCESS_TOKEN"),
        refresh_token=_get("REFRESH_TOKEN"),
        remember=_bool("REMEMBER", False),
        keys=StorageKeys(
            access=_get("ACCESS_KEY") or StorageKeys().access,
            refresh=_get("REFRESH_KEY") or StorageKeys().refresh,
        ),
        store_path=_get("STORE_PATH"),
        location=_get("LOCATION"),
    )
