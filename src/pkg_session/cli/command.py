from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Sequence, TextIO

from ..adapters.storage.file_store import JsonFileCredentialStore
from ..domain.constants import SessionEvent
from ..domain.entities import InitResult
from ..domain.exceptions import SessionError
from ..integrations.common.session_factory import create_session_controller
from .env import settings_from_env


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pkg-session",
        description="Keep an access token alive and report session events as JSON lines",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Exit after the initial validation instead of watching the session.",
    )
    parser.add_argument(
        "--store-path",
        help="JSON file for the durable tier (default: env PKG_SESSION_STORE_PATH, "
             "or memory only).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for pkg_session loggers.",
    )
    return parser.parse_args(args=argv)


def _emit(out: TextIO, payload: dict[str, Any]) -> None:
    json.dump(payload, out)
    out.write("\n")
    out.flush()


async def _run(args: argparse.Namespace, out: TextIO) -> int:
    settings = settings_from_env()
    store_path = args.store_path or settings.store_path
    store = JsonFileCredentialStore(store_path) if store_path else None

    controller = create_session_controller(
        config=settings.config,
        access_token=settings.access_token,
        refresh_token=settings.refresh_token,
        remember=settings.remember,
        keys=settings.keys,
        location=settings.location,
        store=store,
    )
    expired = asyncio.Event()
    controller.events.subscribe(SessionEvent.RENEWED, lambda: _emit(out, {"event": "renewed"}))
    controller.events.subscribe(
        SessionEvent.ERROR,
        lambda exc: _emit(out, {"event": "error", "error": str(exc)}),
    )
    controller.events.subscribe(SessionEvent.EXPIRED, expired.set)

    try:
        result = await controller.init()
        if isinstance(result, InitResult):
            _emit(out, {"ok": True, **result.as_dict()})
        else:
            _emit(out, {"ok": False, "error": str(result), "kind": type(result).__name__})
            return 1

        if not args.once:
            await expired.wait()
            _emit(out, {"event": "expired"})
        return 0
    finally:
        await controller.close()


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        code = asyncio.run(_run(args, sys.stdout))
    except SessionError as exc:
        _emit(sys.stdout, {"ok": False, "error": str(exc), "kind": type(exc).__name__})
        raise SystemExit(2) from exc
    except KeyboardInterrupt:
        code = 130
    raise SystemExit(code)


if __name__ == "__main__":
    main()
