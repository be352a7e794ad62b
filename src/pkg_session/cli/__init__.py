"""
pkg_session.cli

Environment-driven entry points:

- SessionSettings: configuration + tokens for a watched session.
- settings_from_env: build SessionSettings from PKG_SESSION_* variables.
- main: the `pkg-session` console command.
"""

from __future__ import annotations

from .env import settings_from_env
from .command import main
from .settings import SessionSettings

__all__ = [
    "SessionSettings",
    "settings_from_env",
    "main",
]
