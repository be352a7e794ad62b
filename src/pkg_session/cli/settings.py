from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..domain.value_objects import RenewalConfig, StorageKeys


@dataclass(slots=True)
class SessionSettings:
    """
    Everything needed to run a watched session from the command line.

    Host code decides how to construct this (env, config file, etc.).
    """
    config: RenewalConfig
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    remember: bool = False
    keys: StorageKeys = field(default_factory=StorageKeys)
    store_path: Optional[str] = None
    location: Optional[str] = None
