from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

from ...domain.constants import StorageTier
from ...domain.exceptions import ConfigurationError
from ...domain.ports import CredentialStore

logger = logging.getLogger(__name__)


class JsonFileCredentialStore(CredentialStore):
    """
    Credential store whose durable tier survives restarts.

    - durable tier: a JSON object in `path` (written atomically, mode 0600)
    - session tier: process memory, gone when the process exits
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._session: Dict[str, str] = {}

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------ #
    # Port implementation
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        if value is not None:
            return value
        return self._session.get(key)

    def contains(self, tier: StorageTier, key: str) -> bool:
        if tier is StorageTier.DURABLE:
            return key in self._read()
        return key in self._session

    def set(self, tier: StorageTier, key: str, value: str) -> None:
        if tier is StorageTier.SESSION:
            self._session[key] = value
            return
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        self._session.pop(key, None)
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _read(self) -> Dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Credential file {self._path} is not valid JSON") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Credential file {self._path} must contain a JSON object")
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, data: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".tokens-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d credential entries to %s", len(data), self._path)
