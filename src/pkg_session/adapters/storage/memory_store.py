from __future__ import annotations

from typing import Dict, Optional

from ...domain.constants import StorageTier
from ...domain.ports import CredentialStore


class InMemoryCredentialStore(CredentialStore):
    """
    Credential store keeping both tiers in process memory.

    Useful for tests and for short-lived processes where "durable" only has
    to outlive a single session controller.
    """

    def __init__(self) -> None:
        self._tiers: Dict[StorageTier, Dict[str, str]] = {tier: {} for tier in StorageTier}

    def get(self, key: str) -> Optional[str]:
        for tier in (StorageTier.DURABLE, StorageTier.SESSION):
            value = self._tiers[tier].get(key)
            if value is not None:
                return value
        return None

    def contains(self, tier: StorageTier, key: str) -> bool:
        return key in self._tiers[tier]

    def set(self, tier: StorageTier, key: str, value: str) -> None:
        self._tiers[tier][key] = value

    def remove(self, key: str) -> None:
        for values in self._tiers.values():
            values.pop(key, None)

    def snapshot(self, tier: StorageTier) -> Dict[str, str]:
        return dict(self._tiers[tier])
