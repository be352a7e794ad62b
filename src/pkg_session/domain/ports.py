from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from .constants import StorageTier
from .value_objects import TransportRequest, TransportResponse


class ClaimsDecoder(Protocol):
    """
    Port for decoding a token into its claims.

    Implementations live in the adapters layer (e.g. the PyJWT decoder).
    Signatures are not verified; the claims are only read to learn when the
    token expires.
    """

    def decode(self, token: str) -> Mapping[str, Any]:
        """
        Raises:
          - DecodeError when the token is not structurally valid
        """
        ...


class CredentialStore(Protocol):
    """
    Port for token persistence with a durable and a session-scoped tier.
    """

    def get(self, key: str) -> Optional[str]:
        """Value for `key`, looked up in the durable tier first."""
        ...

    def contains(self, tier: StorageTier, key: str) -> bool:
        ...

    def set(self, tier: StorageTier, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        """Remove `key` from both tiers."""
        ...


class Transport(Protocol):
    """
    Port for sending renewal and check requests.
    """

    async def send(self, request: TransportRequest) -> TransportResponse:
        """
        Raises:
          - ConnectivityError when the server can't be reached
        """
        ...


class Scheduler(Protocol):
    """
    Port for wall-clock time and cooperative waiting.
    """

    def now(self) -> float:
        """Seconds since the epoch."""
        ...

    async def sleep(self, seconds: float) -> None:
        ...
