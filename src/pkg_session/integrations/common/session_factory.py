from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Union

from ...adapters.http.httpx_transport import HttpxTransport
from ...adapters.jwt.claims_decoder import JWTClaimsDecoder
from ...adapters.scheduling.asyncio_scheduler import AsyncioScheduler
from ...adapters.storage.memory_store import InMemoryCredentialStore
from ...application.session_controller import SessionController
from ...domain.entities import TokenPair
from ...domain.ports import ClaimsDecoder, CredentialStore, Scheduler, Transport
from ...domain.value_objects import RenewalConfig, StorageKeys


def create_session_controller(
        *,
        config: Union[RenewalConfig, Mapping[str, Any]],
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        remember: bool = False,
        keys: Optional[StorageKeys] = None,
        location: Optional[str] = None,
        on_expired: Optional[Callable[[], Any]] = None,
        store: Optional[CredentialStore] = None,
        transport: Optional[Transport] = None,
        decoder: Optional[ClaimsDecoder] = None,
        scheduler: Optional[Scheduler] = None,
) -> SessionController:
    """
    High-level factory: config + tokens -> SessionController.

    - builds a JWTClaimsDecoder, an in-memory store, an httpx transport and
      an asyncio scheduler for every collaborator not supplied
    - a transport created here is closed by `SessionController.close()`
    """
    if isinstance(config, Mapping):
        config = RenewalConfig.from_mapping(config)
    owns_transport = transport is None

    return SessionController(
        config=config,
        decoder=decoder or JWTClaimsDecoder(),
        store=store or InMemoryCredentialStore(),
        transport=transport or HttpxTransport(),
        scheduler=scheduler or AsyncioScheduler(),
        tokens=TokenPair(access=access_token, refresh=refresh_token),
        keys=keys,
        remember=remember,
        location=location,
        on_expired=on_expired,
        close_transport=owns_transport,
    )
