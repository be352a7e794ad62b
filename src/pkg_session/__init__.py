"""
pkg_session

Client-side bearer session keeper: persists an access/refresh token pair,
watches the access token's expiration and renews it through a configurable
refresh endpoint, with ports for storage, transport, claims decoding and
scheduling.
"""

__version__ = "0.1.0"

from .domain.entities import (
    TokenPair,
    ClaimsPair,
    CheckerState,
    InitResult,
    LocationInfo,
    PathSegment,
)
from .domain.constants import (
    TokenKind,
    StorageTier,
    ResponseFormat,
    CheckerPhase,
    SessionEvent,
)
from .domain.exceptions import (
    SessionError,
    ConfigurationError,
    TokenMissingError,
    DecodeError,
    ConnectivityError,
    ProtocolError,
    SessionTerminatedError,
)
from .domain.value_objects import (
    RenewalConfig,
    Endpoints,
    ResponseKeys,
    Methods,
    Bodies,
    StorageKeys,
    TransportRequest,
    TransportResponse,
)
from .domain.events import SessionEvents
from .domain.ports import ClaimsDecoder, CredentialStore, Transport, Scheduler

from .application.session_controller import SessionController
from .application.location import parse_location
from .application.requests import build_request

# Default adapters
from .adapters.jwt.claims_decoder import JWTClaimsDecoder
from .adapters.storage.memory_store import InMemoryCredentialStore
from .adapters.storage.file_store import JsonFileCredentialStore
from .adapters.http.httpx_transport import HttpxTransport
from .adapters.http.requests_transport import RequestsTransport
from .adapters.scheduling.asyncio_scheduler import AsyncioScheduler

from .integrations.common.session_factory import create_session_controller

__all__ = [
    "__version__",
    # domain core
    "TokenPair",
    "ClaimsPair",
    "CheckerState",
    "InitResult",
    "LocationInfo",
    "PathSegment",
    "TokenKind",
    "StorageTier",
    "ResponseFormat",
    "CheckerPhase",
    "SessionEvent",
    "SessionEvents",
    "RenewalConfig",
    "Endpoints",
    "ResponseKeys",
    "Methods",
    "Bodies",
    "StorageKeys",
    "TransportRequest",
    "TransportResponse",
    "ClaimsDecoder",
    "CredentialStore",
    "Transport",
    "Scheduler",
    # exceptions
    "SessionError",
    "ConfigurationError",
    "TokenMissingError",
    "DecodeError",
    "ConnectivityError",
    "ProtocolError",
    "SessionTerminatedError",
    # application
    "SessionController",
    "parse_location",
    "build_request",
    # adapters
    "JWTClaimsDecoder",
    "InMemoryCredentialStore",
    "JsonFileCredentialStore",
    "HttpxTransport",
    "RequestsTransport",
    "AsyncioScheduler",
    "create_session_controller",
]
