from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Callable, Mapping, Optional, Union

from ..domain.constants import CheckerPhase, SessionEvent, StorageTier, TokenKind, ResponseFormat
from ..domain.entities import CheckerState, ClaimsPair, InitResult, TokenPair
from ..domain.events import SessionEvents
from ..domain.exceptions import (
    ConfigurationError,
    ConnectivityError,
    DecodeError,
    ProtocolError,
    SessionError,
    SessionTerminatedError,
    TokenMissingError,
)
from ..domain.ports import ClaimsDecoder, CredentialStore, Scheduler, Transport
from ..domain.value_objects import RenewalConfig, StorageKeys, TransportResponse
from .location import parse_location
from .requests import build_request, refresh_body

logger = logging.getLogger(__name__)


class SessionController:
    """
    Keeps an access token valid on behalf of a client application.

    Responsibilities:
      - persist the tokens in the credential store (durable or session tier)
      - decode their claims to know when the access token expires
      - run a periodic checker that renews an expired access token through
        the refresh endpoint, retrying a bounded number of times
      - emit RENEWED / EXPIRED / ERROR events through `events`

    Checker states:
      ARMED      waiting for the next tick
      CHECKING   a renewal attempt is in flight
      TERMINATED the session ended; tokens were purged and EXPIRED fired

    Usage:

        controller = SessionController(
            config=RenewalConfig(...),
            decoder=JWTClaimsDecoder(),
            store=InMemoryCredentialStore(),
            transport=HttpxTransport(),
            scheduler=AsyncioScheduler(),
            tokens=TokenPair(access=..., refresh=...),
        )
        controller.events.subscribe(SessionEvent.EXPIRED, redirect_to_login)
        result = await controller.init()
    """

    def __init__(
        self,
        *,
        config: Union[RenewalConfig, Mapping[str, Any]],
        decoder: ClaimsDecoder,
        store: CredentialStore,
        transport: Transport,
        scheduler: Scheduler,
        tokens: Union[TokenPair, Mapping[str, Optional[str]], None] = None,
        keys: Optional[StorageKeys] = None,
        remember: bool = False,
        location: Optional[str] = None,
        on_expired: Optional[Callable[[], Any]] = None,
        close_transport: bool = False,
    ) -> None:
        if isinstance(config, Mapping):
            config = RenewalConfig.from_mapping(config)
        if not isinstance(config, RenewalConfig):
            raise ConfigurationError("config must be a RenewalConfig or a mapping")

        self._config = config
        self._decoder = decoder
        self._store = store
        self._transport = transport
        self._scheduler = scheduler
        self._keys = keys or StorageKeys()
        self._remember = remember
        self._location = location
        self._close_transport = close_transport

        if isinstance(tokens, Mapping):
            tokens = TokenPair(access=tokens.get("access"), refresh=tokens.get("refresh"))
        self._tokens = TokenPair(
            access=tokens.access if tokens else None,
            refresh=tokens.refresh if tokens else None,
        )
        self._claims = ClaimsPair()
        self._state = CheckerState()
        self._events = SessionEvents()

        self._task: Optional[asyncio.Task[None]] = None
        self._renewal_lock = asyncio.Lock()
        # Bumped on termination so late renewal responses can be recognised.
        self._generation = 0

        if config.update_hook is not None:
            self._events.subscribe(SessionEvent.RENEWED, config.update_hook)
        if on_expired is not None:
            self._events.subscribe(SessionEvent.EXPIRED, on_expired)

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> RenewalConfig:
        return self._config

    @property
    def events(self) -> SessionEvents:
        return self._events

    @property
    def keys(self) -> StorageKeys:
        return self._keys

    @property
    def tokens(self) -> TokenPair:
        return TokenPair(access=self._tokens.access, refresh=self._tokens.refresh)

    @property
    def claims(self) -> ClaimsPair:
        return ClaimsPair(
            access=dict(self._claims.access) if self._claims.access is not None else None,
            refresh=dict(self._claims.refresh) if self._claims.refresh is not None else None,
        )

    @property
    def state(self) -> CheckerState:
        return CheckerState(phase=self._state.phase, attempts=self._state.attempts)

    @property
    def remember(self) -> bool:
        return self._remember

    @property
    def storage_tier(self) -> StorageTier:
        return StorageTier.DURABLE if self._remember else StorageTier.SESSION

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def init(self) -> Union[InitResult, SessionError]:
        """
        Establish the session and validate it once against the check endpoint.

        Returns:
            InitResult on success, or the SessionError describing why the
            session could not be validated (ConnectivityError, ProtocolError,
            SessionTerminatedError).

        Raises:
            TokenMissingError if no access token is supplied or stored.
        """
        self._resolve_tokens()
        self._remember = self._remember or self._store.contains(StorageTier.DURABLE, self._keys.access)
        self._state = CheckerState()
        self._setup()

        if self.check_expiration(TokenKind.ACCESS) and not self._tokens.refresh:
            self.expire()
            return SessionTerminatedError("Access token expired and no refresh token is available")

        try:
            await self._validate_with_server()
        except ProtocolError as exc:
            logger.warning("Session validation failed: %s", exc)
            return exc
        except ConnectivityError as exc:
            logger.warning("Session validation failed, server unreachable: %s", exc)
            return exc

        if self._state.terminated:
            return SessionTerminatedError("Session terminated during validation")
        return self._snapshot()

    def check_expiration(self, which: Union[TokenKind, str] = TokenKind.ACCESS) -> bool:
        """
        True when the token's `exp` claim is in the past, or when the token
        has no usable claims at all.
        """
        claims = self._claims.get(TokenKind(which))
        exp = claims.get("exp") if claims else None
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return True
        return exp * 1000 <= self._scheduler.now() * 1000

    async def request_new_access_token(self) -> Any:
        """
        Trade the refresh token for a new access token (one HTTP attempt).

        Returns:
            The raw response body, or None when the session ended while
            the request was in flight and the request failed.

        Raises:
            ConfigurationError if no refresh endpoint is configured
            TokenMissingError if there is no refresh token
            ConnectivityError if the server can't be reached
            ProtocolError for non-2xx answers or malformed bodies
        """
        async with self._renewal_lock:
            return await self._renew()

    async def tick(self) -> CheckerPhase:
        """
        Run one checker cycle. Never raises; failures are counted against
        `config.max_attempts` and end the session once exhausted.
        """
        if self._state.terminated:
            return self._state.phase

        if not self.check_expiration(TokenKind.ACCESS):
            return self._state.phase

        if not self._tokens.refresh:
            logger.info("Access token expired and no refresh token is available")
            self.expire()
            return self._state.phase

        if self._renewal_lock.locked():
            logger.debug("Renewal already in flight, skipping tick")
            return self._state.phase

        self._state.phase = CheckerPhase.CHECKING
        async with self._renewal_lock:
            try:
                await self._renew()
            except ProtocolError as exc:
                if exc.status == self._config.refresh_invalid_status:
                    logger.info("Refresh token rejected with status %s", exc.status)
                    self.expire()
                else:
                    self._register_failure(exc)
            except ConnectivityError as exc:
                self._register_failure(exc)
            except (ConfigurationError, TokenMissingError) as exc:
                logger.error("Cannot renew access token: %s", exc)
                self.expire()
            except Exception as exc:  # noqa: BLE001
                logger.exception("Unexpected error while renewing access token")
                self._register_failure(exc)
            else:
                if not self._state.terminated:
                    self._state.phase = CheckerPhase.ARMED
        return self._state.phase

    def clean_tokens(self) -> None:
        """Remove the tokens from both storage tiers and stop the checker."""
        self._clear_storage()
        self._stop_checker()

    def expire(self) -> None:
        """
        End the session: purge credentials, stop the checker and fire
        EXPIRED. Calling it again is a no-op.
        """
        if self._state.terminated:
            return
        self.clean_tokens()
        self._tokens.clear()
        self._claims.clear()
        self._state.phase = CheckerPhase.TERMINATED
        self._generation += 1
        logger.info("Session expired")
        self._events.emit(SessionEvent.EXPIRED)

    async def close(self) -> None:
        """Stop the checker without ending the session."""
        task = self._task
        self._stop_checker()
        if task is not None and task is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._close_transport:
            closer = getattr(self._transport, "close", None)
            if closer is not None:
                await closer()

    # ------------------------------------------------------------------ #
    # Setup
    # ------------------------------------------------------------------ #

    def _resolve_tokens(self) -> None:
        if not self._tokens.access:
            self._tokens.access = self._store.get(self._keys.access)
        if not self._tokens.refresh:
            self._tokens.refresh = self._store.get(self._keys.refresh)

    def _setup(self) -> None:
        """
        Persist, decode, arm the checker and announce the access token.
        """
        if not self._tokens.access:
            raise TokenMissingError("Access token is not defined")

        tier = self.storage_tier
        self._clear_storage()
        self._store.set(tier, self._keys.access, self._tokens.access)
        if self._tokens.refresh:
            self._store.set(tier, self._keys.refresh, self._tokens.refresh)

        self._decode(TokenKind.ACCESS)
        self._decode(TokenKind.REFRESH)

        self._state.attempts = 0
        self._state.phase = CheckerPhase.ARMED
        self._ensure_checker()
        self._events.emit(SessionEvent.RENEWED)

    def _decode(self, kind: TokenKind) -> None:
        token = self._tokens.get(kind)
        if not token:
            self._claims.set(kind, None)
            return
        try:
            claims = dict(self._decoder.decode(token))
        except DecodeError as exc:
            logger.warning("Could not decode %s token, treating it as expired: %s", kind.value, exc)
            claims = {}
        self._claims.set(kind, claims)

    def _clear_storage(self) -> None:
        self._store.remove(self._keys.access)
        self._store.remove(self._keys.refresh)

    def _snapshot(self) -> InitResult:
        return InitResult(
            valid=not self.check_expiration(TokenKind.ACCESS),
            tokens=self.tokens,
            claims=self.claims,
            location=parse_location(self._location),
        )

    # ------------------------------------------------------------------ #
    # Server round-trips
    # ------------------------------------------------------------------ #

    async def _validate_with_server(self) -> None:
        request = build_request(
            self._config,
            TokenKind.ACCESS,
            self._tokens.access or "",
            self._config.bodies.check,
        )
        response = await self._transport.send(request)
        if response.ok:
            return

        expected = self._config.expected_status
        if response.status == expected and self._tokens.refresh and self._config.has_refresh_endpoint:
            logger.info("Access token rejected by server, renewing")
            try:
                await self.request_new_access_token()
            except ProtocolError as exc:
                if exc.status == self._config.refresh_invalid_status:
                    self.expire()
                raise
            return

        raise ProtocolError(response.status, expected)

    async def _renew(self) -> Any:
        if not self._config.has_refresh_endpoint:
            raise ConfigurationError("Trying to get an access token without a refresh endpoint")
        refresh = self._tokens.refresh
        if not refresh:
            raise TokenMissingError("Trying to get an access token without a refresh token")

        generation = self._generation
        request = build_request(
            self._config,
            TokenKind.REFRESH,
            refresh,
            refresh_body(self._config, refresh),
        )
        try:
            response = await self._transport.send(request)
        except Exception:
            if self._is_stale(generation):
                logger.debug("Discarding renewal failure received after the session ended")
                return None
            raise

        if self._is_stale(generation):
            logger.debug("Discarding renewal response received after the session ended")
            return response.body
        if not response.ok:
            raise ProtocolError(response.status, self._config.refresh_invalid_status)

        access, rotated = self._extract_tokens(response)
        self._tokens.access = access
        if rotated:
            self._tokens.refresh = rotated
        self._setup()
        logger.info("Access token renewed")
        return response.body

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation or self._state.terminated

    def _extract_tokens(self, response: TransportResponse) -> tuple[str, Optional[str]]:
        body = response.body
        keys = self._config.keys
        rotated: Optional[str] = None

        if self._config.response_format is ResponseFormat.TEXT:
            access = body.strip() if isinstance(body, str) else None
        else:
            if not isinstance(body, Mapping):
                raise ProtocolError(response.status, message="Renewal response is not an object")
            access = body.get(keys.access)
            candidate = body.get(keys.refresh)
            if isinstance(candidate, str) and candidate:
                rotated = candidate

        if not isinstance(access, str) or not access:
            raise ProtocolError(
                response.status,
                message=f"Renewal response has no {keys.access!r} token",
            )
        return access, rotated

    # ------------------------------------------------------------------ #
    # Checker
    # ------------------------------------------------------------------ #

    def _register_failure(self, exc: BaseException) -> None:
        if self._state.terminated:
            logger.debug("Ignoring renewal failure on a terminated session: %s", exc)
            return
        self._state.attempts += 1
        attempts, limit = self._state.attempts, self._config.max_attempts
        logger.warning("Renewal attempt %d/%d failed: %s", attempts, limit, exc)
        self._events.emit(SessionEvent.ERROR, exc)
        if attempts > limit:
            logger.info("Giving up after %d failed renewal attempts", attempts)
            self.expire()
            return
        self._state.phase = CheckerPhase.ARMED

    def _ensure_checker(self) -> None:
        if self._task is not None and not self._task.done():
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run_checker(), name="pkg-session-checker")

    def _stop_checker(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    async def _run_checker(self) -> None:
        me = asyncio.current_task()
        while self._task is me and not self._state.terminated:
            await self._scheduler.sleep(self._config.check_interval)
            if self._task is not me or self._state.terminated:
                break
            await self.tick()
