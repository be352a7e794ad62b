from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .constants import CheckerPhase, TokenKind


@dataclass(slots=True)
class TokenPair:
    """
    The bearer credentials owned by a session controller.
    """
    access: Optional[str] = None
    refresh: Optional[str] = None

    def get(self, kind: TokenKind) -> Optional[str]:
        return self.access if kind is TokenKind.ACCESS else self.refresh

    def set(self, kind: TokenKind, value: Optional[str]) -> None:
        if kind is TokenKind.ACCESS:
            self.access = value
        else:
            self.refresh = value

    def clear(self) -> None:
        self.access = None
        self.refresh = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {"access": self.access, "refresh": self.refresh}


@dataclass(slots=True)
class ClaimsPair:
    """
    Decoded claims of the current tokens. Derived, never persisted.

    An empty mapping means the token was present but could not be decoded;
    None means there is no token at all.
    """
    access: Optional[Mapping[str, Any]] = None
    refresh: Optional[Mapping[str, Any]] = None

    def get(self, kind: TokenKind) -> Optional[Mapping[str, Any]]:
        return self.access if kind is TokenKind.ACCESS else self.refresh

    def set(self, kind: TokenKind, value: Optional[Mapping[str, Any]]) -> None:
        if kind is TokenKind.ACCESS:
            self.access = value
        else:
            self.refresh = value

    def clear(self) -> None:
        self.access = None
        self.refresh = None

    def as_dict(self) -> Dict[str, Optional[Mapping[str, Any]]]:
        return {"access": self.access, "refresh": self.refresh}


@dataclass(slots=True)
class CheckerState:
    phase: CheckerPhase = CheckerPhase.ARMED
    attempts: int = 0

    @property
    def terminated(self) -> bool:
        return self.phase is CheckerPhase.TERMINATED


@dataclass(frozen=True, slots=True)
class PathSegment:
    path: str
    level: int


@dataclass(frozen=True, slots=True)
class LocationInfo:
    """
    The host's current location, decomposed for routing after init.
    """
    plain: str = "/"
    segments: Tuple[PathSegment, ...] = ()
    search: Mapping[str, str] = field(default_factory=dict)
    hash: Optional[str] = None


@dataclass(slots=True)
class InitResult:
    """
    Snapshot returned by a successful `SessionController.init()`.
    """
    valid: bool
    tokens: TokenPair
    claims: ClaimsPair
    location: LocationInfo = field(default_factory=LocationInfo)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "tokens": self.tokens.as_dict(),
            "claims": {k: dict(v) if v is not None else None for k, v in self.claims.as_dict().items()},
            "location": {
                "plain": self.location.plain,
                "segments": [{"path": s.path, "level": s.level} for s in self.location.segments],
                "search": dict(self.location.search),
                "hash": self.location.hash,
            },
        }
