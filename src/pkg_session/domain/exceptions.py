from __future__ import annotations

from typing import Optional


class SessionError(Exception):
    """Base class for every error raised or returned by pkg_session."""
    pass


class ConfigurationError(SessionError):
    """Raised when the renewal configuration is malformed or incomplete."""
    pass


class TokenMissingError(SessionError):
    """Raised when a required access or refresh token is not available."""
    pass


class DecodeError(SessionError):
    """Raised by claims decoders when a token cannot be decoded."""
    pass


class ConnectivityError(SessionError):
    """Raised when the remote endpoint cannot be reached."""
    pass


class ProtocolError(SessionError):
    """Raised when the server answers with an unexpected status."""

    def __init__(self, status: int, expected: Optional[int] = None, message: str | None = None) -> None:
        self.status = status
        self.expected = expected
        if message is None:
            message = f"Server responded with status code {status} and expected {expected}."
        super().__init__(message)


class SessionTerminatedError(SessionError):
    """Returned from init when the session ended before it could be validated."""
    pass
