from typing import Any, Mapping

import jwt
from jwt.exceptions import DecodeError as JWTDecodeError
from jwt.exceptions import InvalidTokenError as JWTInvalidTokenError

from ...domain.exceptions import DecodeError
from ...domain.ports import ClaimsDecoder

_UNVERIFIED_OPTIONS = {
    "verify_signature": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
}


class JWTClaimsDecoder(ClaimsDecoder):
    """
    Adapter implementing ClaimsDecoder port using PyJWT.

    Infrastructure layer:
    - Knows about JWT structure.
    - Does NOT verify signatures; the server remains the authority on
      whether a token is accepted. Claims are only read client-side to
      learn the expiration time.
    """

    # ------------------------------------------------------------------ #
    # Port implementation
    # ------------------------------------------------------------------ #

    def decode(self, token: str) -> Mapping[str, Any]:
        """
        Decode a JWT payload without verification.

        Returns:
            Mapping of token claims (dict-like).

        Raises:
            DecodeError
        """
        if not isinstance(token, str) or not token:
            raise DecodeError("Token must be a non-empty string")

        try:
            payload = jwt.decode(token, options=_UNVERIFIED_OPTIONS)
        except (JWTDecodeError, JWTInvalidTokenError) as exc:
            raise DecodeError(f"JWT is not valid, please check structure: {exc}") from exc

        if not isinstance(payload, Mapping):
            raise DecodeError("JWT payload is not an object")
        return payload
