from __future__ import annotations

from .auth import SessionBearerAuth, bind_client_headers

__all__ = ["SessionBearerAuth", "bind_client_headers"]
