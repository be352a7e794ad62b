from __future__ import annotations

import urllib.parse
from typing import Optional

from ..domain.entities import LocationInfo, PathSegment


def parse_location(url: Optional[str]) -> LocationInfo:
    """
    Decompose the host's current URL.

    "/app/users/42?tab=profile#top" ->
        plain="/app/users/42"
        segments=(app@0, users@1, 42@2)
        search={"tab": "profile"}
        hash="top"
    """
    if not url:
        return LocationInfo()

    parts = urllib.parse.urlsplit(url)
    plain = parts.path or "/"
    segments = tuple(
        PathSegment(path=urllib.parse.unquote(p), level=i)
        for i, p in enumerate(x for x in plain.split("/") if x)
    )
    # Last value wins for repeated parameters.
    search = dict(urllib.parse.parse_qsl(parts.query, keep_blank_values=True))
    return LocationInfo(
        plain=plain,
        segments=segments,
        search=search,
        hash=parts.fragment or None,
    )
