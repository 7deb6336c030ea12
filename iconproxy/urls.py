# SPDX-License-Identifier: AGPL-3.0-or-later
"""Normalization of the requested site URL and resolution of the icon
references found in the HTML of the site."""

from __future__ import annotations

__all__ = ["RequestTarget", "parse_target", "join_base_url", "build_base_url", "resolve_icon_url"]

import urllib.parse
from typing import NamedTuple

from pydantic import AnyUrl, TypeAdapter, ValidationError

from . import logger

logger = logger.getChild("urls")

URL_ADAPTER = TypeAdapter(AnyUrl)


class RequestTarget(NamedTuple):
    """The site requested by the client, derived once from the ``url``
    argument of the request."""

    raw_url: str
    scheme: str
    host: str
    port: int | None
    path: str


def parse_target(raw_url: str) -> RequestTarget | None:
    """Parse ``raw_url`` into a :py:obj:`RequestTarget`, returns ``None`` if
    the URL is invalid.

    The scheme defaults to ``http``.  If no host can be parsed from the URL
    (e.g. a bare domain like ``example.org``), the path is taken as host.
    """
    if not raw_url:
        return None

    try:
        parsed = urllib.parse.urlsplit(raw_url)
        port = parsed.port
    except ValueError as exc:
        logger.debug("can't parse URL %r: %s", raw_url, exc)
        return None

    host = parsed.hostname or ""
    path = parsed.path
    if not host:
        if not path:
            return None
        host, path = path, ""

    return RequestTarget(
        raw_url=raw_url,
        scheme=parsed.scheme or "http",
        host=host,
        port=port,
        path=path,
    )


def join_base_url(target: RequestTarget) -> str:
    """Concatenate ``scheme://host[:port]`` of the target."""
    base_url = f"{target.scheme}://{target.host}"
    if target.port:
        base_url += f":{target.port}"
    return base_url


def build_base_url(target: RequestTarget) -> str | None:
    """Returns ``scheme://host[:port]`` of the target or ``None`` if this is
    not a well-formed absolute URL."""

    base_url = join_base_url(target)
    try:
        URL_ADAPTER.validate_python(base_url)
    except ValidationError:
        logger.debug("invalid base URL %r", base_url)
        return None
    return base_url


def resolve_icon_url(icon_ref: str, target: RequestTarget) -> str:
    """Resolve the ``href`` of an icon found in the HTML of the target into an
    absolute URL.  The target has already passed :py:obj:`build_base_url`.

    The order of the checks is significant:

    1. protocol relative (``//cdn.example.org/i.png``)
    2. absolute (``https://example.org/i.png``), returned unchanged
    3. root relative (``/assets/i.png``)
    4. relative to the path of the requested URL (``i.png``)
    """

    if icon_ref.startswith("//"):
        return f"{target.scheme}:{icon_ref}"

    if icon_ref.startswith("http"):
        return icon_ref

    base_url = join_base_url(target)
    if icon_ref.startswith("/"):
        return base_url + icon_ref

    path = target.path.rstrip("/")
    return f"{base_url}{path}/{icon_ref}"
