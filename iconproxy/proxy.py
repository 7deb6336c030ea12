# SPDX-License-Identifier: AGPL-3.0-or-later
"""Implementations for a favicon proxy"""

from __future__ import annotations

__all__ = ["FaviconProxyConfig", "FaviconProxy", "Outcome", "Resolution", "content_type_for"]

import enum
import pathlib
import posixpath
import urllib.parse
from typing import NamedTuple

import flask
from pydantic import BaseModel

from . import logger
from .cache import FaviconCache
from .exceptions import FaviconCacheError
from .network import Fetcher
from .resolvers import IconLocator
from .urls import build_base_url, parse_target, resolve_icon_url

logger = logger.getChild("proxy")

DEFAULT_ICON = pathlib.Path(__file__).parent / "default.ico"

EXT_MIME = {
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".cur": "image/x-icon",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


class FaviconProxyConfig(BaseModel):
    """Configuration of the favicon proxy."""

    timeout: float = 5
    """Timeout (connect and read) of the outgoing requests in seconds."""

    max_redirects: int = 5
    """Maximum number of redirects followed by an outgoing request."""

    user_agent_base: str = "iconproxy/1.0"
    """Product token in the User-Agent of the outgoing requests."""

    max_age: int = 60 * 60 * 24 * 7  # seven days
    """HTTP header Cache-Control_ ``max-age``

    .. _Cache-Control: https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Cache-Control
    """

    default_icon: pathlib.Path = DEFAULT_ICON
    """Icon served when no favicon can be found."""


def content_type_for(url: str) -> str:
    """Mime-type of a fetched favicon, derived from the extension in the path
    of its URL.  Most favicons are ICO files, ``image/x-icon`` is the
    fallback."""
    ext = posixpath.splitext(urllib.parse.urlsplit(url).path)[1].lower()
    return EXT_MIME.get(ext, "image/x-icon")


def _text_response(text: str, status: int) -> flask.Response:
    return flask.Response(text, status=status, mimetype="text/plain")


class Outcome(enum.Enum):
    """Terminal states of a :py:obj:`FaviconProxy.resolve`."""

    NO_URL = "no-url"
    INVALID = "invalid"
    CACHE_HIT = "cache-hit"
    FETCHED = "fetched"
    NOT_FOUND = "not-found"
    ERROR = "error"


class Resolution(NamedTuple):
    outcome: Outcome
    data: bytes | None = None
    mime: str | None = None


class FaviconProxy:
    """Resolves the favicon of a site and builds the HTTP response.

    ``cache``:
      The :py:obj:`.cache.FaviconCache` shared by all requests.

    ``fetcher``:
      The :py:obj:`.network.Fetcher` for the outgoing requests.
    """

    def __init__(self, cfg: FaviconProxyConfig, cache: FaviconCache, fetcher: Fetcher):
        self.cfg = cfg
        self.cache = cache
        self.fetcher = fetcher
        self.locator = IconLocator(fetcher)

    def resolve(self, url: str | None, refresh: bool = False, requester: str = "UnknownHost") -> Resolution:
        """Run the resolution pipeline for the site ``url``.  Unexpected errors
        are logged and end in :py:obj:`Outcome.ERROR`."""
        try:
            return self._resolve(url, refresh, requester)
        except FaviconCacheError:
            return Resolution(Outcome.ERROR)
        except Exception:  # pylint: disable=broad-except
            logger.exception("An unexpected error occurred while resolving the favicon of %r", url)
            return Resolution(Outcome.ERROR)

    def _resolve(self, url: str | None, refresh: bool, requester: str) -> Resolution:

        if not url:
            return Resolution(Outcome.NO_URL)

        target = parse_target(url)
        if target is None:
            return Resolution(Outcome.INVALID)
        base_url = build_base_url(target)
        if base_url is None:
            return Resolution(Outcome.INVALID)

        self.cache.ensure_dir()

        if not refresh:
            data_mime = self.cache(target.host)
            if data_mime is not None:
                data, mime = data_mime
                return Resolution(Outcome.CACHE_HIT, data, mime)

        icon = self.locator.locate(base_url, requester=requester)
        if icon:
            icon_url = resolve_icon_url(icon, target)
        else:
            # the existence check is followed by a second GET of the icon
            icon_url = base_url + "/favicon.ico"
            if not self.fetcher.fetch(icon_url, exists_only=True, requester=requester).succeeded:
                return Resolution(Outcome.NOT_FOUND)

        result = self.fetcher.fetch(icon_url, requester=requester)
        if not result.succeeded or not result.body:
            return Resolution(Outcome.NOT_FOUND)

        self.cache.set(target.host, result.body)
        return Resolution(Outcome.FETCHED, result.body, content_type_for(icon_url))

    def respond(self, resolution: Resolution) -> flask.Response:
        outcome = resolution.outcome
        if outcome is Outcome.NO_URL:
            return self.emit_no_url()
        if outcome is Outcome.CACHE_HIT:
            return self.emit(resolution.data, resolution.mime, cache_status="Hit")  # type: ignore
        if outcome is Outcome.FETCHED:
            return self.emit(resolution.data, resolution.mime)  # type: ignore
        if outcome is Outcome.ERROR:
            return self.emit_error()
        return self.emit_default()

    def emit(self, data: bytes, mime: str, cache_status: str | None = None) -> flask.Response:
        resp = flask.Response(data, status=200, content_type=mime)
        resp.headers["Content-Length"] = str(len(data))
        resp.headers["Cache-Control"] = f"max-age={self.cfg.max_age}"
        if cache_status:
            resp.headers["X-Icon-Cache"] = cache_status
        return resp

    def emit_no_url(self) -> flask.Response:
        return _text_response("URL not provided.", 404)

    def _default_icon(self) -> bytes | None:
        try:
            return self.cfg.default_icon.read_bytes()
        except OSError as exc:
            logger.error("default icon %s is not available: %s", self.cfg.default_icon, exc)
            return None

    def emit_default(self) -> flask.Response:
        data = self._default_icon()
        if data is None:
            return _text_response("Default icon not found.", 500)
        resp = flask.Response(data, status=200, mimetype="image/x-icon")
        resp.headers["Content-Length"] = str(len(data))
        return resp

    def emit_error(self) -> flask.Response:
        data = self._default_icon()
        if data is None:
            return _text_response("Internal server error.", 500)
        resp = flask.Response(data, status=500, mimetype="image/x-icon")
        resp.headers["Content-Length"] = str(len(data))
        return resp
