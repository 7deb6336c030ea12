# SPDX-License-Identifier: AGPL-3.0-or-later
"""WSGI application of the favicon proxy.

::

    /?url=<...>&refresh=<...>

``url``:
  The site whose favicon is requested (``example.org``, ``https://example.org``)

``refresh``:
  Boolean like flag (``1``, ``true``, ``on``, ``yes``), bypass the cache.

"""

from __future__ import annotations

__all__ = ["create_app"]

import flask

from . import logger
from .cache import FaviconCache
from .config import FaviconConfig, load_config
from .network import Fetcher
from .proxy import FaviconProxy

logger = logger.getChild("webapp")

TRUE_VALUES = ("1", "true", "on", "yes")


def is_true(value: str | None) -> bool:
    return (value or "").strip().lower() in TRUE_VALUES


def create_app(cfg: FaviconConfig | None = None, fetcher: Fetcher | None = None) -> flask.Flask:
    """Build the flask app, the cache and the fetcher are created once and
    shared by all requests."""

    if cfg is None:
        cfg = load_config()
    if fetcher is None:
        fetcher = Fetcher(cfg.proxy)

    proxy = FaviconProxy(cfg.proxy, FaviconCache(cfg.cache), fetcher)

    app = flask.Flask(__name__)
    app.extensions["iconproxy"] = proxy

    @app.route("/", methods=["GET"])
    def favicon_proxy():
        try:
            resolution = proxy.resolve(
                flask.request.args.get("url"),
                refresh=is_true(flask.request.args.get("refresh")),
                requester=flask.request.host or "UnknownHost",
            )
            return proxy.respond(resolution)
        except Exception:  # pylint: disable=broad-except
            logger.exception("favicon proxy failed on %s", flask.request.url)
            return proxy.emit_error()

    return app
