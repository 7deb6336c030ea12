# SPDX-License-Identifier: AGPL-3.0-or-later
"""Fixtures of the iconproxy tests."""

import httpx
import pytest

from iconproxy.cache import FaviconCache, FaviconCacheConfig
from iconproxy.config import FaviconConfig
from iconproxy.network import Fetcher
from iconproxy.proxy import FaviconProxy
from iconproxy import create_app

PNG = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\x0dIDATx\x9cc\xf8\x0f"
    b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)
SVG = b'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 16 16"><circle r="8"/></svg>'


class FakeSite:
    """Routes of the fake internet served by a :py:obj:`httpx.MockTransport`,
    the requests are recorded in :py:obj:`FakeSite.requests`."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, url, status=200, content=b"", headers=None):
        u = httpx.URL(url)
        self.routes[(u.host, u.path)] = (status, content, headers or {})

    def handler(self, request):
        self.requests.append(request)
        route = self.routes.get((request.url.host, request.url.path))
        if route is None:
            return httpx.Response(404, content=b"not found")
        status, content, headers = route
        if isinstance(content, Exception):
            raise content
        return httpx.Response(status, content=content, headers=headers)

    @property
    def urls(self):
        return [str(r.url) for r in self.requests]


@pytest.fixture(name="cfg")
def fixture_cfg(tmp_path):
    return FaviconConfig(cache=FaviconCacheConfig(cache_dir=tmp_path / "cache"))


@pytest.fixture(name="site")
def fixture_site():
    return FakeSite()


@pytest.fixture(name="fetcher")
def fixture_fetcher(cfg, site):
    return Fetcher(cfg.proxy, transport=httpx.MockTransport(site.handler))


@pytest.fixture(name="cache")
def fixture_cache(cfg):
    cache = FaviconCache(cfg.cache)
    cache.ensure_dir()
    return cache


@pytest.fixture(name="proxy")
def fixture_proxy(cfg, cache, fetcher):
    return FaviconProxy(cfg.proxy, cache, fetcher)


@pytest.fixture(name="client")
def fixture_client(cfg, fetcher):
    app = create_app(cfg=cfg, fetcher=fetcher)
    app.config["TESTING"] = True
    return app.test_client()
