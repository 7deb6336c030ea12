# SPDX-License-Identifier: AGPL-3.0-or-later
"""Unit tests for the outgoing requests of the favicon proxy."""

import time

import httpx
import pytest

from iconproxy.network import Fetcher, FetchResult


def test_fetch_success(fetcher, site):
    site.add("https://example.com/i.png", content=b"icon")

    result = fetcher.fetch("https://example.com/i.png")

    assert result == FetchResult(succeeded=True, status=200, body=b"icon")


@pytest.mark.parametrize("status", [301, 404, 500, 503])
def test_fetch_non_2xx_fails(fetcher, site, status):
    site.add("https://example.com/i.png", status=status, content=b"oops")

    result = fetcher.fetch("https://example.com/i.png")

    assert not result.succeeded
    assert result.status == status
    assert result.body is None


def test_fetch_exists_only_drops_body(fetcher, site):
    site.add("https://example.com/favicon.ico", content=b"icon")

    result = fetcher.fetch("https://example.com/favicon.ico", exists_only=True)

    assert result.succeeded
    assert result.body is None
    assert not fetcher.fetch("https://example.com/nothing.ico", exists_only=True).succeeded


@pytest.mark.parametrize(
    "exc",
    [
        httpx.ConnectError("connection refused"),
        httpx.ConnectTimeout("timed out"),
        httpx.ReadTimeout("timed out"),
    ],
)
def test_fetch_transport_errors_are_swallowed(fetcher, site, exc):
    site.add("https://example.com/", content=exc)

    assert fetcher.fetch("https://example.com/") == FetchResult(succeeded=False)


def test_fetch_follows_redirects(fetcher, site):
    site.add("http://example.com/", status=301, headers={"Location": "https://www.example.com/"})
    site.add("https://www.example.com/", content=b"<html></html>")

    result = fetcher.fetch("http://example.com/")

    assert result.succeeded
    assert result.body == b"<html></html>"


def test_fetch_without_redirects(fetcher, site):
    site.add("http://example.com/", status=301, headers={"Location": "https://www.example.com/"})

    result = fetcher.fetch("http://example.com/", follow_redirects=False)

    assert not result.succeeded
    assert result.status == 301


def test_fetch_redirect_loop(fetcher, site):
    site.add("https://example.com/a", status=302, headers={"Location": "/b"})
    site.add("https://example.com/b", status=302, headers={"Location": "/a"})

    assert not fetcher.fetch("https://example.com/a").succeeded
    # initial request plus the maximum of five redirects
    assert len(site.requests) == 6


def test_fetch_invalid_url(fetcher):
    assert not fetcher.fetch("http://").succeeded


def test_user_agent(cfg, site):
    fetcher = Fetcher(cfg.proxy, transport=httpx.MockTransport(site.handler))
    site.add("https://example.com/", content=b"x")

    fetcher.fetch("https://example.com/", requester="icons.local")

    assert site.requests[0].headers["User-Agent"] == (
        "Mozilla/5.0 (compatible; icons.local/iconproxy/1.0; +https://example.com/)"
    )


def test_timeout_from_config(cfg, mocker):
    client = mocker.patch("iconproxy.network.httpx.Client")
    stream = client.return_value.__enter__.return_value.stream
    stream.return_value.__enter__.return_value.status_code = 200
    fetcher = Fetcher(cfg.proxy)

    fetcher.fetch("https://example.com/")

    kwargs = client.call_args.kwargs
    assert kwargs["timeout"] == httpx.Timeout(5)
    assert kwargs["max_redirects"] == 5
    assert kwargs["verify"] is False


def test_slow_body_exceeds_timeout(cfg):
    """The timeout bounds the whole request, a body trickling in byte by byte
    does not hold the request open."""
    sent = []

    def trickle():
        for i in range(8):
            time.sleep(0.1)
            sent.append(i)
            yield b"x"

    def handler(request):
        return httpx.Response(200, content=trickle())

    cfg.proxy.timeout = 0.25
    fetcher = Fetcher(cfg.proxy, transport=httpx.MockTransport(handler))

    result = fetcher.fetch("https://example.com/slow.ico")

    assert not result.succeeded
    assert result.body is None
    assert len(sent) < 8


def test_slow_body_within_timeout(cfg):
    def handler(request):
        return httpx.Response(200, content=iter([b"ic", b"on"]))

    fetcher = Fetcher(cfg.proxy, transport=httpx.MockTransport(handler))

    assert fetcher.fetch("https://example.com/i.ico").body == b"icon"
