# SPDX-License-Identifier: AGPL-3.0-or-later
"""Outgoing HTTP requests of the favicon proxy.

.. attention::

   The TLS certificate and hostname of the requested sites are **not**
   verified.  Favicons are fetched from arbitrary third party sites and the
   availability of an icon is more important than the trust of the transport.

"""

from __future__ import annotations

__all__ = ["FetchResult", "Fetcher"]

import time
from typing import TYPE_CHECKING, NamedTuple

import httpx

from . import logger

if TYPE_CHECKING:
    from .proxy import FaviconProxyConfig

logger = logger.getChild("network")


class FetchResult(NamedTuple):
    """Result of a :py:obj:`Fetcher.fetch`.  ``body`` is only set for a
    successful, not *exists only* request."""

    succeeded: bool
    status: int = 0
    body: bytes | None = None


class Fetcher:
    """Sends the GET requests to the sites and their icons.  Errors are never
    raised to the caller, a failed request is a :py:obj:`FetchResult` with
    ``succeeded=False``."""

    def __init__(self, cfg: FaviconProxyConfig, transport: httpx.BaseTransport | None = None):
        self.cfg = cfg
        self.transport = transport

    def user_agent(self, url: str, requester: str) -> str:
        return f"Mozilla/5.0 (compatible; {requester}/{self.cfg.user_agent_base}; +{url})"

    def fetch(
        self,
        url: str,
        timeout: float | None = None,
        follow_redirects: bool = True,
        exists_only: bool = False,
        requester: str = "UnknownHost",
    ) -> FetchResult:
        """GET ``url`` and classify the response by its status code.

        ``exists_only``:
          Only the status of the final response is of interest, the body is
          dropped.
        """

        if timeout is None:
            timeout = self.cfg.timeout
        # the timeout bounds the whole request, connect and redirects included
        deadline = time.monotonic() + timeout

        try:
            with httpx.Client(
                transport=self.transport,
                timeout=httpx.Timeout(timeout),
                follow_redirects=follow_redirects,
                max_redirects=self.cfg.max_redirects,
                verify=False,
                headers={"User-Agent": self.user_agent(url, requester)},
            ) as client:
                with client.stream("GET", url) as response:
                    status = response.status_code
                    if time.monotonic() > deadline:
                        logger.info("GET %s failed: exceeded timeout of %ss", url, timeout)
                        return FetchResult(succeeded=False, status=status)
                    if not 200 <= status < 300:
                        logger.debug("GET %s --> HTTP %s", url, status)
                        return FetchResult(succeeded=False, status=status)

                    if exists_only:
                        return FetchResult(succeeded=True, status=status)

                    chunks = []
                    for chunk in response.iter_bytes():
                        if time.monotonic() > deadline:
                            logger.info("GET %s failed: exceeded timeout of %ss", url, timeout)
                            return FetchResult(succeeded=False, status=status)
                        chunks.append(chunk)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.info("GET %s failed: %s", url, exc)
            return FetchResult(succeeded=False)

        return FetchResult(succeeded=True, status=status, body=b"".join(chunks))
