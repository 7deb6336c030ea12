# SPDX-License-Identifier: AGPL-3.0-or-later
"""Resolver of the favicon declared in the HTML of a site."""

from __future__ import annotations

__all__ = ["IconLocator", "ICON_RELS", "find_icon_href"]

from bs4 import BeautifulSoup, ParserRejectedMarkup

from . import logger
from .network import Fetcher

logger = logger.getChild("resolvers")

ICON_RELS = ("shortcut icon", "icon")
"""Values of the ``rel`` attribute of a ``<link>`` declaring the favicon, in
order of their priority."""


class IconLocator:
    """Finds the ``href`` of the favicon in the HTML page of a site."""

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher

    def locate(self, page_url: str, requester: str = "UnknownHost") -> str:
        """Fetch ``page_url`` and return the (unresolved) ``href`` of its
        favicon, an empty string if the page does not declare one."""

        result = self.fetcher.fetch(page_url, requester=requester)
        if not result.succeeded or not result.body:
            return ""
        return find_icon_href(result.body)


def find_icon_href(html: bytes | str) -> str:
    """Search the ``<link rel="shortcut icon">`` and ``<link rel="icon">``
    elements of the HTML document.  The ``shortcut icon`` links are taken
    before the ``icon`` links, the first link with a non empty ``href`` wins.
    Broken markup is not an error, whatever links the parser can recover are
    searched."""

    try:
        # keep rel as plain string, the match is an exact one ("shortcut icon")
        soup = BeautifulSoup(html, "lxml", multi_valued_attributes=None)
    except ParserRejectedMarkup as exc:
        logger.debug("HTML document rejected by the parser: %s", exc)
        return ""

    for rel in ICON_RELS:
        for node in soup.find_all("link", rel=rel):
            href = node.get("href")
            if href:
                return href

    logger.debug("no icon link in HTML document")
    return ""
