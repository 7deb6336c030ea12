# SPDX-License-Identifier: AGPL-3.0-or-later
"""Exceptions of the favicon proxy."""

from __future__ import annotations


class IconProxyException(Exception):
    """Base iconproxy exception."""


class FaviconCacheError(IconProxyException):
    """The cache directory can't be created or used.  This is an
    infrastructure failure and ends up in a HTTP 500 response."""
