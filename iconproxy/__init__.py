# SPDX-License-Identifier: AGPL-3.0-or-later
"""Favicon resolution proxy: discover, fetch, cache and serve the favicon of a
site."""

from __future__ import annotations

__all__ = ["create_app", "logger"]

import logging

logger = logging.getLogger("iconproxy")

from .webapp import create_app  # pylint: disable=wrong-import-position
