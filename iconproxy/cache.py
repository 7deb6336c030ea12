# SPDX-License-Identifier: AGPL-3.0-or-later
"""Implementations for caching favicons.

:py:obj:`FaviconCacheConfig`:
  Configuration of the favicon cache

:py:obj:`FaviconCache`:
  Favicon cache that stores one file per host in the cache directory.

The cache does not store the mime-type of a favicon, the type is sniffed from
the content of the file when it is read.  A file that is empty, can't be read
or does not contain an image is removed from the cache (self-healing).  There
is no maintenance or expiry of the entries, an entry is overwritten by every
successful fetch of the favicon.

----

"""

from __future__ import annotations

__all__ = ["FaviconCacheConfig", "FaviconCache", "sniff_mime", "is_svg", "default_cache_dir"]

import hashlib
import io
import os
import pathlib
import tempfile

import puremagic
from lxml import etree
from pydantic import BaseModel, Field

from . import logger
from .exceptions import FaviconCacheError

logger = logger.getChild("cache")

MIME_ALIASES = {
    "image/vnd.microsoft.icon": "image/x-icon",
    "image/ico": "image/x-icon",
}


def default_cache_dir() -> pathlib.Path:
    """On ephemeral hosting (``VERCEL`` in the environment) only the temp
    folder is writable, otherwise the cache is placed in ``./cache``."""
    env_cache_dir = os.environ.get("ICONPROXY_CACHE_DIR")
    if env_cache_dir:
        return pathlib.Path(env_cache_dir)
    if os.environ.get("VERCEL"):
        return pathlib.Path(tempfile.gettempdir())
    return pathlib.Path.cwd() / "cache"


class FaviconCacheConfig(BaseModel):
    """Configuration of the favicon cache."""

    cache_dir: pathlib.Path = Field(default_factory=default_cache_dir)
    """Folder of the cache files, see :py:obj:`default_cache_dir`."""

    suffix: str = ".ico"
    """Suffix of the cache files (regardless of the type of the image)."""


def sniff_mime(data: bytes) -> str | None:
    """Returns the mime-type of an image or ``None`` if ``data`` is not an
    image."""

    try:
        detections = puremagic.magic_string(data)
    except (puremagic.PureError, ValueError):
        detections = []

    for item in detections:
        mime = item.mime_type
        if mime and mime.startswith("image/"):
            return MIME_ALIASES.get(mime, mime)

    # SVG is a XML text document, puremagic does not detect it as image
    if is_svg(data):
        return "image/svg+xml"
    return None


def is_svg(data: bytes) -> bool:
    """Checks whether the root element of the XML document is ``<svg>``.  The
    prolog (BOM, XML declaration, comments, DOCTYPE) is skipped by the
    parser."""

    try:
        for _, elem in etree.iterparse(
            io.BytesIO(data),
            events=("start",),
            recover=True,
            resolve_entities=False,
            no_network=True,
        ):
            return etree.QName(elem).localname.lower() == "svg"
    except etree.LxmlError:
        pass
    return False


class FaviconCache:
    """Favicon cache that manages the favicon BLOBs in files, the name of the
    file is the md5 hash of the host.

    - :py:obj:`FaviconCacheConfig.cache_dir`
    - :py:obj:`FaviconCacheConfig.suffix`
    """

    def __init__(self, cfg: FaviconCacheConfig):
        self.cfg = cfg

    @staticmethod
    def cache_key(host: str) -> str:
        return hashlib.md5(host.encode(), usedforsecurity=False).hexdigest()

    def cache_file(self, host: str) -> pathlib.Path:
        return self.cfg.cache_dir / f"{self.cache_key(host)}{self.cfg.suffix}"

    def ensure_dir(self):
        """Create the cache directory, raises :py:obj:`FaviconCacheError` if the
        directory can't be used."""
        try:
            self.cfg.cache_dir.mkdir(mode=0o775, parents=True, exist_ok=True)
        except OSError as exc:
            logger.critical("Failed to create cache directory: %s (%s)", self.cfg.cache_dir, exc)
            raise FaviconCacheError(f"cache directory {self.cfg.cache_dir} is unusable") from exc

    def __call__(self, host: str) -> tuple[bytes, str] | None:
        """Returns ``None`` or the tuple of ``(data, mime)`` of the cached
        favicon.  The ``None`` indicates that there was no (valid) entry in the
        cache."""

        cache_file = self.cache_file(host)
        if not cache_file.is_file():
            return None

        try:
            data = cache_file.read_bytes()
        except OSError as exc:
            logger.info("can't read cache file of %s: %s", host, exc)
            data = b""

        if not data:
            self._drop(cache_file)
            return None

        mime = sniff_mime(data)
        if mime is None:
            logger.info("cached favicon of %s is not an image, drop it", host)
            self._drop(cache_file)
            return None
        return data, mime

    def set(self, host: str, data: bytes) -> bool:
        """Write the favicon of the ``host`` to the cache, an existing entry is
        overwritten."""

        cache_file = self.cache_file(host)
        try:
            cache_file.write_bytes(data)
        except OSError as exc:
            logger.error("Failed to write to cache file: %s (%s)", cache_file, exc)
            return False
        return True

    def _drop(self, cache_file: pathlib.Path):
        try:
            cache_file.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to remove cache file: %s (%s)", cache_file, exc)
