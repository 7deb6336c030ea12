# SPDX-License-Identifier: AGPL-3.0-or-later
"""Configuration of the favicon proxy.  The configuration is read from a TOML
file, by default :py:obj:`DEFAULT_CFG_TOML`::

   [favicons]
   cfg_schema = 1

   [favicons.proxy]
   timeout = 5

   [favicons.cache]
   cache_dir = "/var/cache/iconproxy"

"""

from __future__ import annotations

import os
import pathlib
import tomllib

from pydantic import BaseModel, Field

from .cache import FaviconCacheConfig
from .proxy import FaviconProxyConfig

CONFIG_SCHEMA: int = 1
"""Version of the configuration schema."""

DEFAULT_CFG_TOML = pathlib.Path(__file__).parent / "favicons.toml"

TOML_CACHE: dict[str, "FaviconConfig"] = {}


class FaviconConfig(BaseModel):
    """The class aggregates configurations of the favicon tools"""

    cfg_schema: int = CONFIG_SCHEMA
    """Config's schema version.  The specification of the version of the schema
    is mandatory, currently only version :py:obj:`CONFIG_SCHEMA` is supported.
    By specifying a version, it is possible to ensure downward compatibility in
    the event of future changes to the configuration schema"""

    cache: FaviconCacheConfig = Field(default_factory=FaviconCacheConfig)
    """Setup of the :py:obj:`.cache.FaviconCacheConfig`."""

    proxy: FaviconProxyConfig = Field(default_factory=FaviconProxyConfig)
    """Setup of the :py:obj:`.proxy.FaviconProxyConfig`."""

    @classmethod
    def from_toml_file(cls, cfg_file: str | pathlib.Path, use_cache: bool) -> "FaviconConfig":
        """Create a config object from a TOML file, the ``use_cache`` argument
        specifies whether a cache should be used.
        """

        cached = TOML_CACHE.get(str(cfg_file))
        if use_cache and cached:
            return cached

        with open(cfg_file, "rb") as f:
            data = tomllib.load(f)

        cfg = cls(**data.get("favicons", {}))
        if cfg.cfg_schema != CONFIG_SCHEMA:
            raise ValueError(
                f"config schema version {CONFIG_SCHEMA} is needed, version {cfg.cfg_schema} is given in {cfg_file}"
            )

        env_cache_dir = os.environ.get("ICONPROXY_CACHE_DIR")
        if env_cache_dir:
            cfg.cache.cache_dir = pathlib.Path(env_cache_dir)

        if use_cache:
            TOML_CACHE[str(cfg_file)] = cfg
        return cfg


def load_config() -> FaviconConfig:
    """Load the config named by the environment ``ICONPROXY_CONFIG`` or the
    :py:obj:`DEFAULT_CFG_TOML`."""
    cfg_file = os.environ.get("ICONPROXY_CONFIG") or DEFAULT_CFG_TOML
    return FaviconConfig.from_toml_file(cfg_file, use_cache=True)
