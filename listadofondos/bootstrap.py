"""
Bootstrap wiring for listadofondos.

This module turns a loaded config into the runtime objects the HTTP layer
needs. It performs **no implicit side effects on import**; callers (the
`api.main` entry point, tests) invoke the builders explicitly once the config
is loaded.

Configuration
-------------
The HTTP adapter is configured under:

    sources.morningstar.http

Example (`default.yaml`):

    sources:
      morningstar:
        http:
          user_agent: "Mozilla/5.0 ..."
          timeout_seconds: 20.0
          default_headers:
            Accept-Language: "es-ES,es;q=0.9"

Behavior & guarantees
---------------------
- Reads settings through read-only config views (dot access).
- The funds list is re-read on every rebuild, so edits need no restart.
- The snapshot store is a single JSON file at ``cache.path``.

Usage
-----
    from listadofondos.config.config import load_config
    from listadofondos.bootstrap import build_http_adapter_from_config, build_snapshot_cache

    cfg = load_config(env="dev")
    adapter = build_http_adapter_from_config(cfg)
    cache = build_snapshot_cache(cfg, adapter)
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any, Mapping, Optional

import httpx
from loguru import logger
from omegaconf import DictConfig

from listadofondos.common.caching import Clock, SnapshotCache, utc_now
from listadofondos.common.http_adapter import HttpxAdapter
from listadofondos.common.snapshot_store import JsonFileSnapshotStore
from listadofondos.config.config import (
    cache_path,
    funds_config_path,
    load_morningstar_settings,
    morningstar_http_view,
)
from listadofondos.config.funds import load_funds_config
from listadofondos.sources.morningstar.batch.run import build_payload
from listadofondos.sources.morningstar.common.models import Payload

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def _coerce_headers(m: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, str]]:
    if m is None:
        return None
    return {str(k): str(v) for k, v in m.items()}


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink at `level`."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT, backtrace=False)


def build_http_adapter_from_config(
    cfg: DictConfig, *, transport: Optional[httpx.AsyncBaseTransport] = None
) -> HttpxAdapter:
    """Build the shared `HttpxAdapter` from `sources.morningstar.http`."""
    http = morningstar_http_view(cfg)
    headers = _coerce_headers(http.get("default_headers"))
    adapter = HttpxAdapter(
        user_agent=str(http.user_agent),
        default_timeout=float(http.timeout_seconds),
        default_headers=headers,
        transport=transport,
    )
    logger.debug("HTTP adapter ready: {}", adapter.describe())
    return adapter


def build_snapshot_cache(
    cfg: DictConfig, adapter: HttpxAdapter, *, clock: Clock = utc_now
) -> SnapshotCache:
    """
    Wire store + orchestrator into a `SnapshotCache`.

    The rebuild closure loads the funds list and runs `build_payload`; a
    broken funds file makes that rebuild fail (and the request with it)
    while leaving the stored payload untouched.
    """
    settings = load_morningstar_settings(cfg)
    funds_path = funds_config_path(cfg)
    store = JsonFileSnapshotStore(cache_path(cfg))

    async def rebuild() -> Payload:
        funds_config = await asyncio.to_thread(load_funds_config, funds_path)
        logger.info(
            "Rebuilding snapshot from {} ({} funds, {} plans)",
            funds_path,
            len(funds_config["funds"]),
            len(funds_config["plans"]),
        )
        return await build_payload(
            funds_config, adapter=adapter, settings=settings, clock=clock
        )

    logger.debug("Snapshot store at {}", store.path)
    return SnapshotCache(store, rebuild, clock=clock)


__all__ = [
    "LOG_FORMAT",
    "configure_logging",
    "build_http_adapter_from_config",
    "build_snapshot_cache",
]
