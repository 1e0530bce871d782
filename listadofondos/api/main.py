"""
Service entry point: ``listadofondos-api`` (or ``python -m listadofondos.api.main``).

Loads the layered config, configures logging, wires the adapter and cache,
and serves the FastAPI app with uvicorn.
"""

from __future__ import annotations

from typing import Optional

import uvicorn
from fastapi import FastAPI
from loguru import logger
from omegaconf import DictConfig

from listadofondos.api.app import create_app
from listadofondos.bootstrap import (
    build_http_adapter_from_config,
    build_snapshot_cache,
    configure_logging,
)
from listadofondos.config.config import ensure_config, load_config, service_view


def build_app(cfg: DictConfig) -> FastAPI:
    """Fully wired application for an already loaded config."""
    ensure_config(cfg)
    adapter = build_http_adapter_from_config(cfg)
    cache = build_snapshot_cache(cfg, adapter)
    return create_app(
        cache,
        base_path=str(service_view(cfg).base_path),
        on_shutdown=adapter.aclose,
    )


def main(env: Optional[str] = None) -> None:
    cfg = load_config(env=env)
    service = service_view(cfg)
    configure_logging(str(service.log_level))

    app = build_app(cfg)
    host, port = str(service.host), int(service.port)
    logger.info("listadofondos api listening on {}:{}{}", host, port, service.base_path)
    uvicorn.run(app, host=host, port=port, log_level=str(service.log_level).lower())


if __name__ == "__main__":
    main()
