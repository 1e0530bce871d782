"""
Config loading and views for listadofondos.

Layering (later wins):
  1) packaged ``assets/config/default.yaml``
  2) packaged ``assets/config/env/<env>.yaml`` (env from ``LISTADOFONDOS_ENV``)
  3) optional user YAML (``LISTADOFONDOS_CONFIG`` or ``overrides_path``)
  4) dotlist overrides (``["service.port=8080", ...]``)

Views:
- service_view(cfg):           host/port/base path/log level
- cache_view(cfg):             snapshot store location
- morningstar_view(cfg):       snapshot endpoint + per-view query shape
- morningstar_http_view(cfg):  HTTP adapter settings
- extraction_view(cfg):        extractor switches (debug logging)

Convenience:
- load_morningstar_settings(cfg) -> SnapshotSettings
- cache_path(cfg), funds_config_path(cfg) -> Path
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, cast

from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from listadofondos.assets import has_asset, read_text
from listadofondos.sources.morningstar.common.models import VIEW_ROLES, ViewRole
from listadofondos.sources.morningstar.snapshot.downloader import (
    SnapshotSettings,
    ViewSpec,
)

ENV_VAR_ENV = "LISTADOFONDOS_ENV"
ENV_VAR_CONFIG = "LISTADOFONDOS_CONFIG"
DEFAULT_ENV = "prod"


class ConfigError(RuntimeError):
    pass


def load_config(
    *,
    env: Optional[str] = None,
    overrides_path: Optional[Path] = None,
    overrides: Sequence[str] = (),
) -> DictConfig:
    """Compose the layered configuration (unresolved; views resolve)."""
    env = env or os.environ.get(ENV_VAR_ENV) or DEFAULT_ENV
    layers: list[DictConfig] = [
        cast(DictConfig, OmegaConf.create(read_text("config/default.yaml")))
    ]

    env_asset = f"config/env/{env}.yaml"
    if not has_asset(env_asset):
        raise ConfigError(f"Unknown environment: {env}")
    layers.append(cast(DictConfig, OmegaConf.create(read_text(env_asset))))

    user_path = overrides_path or (
        Path(os.environ[ENV_VAR_CONFIG]) if os.environ.get(ENV_VAR_CONFIG) else None
    )
    if user_path is not None:
        if not user_path.is_file():
            raise ConfigError(f"Config file not found: {user_path}")
        layers.append(cast(DictConfig, OmegaConf.load(user_path)))

    if overrides:
        layers.append(OmegaConf.from_dotlist(list(overrides)))

    return cast(DictConfig, OmegaConf.merge(*layers))


def make_view(cfg: DictConfig, path: str) -> DictConfig:
    """Resolved, read-only copy of the subtree at `path`."""
    try:
        node = OmegaConf.select(cfg, path, throw_on_missing=True)
        if not isinstance(node, DictConfig):
            raise ConfigError(f"Missing config section: {path}")
        view = OmegaConf.create(OmegaConf.to_container(node, resolve=True))
    except OmegaConfBaseException as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    OmegaConf.set_readonly(view, True)
    return cast(DictConfig, view)


def service_view(cfg: DictConfig) -> DictConfig:
    """Read-only view rooted at `service`."""
    return make_view(cfg, "service")


def cache_view(cfg: DictConfig) -> DictConfig:
    """Read-only view rooted at `cache`."""
    return make_view(cfg, "cache")


def paths_view(cfg: DictConfig) -> DictConfig:
    """Read-only view rooted at `paths`."""
    return make_view(cfg, "paths")


def morningstar_view(cfg: DictConfig) -> DictConfig:
    """Read-only view rooted at `sources.morningstar`."""
    return make_view(cfg, "sources.morningstar")


def morningstar_http_view(cfg: DictConfig) -> DictConfig:
    """Read-only view rooted at `sources.morningstar.http`."""
    return make_view(cfg, "sources.morningstar.http")


def extraction_view(cfg: DictConfig) -> DictConfig:
    """Read-only view rooted at `extraction`."""
    return make_view(cfg, "extraction")


def _must_have(d: Any, path: str, keys: Iterable[str]) -> None:
    missing = [k for k in keys if k not in d]
    if missing:
        raise ConfigError(f"Missing keys at {path}: {', '.join(missing)}")


def ensure_config(cfg: DictConfig) -> None:
    """Fail fast (ConfigError) when required keys are absent."""
    _must_have(service_view(cfg), "service", ("host", "port", "base_path", "log_level"))
    _must_have(paths_view(cfg), "paths", ("funds_config", "cache_dir"))
    _must_have(cache_view(cfg), "cache", ("path",))

    ms = morningstar_view(cfg)
    _must_have(ms, "sources.morningstar", ("snapshot_url", "views", "http"))
    _must_have(ms.views, "sources.morningstar.views", VIEW_ROLES)
    for role in VIEW_ROLES:
        _must_have(ms.views[role], f"sources.morningstar.views.{role}", ("tab",))

    _must_have(
        morningstar_http_view(cfg),
        "sources.morningstar.http",
        ("user_agent", "timeout_seconds"),
    )
    _must_have(extraction_view(cfg), "extraction", ("debug_performance",))


def load_morningstar_settings(cfg: DictConfig) -> SnapshotSettings:
    """Convert `sources.morningstar` (+ extraction flags) into `SnapshotSettings`."""
    ms = morningstar_view(cfg)
    views: dict[ViewRole, ViewSpec] = {}
    for role in VIEW_ROLES:
        node = ms.views[role]
        params = node.get("params") or {}
        views[role] = ViewSpec(
            tab=int(node.tab),
            params={str(k): str(v) for k, v in params.items()},
        )
    return SnapshotSettings(
        snapshot_url=str(ms.snapshot_url),
        views=views,
        timeout_seconds=float(ms.http.timeout_seconds),
        debug_performance=bool(extraction_view(cfg).debug_performance),
    )


def cache_path(cfg: DictConfig) -> Path:
    return Path(str(cache_view(cfg).path))


def funds_config_path(cfg: DictConfig) -> Path:
    return Path(str(paths_view(cfg).funds_config))


__all__ = [
    "ENV_VAR_ENV",
    "ENV_VAR_CONFIG",
    "ConfigError",
    "load_config",
    "make_view",
    "service_view",
    "cache_view",
    "paths_view",
    "morningstar_view",
    "morningstar_http_view",
    "extraction_view",
    "ensure_config",
    "load_morningstar_settings",
    "cache_path",
    "funds_config_path",
]
