"""
Funds/plans list loader.

The list lives in its own YAML file (``paths.funds_config``, overridable with
``CONFIG_PATH``) so that operators can edit it without touching the service
config. It is read again on every rebuild; edits apply on the next refresh.

Expected shape::

    funds:
      - name: ...
        isin: ...
        category: ...
        morningstarId: F0GBR04SKW
        comment: ...
    plans: [...]

Only ``morningstarId`` is mandatory. Missing display fields fall back to
``"-"`` (``name`` to the id) when the snapshot is assembled.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException
from yaml import YAMLError

from listadofondos.config.config import ConfigError
from listadofondos.sources.morningstar.common.models import FundEntry, FundsConfig

SECTIONS: tuple[str, ...] = ("funds", "plans")
_OPTIONAL_FIELDS: tuple[str, ...] = ("isin", "category", "comment")


def _entry(section: str, idx: int, raw: Any) -> FundEntry:
    if not isinstance(raw, dict):
        raise ConfigError(f"{section}[{idx}] must be a mapping")
    ms_id = raw.get("morningstarId")
    if ms_id is None or not str(ms_id).strip():
        raise ConfigError(f"{section}[{idx}] is missing morningstarId")

    ms_id = str(ms_id).strip()
    entry: FundEntry = {"morningstarId": ms_id, "name": str(raw.get("name") or ms_id)}
    for key in _OPTIONAL_FIELDS:
        value = raw.get(key)
        if value is not None:
            entry[key] = str(value)  # type: ignore[literal-required]
    return entry


def parse_funds_config(data: Any) -> FundsConfig:
    """Validate a plain mapping (already loaded) into a `FundsConfig`."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Funds config must be a mapping with 'funds' and 'plans'")

    out: dict[str, list[FundEntry]] = {}
    for section in SECTIONS:
        raw_entries = data.get(section) or []
        if not isinstance(raw_entries, list):
            raise ConfigError(f"'{section}' must be a list")
        out[section] = [_entry(section, i, raw) for i, raw in enumerate(raw_entries)]
    return {"funds": out["funds"], "plans": out["plans"]}


def load_funds_config(path: Path) -> FundsConfig:
    """
    Read and validate the funds YAML at `path`.

    Raises:
        ConfigError: The file is missing, not valid YAML, or an entry lacks
            ``morningstarId``.
    """
    if not path.is_file():
        raise ConfigError(f"Funds config not found: {path}")
    try:
        node = OmegaConf.load(path)
        data = OmegaConf.to_container(node, resolve=True)
    except (OSError, YAMLError, OmegaConfBaseException) as exc:
        raise ConfigError(f"Unreadable funds config {path}: {exc}") from exc
    return parse_funds_config(data)


__all__ = ["SECTIONS", "parse_funds_config", "load_funds_config"]
