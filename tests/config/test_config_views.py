from __future__ import annotations

from pathlib import Path

import pytest
from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import ReadonlyConfigError

from listadofondos.config.config import (
    ConfigError,
    cache_path,
    cache_view,
    ensure_config,
    extraction_view,
    funds_config_path,
    load_config,
    load_morningstar_settings,
    morningstar_http_view,
    morningstar_view,
    service_view,
)

_ENV_VARS = (
    "HOST",
    "PORT",
    "CONFIG_PATH",
    "CACHE_DIR",
    "DEBUG_PERFORMANCE",
    "LISTADOFONDOS_ENV",
    "LISTADOFONDOS_CONFIG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _without(cfg: DictConfig, section: str, key: str | None = None) -> DictConfig:
    """Copy of `cfg` (interpolations intact) with a section or key removed."""
    data = OmegaConf.to_container(cfg, resolve=False)
    assert isinstance(data, dict)
    if key is None:
        del data[section]
    else:
        del data[section][key]
    return OmegaConf.create(data)


# ---------- layering ----------


def test_defaults_resolve() -> None:
    cfg = load_config()
    ensure_config(cfg)

    svc = service_view(cfg)
    assert svc.host == "0.0.0.0"
    assert int(svc.port) == 3000
    assert svc.base_path == "/listadofondos/api"
    assert svc.log_level == "INFO"

    assert cache_path(cfg) == Path("cache/data.json")
    assert funds_config_path(cfg) == Path("config/fondos.yaml")
    assert extraction_view(cfg).debug_performance is False


def test_env_overlay_is_merged() -> None:
    assert service_view(load_config(env="dev")).log_level == "DEBUG"


def test_env_selected_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LISTADOFONDOS_ENV", "dev")
    assert service_view(load_config()).log_level == "DEBUG"


def test_unknown_env_raises() -> None:
    with pytest.raises(ConfigError):
        load_config(env="staging")


def test_environment_variables_override_paths(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("CACHE_DIR", str(tmp_path / "c"))
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "fondos.yaml"))
    monkeypatch.setenv("PORT", "8081")

    cfg = load_config()
    assert cache_path(cfg) == tmp_path / "c" / "data.json"
    assert funds_config_path(cfg) == tmp_path / "fondos.yaml"
    assert int(service_view(cfg).port) == 8081


def test_user_yaml_and_dotlist_overrides(tmp_path: Path) -> None:
    user = tmp_path / "listadofondos.yaml"
    user.write_text("service:\n  base_path: /api\n", encoding="utf-8")

    cfg = load_config(overrides_path=user, overrides=["service.port=8080"])
    svc = service_view(cfg)
    assert svc.base_path == "/api"
    assert svc.port == 8080


def test_user_yaml_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    user = tmp_path / "user.yaml"
    user.write_text("cache:\n  path: /var/lib/listadofondos/data.json\n", encoding="utf-8")
    monkeypatch.setenv("LISTADOFONDOS_CONFIG", str(user))

    assert cache_path(load_config()) == Path("/var/lib/listadofondos/data.json")


def test_missing_user_yaml_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(overrides_path=tmp_path / "absent.yaml")


# ---------- views ----------


def test_views_are_read_only() -> None:
    cfg = load_config()
    view = morningstar_view(cfg)
    with pytest.raises(ReadonlyConfigError):
        view.snapshot_url = "https://example.test"  # type: ignore[attr-defined]
    with pytest.raises(ReadonlyConfigError):
        cache_view(cfg).path = "elsewhere.json"  # type: ignore[attr-defined]


def test_http_view() -> None:
    http = morningstar_http_view(load_config())
    assert "Mozilla/5.0" in http.user_agent
    assert http.timeout_seconds == 20.0
    assert http.default_headers["Accept-Language"].startswith("es-ES")


def test_ensure_config_reports_missing_key() -> None:
    broken = _without(load_config(), "cache", "path")
    with pytest.raises(ConfigError, match="cache"):
        ensure_config(broken)


def test_ensure_config_reports_missing_section() -> None:
    broken = _without(load_config(), "extraction")
    with pytest.raises(ConfigError, match="extraction"):
        ensure_config(broken)


# ---------- settings ----------


def test_load_morningstar_settings() -> None:
    settings = load_morningstar_settings(load_config())

    assert settings.snapshot_url.endswith("/snapshot/snapshot.aspx")
    assert settings.views["performance"].tab == 1
    assert settings.views["statistics"].tab == 2
    assert settings.views["fees"].tab == 5
    assert dict(settings.views["fees"].params) == {
        "ClientFund": "0",
        "BaseCurrencyId": "EUR",
        "CurrencyId": "EUR",
        "LanguageId": "es-ES",
    }
    assert dict(settings.views["performance"].params) == {}
    assert settings.timeout_seconds == 20.0
    assert settings.debug_performance is False


def test_debug_performance_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEBUG_PERFORMANCE", "true")
    assert load_morningstar_settings(load_config()).debug_performance is True
