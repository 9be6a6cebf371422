"""Runtime configuration loader (config-first, flag-overrides)."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from prop_prophet.scoring_config import ScoringSettings, scoring_settings_from_table
from prop_prophet.time_utils import DEFAULT_TIMEZONE

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "runtime.toml"
DEFAULT_LOCAL_OVERRIDE_PATH = Path(__file__).resolve().parents[2] / "config" / "runtime.local.toml"


@dataclass(frozen=True)
class RuntimeConfig:
    """Materialized runtime configuration."""

    config_path: Path
    data_dir: Path
    timezone: str
    commit_pre_tip_minutes: int
    commit_post_tip_minutes: int
    feeds_timeout_s: float
    feeds_retries: int
    ease_url: str
    scoring: ScoringSettings

    def with_data_dir(self, data_dir: Path | None) -> RuntimeConfig:
        """Return copy with an explicit CLI data-dir override applied."""
        if data_dir is None:
            return self
        return replace(self, data_dir=data_dir)


_CURRENT_RUNTIME_CONFIG: RuntimeConfig | None = None


def set_current_runtime_config(config: RuntimeConfig | None) -> None:
    global _CURRENT_RUNTIME_CONFIG
    _CURRENT_RUNTIME_CONFIG = config


def current_runtime_config() -> RuntimeConfig:
    config = _CURRENT_RUNTIME_CONFIG
    if config is not None:
        return config
    loaded = load_runtime_config()
    set_current_runtime_config(loaded)
    return loaded


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in overlay.items():
        existing = out.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            out[key] = _deep_merge(existing, value)
        else:
            out[key] = value
    return out


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        payload = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuntimeError(f"failed reading runtime config: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise RuntimeError(f"invalid runtime config TOML: {path}") from exc
    return payload


def _as_table(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RuntimeError(f"runtime config section [{key}] must be a table")
    return value


def _as_str(value: Any, *, default: str) -> str:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    return default


def _as_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return default


def _as_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default


def _resolve_path(raw: Any, *, default: str, base_dir: Path) -> Path:
    value = _as_str(raw, default=default)
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return path


def load_runtime_config(config_path: Path | None = None) -> RuntimeConfig:
    """Load runtime config from `config/runtime.toml` plus optional local override."""
    source = (config_path or DEFAULT_CONFIG_PATH).expanduser().resolve()
    if not source.exists():
        raise RuntimeError(f"runtime config file not found: {source}")

    payload = _read_toml(source)
    if source == DEFAULT_CONFIG_PATH and DEFAULT_LOCAL_OVERRIDE_PATH.exists():
        payload = _deep_merge(payload, _read_toml(DEFAULT_LOCAL_OVERRIDE_PATH))

    paths = _as_table(payload, "paths")
    ledger = _as_table(payload, "ledger")
    feeds = _as_table(payload, "feeds")
    scoring = _as_table(payload, "scoring")
    base_dir = source.parent

    return RuntimeConfig(
        config_path=source,
        data_dir=_resolve_path(paths.get("data_dir"), default="data", base_dir=base_dir),
        timezone=_as_str(ledger.get("timezone"), default=DEFAULT_TIMEZONE),
        commit_pre_tip_minutes=_as_int(ledger.get("commit_pre_tip_minutes"), default=40),
        commit_post_tip_minutes=_as_int(ledger.get("commit_post_tip_minutes"), default=5),
        feeds_timeout_s=_as_float(feeds.get("timeout_s"), default=12.0),
        feeds_retries=_as_int(feeds.get("retries"), default=3),
        ease_url=_as_str(feeds.get("ease_url"), default=""),
        scoring=scoring_settings_from_table(scoring),
    )
