"""FunnelConfig: defaults, then .funnel/config.yaml, then environment overrides."""
from __future__ import annotations

import contextlib
import os
from dataclasses import dataclass, replace
from pathlib import Path

import yaml

from access_funnel.store.client import DEFAULT_TIMEOUT

CONFIG_DIR = ".funnel"
CONFIG_FILE = "config.yaml"


def _as_float(value, *, default: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if result > 0 else default


@dataclass(frozen=True)
class FunnelConfig:
    db_path: Path
    store_timeout: float = DEFAULT_TIMEOUT
    catalog_path: Path | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_defaults(cls, cwd: str | Path) -> FunnelConfig:
        return cls(db_path=Path(cwd) / CONFIG_DIR / "funnel.db")


def load_config(cwd: str | Path | None = None) -> FunnelConfig:
    base = Path(cwd or os.getcwd())
    config = FunnelConfig.from_defaults(base)

    config_path = base / CONFIG_DIR / CONFIG_FILE
    raw: dict = {}
    if config_path.exists():
        with contextlib.suppress(yaml.YAMLError, OSError):
            loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                raw = loaded

    env = os.environ
    db = env.get("FUNNEL_DB") or raw.get("db_path")
    if db:
        db_path = Path(db)
        config = replace(config, db_path=db_path if db_path.is_absolute() else base / db_path)

    timeout = env.get("FUNNEL_STORE_TIMEOUT") or raw.get("store_timeout")
    if timeout is not None:
        config = replace(config, store_timeout=_as_float(timeout, default=DEFAULT_TIMEOUT))

    catalog = env.get("FUNNEL_CATALOG") or raw.get("catalog_path")
    if catalog:
        catalog_path = Path(catalog)
        config = replace(config, catalog_path=catalog_path if catalog_path.is_absolute() else base / catalog_path)

    level = env.get("FUNNEL_LOG_LEVEL") or raw.get("log_level")
    if level:
        config = replace(config, log_level=str(level).upper())

    return config
