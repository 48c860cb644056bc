"""FunnelConfig layering: defaults, then .funnel/config.yaml, then environment."""
from __future__ import annotations

import pytest

from access_funnel.config import FunnelConfig, load_config
from access_funnel.store.client import DEFAULT_TIMEOUT

ENV_VARS = ("FUNNEL_DB", "FUNNEL_STORE_TIMEOUT", "FUNNEL_CATALOG", "FUNNEL_LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write_config(tmp_path, content: str):
    config_dir = tmp_path / ".funnel"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text(content, encoding="utf-8")


def test_defaults(tmp_path):
    config = load_config(tmp_path)
    assert config == FunnelConfig.from_defaults(tmp_path)
    assert config.db_path == tmp_path / ".funnel" / "funnel.db"
    assert config.store_timeout == DEFAULT_TIMEOUT
    assert config.catalog_path is None
    assert config.log_level == "WARNING"


def test_yaml_file_overrides_defaults(tmp_path):
    _write_config(tmp_path, "db_path: data/progress.db\nstore_timeout: 1.5\ncatalog_path: flows/beta.yaml\nlog_level: debug\n")
    config = load_config(tmp_path)
    assert config.db_path == tmp_path / "data" / "progress.db"
    assert config.store_timeout == 1.5
    assert config.catalog_path == tmp_path / "flows" / "beta.yaml"
    assert config.log_level == "DEBUG"


def test_environment_wins_over_yaml(tmp_path, monkeypatch):
    _write_config(tmp_path, "store_timeout: 1.5\nlog_level: debug\n")
    absolute_db = tmp_path / "elsewhere.db"
    monkeypatch.setenv("FUNNEL_DB", str(absolute_db))
    monkeypatch.setenv("FUNNEL_STORE_TIMEOUT", "0.25")
    monkeypatch.setenv("FUNNEL_LOG_LEVEL", "info")
    config = load_config(tmp_path)
    assert config.db_path == absolute_db
    assert config.store_timeout == 0.25
    assert config.log_level == "INFO"


@pytest.mark.parametrize("value", ["soon", "-1", "0"])
def test_bad_timeout_falls_back_to_default(tmp_path, monkeypatch, value):
    monkeypatch.setenv("FUNNEL_STORE_TIMEOUT", value)
    assert load_config(tmp_path).store_timeout == DEFAULT_TIMEOUT


def test_unreadable_yaml_is_ignored(tmp_path):
    _write_config(tmp_path, "db_path: [unclosed\n")
    assert load_config(tmp_path) == FunnelConfig.from_defaults(tmp_path)
