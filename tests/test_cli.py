"""CLI commands and MCP tools, run against a temporary working directory."""
from __future__ import annotations

import asyncio
import json
import sys

import pytest
from conftest import HAPPY_PATH

from access_funnel import cli
from access_funnel.commands.load import cmd_load
from access_funnel.commands.status import cmd_status
from access_funnel.store import ProgressStore


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("FUNNEL_DB", "FUNNEL_STORE_TIMEOUT", "FUNNEL_CATALOG", "FUNNEL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def _db(tmp_path) -> ProgressStore:
    (tmp_path / ".funnel").mkdir(exist_ok=True)
    return ProgressStore(tmp_path / ".funnel" / "funnel.db")


# ─── load ───

def test_load_default_catalog(tmp_path, capsys):
    cmd_load(None, str(tmp_path))
    out = capsys.readouterr().out
    assert 'Catalog "access-funnel" compiled (7 commands)' in out
    assert "```mermaid" in out
    assert "graph TD" in out


def test_load_rejects_invalid_catalog(tmp_path, capsys):
    path = tmp_path / "bad.yaml"
    path.write_text("commands:\n  - id: one\n  - id: ONE\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        cmd_load(str(path), str(tmp_path))
    assert exc.value.code == 1
    assert "Duplicate command id" in capsys.readouterr().out


def test_load_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit):
        cmd_load(str(tmp_path / "nope.yaml"), str(tmp_path))
    assert "Catalog file not found" in capsys.readouterr().err


# ─── status ───

def test_status_without_database(tmp_path, capsys):
    cmd_status(None, str(tmp_path))
    assert "No funnel database found." in capsys.readouterr().out


def test_status_reports_stats_and_progress(tmp_path, capsys):
    store = _db(tmp_path)
    store.save_progress("alice", 2, ["JOIN_TELEGRAM", "VERIFY_TELEGRAM"], {})
    store.add_history("alice", "VERIFY_TELEGRAM", "verify_telegram", 2)
    store.save_referral_code("bob", "PUSH-BOB-1234")
    store.close()

    cmd_status(None, str(tmp_path))
    out = capsys.readouterr().out
    assert "Sessions with progress: 1" in out
    assert "Completed sessions: 0" in out

    cmd_status("alice", str(tmp_path))
    out = capsys.readouterr().out
    assert "alice: 2/7, next: SOL_WALLET" in out
    assert "Last command: VERIFY_TELEGRAM" in out

    cmd_status("bob", str(tmp_path))
    assert "Referral code: PUSH-BOB-1234 (used 0 times)" in capsys.readouterr().out


def test_status_completed_session(tmp_path, capsys):
    store = _db(tmp_path)
    store.mark_completion("alice", {"wallet_address": "w"})
    store.close()
    cmd_status("alice", str(tmp_path))
    assert "alice: completed at" in capsys.readouterr().out


# ─── router ───

def test_main_prints_usage(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["funnel", "help"])
    cli.main()
    assert "Usage:" in capsys.readouterr().out


def test_main_unknown_command(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["funnel", "launch"])
    with pytest.raises(SystemExit):
        cli.main()
    assert "Unknown command: launch" in capsys.readouterr().err


def test_main_play_requires_session(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["funnel", "play"])
    with pytest.raises(SystemExit):
        cli.main()
    assert "Usage: funnel play <session>" in capsys.readouterr().err


# ─── MCP tools ───

def test_mcp_submit_persists_between_calls(tmp_path, monkeypatch):
    from access_funnel.integrations.mcp_server import funnel_get_status, funnel_submit

    monkeypatch.chdir(tmp_path)

    first = json.loads(asyncio.run(funnel_submit("alice", HAPPY_PATH[0])))
    assert first["success"] is True
    assert first["index"] == 1
    assert [e["kind"] for e in first["entries"]] == ["echo", "success", "system"]

    wrong = json.loads(asyncio.run(funnel_submit("alice", "share")))
    assert wrong["success"] is False
    assert wrong["entries"][-1]["kind"] == "error"

    status = json.loads(asyncio.run(funnel_get_status("alice")))
    assert status["current_index"] == 1
    assert status["next_command"] == "VERIFY_TELEGRAM"
