"""SQLite Progress Store."""
from __future__ import annotations

import sqlite3

import pytest

from access_funnel.store import ProgressStore


def test_fresh_session_loads_empty(store):
    assert store.load_state("alice") == {}


def test_progress_round_trip_and_upsert(store):
    store.save_progress("alice", 1, ["JOIN_TELEGRAM"], {"JOIN_TELEGRAM": "join_telegram"})
    store.save_progress("alice", 2, ["JOIN_TELEGRAM", "VERIFY_TELEGRAM"], {"JOIN_TELEGRAM": "join_telegram"})
    progress = store.load_state("alice")["progress"]
    assert progress["current_command_index"] == 2
    assert progress["completed_commands"] == ["JOIN_TELEGRAM", "VERIFY_TELEGRAM"]
    assert progress["command_responses"] == {"JOIN_TELEGRAM": "join_telegram"}
    assert store.get_funnel_stats() == {"total_sessions": 1, "completed_sessions": 0}


def test_progress_never_moves_backwards(store):
    store.save_progress("alice", 2, ["JOIN_TELEGRAM", "VERIFY_TELEGRAM"], {})
    store.save_progress("alice", 1, ["JOIN_TELEGRAM"], {})
    assert store.get_progress("alice")["current_command_index"] == 2
    assert store.get_progress("alice")["completed_commands"] == ["JOIN_TELEGRAM", "VERIFY_TELEGRAM"]


def test_completion_is_recorded_once(store):
    assert store.mark_completion("alice", {"wallet_address": "w1"})
    assert not store.mark_completion("alice", {"wallet_address": "w2"})
    completion = store.load_state("alice")["completion"]
    assert completion["completion_data"] == {"wallet_address": "w1"}
    assert completion["completed_at"]


def test_owner_keeps_first_referral_code(store):
    assert store.save_referral_code("alice", "PUSH-ALIC-1111") == "PUSH-ALIC-1111"
    assert store.save_referral_code("alice", "PUSH-ALIC-2222") == "PUSH-ALIC-1111"
    assert store.load_state("alice")["referral_code"] == "PUSH-ALIC-1111"


def test_referral_code_owned_by_someone_else(store):
    store.save_referral_code("alice", "PUSH-SAME-1111")
    with pytest.raises(sqlite3.IntegrityError):
        store.save_referral_code("bob", "PUSH-SAME-1111")


def test_referral_usage_tracking(store):
    store.save_referral_code("alice", "PUSH-ALIC-1111")
    assert store.track_referral_use("bob", "PUSH-ALIC-1111")
    assert not store.track_referral_use("bob", "PUSH-ALIC-1111")    # one use per referred session
    assert not store.track_referral_use("alice", "PUSH-ALIC-1111")  # no self-referral
    assert not store.track_referral_use("carol", "PUSH-NOPE-0000")  # unknown code
    assert store.get_referral_stats("alice") == {
        "code": "PUSH-ALIC-1111", "usage_count": 1, "referred_by": None,
    }
    assert store.get_referral_stats("bob")["referred_by"] == "PUSH-ALIC-1111"


def test_history_is_per_session_newest_first(store):
    store.add_history("alice", "JOIN_TELEGRAM", "join_telegram", 1)
    store.add_history("alice", "VERIFY_TELEGRAM", "verify_telegram", 2)
    store.add_history("bob", "JOIN_TELEGRAM", "join_telegram", 1)
    history = store.get_history("alice")
    assert [h["command"] for h in history] == ["VERIFY_TELEGRAM", "JOIN_TELEGRAM"]
    assert history[0]["index"] == 2


def test_state_survives_reopen(db_dir):
    first = ProgressStore(db_dir / "funnel.db")
    first.save_progress("alice", 1, ["JOIN_TELEGRAM"], {})
    first.close()

    second = ProgressStore(db_dir / "funnel.db")
    try:
        assert second.get_progress("alice")["current_command_index"] == 1
    finally:
        second.close()
