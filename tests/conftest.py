"""Shared fixtures for access-funnel tests."""
from __future__ import annotations

import asyncio
import random
import shutil
import sqlite3
import tempfile
import time
from pathlib import Path

import pytest

from access_funnel.compiler import load_catalog
from access_funnel.engine import FunnelEngine, FunnelSession
from access_funnel.store import ProgressStore, ProgressStoreClient
from access_funnel.types import EntryKind

VALID_WALLET = "acJHdMxJ6hkik1GgEqL1V1biUT2PCPjtpYLtaWbuSjc"

# One accepted line per default catalog position
HAPPY_PATH = [
    "join_telegram",
    "verify_telegram",
    f"sol_wallet {VALID_WALLET}",
    "refer",
    "submit_referral NO",
    "generate_referral",
    "share",
]


class FunnelHarness:
    """Drives an engine directly, with the same catalog the product ships.

    Events the engine emits are collected on `engine.events`; nothing is
    persisted unless a test hands them to a store.
    """

    def __init__(self, identity: str = "testuser", seed: int = 7):
        self.catalog = load_catalog()
        self.completions = 0
        self.engine = FunnelEngine(
            self.catalog,
            identity=identity,
            on_complete=self._on_complete,
            rng=random.Random(seed),
        )

    def _on_complete(self) -> None:
        self.completions += 1

    @property
    def state(self):
        return self.engine.state

    @property
    def index(self) -> int:
        return self.engine.state.current_index

    @property
    def log(self):
        return self.engine.log.entries

    def submit(self, line: str):
        return self.engine.submit(line)

    def advance_to(self, command_id: str):
        """Submit the happy-path lines until the given command is next."""
        for line in HAPPY_PATH:
            if self.catalog[self.index].id == command_id:
                return
            assert self.submit(line), f"happy path rejected {line!r}"
        raise RuntimeError(f"Could not advance to {command_id!r}")

    def last(self, kind: EntryKind | None = None):
        entries = [e for e in self.log if kind is None or e.kind is kind]
        return entries[-1] if entries else None

    def kinds(self) -> list[EntryKind]:
        return [e.kind for e in self.log]


class FailingStore(ProgressStore):
    """Progress Store whose selected operations raise or stall.

    `delay` stalls every call; `first_delay` stalls only the first call of
    the named operations. `error` is the exception type raised for `fail`.
    """

    def __init__(
        self,
        db_path,
        *,
        fail: set[str] | None = None,
        delay: float = 0.0,
        first_delay: dict[str, float] | None = None,
        error: type[Exception] = sqlite3.OperationalError,
    ):
        super().__init__(db_path)
        self.fail = fail or set()
        self.delay = delay
        self.first_delay = dict(first_delay or {})
        self.error = error

    def _maybe_fail(self, operation: str) -> None:
        stall = self.first_delay.pop(operation, 0.0) or self.delay
        if stall:
            time.sleep(stall)
        if operation in self.fail or "*" in self.fail:
            raise self.error(f"{operation}: database is locked")

    def load_state(self, session_key):
        self._maybe_fail("load_state")
        return super().load_state(session_key)

    def save_progress(self, session_key, index, completed, responses):
        self._maybe_fail("save_progress")
        return super().save_progress(session_key, index, completed, responses)

    def mark_completion(self, session_key, completion_data):
        self._maybe_fail("mark_completion")
        return super().mark_completion(session_key, completion_data)

    def save_referral_code(self, session_key, code):
        self._maybe_fail("save_referral_code")
        return super().save_referral_code(session_key, code)


@pytest.fixture
def harness():
    return FunnelHarness()


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def db_dir():
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def store(db_dir):
    s = ProgressStore(db_dir / "funnel.db")
    yield s
    s.close()


@pytest.fixture
def session_factory(catalog):
    """Build FunnelSessions over a client; the caller runs them inside asyncio.run."""

    def _make(session_key: str, store: ProgressStore | None, **kwargs) -> FunnelSession:
        timeout = kwargs.pop("timeout", 2.0)
        client = ProgressStoreClient(store, timeout=timeout) if store is not None else None
        return FunnelSession(session_key, catalog, client, **kwargs)

    return _make


def run(coro):
    return asyncio.run(coro)
