"""funnel status [session] — show one session's progress, or overall funnel stats."""
from __future__ import annotations

import sys

from access_funnel.compiler import load_catalog
from access_funnel.config import load_config
from access_funnel.errors import CatalogError
from access_funnel.store.state import ProgressStore
from access_funnel.types import FunnelState


def cmd_status(session_key: str | None, cwd: str):
    config = load_config(cwd)
    if not config.db_path.exists():
        print("No funnel database found.")
        return

    try:
        catalog = load_catalog(config.catalog_path)
    except CatalogError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    store = ProgressStore(config.db_path)
    try:
        if session_key is None:
            stats = store.get_funnel_stats()
            print(f'Sessions with progress: {stats["total_sessions"]}')
            print(f'Completed sessions: {stats["completed_sessions"]}')
            return

        state = FunnelState.from_loaded(store.load_state(session_key), catalog)
        total = len(catalog)
        if state.completion is not None:
            print(f"{session_key}: completed at {state.completion.completed_at}")
        elif state.current_index < total:
            print(f"{session_key}: {state.current_index}/{total}, next: {catalog[state.current_index].id}")
        else:
            print(f"{session_key}: {total}/{total}, completion not recorded")

        referral = store.get_referral_stats(session_key)
        if referral["code"]:
            print(f'Referral code: {referral["code"]} (used {referral["usage_count"]} times)')
        if referral["referred_by"]:
            print(f'Referred by: {referral["referred_by"]}')

        history = store.get_history(session_key, limit=1)
        if history:
            last = history[0]
            print(f'Last command: {last["command"]} at {last["timestamp"]}')
    finally:
        store.close()
