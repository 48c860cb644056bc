"""funnel play <session> — run the funnel as an interactive terminal."""
from __future__ import annotations

import asyncio
import sys

from access_funnel.compiler import load_catalog
from access_funnel.config import load_config
from access_funnel.engine import FunnelSession
from access_funnel.errors import CatalogError
from access_funnel.log import configure_logging
from access_funnel.store import ProgressStore, ProgressStoreClient
from access_funnel.types import EntryKind

PROMPT = "> "


def _print_entries(entries) -> None:
    for entry in entries:
        if entry.kind is EntryKind.ECHO:
            continue  # the terminal already shows what was typed
        print(entry.text)


async def _play(session_key: str, catalog, client: ProgressStoreClient) -> None:
    unlocked = asyncio.Event()
    session = FunnelSession(session_key, catalog, client, on_complete=unlocked.set)

    await session.start()
    _print_entries(session.log)
    printed = len(session.log)

    while not unlocked.is_set():
        try:
            line = await asyncio.to_thread(input, PROMPT)
        except (EOFError, KeyboardInterrupt):
            print()
            break
        await session.submit(line)
        entries = session.log
        if len(entries) < printed:
            # cleared: redraw from the boot entries
            print("\n" * 3, end="")
            _print_entries(entries)
        else:
            _print_entries(entries[printed:])
        printed = len(entries)

    await session.close()
    if unlocked.is_set():
        print()
        print("Access granted. The main interface is unlocked.")


def cmd_play(session_key: str, cwd: str):
    config = load_config(cwd)
    configure_logging(config.log_level)

    try:
        catalog = load_catalog(config.catalog_path)
    except CatalogError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    config.db_path.parent.mkdir(parents=True, exist_ok=True)
    store = ProgressStore(config.db_path)
    try:
        client = ProgressStoreClient(store, timeout=config.store_timeout)
        asyncio.run(_play(session_key, catalog, client))
    finally:
        store.close()
