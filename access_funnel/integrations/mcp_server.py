"""MCP Server — exposes funnel_* tools so a host can drive a session remotely."""
from __future__ import annotations

import json
import os

from mcp.server.fastmcp import FastMCP

from access_funnel.compiler import load_catalog
from access_funnel.config import load_config
from access_funnel.engine import FunnelSession
from access_funnel.store import ProgressStore, ProgressStoreClient

mcp = FastMCP("access-funnel")


def _open_store() -> tuple[ProgressStore, ProgressStoreClient]:
    config = load_config(os.getcwd())
    config.db_path.parent.mkdir(parents=True, exist_ok=True)
    store = ProgressStore(config.db_path)
    return store, ProgressStoreClient(store, timeout=config.store_timeout)


def _session(session_key: str, client: ProgressStoreClient) -> FunnelSession:
    config = load_config(os.getcwd())
    return FunnelSession(session_key, load_catalog(config.catalog_path), client)


@mcp.tool()
async def funnel_submit(session_key: str, line: str) -> str:
    """Submit one terminal line for a session and return the entries it produced."""
    store, client = _open_store()
    try:
        session = _session(session_key, client)
        async with session:
            before = len(session.log)
            result = await session.submit(line)
            await session.drain()
            entries = session.log
            produced = entries[before:] if len(entries) >= before else entries
            return json.dumps({
                **result.to_dict(),
                "status": session.status,
                "entries": [e.to_dict() for e in produced],
            }, ensure_ascii=False, indent=2)
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)
    finally:
        store.close()


@mcp.tool()
async def funnel_get_log(session_key: str) -> str:
    """Return the session's Output Log as it renders on resume."""
    store, client = _open_store()
    try:
        async with _session(session_key, client) as session:
            return json.dumps([e.to_dict() for e in session.log], ensure_ascii=False, indent=2)
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)
    finally:
        store.close()


@mcp.tool()
async def funnel_get_status(session_key: str) -> str:
    """Get a session's progress: current index, next command, completion."""
    store, client = _open_store()
    try:
        async with _session(session_key, client) as session:
            return json.dumps(session.engine.get_status(), ensure_ascii=False, indent=2)
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)
    finally:
        store.close()


def run_server():
    mcp.run(transport="stdio")
