"""Progress Store Client — async, best-effort boundary to the Progress Store.

Every store call runs off the event loop with a timeout. `load_state` raises
PersistenceFailure so the session can fall back to a fresh start; every write
is fire-and-forget: failures are logged here and reported as False.
"""
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from access_funnel.errors import PersistenceFailure
from access_funnel.log import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from access_funnel.store.state import ProgressStore
    from access_funnel.types import ProgressSaved

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 5.0


class ProgressStoreClient:
    def __init__(self, store: ProgressStore, timeout: float = DEFAULT_TIMEOUT):
        self.store = store
        self.timeout = timeout

    async def load_state(self, session_key: str) -> dict[str, Any]:
        return await self._call("load_state", self.store.load_state, session_key)

    async def save_progress(self, session_key: str, event: ProgressSaved) -> bool:
        def _save() -> None:
            self.store.save_progress(session_key, event.index, list(event.completed), event.responses)
            self.store.add_history(session_key, event.command, event.response, event.index)

        return await self._best_effort("save_progress", session_key, _save)

    async def mark_completion(self, session_key: str, completion_data: dict[str, Any]) -> bool:
        return await self._best_effort(
            "mark_completion", session_key, self.store.mark_completion, session_key, completion_data
        )

    async def save_referral_code(self, session_key: str, code: str) -> bool:
        return await self._best_effort(
            "save_referral_code", session_key, self.store.save_referral_code, session_key, code
        )

    async def track_referral_use(self, session_key: str, code: str) -> bool:
        return await self._best_effort(
            "track_referral_use", session_key, self.store.track_referral_use, session_key, code
        )

    # ─── Private ───

    async def _call(self, operation: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.timeout)
        except TimeoutError as e:
            raise PersistenceFailure(f"{operation} (timed out after {self.timeout}s)", e) from e
        except Exception as e:
            # Any backend error is a persistence failure, never fatal to the session
            raise PersistenceFailure(operation, e) from e

    async def _best_effort(self, operation: str, session_key: str, fn: Callable[..., Any], *args: Any) -> bool:
        try:
            await self._call(operation, fn, *args)
        except PersistenceFailure as e:
            logger.warning("Progress store write failed for %s: %s", session_key, e)
            return False
        return True
