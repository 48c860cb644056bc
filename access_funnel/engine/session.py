"""FunnelSession — one user's funnel, driven cooperatively on an asyncio loop.

Lifecycle: loading → gated(i) → completed. Input lines are queued and applied
to the engine strictly one at a time in submission order. Every accepted
command emits an event onto a second queue that an independent persistence
worker drains; the user never waits on the Progress Store.
"""
from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any

from access_funnel import messages
from access_funnel.engine.funnel import FunnelEngine
from access_funnel.errors import PersistenceFailure
from access_funnel.log import get_logger
from access_funnel.types import (
    CompletionReached,
    FunnelState,
    ProgressSaved,
    ReferralGenerated,
    ReferralSubmitted,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from access_funnel.engine.funnel import SubmitResult
    from access_funnel.store.client import ProgressStoreClient
    from access_funnel.types import Catalog, FunnelEvent, LogEntry

logger = get_logger(__name__)

LOADING = "loading"


class FunnelSession:
    def __init__(
        self,
        session_key: str,
        catalog: Catalog,
        client: ProgressStoreClient | None = None,
        *,
        identity: str | None = None,
        on_complete: Callable[[], Any] | None = None,
        boot: Iterable[str] = (messages.BOOT,),
    ):
        self.session_key = session_key
        self.catalog = catalog
        self.client = client
        self.identity = session_key if identity is None else identity
        self.engine: FunnelEngine | None = None
        self.complete_calls = 0
        self._on_complete = on_complete
        self._boot = tuple(boot)
        self._inbox: asyncio.Queue[tuple[str, asyncio.Future[SubmitResult]]] = asyncio.Queue()
        self._outbox: asyncio.Queue[FunnelEvent | None] = asyncio.Queue()
        self._input_task: asyncio.Task | None = None
        self._persist_task: asyncio.Task | None = None
        self._host_tasks: set[asyncio.Task] = set()

    async def __aenter__(self) -> FunnelSession:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    @property
    def status(self) -> str:
        return LOADING if self.engine is None else self.engine.status

    @property
    def log(self) -> tuple[LogEntry, ...]:
        if self.engine is None:
            return tuple()
        return self.engine.log.entries

    async def start(self) -> None:
        """Fetch prior state, then either skip (completed) or resume at the stored index."""
        loaded: dict[str, Any] = {}
        if self.client is not None:
            try:
                loaded = await self.client.load_state(self.session_key) or {}
            except PersistenceFailure as e:
                logger.warning("Could not load progress for %s, starting fresh: %s", self.session_key, e)
                loaded = {}

        state = FunnelState.from_loaded(loaded, self.catalog)
        self.engine = FunnelEngine(
            self.catalog,
            state,
            identity=self.identity,
            referral_code=loaded.get("referral_code"),
            on_complete=self._notify_host,
            emit=self._outbox.put_nowait,
            boot=self._boot,
        )
        self._persist_task = asyncio.create_task(self._persist_loop(), name=f"funnel-persist-{self.session_key}")
        self.engine.restore()
        self._input_task = asyncio.create_task(self._input_loop(), name=f"funnel-input-{self.session_key}")

    def submit(self, raw_line: str) -> asyncio.Future[SubmitResult]:
        """Queue one input line. The returned future resolves once the engine has applied it."""
        future: asyncio.Future[SubmitResult] = asyncio.get_running_loop().create_future()
        self._inbox.put_nowait((raw_line, future))
        return future

    async def drain(self) -> None:
        """Wait until queued input is applied and queued writes have been attempted."""
        await self._inbox.join()
        await self._outbox.join()
        if self._host_tasks:
            await asyncio.gather(*self._host_tasks, return_exceptions=True)

    async def close(self) -> None:
        if self._input_task is not None:
            await self._inbox.join()
            self._input_task.cancel()
            await asyncio.gather(self._input_task, return_exceptions=True)
            self._input_task = None
        if self._persist_task is not None:
            self._outbox.put_nowait(None)
            await self._persist_task
            self._persist_task = None
        if self._host_tasks:
            await asyncio.gather(*self._host_tasks, return_exceptions=True)

    # ─── Private ───

    async def _input_loop(self) -> None:
        while True:
            raw_line, future = await self._inbox.get()
            try:
                result = self.engine.submit(raw_line)
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                self._inbox.task_done()

    async def _persist_loop(self) -> None:
        while True:
            event = await self._outbox.get()
            try:
                if event is None:
                    return
                await self._persist(event)
            except Exception:
                # One failed event must not stop the worker
                logger.exception("Persisting %s for %s failed", type(event).__name__, self.session_key)
            finally:
                self._outbox.task_done()

    async def _persist(self, event: FunnelEvent) -> None:
        if self.client is None:
            return
        key = self.session_key
        if isinstance(event, ProgressSaved):
            await self.client.save_progress(key, event)
        elif isinstance(event, CompletionReached):
            await self.client.mark_completion(key, event.completion_data)
        elif isinstance(event, ReferralGenerated):
            await self.client.save_referral_code(key, event.code)
        elif isinstance(event, ReferralSubmitted):
            await self.client.track_referral_use(key, event.code)

    def _notify_host(self) -> None:
        self.complete_calls += 1
        if self._on_complete is None:
            return
        result = self._on_complete()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._host_tasks.add(task)
            task.add_done_callback(self._host_tasks.discard)
