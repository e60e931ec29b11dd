"""Run a stack lookup in the background and deliver it on the host's thread.

The lookup blocks on provider I/O, so it runs on a ThreadPoolExecutor. The
result is handed back through ``Host.post`` and reaches the callback only if
the host is still alive at delivery time.
"""
from __future__ import annotations

import asyncio
import logging
import queue
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Optional, Protocol

from .access.base import DocumentsAccess, ProviderAccess, RootsAccess
from .config import StackConfig
from .models import DocUri, DocumentStack, Resolution, ResolutionStatus
from .resolver import StackResolver

logger = logging.getLogger(__name__)

LoadDocStackCallback = Callable[[Optional[DocumentStack]], None]


class Host(Protocol):
    """The primary execution context that owns a lookup's result."""

    def is_alive(self) -> bool:
        ...

    def post(self, fn: Callable[[], None]) -> None:
        """Schedule fn on the primary context. Safe to call from any thread."""
        ...


class QueueHost:
    """Host whose primary context is whichever thread pumps its queue."""

    def __init__(self) -> None:
        self._q: "queue.Queue[Callable[[], None]]" = queue.Queue()
        self._alive = True

    def is_alive(self) -> bool:
        return self._alive

    def post(self, fn: Callable[[], None]) -> None:
        if not self._alive:
            logger.debug("QueueHost closed, dropping posted work")
            return
        self._q.put(fn)

    def run_pending(self) -> int:
        """Run everything queued so far. Returns the number of callables run."""
        ran = 0
        while self._alive:
            try:
                fn = self._q.get_nowait()
            except queue.Empty:
                break
            fn()
            ran += 1
        return ran

    def run_until(self, predicate: Callable[[], bool], timeout: float | None = None) -> bool:
        """Pump the queue until predicate() holds or timeout expires."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while not predicate():
            if not self._alive:
                return False
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            try:
                fn = self._q.get(timeout=remaining)
            except queue.Empty:
                return predicate()
            fn()
        return True

    def close(self) -> None:
        self._alive = False
        while True:
            try:
                self._q.get_nowait()
            except queue.Empty:
                break


class AsyncioHost:
    """Host whose primary context is an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.loop = loop or asyncio.get_running_loop()
        self._closed = False

    def is_alive(self) -> bool:
        return not self._closed and not self.loop.is_closed()

    def post(self, fn: Callable[[], None]) -> None:
        try:
            self.loop.call_soon_threadsafe(fn)
        except RuntimeError:
            # Loop closed between the liveness check and the post
            logger.debug("Event loop closed, dropping posted work")

    def close(self) -> None:
        self._closed = True


class LoadDocStackTask:
    """Loads the DocumentStack of one document, paired with a host.

    Background phase: StackResolver on an executor thread.
    Completion phase: ``callback(stack)`` on the host, at most once, and only
    while the host is alive.
    """

    def __init__(
        self,
        host: Host,
        doc_uri: DocUri | str,
        roots: RootsAccess,
        docs: DocumentsAccess,
        providers: ProviderAccess,
        callback: LoadDocStackCallback,
        config: StackConfig | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.host = host
        self.callback = callback
        self.resolver = StackResolver(
            doc_uri=doc_uri,
            roots=roots,
            docs=docs,
            providers=providers,
            config=config or StackConfig(),
        )
        self.outcome: Resolution | None = None
        self.future: Future | None = None
        self._executor = executor
        self._lock = threading.Lock()
        self._started = False
        self._finished = False

    @property
    def doc_uri(self) -> DocUri:
        return self.resolver.doc_uri

    @property
    def finished(self) -> bool:
        return self._finished

    def run(self) -> Resolution:
        return self.resolver.resolve_outcome()

    def execute(self) -> Future:
        with self._lock:
            if self._started:
                raise RuntimeError(f"Task for {self.doc_uri} already executed")
            self._started = True

        own_executor = self._executor is None
        executor = self._executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="docstack")
        try:
            self.future = executor.submit(self.run)
        finally:
            if own_executor:
                executor.shutdown(wait=False)
        self.future.add_done_callback(self._on_background_done)
        return self.future

    def _on_background_done(self, future: Future) -> None:
        if future.cancelled():
            outcome = Resolution(ResolutionStatus.PROVIDER_ERROR, error="cancelled")
        elif future.exception() is not None:
            e = future.exception()
            logger.error(f"Stack lookup for {self.doc_uri} failed: {type(e).__name__}: {e}")
            outcome = Resolution(ResolutionStatus.PROVIDER_ERROR, error=f"{type(e).__name__}: {e}")
        else:
            outcome = future.result()
        self.outcome = outcome

        if not self.host.is_alive():
            logger.debug(f"Host gone, discarding stack for {self.doc_uri}")
            return
        self.host.post(lambda: self.finish(outcome.stack))

    def finish(self, stack: DocumentStack | None) -> None:
        with self._lock:
            if self._finished:
                return
            if not self.host.is_alive():
                logger.debug(f"Host gone, discarding stack for {self.doc_uri}")
                return
            self._finished = True
        self.callback(stack)


def load_doc_stack(
    host: Host,
    doc_uri: DocUri | str,
    roots: RootsAccess,
    docs: DocumentsAccess,
    providers: ProviderAccess,
    callback: LoadDocStackCallback,
    config: StackConfig | None = None,
    executor: Executor | None = None,
) -> LoadDocStackTask:
    """Create and start a LoadDocStackTask."""
    task = LoadDocStackTask(host, doc_uri, roots, docs, providers, callback, config=config, executor=executor)
    task.execute()
    return task
