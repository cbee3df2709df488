"""
Audit trail: records access decisions to the configured sink without
holding up the decision path.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Optional, Set

from .logger import AuditConfig, AuditSink, create_audit_sink
from .types import AccessLogEntry


logger = logging.getLogger(__name__)


class AuditTrail:
    """
    Companion to the access evaluator that ships one entry per decision.

    The sink is chosen once, at construction. ``record`` returns
    immediately; delivery runs as a background task and its outcome is only
    ever logged. Inside a running event loop deliveries are scheduled on that
    loop; from synchronous code they go to a private loop on a daemon thread.
    """

    def __init__(self, sink: AuditSink):
        self.sink = sink
        self._tasks: Set[asyncio.Task] = set()
        self._futures: Set[concurrent.futures.Future] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Optional[AuditConfig] = None) -> 'AuditTrail':
        """Create a trail whose sink is selected from configuration."""
        return cls(create_audit_sink(config))

    def record(
        self,
        resource: str,
        action: str,
        context: Any,
        result: Any,
        record: Any = None,
        field: Optional[str] = None,
    ) -> AccessLogEntry:
        """Build the entry for a decision and schedule its delivery."""
        entry = AccessLogEntry.from_decision(resource, action, context, result, record, field)
        self.submit(entry)
        return entry

    def submit(self, entry: AccessLogEntry) -> None:
        """Schedule delivery of an entry. Never raises."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self._deliver(entry))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return

        future = asyncio.run_coroutine_threadsafe(self._deliver(entry), self._background_loop())
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._forget)

    async def write(self, entry: AccessLogEntry) -> None:
        """Deliver an entry and wait for the sink. Never raises."""
        await self._deliver(entry)

    async def _deliver(self, entry: AccessLogEntry) -> None:
        try:
            await self.sink.write(entry)
        except Exception as e:
            logger.error(f"[AUTH-LOG] {type(self.sink).__name__} failed to deliver entry: {e!r}")

    def _background_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                self._loop = asyncio.new_event_loop()
                self._thread = threading.Thread(
                    target=self._loop.run_forever,
                    name="accessctl-audit",
                    daemon=True
                )
                self._thread.start()
            return self._loop

    def _forget(self, future: concurrent.futures.Future) -> None:
        with self._lock:
            self._futures.discard(future)

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight"""
        with self._lock:
            return len(self._tasks) + len(self._futures)

    async def flush(self) -> None:
        """Wait for all in-flight deliveries."""
        with self._lock:
            futures = list(self._futures)
        waiting = list(self._tasks) + [asyncio.wrap_future(f) for f in futures]
        if waiting:
            await asyncio.gather(*waiting, return_exceptions=True)

    def flush_sync(self, timeout: Optional[float] = None) -> None:
        """Block until deliveries scheduled from synchronous code complete."""
        with self._lock:
            futures = list(self._futures)
        if futures:
            concurrent.futures.wait(futures, timeout=timeout)

    async def close(self) -> None:
        """Flush pending deliveries, close the sink and stop the background loop."""
        await self.flush()
        try:
            if self._loop is not None:
                await asyncio.wrap_future(
                    asyncio.run_coroutine_threadsafe(self.sink.close(), self._loop)
                )
            else:
                await self.sink.close()
        except Exception as e:
            logger.error(f"[AUTH-LOG] Error closing {type(self.sink).__name__}: {e!r}")
        finally:
            self._stop_background_loop()

    def _stop_background_loop(self) -> None:
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = self._thread = None
        if loop is not None:
            loop.call_soon_threadsafe(loop.stop)
            if thread is not None:
                thread.join(timeout=5)
            loop.close()
