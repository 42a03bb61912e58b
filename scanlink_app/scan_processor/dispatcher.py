"""
Fire-and-forget dispatch of scan recordings.

The redirect must never wait for analytics, so the resolver hands each
recording to this bounded worker pool and returns immediately.

Delivery is at-most-once and best-effort:
- a full pool drops the recording (counted in `dropped`)
- a failing recording is logged and counted in `failed`, never re-raised
- recordings still queued when the process dies are lost

That is acceptable for analytics. Anything that bills on exact scan counts
would need a durable queue with acknowledgement instead.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Set

logger = logging.getLogger(__name__)


class RecordingDispatcher:
    """
    Bounded thread pool with drop-on-overload.

    Features:
    - At most `max_workers` recordings run concurrently
    - At most `max_pending` recordings are queued or running; more are dropped
    - Counters for submitted/completed/failed/dropped tasks
    - Tasks share nothing with the request that submitted them
    """

    def __init__(self, max_workers: int = 4, max_pending: int = 1000):
        """
        Args:
            max_workers: Worker threads
            max_pending: Upper bound on queued + running recordings
        """
        self.max_workers = max_workers
        self.max_pending = max_pending
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="scan-recorder"
        )
        self._slots = threading.BoundedSemaphore(max_pending)
        self._lock = threading.Lock()
        self._pending: Set[Future] = set()

        self.submitted = 0
        self.completed = 0
        self.failed = 0
        self.dropped = 0

    def submit(self, fn: Callable, *args) -> bool:
        """
        Schedule fn(*args) without waiting for it.

        Returns:
            True if accepted, False if dropped
        """
        if not self._slots.acquire(blocking=False):
            with self._lock:
                self.dropped += 1
            logger.warning("Recording pool full (%d pending), scan dropped", self.max_pending)
            return False

        try:
            future = self._executor.submit(self._run, fn, args)
        except RuntimeError:
            # Executor already shut down
            self._slots.release()
            with self._lock:
                self.dropped += 1
            logger.warning("Recording pool is shut down, scan dropped")
            return False

        with self._lock:
            self.submitted += 1
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return True

    def _run(self, fn: Callable, args: tuple) -> None:
        try:
            fn(*args)
        except Exception:
            with self._lock:
                self.failed += 1
            logger.exception("Scan recording failed")
        else:
            with self._lock:
                self.completed += 1
        finally:
            self._slots.release()

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def join(self, timeout: float = None) -> bool:
        """
        Wait for everything submitted so far.

        Returns:
            True if all of it finished within the timeout
        """
        with self._lock:
            futures = list(self._pending)
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "submitted": self.submitted,
                "completed": self.completed,
                "failed": self.failed,
                "dropped": self.dropped,
                "pending": len(self._pending),
            }

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; optionally wait for queued recordings"""
        logger.info("Shutting down recording pool (wait=%s)", wait)
        self._executor.shutdown(wait=wait)
