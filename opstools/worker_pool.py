"""Bounded worker pool

Dispatches work items to a thread pool with at most ``max_workers``
operations in flight. Results are handed back on the calling thread, so the
``on_result`` callback is the single writer for whatever artifact the caller
is building (a worksheet, a set of counters).
"""

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Set

from .models import WorkResult

logger = logging.getLogger(__name__)

_END = object()


@dataclass
class PoolSummary:
    submitted: int = 0
    completed: int = 0
    interrupted: bool = False
    source_error: Optional[Exception] = None


class BoundedWorkerPool:
    def __init__(self, max_workers: int, name: str = "worker"):
        if max_workers < 1:
            raise ValueError(f"max_workers must be a positive integer, got {max_workers}")
        self.max_workers = max_workers
        self.name = name
        self._stop = threading.Event()

    def stop(self):
        """Stop pulling new items; anything already dispatched still completes."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run(
        self,
        items: Iterable,
        operation: Callable[[object], WorkResult],
        on_result: Optional[Callable[[WorkResult], None]] = None,
    ) -> PoolSummary:
        """Process every item and return once each dispatched item has a result.

        A failing item source (or Ctrl-C) closes the source early: items
        already dispatched are drained and delivered, and the summary is
        marked interrupted. The source's exception is kept in
        ``summary.source_error`` rather than raised.
        """
        self._stop.clear()
        summary = PoolSummary()
        pending: Set[Future] = set()
        source = iter(items)

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix=self.name) as executor:
            try:
                while not self._stop.is_set():
                    if len(pending) >= self.max_workers:
                        self._deliver_next(pending, summary, on_result)
                        continue

                    item = next(source, _END)
                    if item is _END:
                        break
                    pending.add(executor.submit(self._run_one, operation, item))
                    summary.submitted += 1
                else:
                    logger.warning("⚠️  Stop requested, no further items will be dispatched")
                    summary.interrupted = True
            except KeyboardInterrupt:
                logger.warning(f"\n⚠️  Interrupted, draining {len(pending)} in-flight item(s)...")
                self._stop.set()
                summary.interrupted = True
            except Exception as e:
                logger.error(f"❌ Item source failed, draining {len(pending)} in-flight item(s): {e}", exc_info=True)
                self._stop.set()
                summary.interrupted = True
                summary.source_error = e

            while pending:
                try:
                    self._deliver_next(pending, summary, on_result)
                except KeyboardInterrupt:
                    logger.warning(f"\n⚠️  Still waiting for {len(pending)} in-flight item(s) to finish...")
                    self._stop.set()
                    summary.interrupted = True

        logger.debug(f"Pool '{self.name}' drained: {summary.completed}/{summary.submitted} results")
        return summary

    @staticmethod
    def _deliver_next(pending: Set[Future], summary: PoolSummary, on_result):
        done, _ = wait(pending, return_when=FIRST_COMPLETED)
        for future in done:
            result = future.result()
            if on_result:
                on_result(result)
            # only forget the future once its result has been applied
            pending.discard(future)
            summary.completed += 1

    @staticmethod
    def _run_one(operation: Callable[[object], WorkResult], item) -> WorkResult:
        try:
            result = operation(item)
        except Exception as e:
            logger.error(f"Unexpected error processing {item}: {e}", exc_info=True)
            return WorkResult.failed(item, f"{type(e).__name__}: {e}")

        if not isinstance(result, WorkResult):
            return WorkResult.failed(item, f"Operation returned {type(result).__name__} instead of a WorkResult")
        return result
