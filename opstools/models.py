"""Work items, per-item results and run counters shared by the batch tools"""

import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class UserEntry:
    row: int
    user_id: str


@dataclass(frozen=True)
class FileJob:
    source_key: str
    dest_key: str
    folder_date: date
    size: Optional[int] = None


@dataclass
class WorkResult:
    """Outcome of processing one work item.

    A result is either a success (``value`` holds the payload: a resolved
    name, a copied byte count), a skip (the item needed no work), or a
    failure (``error`` holds the cause; ``value`` may carry a placeholder).
    """

    item: Any
    success: bool
    value: Any = None
    error: Optional[str] = None
    skipped: bool = False

    @classmethod
    def ok(cls, item: Any, value: Any = None) -> 'WorkResult':
        return cls(item=item, success=True, value=value)

    @classmethod
    def skip(cls, item: Any, reason: str) -> 'WorkResult':
        return cls(item=item, success=True, error=reason, skipped=True)

    @classmethod
    def failed(cls, item: Any, error: str, value: Any = None) -> 'WorkResult':
        return cls(item=item, success=False, value=value, error=error)


class RunStatistics:
    """Counters updated once per work item; readable at any time for progress."""

    def __init__(self):
        self._lock = threading.Lock()
        self._attempted = 0
        self._succeeded = 0
        self._skipped = 0
        self._failed = 0
        self._bytes_copied = 0

    def record(self, result: WorkResult) -> None:
        with self._lock:
            self._attempted += 1
            if result.skipped:
                self._skipped += 1
            elif result.success:
                self._succeeded += 1
                if isinstance(result.value, int) and not isinstance(result.value, bool):
                    self._bytes_copied += result.value
            else:
                self._failed += 1

    @property
    def attempted(self) -> int:
        with self._lock:
            return self._attempted

    @property
    def succeeded(self) -> int:
        with self._lock:
            return self._succeeded

    @property
    def skipped(self) -> int:
        with self._lock:
            return self._skipped

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    @property
    def bytes_copied(self) -> int:
        with self._lock:
            return self._bytes_copied

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {
                'attempted': self._attempted,
                'succeeded': self._succeeded,
                'skipped': self._skipped,
                'failed': self._failed,
                'bytes_copied': self._bytes_copied,
            }


@dataclass
class ScanStatistics:
    scanned: int = 0
    queued: int = 0
    skipped_by_date: int = 0
    undated: int = 0
    skipped_rows: int = 0
