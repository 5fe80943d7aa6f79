"""Commit sequencing for field updates.

A field value goes through two tiers once a gesture is released:

* **pending**: issued to storage but not yet acknowledged.  Shown on the
  canvas so the field does not snap back while the write is in flight.
* **committed**: acknowledged by storage.

Every commit gets a sequence number.  An acknowledgement older than one
already applied for the same field is discarded, and a queued write that
has been superseded before it runs is skipped.  Pending changes for a field
are merged, so the newest write always carries everything still in flight.
"""
import itertools
import logging
import threading
from concurrent.futures import Executor, Future
from typing import Callable, Dict, Optional, Set, Tuple

from form_designer.errors import DesignerError, NotFoundError
from form_designer.models import TextField
from form_designer.storage import FieldStore

logger = logging.getLogger(__name__)


class CommitTracker:
    """Per-field bookkeeping of issued, pending and acknowledged commits."""

    def __init__(self):
        self._lock = threading.Lock()
        self._seq = itertools.count(1)
        self._issued: Dict[str, int] = {}
        self._acked: Dict[str, int] = {}
        self._pending: Dict[str, dict] = {}
        self._committed: Dict[str, TextField] = {}

    def issue(self, field_id: str, changes: dict) -> Tuple[int, dict]:
        """Register a new commit; return its sequence and the merged payload."""
        with self._lock:
            seq = next(self._seq)
            merged = dict(self._pending.get(field_id, {}))
            merged.update(changes)
            self._issued[field_id] = seq
            self._pending[field_id] = merged
            return seq, dict(merged)

    def is_superseded(self, field_id: str, seq: int) -> bool:
        with self._lock:
            return seq < self._issued.get(field_id, seq)

    def acknowledge(self, field_id: str, seq: int, field: TextField) -> bool:
        """Record storage's answer to commit *seq*.  False if it was stale."""
        with self._lock:
            if field_id not in self._issued:
                return False   # forgotten while the write was in flight
            if seq < self._acked.get(field_id, 0):
                logger.debug("Dropping stale ack for %s (seq %d < %d)",
                             field_id, seq, self._acked[field_id])
                return False
            self._acked[field_id] = seq
            self._committed[field_id] = field
            if seq >= self._issued.get(field_id, 0):
                self._pending.pop(field_id, None)
            return True

    def fail(self, field_id: str, seq: int) -> None:
        """Forget the pending value if *seq* was the newest commit."""
        with self._lock:
            if seq >= self._issued.get(field_id, 0):
                self._pending.pop(field_id, None)

    def pending(self, field_id: str) -> Optional[dict]:
        with self._lock:
            p = self._pending.get(field_id)
            return dict(p) if p is not None else None

    def committed(self, field_id: str) -> Optional[TextField]:
        with self._lock:
            return self._committed.get(field_id)

    def overlay(self, field: TextField) -> TextField:
        """Return *field* with any pending changes applied on top."""
        p = self.pending(field.id)
        return field.with_changes(**p) if p else field

    def is_tracked(self, field_id: str) -> bool:
        with self._lock:
            return field_id in self._issued

    def forget(self, field_id: str) -> None:
        with self._lock:
            for table in (self._issued, self._acked, self._pending, self._committed):
                table.pop(field_id, None)

    def tracked_ids(self) -> Set[str]:
        with self._lock:
            return set().union(self._issued, self._acked, self._pending, self._committed)


class FieldCommitter:
    """Send field updates to storage, fire-and-forget, last write wins.

    With no *executor* each write runs inline.  *on_committed* receives the
    stored field for every non-stale acknowledgement; *on_failed* receives
    the field id and the error.
    """

    def __init__(self, store: FieldStore,
                 executor: Optional[Executor] = None,
                 on_committed: Optional[Callable[[TextField], None]] = None,
                 on_failed: Optional[Callable[[str, Exception], None]] = None,
                 tracker: Optional[CommitTracker] = None):
        self._store = store
        self._executor = executor
        self._on_committed = on_committed
        self._on_failed = on_failed
        self.tracker = tracker or CommitTracker()
        self._locks_guard = threading.Lock()
        self._field_locks: Dict[str, threading.Lock] = {}

    def submit(self, field_id: str, changes: dict) -> int:
        seq, payload = self.tracker.issue(field_id, changes)
        if self._executor is None:
            try:
                result = self._write(field_id, seq, payload)
            except DesignerError as exc:
                self._failed(field_id, seq, exc)
            else:
                self._complete(field_id, seq, result)
        else:
            future = self._executor.submit(self._write, field_id, seq, payload)
            future.add_done_callback(lambda f: self._settle(field_id, seq, f))
        return seq

    def forget(self, field_id: str) -> None:
        """Drop all bookkeeping for a removed field; late results are ignored."""
        self.tracker.forget(field_id)
        with self._locks_guard:
            self._field_locks.pop(field_id, None)

    def lock_count(self) -> int:
        with self._locks_guard:
            return len(self._field_locks)

    def _lock_for(self, field_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._field_locks.setdefault(field_id, threading.Lock())

    def _write(self, field_id: str, seq: int, payload: dict) -> Optional[TextField]:
        if not self.tracker.is_tracked(field_id):
            logger.debug("Skipping write for forgotten field %s (seq %d)", field_id, seq)
            return None
        with self._lock_for(field_id):
            if self.tracker.is_superseded(field_id, seq):
                logger.debug("Skipping superseded write for %s (seq %d)", field_id, seq)
                return None
            return self._store.update_field(field_id, **payload)

    def _settle(self, field_id: str, seq: int, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            self._failed(field_id, seq, exc)
        else:
            self._complete(field_id, seq, future.result())

    def _complete(self, field_id: str, seq: int, result: Optional[TextField]) -> None:
        if result is None:
            return
        if self.tracker.acknowledge(field_id, seq, result) and self._on_committed:
            self._on_committed(result)

    def _failed(self, field_id: str, seq: int, exc: BaseException) -> None:
        if isinstance(exc, NotFoundError) and not self.tracker.is_tracked(field_id):
            logger.debug("Dropping failed commit %d for removed field %s", seq, field_id)
            return
        logger.warning("Commit %d for field %s failed: %s", seq, field_id, exc)
        self.tracker.fail(field_id, seq)
        if self._on_failed:
            self._on_failed(field_id, exc)
