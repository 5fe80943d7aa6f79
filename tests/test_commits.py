from concurrent.futures import Future, ThreadPoolExecutor

import pytest

from form_designer.commits import CommitTracker, FieldCommitter
from form_designer.errors import NotFoundError, ValidationError


@pytest.fixture()
def field(store, pdf_document):
    return store.create_field(pdf_document.id, name="Name", x=100, y=100,
                              width=150, height=35)


def test_tracker_drops_out_of_order_ack(field):
    tracker = CommitTracker()
    s1, _ = tracker.issue(field.id, {"x": 110})
    s2, payload = tracker.issue(field.id, {"y": 120})
    assert payload == {"x": 110, "y": 120}

    newer = field.with_changes(x=110, y=120)
    assert tracker.acknowledge(field.id, s2, newer)
    assert tracker.pending(field.id) is None
    # The earlier response arrives late and must not win
    assert not tracker.acknowledge(field.id, s1, field.with_changes(x=110))
    assert tracker.committed(field.id) == newer


def test_tracker_keeps_pending_until_latest_ack(field):
    tracker = CommitTracker()
    s1, _ = tracker.issue(field.id, {"x": 110})
    tracker.issue(field.id, {"x": 130})
    assert tracker.acknowledge(field.id, s1, field.with_changes(x=110))
    assert tracker.pending(field.id) == {"x": 130}
    assert tracker.overlay(field).x == 130


def test_tracker_fail_drops_pending(field):
    tracker = CommitTracker()
    seq, _ = tracker.issue(field.id, {"width": 80})
    tracker.fail(field.id, seq)
    assert tracker.pending(field.id) is None
    assert tracker.overlay(field) == field


def test_committer_inline_writes_to_store(store, field):
    committed = []
    committer = FieldCommitter(store, on_committed=committed.append)
    committer.submit(field.id, {"x": 200, "y": 250})
    assert store.get_field(field.id).x == 200
    assert committed[0].y == 250
    assert committer.tracker.pending(field.id) is None


def test_committer_reports_failures(store, field):
    failures = []
    committer = FieldCommitter(store, on_failed=lambda fid, exc: failures.append((fid, exc)))
    committer.submit(field.id, {"width": 10})
    assert store.get_field(field.id).width == 150
    assert failures[0][0] == field.id
    assert committer.tracker.pending(field.id) is None


def test_committer_unknown_field(store):
    failures = []
    committer = FieldCommitter(store, on_failed=lambda fid, exc: failures.append(exc))
    committer.submit("missing", {"x": 1})
    assert isinstance(failures[0], NotFoundError)


def test_committer_last_write_wins_on_executor(store, field):
    committed = []
    with ThreadPoolExecutor(max_workers=4) as pool:
        committer = FieldCommitter(store, executor=pool, on_committed=committed.append)
        for x in range(1, 21):
            committer.submit(field.id, {"x": float(x)})
    assert store.get_field(field.id).x == 20.0
    assert committer.tracker.pending(field.id) is None
    assert any(f.x == 20.0 for f in committed)


def test_committer_reports_non_numeric_changes(store, field):
    failures = []
    committer = FieldCommitter(store, on_failed=lambda fid, exc: failures.append(exc))
    committer.submit(field.id, {"x": "abc"})
    assert isinstance(failures[0], ValidationError)
    assert store.get_field(field.id).x == 100
    assert committer.tracker.pending(field.id) is None


def test_forget_drops_all_bookkeeping(store, field):
    committer = FieldCommitter(store)
    committer.submit(field.id, {"x": 120})
    assert committer.tracker.tracked_ids() == {field.id}
    assert committer.lock_count() == 1

    committer.forget(field.id)
    assert committer.tracker.tracked_ids() == set()
    assert committer.lock_count() == 0
    assert committer.tracker.committed(field.id) is None


def test_late_ack_for_forgotten_field_is_ignored(field):
    tracker = CommitTracker()
    seq, _ = tracker.issue(field.id, {"x": 110})
    tracker.forget(field.id)
    assert not tracker.acknowledge(field.id, seq, field.with_changes(x=110))
    assert tracker.tracked_ids() == set()


class _DeferredExecutor:
    """Holds submitted work until the test runs it."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args):
        future = Future()
        self.jobs.append((future, fn, args))
        return future

    def run_all(self):
        for future, fn, args in self.jobs:
            try:
                future.set_result(fn(*args))
            except Exception as exc:
                future.set_exception(exc)


def test_write_for_removed_field_fails_silently(store, field):
    failures = []
    executor = _DeferredExecutor()
    committer = FieldCommitter(store, executor=executor,
                               on_failed=lambda fid, exc: failures.append(exc))
    committer.submit(field.id, {"x": 300})
    store.delete_field(field.id)
    committer.forget(field.id)
    executor.run_all()
    assert failures == []
    assert committer.tracker.tracked_ids() == set()
    assert committer.lock_count() == 0


def test_not_found_for_tracked_field_is_still_reported(store, field):
    failures = []
    executor = _DeferredExecutor()
    committer = FieldCommitter(store, executor=executor,
                               on_failed=lambda fid, exc: failures.append(exc))
    committer.submit(field.id, {"x": 300})
    store.delete_field(field.id)
    executor.run_all()
    assert len(failures) == 1
    assert isinstance(failures[0], NotFoundError)
