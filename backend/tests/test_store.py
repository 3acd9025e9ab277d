import threading

import pytest
from sqlalchemy.exc import OperationalError

from luckyjet import db
from luckyjet.models import Round, RoundLog
from luckyjet.services.rounds import BacklogEmpty, PersistenceFailure
from luckyjet.services.rounds import store as store_module


def test_dequeue_on_empty_backlog_raises(store):
    assert store.backlog_size() == 0
    with pytest.raises(BacklogEmpty):
        store.dequeue_earliest()


def test_dequeue_returns_earliest_without_removing(store):
    first = store.enqueue(100, 1.5)
    store.enqueue(50, 2.5)
    rnd = store.dequeue_earliest()
    assert rnd.id == first.id
    assert rnd.round_id == 100
    assert store.backlog_size() == 2


def test_mark_running_keeps_a_single_running_row(store):
    a = store.enqueue(1, 1.5)
    b = store.enqueue(2, 2.5)
    store.mark_running(a.id)
    assert store.running_count() == 1
    # A stale flag from an earlier round is cleared when the next one starts
    store.mark_running(b.id)
    assert store.running_count() == 1
    assert db.session.get(Round, b.id).is_running is True
    assert db.session.get(Round, a.id).is_running is False


def test_complete_and_log_moves_round_to_log(store):
    rnd = store.enqueue(7, 3.25)
    assert store.complete_and_log(rnd.id, 7, 3.25) is True
    assert store.backlog_size() == 0
    history = store.recent_history()
    assert [(e.round_id, e.crash_point) for e in history] == [(7, 3.25)]


def test_complete_and_log_is_idempotent(store):
    rnd = store.enqueue(7, 3.25)
    rnd_id = rnd.id
    store.complete_and_log(rnd_id, 7, 3.25)
    assert store.complete_and_log(rnd_id, 7, 3.25) is False
    assert store.log_size() == 1


def test_recent_history_is_newest_first_and_limited(store):
    for i in range(25):
        rnd = store.enqueue(i, 1.5)
        store.complete_and_log(rnd.id, i, 1.5)
    history = store.recent_history()
    assert len(history) == 20
    assert history[0].round_id == 24
    assert history[-1].round_id == 5
    assert len(store.recent_history(None)) == 25


def test_trim_log_keeps_most_recent_200(store):
    for i in range(205):
        rnd = store.enqueue(i, 1.5)
        store.complete_and_log(rnd.id, i, 1.5)
    assert store.trim_log(200) == 5
    remaining = store.recent_history(None)
    assert len(remaining) == 200
    assert min(e.round_id for e in remaining) == 5
    assert remaining[0].round_id == 204
    # Nothing left to trim
    assert store.trim_log(200) == 0


def test_trim_log_below_cap_is_noop(store):
    rnd = store.enqueue(1, 1.5)
    store.complete_and_log(rnd.id, 1, 1.5)
    assert store.trim_log(200) == 0
    assert store.log_size() == 1


def test_database_errors_become_persistence_failures(store, monkeypatch):
    def broken_round(**kwargs):
        raise OperationalError('INSERT', {}, Exception('database is locked'))

    monkeypatch.setattr(store_module, 'Round', broken_round)
    with pytest.raises(PersistenceFailure) as excinfo:
        store.enqueue(1, 1.5)
    assert excinfo.value.operation == 'enqueue'
    assert isinstance(excinfo.value.cause, OperationalError)
    monkeypatch.undo()
    assert store.backlog_size() == 0
    assert RoundLog.query.count() == 0


def test_top_up_fills_to_target_in_one_call(store):
    for i in range(12):
        store.enqueue(i, 1.5)
    made = []

    def make_round(i):
        made.append(i)
        return 1000 + i, 2.0

    assert store.top_up(30, make_round) == 18
    assert made == list(range(18))
    assert store.backlog_size() == 30
    # Already full: nothing generated, nothing added
    assert store.top_up(30, make_round) == 0
    assert len(made) == 18


def test_top_up_holds_store_lock_while_generating(store):
    lock_free_seen = []

    def try_lock_from_other_thread():
        acquired = store._lock.acquire(blocking=False)
        if acquired:
            store._lock.release()
        lock_free_seen.append(acquired)

    def make_round(i):
        # Another thread must not be able to start its own top-up meanwhile
        worker = threading.Thread(target=try_lock_from_other_thread)
        worker.start()
        worker.join()
        return i, 1.5

    store.top_up(3, make_round)
    assert lock_free_seen == [False, False, False]
