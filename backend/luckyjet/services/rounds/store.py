import threading
from functools import wraps
from typing import Callable, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from luckyjet import db
from luckyjet.models import Round, RoundLog
from .exceptions import BacklogEmpty, PersistenceFailure


def _persistent(operation):
    """Roll back and re-raise database errors as PersistenceFailure."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SQLAlchemyError as exc:
                db.session.rollback()
                current_app.logger.error(f"[persistence-error] op={operation} error={exc}")
                raise PersistenceFailure(operation, exc) from exc
        return wrapper
    return decorator


class RoundStore:
    """Backlog of upcoming rounds plus the capped log of finished ones.

    Mutations are serialized through one lock so that HTTP or CLI callers
    sharing the process with the scheduler cannot end up with two running
    rows.
    """

    def __init__(self):
        self._lock = threading.RLock()

    # ---------- Backlog ----------
    @_persistent('enqueue')
    def enqueue(self, round_id: int, crash_point: float) -> Round:
        with self._lock:
            rnd = Round(round_id=round_id, crash_point=crash_point, is_running=False)
            db.session.add(rnd)
            db.session.commit()
            return rnd

    @_persistent('top_up')
    def top_up(self, target: int, make_round: Callable[[int], Tuple[int, float]]) -> int:
        """Fill the backlog up to `target` rows in one commit.

        `make_round(i)` returns (round_id, crash_point) for the i-th new row.
        Count and inserts happen under the store lock so two callers cannot
        both see the same shortfall.
        """
        with self._lock:
            missing = max(0, target - Round.query.count())
            for i in range(missing):
                round_id, crash_point = make_round(i)
                db.session.add(Round(round_id=round_id, crash_point=crash_point, is_running=False))
            db.session.commit()
            return missing

    @_persistent('dequeue_earliest')
    def dequeue_earliest(self) -> Round:
        rnd = Round.query.order_by(Round.id.asc()).first()
        if rnd is None:
            raise BacklogEmpty()
        return rnd

    @_persistent('mark_running')
    def mark_running(self, id: int) -> None:
        with self._lock:
            stale = Round.query.filter(Round.is_running.is_(True), Round.id != id).all()
            for other in stale:
                current_app.logger.warning(f"[stale-running] clearing running flag on backlog row {other.id}")
                other.is_running = False
            Round.query.filter_by(id=id).update({'is_running': True})
            db.session.commit()

    @_persistent('complete_and_log')
    def complete_and_log(self, id: int, round_id: int, crash_point: float) -> bool:
        """Remove a played round from the backlog and log it, in one commit.

        Returns False without logging when the backlog row is already gone.
        """
        with self._lock:
            rnd = db.session.get(Round, id)
            if rnd is None:
                return False
            db.session.delete(rnd)
            db.session.add(RoundLog(round_id=round_id, crash_point=crash_point))
            db.session.commit()
            return True

    @_persistent('backlog_size')
    def backlog_size(self) -> int:
        return Round.query.count()

    @_persistent('running_count')
    def running_count(self) -> int:
        return Round.query.filter(Round.is_running.is_(True)).count()

    # ---------- Log ----------
    @_persistent('trim_log')
    def trim_log(self, cap: int = 200) -> int:
        with self._lock:
            cutoff = (
                db.session.query(RoundLog.id)
                .order_by(RoundLog.id.desc())
                .offset(cap - 1)
                .limit(1)
                .scalar()
            )
            if cutoff is None:
                return 0
            removed = RoundLog.query.filter(RoundLog.id < cutoff).delete(synchronize_session=False)
            db.session.commit()
            return removed

    @_persistent('recent_history')
    def recent_history(self, limit: Optional[int] = 20) -> List[RoundLog]:
        query = RoundLog.query.order_by(RoundLog.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @_persistent('log_size')
    def log_size(self) -> int:
        return RoundLog.query.count()
