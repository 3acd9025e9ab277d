import time
from typing import Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from luckyjet import db
from luckyjet.models import Round
from .broadcast import BroadcastHub
from .exceptions import BacklogEmpty, PersistenceFailure
from .generator import CrashPointGenerator
from .state import LiveGameState, PlayedRound
from .store import RoundStore

# (upper bound of live score, additive step); anything above the last bound uses TOP_STEP
SCORE_STEPS = (
    (1.5, 0.01),
    (3.0, 0.02),
    (5.0, 0.05),
    (10.0, 0.10),
    (50.0, 0.15),
)
TOP_STEP = 0.20


def next_live_score(score: float) -> float:
    """Advance the live multiplier by one tick."""
    step = TOP_STEP
    for upper, tier_step in SCORE_STEPS:
        if score < upper:
            step = tier_step
            break
    return round(score + step, 2)


class RoundScheduler:
    """Drive rounds one after another.

    BacklogCheck -> RoundStart -> LiveProgression -> Crashed -> Settle ->
    InterRoundPause, then back to BacklogCheck. Every transition is its
    own method; `run_round` chains them once and `run_forever` loops until
    `stop` is called. The only waits are persistence calls and `sleep`.
    """

    def __init__(self, store: RoundStore, hub: BroadcastHub, generator: CrashPointGenerator,
                 state: LiveGameState, backlog_target: int = 30, log_cap: int = 200,
                 history_limit: int = 20, tick_interval: float = 0.05,
                 pause_interval: float = 8.0, retry_delay: float = 1.0,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.hub = hub
        self.generator = generator
        self.state = state
        self.backlog_target = backlog_target
        self.log_cap = log_cap
        self.history_limit = history_limit
        self.tick_interval = tick_interval
        self.pause_interval = pause_interval
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._clock = clock
        self._last_round_id = 0
        self._pending_settle = None
        self._stop_requested = False
        self.is_running = False

    @classmethod
    def from_config(cls, config, store, hub, generator, state, sleep=time.sleep):
        return cls(
            store, hub, generator, state,
            backlog_target=int(config.get('BACKLOG_TARGET', 30)),
            log_cap=int(config.get('ROUND_LOG_CAP', 200)),
            history_limit=int(config.get('HISTORY_LIMIT', 20)),
            tick_interval=int(config.get('TICK_INTERVAL_MS', 50)) / 1000.0,
            pause_interval=int(config.get('INTER_ROUND_PAUSE_MS', 8000)) / 1000.0,
            retry_delay=float(config.get('RETRY_DELAY_SEC', 1)),
            sleep=sleep,
        )

    # ---------- Backlog ----------
    def next_round_id(self, offset: int = 0) -> int:
        """Wall-clock millisecond id, never below one this process already issued."""
        candidate = int(self._clock() * 1000) + offset
        if candidate <= self._last_round_id:
            candidate = self._last_round_id + 1
        self._last_round_id = candidate
        return candidate

    def refill_backlog(self) -> int:
        added = self.store.top_up(
            self.backlog_target,
            lambda i: (self.next_round_id(i * 1000), self.generator.generate()),
        )
        if added:
            current_app.logger.info(f"[backlog-refill] added={added} target={self.backlog_target}")
        return added

    def backlog_check(self) -> Round:
        try:
            return self.store.dequeue_earliest()
        except BacklogEmpty:
            current_app.logger.warning("[backlog-refill] no round available, refilling")
            self.refill_backlog()
            return self.store.dequeue_earliest()

    # ---------- Round ----------
    def start_round(self, rnd: Round) -> PlayedRound:
        played = PlayedRound(rnd.id, rnd.round_id, rnd.crash_point)
        self.store.mark_running(played.id)
        self.state.begin(played)
        history = self.store.recent_history(self.history_limit)
        current_app.logger.info(f"[round-start] round={played.round_id} crash_point={played.crash_point}")
        self.hub.broadcast_round_start(played.round_id, played.crash_point, history)
        return played

    def tick(self) -> bool:
        """Advance the live score once. Returns True once the round has crashed."""
        if self.state.crashed:
            return True
        score = next_live_score(self.state.live_score)
        self.state.set_score(score)
        self.hub.broadcast_live_score(score)
        if score >= self.state.crash_point:
            self.crash()
        return self.state.crashed

    def crash(self) -> None:
        if not self.state.latch_crash():
            return
        current_app.logger.info(f"[round-crash] round={self.state.round_id} crash_point={self.state.crash_point}")
        self.hub.broadcast_crashed(self.state.crash_point)

    def run_progression(self) -> None:
        while not self.state.crashed:
            self._sleep(self.tick_interval)
            self.tick()

    def settle(self, played: PlayedRound) -> None:
        logged = self.store.complete_and_log(played.id, played.round_id, played.crash_point)
        trimmed = self.store.trim_log(self.log_cap)
        self.store.enqueue(self.next_round_id(), self.generator.generate())
        self._pending_settle = None
        current_app.logger.info(f"[settle] round={played.round_id} logged={logged} trimmed={trimmed}")

    def pause(self) -> None:
        self._sleep(self.pause_interval)

    # ---------- Loop ----------
    def run_round(self) -> None:
        if self._pending_settle is not None:
            current_app.logger.info(f"[settle-retry] round={self._pending_settle.round_id}")
            self.settle(self._pending_settle)
        rnd = self.backlog_check()
        played = self.start_round(rnd)
        self.run_progression()
        self._pending_settle = played
        self.settle(played)
        if not self._stop_requested:
            self.pause()

    def run_forever(self) -> None:
        self.is_running = True
        self._stop_requested = False
        primed = False
        current_app.logger.info("[round-loop] started")
        try:
            while not self._stop_requested:
                try:
                    if not primed:
                        self.refill_backlog()
                        primed = True
                    self.run_round()
                except (PersistenceFailure, BacklogEmpty):
                    current_app.logger.exception(f"[round-loop] iteration failed, retrying in {self.retry_delay}s")
                    self._sleep(self.retry_delay)
                except SQLAlchemyError:
                    # ORM errors raised outside the store, e.g. a lazy refresh of a deleted row
                    db.session.rollback()
                    current_app.logger.exception(f"[round-loop] database error, retrying in {self.retry_delay}s")
                    self._sleep(self.retry_delay)
        finally:
            self.is_running = False
            current_app.logger.info("[round-loop] stopped")

    def stop(self) -> None:
        """Finish the round in progress and do not start another."""
        self._stop_requested = True
