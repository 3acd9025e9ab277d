import threading
from collections import namedtuple
from dataclasses import dataclass, field
from typing import Optional

# Plain copy of a backlog row taken before it is marked running. Nothing
# downstream of RoundStart reads the ORM instance again.
PlayedRound = namedtuple('PlayedRound', ['id', 'round_id', 'crash_point'])


@dataclass
class LiveGameState:
    """What is being played right now.

    Written only by the scheduler, read by the broadcast hub when an
    observer connects. `current_round` keeps pointing at the last round
    after it crashes until the next round starts.
    """
    current_round: Optional[PlayedRound] = None
    round_id: Optional[int] = None
    crash_point: Optional[float] = None
    live_score: float = 1.0
    crashed: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def begin(self, played: PlayedRound) -> None:
        with self._lock:
            self.current_round = played
            self.round_id = played.round_id
            self.crash_point = played.crash_point
            self.live_score = 1.0
            self.crashed = False

    def set_score(self, value: float) -> None:
        with self._lock:
            self.live_score = value

    def latch_crash(self) -> bool:
        """Set the crash latch. Returns False if it was already set."""
        with self._lock:
            if self.crashed:
                return False
            self.crashed = True
            return True

    def read(self) -> dict:
        with self._lock:
            return {
                'roundId': self.round_id,
                'crashPoint': self.crash_point,
                'liveScore': self.live_score,
            }
