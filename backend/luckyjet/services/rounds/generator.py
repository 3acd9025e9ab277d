import random
from typing import Optional

from .exceptions import GeneratorInvariantViolation


MIN_CRASH_POINT = 1.01
MAX_CRASH_POINT = 50.0

# Counter window in which a dry spell may be broken by a high-value round
HIGH_VALUE_WINDOW = (7, 15)
HIGH_VALUE_CHANCE = 0.3
HIGH_VALUE_RANGE = (20.0, 50.0)

# (upper bound of roll out of 100, low, high)
BANDS = (
    (55, 1.0, 2.0),
    (80, 2.0, 10.0),
    (95, 10.0, 30.0),
    (100, 30.0, 50.0),
)


class CrashPointGenerator:
    """Produce crash multipliers for new rounds.

    The counter tracks rounds since the last high-value outcome. While it
    sits inside HIGH_VALUE_WINDOW each call has a 30% chance of returning a
    20x-50x round, which resets the counter. Otherwise the value comes from
    one of four weighted bands.

    The counter and random source are injectable so tests can pin both.
    """

    def __init__(self, rng: Optional[random.Random] = None, counter: int = 0):
        if counter < 0:
            raise GeneratorInvariantViolation(f"counter must be >= 0, got {counter}")
        self.rng = rng or random.Random()
        self.counter = counter

    def _draw(self) -> float:
        value = self.rng.random()
        if not 0.0 <= value < 1.0:
            raise GeneratorInvariantViolation(f"random source returned {value!r}, expected [0, 1)")
        return value

    def _uniform(self, low: float, high: float) -> float:
        return low + self._draw() * (high - low)

    def generate(self) -> float:
        if self.counter < 0:
            raise GeneratorInvariantViolation(f"counter corrupted: {self.counter}")
        self.counter += 1

        low, high = HIGH_VALUE_WINDOW
        if low <= self.counter <= high and self._draw() < HIGH_VALUE_CHANCE:
            self.counter = 0
            return round(self._uniform(*HIGH_VALUE_RANGE), 2)

        roll = self._draw() * 100
        for upper, band_low, band_high in BANDS:
            if roll < upper:
                value = round(self._uniform(band_low, band_high), 2)
                return min(MAX_CRASH_POINT, max(MIN_CRASH_POINT, value))
        # roll is always < 100 because _draw() is < 1
        raise GeneratorInvariantViolation(f"roll {roll} outside every band")
