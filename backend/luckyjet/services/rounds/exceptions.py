"""Errors raised by the round lifecycle engine."""


class LuckyJetError(Exception):
    """Base class for round engine errors."""


class BacklogEmpty(LuckyJetError):
    """No round is waiting in the backlog. Recovered by a synchronous refill."""

    def __init__(self):
        super().__init__("Round backlog is empty")


class PersistenceFailure(LuckyJetError):
    """A store read or write failed; the session has been rolled back."""

    def __init__(self, operation, cause=None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Persistence failure during {operation}: {cause}")


class GeneratorInvariantViolation(LuckyJetError):
    """The crash point generator was misused (bad counter or random source)."""
