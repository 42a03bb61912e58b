"""
Error taxonomy for link resolution and scan telemetry.

Routes translate these into HTTP responses; services raise them.
Throttling is not an error: the rate limiter returns a decision instead.
"""


class ScanlinkError(Exception):
    """Base class for all application errors"""


class NotFoundError(ScanlinkError):
    """Unknown or inactive short code (or link not owned by the caller)"""


class DuplicateCodeError(ScanlinkError):
    """The store rejected a short code that is already taken"""


class RetriesExhaustedError(ScanlinkError):
    """Every attempt to claim a fresh short code collided"""

    def __init__(self, attempts: int):
        super().__init__(
            f"Could not claim a unique short code after {attempts} attempts"
        )
        self.attempts = attempts


class StoreError(ScanlinkError):
    """Any persistence failure other than a short code collision"""


class RecordingError(StoreError):
    """A scan event could not be appended to the event log"""


class CounterStoreUnavailable(ScanlinkError):
    """The rate limit counter store could not be reached"""
