"""Retry policy and failure classification for provider calls."""

from dataclasses import dataclass
from typing import Iterable

from hetznerrunner.constants import CAPACITY_FAILURE_MARKERS, WAIT_SEC

TRANSIENT = "transient"
FATAL = "fatal"


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-interval policy: the timeout is a number of attempts, not a duration."""

    max_attempts: int
    delay: float = WAIT_SEC

    def attempts(self) -> range:
        return range(1, max(0, self.max_attempts) + 1)


def classify_create_failure(
    response_body: str,
    markers: Iterable[str] = CAPACITY_FAILURE_MARKERS,
) -> str:
    """Return TRANSIENT for capacity failures, FATAL for everything else."""
    text = response_body or ""
    if any(marker in text for marker in markers):
        return TRANSIENT
    return FATAL
