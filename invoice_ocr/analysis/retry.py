"""Bounded retry policy with linear backoff."""

from dataclasses import dataclass

from invoice_ocr.utils.config import RetryConfig

from .errors import AnalysisError, ErrorKind

RETRYABLE_KINDS = frozenset({ErrorKind.INITIALIZATION, ErrorKind.NETWORK})


@dataclass(frozen=True)
class RetryPolicy:
    """Decides whether a failed attempt is retried and how long to wait.

    Args:
        max_attempts: Total number of attempts, first one included.
        backoff_seconds: Delay unit; attempt ``n`` waits ``n * backoff_seconds``.
    """

    max_attempts: int = 3
    backoff_seconds: float = 1.0

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            backoff_seconds=config.backoff_seconds,
        )

    def should_retry(self, error: AnalysisError, attempts_so_far: int) -> bool:
        """Return True if another attempt should be made.

        Only recoverable initialization and network failures are retried;
        parsing and preflight failures never are.
        """
        if attempts_so_far >= self.max_attempts:
            return False
        if not error.recoverable:
            return False
        return error.kind in RETRYABLE_KINDS

    def backoff(self, attempt_index: int) -> float:
        """Seconds to wait after the ``attempt_index``-th failed attempt."""
        return attempt_index * self.backoff_seconds
