"""Retry policy for RPC transport.

Retries only cover transport failures (connection errors, timeouts and
5xx responses). RPC-level errors are never retried.
"""

from dataclasses import dataclass


@dataclass
class RetryPolicy:
    """Exponential backoff between RPC attempts."""
    max_retries: int = 3
    initial_delay: float = 0.5
    backoff_factor: float = 2.0
    max_delay: float = 10.0

    @property
    def attempts(self) -> int:
        """Total number of attempts, including the first."""
        return self.max_retries + 1

    def get_delay(self, attempt: int) -> float:
        """Delay in seconds before retry ``attempt`` (0 = first retry)."""
        return min(self.initial_delay * (self.backoff_factor ** attempt), self.max_delay)
