"""
Bounded waiting for eventually-visible writes.

A Supabase identity is acknowledged before it is readable everywhere else.
`await_visible` polls a lookup with exponential backoff and jitter until the
value shows up. A caller's `Deadline` can stop the wait early.
"""

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

from django.conf import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BackoffPolicy:
    """Retry budget for `await_visible`. Delays are in seconds."""

    max_attempts: int = 8
    initial_delay: float = 0.1
    backoff_multiplier: float = 2.0
    max_delay: float = 2.0
    jitter: float = 0.2

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")
        if not 0 <= self.jitter < 1:
            raise ValueError("jitter must be in [0, 1)")

    @classmethod
    def from_settings(cls) -> "BackoffPolicy":
        conf = settings.REGISTRATION
        return cls(
            max_attempts=conf["VISIBILITY_MAX_ATTEMPTS"],
            initial_delay=conf["VISIBILITY_INITIAL_DELAY"],
            backoff_multiplier=conf["VISIBILITY_BACKOFF_MULTIPLIER"],
            max_delay=conf["VISIBILITY_MAX_DELAY"],
            jitter=conf["VISIBILITY_JITTER"],
        )

    def next_delay(self, delay: float) -> float:
        return min(delay * self.backoff_multiplier, self.max_delay)

    def sleep_for(self, delay: float) -> float:
        """Apply jitter to a sleep; the stored delay is left untouched."""
        if not self.jitter:
            return delay
        return max(0.0, delay * (1 + random.uniform(-self.jitter, self.jitter)))


class Deadline:
    """
    Caller-imposed time limit that can also be cancelled explicitly.

    Safe to share between the thread running a registration and the thread
    that wants to abort it.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._expires_at = None if timeout is None else time.monotonic() + timeout
        self._cancelled = threading.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def wait(self, seconds: float) -> bool:
        """
        Sleep up to `seconds`, waking early on cancellation.
        Returns True if the deadline fired during or before the sleep.
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if self._cancelled.wait(max(0.0, seconds)):
            return True
        return self.expired


class VisibilityTimeout(Exception):
    """The lookup never returned a value within the attempt budget."""

    def __init__(self, attempts: int, elapsed: float):
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(f"not visible after {attempts} attempts ({elapsed:.3f}s)")


class WaitCancelled(Exception):
    """The deadline fired while waiting."""

    def __init__(self, attempts: int, elapsed: float):
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(f"wait cancelled after {attempts} attempts ({elapsed:.3f}s)")


def await_visible(
    lookup: Callable[[], Optional[T]],
    policy: BackoffPolicy,
    deadline: Optional[Deadline] = None,
    retry_on: Tuple[Type[BaseException], ...] = (),
) -> T:
    """
    Call `lookup` until it returns something other than None.

    Exceptions listed in `retry_on` count as a miss; anything else propagates.
    No sleep happens before the first attempt or after the last one.

    Raises:
        VisibilityTimeout: `policy.max_attempts` lookups all missed.
        WaitCancelled: `deadline` fired before the value became visible.
    """
    deadline = deadline or Deadline()
    started = time.monotonic()
    delay = policy.initial_delay

    for attempt in range(1, policy.max_attempts + 1):
        if deadline.expired:
            raise WaitCancelled(attempt - 1, time.monotonic() - started)

        try:
            value = lookup()
        except retry_on as exc:
            logger.warning(f"Visibility lookup failed on attempt {attempt}: {exc}")
            value = None

        if value is not None:
            if attempt > 1:
                logger.debug(f"Value visible after {attempt} attempts")
            return value

        if attempt == policy.max_attempts:
            break

        pause = policy.sleep_for(delay)
        logger.debug(f"Attempt {attempt}/{policy.max_attempts} missed, retrying in {pause:.3f}s")
        if deadline.wait(pause):
            raise WaitCancelled(attempt, time.monotonic() - started)
        delay = policy.next_delay(delay)

    raise VisibilityTimeout(policy.max_attempts, time.monotonic() - started)
