"""
Rate Limiter for API Requests

Implements a token bucket fed by a background ticker: one permit is produced
every ``interval`` seconds into a bounded buffer, and each request consumes
one permit. Permits produced while the buffer is full are discarded, so the
long-run rate never exceeds ``1 / interval`` while up to ``burst`` calls may
go out back-to-back once the buffer has filled.

BTC Markets API Rate Limits:
- limit10: 10 requests / 10 seconds (order create, history, account, market)
- limit25: 25 requests / 10 seconds (order cancel, open, detail)
"""

import itertools
import logging
import threading
import time
from collections import deque
from typing import Deque, Dict, Optional

from .errors import RateLimitTimeout, RateLimiterStopped

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Ticker driven token bucket rate limiter.

    The buffer starts empty: burst capacity is not available until it has
    built up, so a freshly started client cannot overspend the allowance.

    Usage:
        limiter = RateLimiter(interval=1.0, burst=10, name='limit10').start()

        # Blocking wait
        limiter.wait()  # Waits if necessary to respect rate limit
        make_request()

        # Non-blocking check
        if limiter.try_acquire():
            make_request()
        else:
            handle_rate_limit()

        limiter.stop()
    """

    def __init__(self, interval: float, burst: int, name: str = 'default'):
        """
        Initialize rate limiter.

        Args:
            interval: Seconds between produced permits
            burst: Maximum number of buffered permits
            name: Name for logging/identification
        """
        if interval <= 0:
            raise ValueError(f"Rate limiter interval must be positive, got: {interval}")
        if burst < 1:
            raise ValueError(f"Rate limiter burst must be at least 1, got: {burst}")

        self.interval = interval
        self.burst = int(burst)
        self.name = name

        # Permit buffer, never longer than burst
        self._permits: Deque[int] = deque()
        self._sequence = itertools.count(1)
        self._cond = threading.Condition()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Statistics
        self._issued = 0
        self._discarded = 0
        self._acquired = 0
        self._total_waits = 0
        self._total_wait_time = 0.0

    def start(self) -> 'RateLimiter':
        """Start the permit producer. Returns self so it can be chained."""
        if self._thread is not None:
            raise RuntimeError(f"Rate limiter '{self.name}' already started")

        self._thread = threading.Thread(
            target=self._produce,
            name=f"rate-limiter-{self.name}",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Rate limiter %s started (interval=%.3fs, burst=%d)",
                     self.name, self.interval, self.burst)
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop the permit producer and wait for its thread to exit.

        Callers blocked in acquire() are woken and receive RateLimiterStopped.
        Permits still buffered remain available to non-blocking callers.
        """
        self._stop_event.set()
        with self._cond:
            self._cond.notify_all()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.debug("Rate limiter %s stopped", self.name)

    @property
    def started(self) -> bool:
        return self._thread is not None

    @property
    def running(self) -> bool:
        """True while the producer thread is alive."""
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def _accepting(self) -> bool:
        return self._thread is not None and not self._stop_event.is_set()

    def _produce(self) -> None:
        """Deposit one permit per interval; drop it if the buffer is full."""
        while not self._stop_event.wait(self.interval):
            with self._cond:
                if len(self._permits) >= self.burst:
                    self._discarded += 1
                    continue
                self._permits.append(next(self._sequence))
                self._issued += 1
                self._cond.notify()

    def _take(self, blocking: bool = True, timeout: Optional[float] = None) -> Optional[int]:
        """
        Remove one permit from the buffer.

        Returns the permit's sequence number, or None if no permit was
        obtained (non-blocking miss or timeout).

        Raises:
            RateLimiterStopped: If the limiter is not running and the buffer is empty
        """
        started = time.monotonic()
        deadline = None if timeout is None else started + timeout

        waited = False
        with self._cond:
            while not self._permits:
                if not self._accepting():
                    raise RateLimiterStopped(f"Rate limiter '{self.name}' is not running")
                if not blocking:
                    return None

                remaining = None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                waited = True
                self._cond.wait(remaining)

            permit = self._permits.popleft()
            self._acquired += 1
            if waited:
                self._total_waits += 1
                self._total_wait_time += time.monotonic() - started
            return permit

    def acquire(self, blocking: bool = True, timeout: float = None) -> bool:
        """
        Acquire a permit from the bucket.

        Args:
            blocking: If True, wait for a permit. If False, return immediately.
            timeout: Maximum time to wait (seconds). None = wait indefinitely.

        Returns:
            True if a permit was consumed, False if not (only when
            blocking=False or timeout exceeded)

        Raises:
            RateLimiterStopped: If the limiter was stopped with no permits left
        """
        return self._take(blocking=blocking, timeout=timeout) is not None

    def wait(self, timeout: float = None) -> None:
        """
        Wait for a permit, raising instead of returning False on timeout.

        Raises:
            RateLimitTimeout: If no permit arrived within ``timeout`` seconds
            RateLimiterStopped: If the limiter was stopped with no permits left
        """
        if not self.acquire(blocking=True, timeout=timeout):
            raise RateLimitTimeout(self.name, timeout)

    def try_acquire(self) -> bool:
        """
        Try to acquire a permit without waiting.

        Returns:
            True if a permit was available, False otherwise
        """
        return self.acquire(blocking=False)

    @property
    def available_permits(self) -> int:
        """Get current number of buffered permits."""
        with self._cond:
            return len(self._permits)

    @property
    def stats(self) -> Dict:
        """Get rate limiter statistics."""
        with self._cond:
            return {
                'name': self.name,
                'interval': self.interval,
                'burst': self.burst,
                'issued': self._issued,
                'discarded': self._discarded,
                'acquired': self._acquired,
                'total_waits': self._total_waits,
                'total_wait_time': round(self._total_wait_time, 3),
                'avg_wait_time': (
                    round(self._total_wait_time / self._total_waits, 3)
                    if self._total_waits > 0 else 0
                ),
            }

    def __enter__(self) -> 'RateLimiter':
        if not self.started:
            self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def start_rate_limiter(interval: float, burst: int, name: str = 'default') -> RateLimiter:
    """Create and start a rate limiter in one call."""
    return RateLimiter(interval=interval, burst=burst, name=name).start()


class RateLimiterGroup:
    """
    Manage one rate limiter per endpoint rate class.

    Usage:
        limiters = RateLimiterGroup({
            'limit10': (1.0, 10),
            'limit25': (0.4, 25),
        }).start_all()

        limiters.wait('limit10')
        make_request()

        limiters.stop_all()
    """

    def __init__(self, limits: Dict[str, tuple]):
        """
        Initialize rate limiter group.

        Args:
            limits: Dict mapping rate class to an (interval, burst) pair
        """
        self.limiters: Dict[str, RateLimiter] = {
            name: RateLimiter(interval=interval, burst=burst, name=name)
            for name, (interval, burst) in limits.items()
        }

    def start_all(self) -> 'RateLimiterGroup':
        """Start every limiter in the group that is not started yet."""
        for limiter in self.limiters.values():
            if not limiter.started:
                limiter.start()
        return self

    def get(self, rate_class: str) -> RateLimiter:
        """Look up a limiter; unknown rate classes raise KeyError."""
        try:
            return self.limiters[rate_class]
        except KeyError:
            raise KeyError(f"Unknown rate class: {rate_class}") from None

    def wait(self, rate_class: str, timeout: float = None) -> None:
        """Wait for a permit from the given rate class."""
        self.get(rate_class).wait(timeout=timeout)

    def try_acquire(self, rate_class: str) -> bool:
        """Try to acquire without waiting."""
        return self.get(rate_class).try_acquire()

    def stop_all(self) -> None:
        """Stop every limiter in the group."""
        for limiter in self.limiters.values():
            limiter.stop()

    @property
    def stats(self) -> Dict[str, Dict]:
        """Get statistics for all rate limiters."""
        return {
            name: limiter.stats
            for name, limiter in self.limiters.items()
        }
