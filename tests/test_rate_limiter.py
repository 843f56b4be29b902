"""Tests for the ticker driven rate limiter."""

import threading
import time

import pytest

from btcmarkets.errors import RateLimitTimeout, RateLimiterStopped
from btcmarkets.rate_limiter import RateLimiter, RateLimiterGroup, start_rate_limiter


def wait_until(predicate, timeout: float = 5.0, poll: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(poll)
    return predicate()


@pytest.fixture
def limiter():
    limiters = []

    def factory(interval, burst, name='test'):
        rl = start_rate_limiter(interval, burst, name)
        limiters.append(rl)
        return rl

    yield factory
    for rl in limiters:
        rl.stop()


class TestConfiguration:

    @pytest.mark.parametrize('burst', [0, -1])
    def test_rejects_non_positive_burst(self, burst):
        with pytest.raises(ValueError):
            RateLimiter(interval=1.0, burst=burst)

    @pytest.mark.parametrize('interval', [0, -0.5])
    def test_rejects_non_positive_interval(self, interval):
        with pytest.raises(ValueError):
            RateLimiter(interval=interval, burst=1)

    def test_cannot_start_twice(self, limiter):
        rl = limiter(0.01, 1)
        with pytest.raises(RuntimeError):
            rl.start()

    def test_unstarted_limiter_does_not_block(self):
        rl = RateLimiter(interval=0.01, burst=1)
        with pytest.raises(RateLimiterStopped):
            rl.acquire()


class TestBurst:

    def test_buffer_starts_empty(self, limiter):
        rl = limiter(0.5, 5)
        assert rl.try_acquire() is False
        assert rl.available_permits == 0

    def test_burst_available_after_buffer_fills(self, limiter):
        rl = limiter(0.02, 3)
        assert wait_until(lambda: rl.available_permits == 3)

        assert [rl.try_acquire() for _ in range(3)] == [True, True, True]

    def test_call_after_burst_blocks_for_about_one_interval(self, limiter):
        interval = 0.05
        rl = limiter(interval, 3)
        assert wait_until(lambda: rl.available_permits == 3)
        for _ in range(3):
            assert rl.try_acquire()

        assert rl.try_acquire() is False

        started = time.monotonic()
        assert rl.acquire(timeout=5)
        elapsed = time.monotonic() - started

        assert elapsed <= interval + 0.5
        assert rl.stats['total_waits'] == 1

    def test_buffer_never_exceeds_burst(self, limiter):
        rl = limiter(0.005, 2)
        assert wait_until(lambda: rl.stats['discarded'] >= 5)

        assert rl.available_permits == 2
        assert rl.stats['issued'] == 2

    def test_long_run_rate_is_bounded(self, limiter):
        interval = 0.02
        rl = limiter(interval, 1)
        started = time.monotonic()
        for _ in range(5):
            rl.acquire()
        elapsed = time.monotonic() - started

        # Five permits need at least four intervals after the first
        assert elapsed >= interval * 4 * 0.9


class TestTimeouts:

    def test_acquire_timeout_returns_false(self, limiter):
        rl = limiter(10.0, 1)
        started = time.monotonic()
        assert rl.acquire(timeout=0.05) is False
        assert time.monotonic() - started >= 0.04

    def test_wait_timeout_raises(self, limiter):
        rl = limiter(10.0, 1, name='slow')
        with pytest.raises(RateLimitTimeout) as excinfo:
            rl.wait(timeout=0.05)
        assert excinfo.value.name == 'slow'
        assert excinfo.value.timeout == 0.05

    def test_non_blocking_acquire(self, limiter):
        rl = limiter(10.0, 1)
        assert rl.acquire(blocking=False) is False


class TestStop:

    def test_stop_ends_producer(self, limiter):
        rl = limiter(0.01, 2)
        assert rl.running
        rl.stop()
        assert not rl.running
        assert not rl._thread.is_alive()

    def test_stop_wakes_blocked_waiter(self, limiter):
        rl = limiter(10.0, 1)
        errors = []

        def waiter():
            try:
                rl.acquire()
            except RateLimiterStopped as e:
                errors.append(e)

        thread = threading.Thread(target=waiter)
        thread.start()
        time.sleep(0.05)
        rl.stop()
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert len(errors) == 1

    def test_buffered_permits_survive_stop(self, limiter):
        rl = limiter(0.005, 2)
        assert wait_until(lambda: rl.available_permits == 2)
        rl.stop()

        assert rl.try_acquire()
        assert rl.try_acquire()
        with pytest.raises(RateLimiterStopped):
            rl.try_acquire()

    def test_context_manager_stops(self):
        with RateLimiter(interval=0.01, burst=1, name='ctx') as rl:
            assert rl.running
        assert not rl.running


class TestConcurrency:

    def test_concurrent_callers_all_succeed_with_unique_permits(self, limiter):
        rl = limiter(0.002, 3)
        callers = 25
        taken = []
        lock = threading.Lock()

        def worker():
            permit = rl._take(timeout=10)
            with lock:
                taken.append(permit)

        threads = [threading.Thread(target=worker) for _ in range(callers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=15)

        assert len(taken) == callers
        assert None not in taken
        assert len(set(taken)) == callers
        assert rl.stats['acquired'] == callers
        assert rl.stats['issued'] >= callers


class TestRateLimiterGroup:

    def test_wait_uses_named_class(self):
        group = RateLimiterGroup({'fast': (0.001, 5), 'slow': (10.0, 1)}).start_all()
        try:
            group.wait('fast', timeout=2)
            with pytest.raises(RateLimitTimeout):
                group.wait('slow', timeout=0.02)
        finally:
            group.stop_all()

    def test_unknown_class(self):
        group = RateLimiterGroup({'fast': (0.001, 5)})
        with pytest.raises(KeyError):
            group.get('missing')

    def test_start_all_skips_started(self):
        group = RateLimiterGroup({'fast': (0.001, 5)})
        group.limiters['fast'].start()
        try:
            group.start_all()
        finally:
            group.stop_all()

    def test_stats_per_class(self):
        group = RateLimiterGroup({'a': (1.0, 1), 'b': (1.0, 2)})
        assert set(group.stats) == {'a', 'b'}
        assert group.stats['b']['burst'] == 2
