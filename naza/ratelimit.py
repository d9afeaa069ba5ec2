"""Rate limiters: a leaky bucket and a token bucket.

LeakyBucket: successive acquisitions are at least a fixed interval apart.
TokenBucket: tokens are produced continuously and cached up to a capacity,
so several can be taken at once.
"""

import abc
import threading
import time


class ResourceNotAvailableError(Exception):
    """The leaky bucket has no resource available right now."""


class TokenNotEnoughError(Exception):
    """The token bucket holds fewer tokens than were asked for."""


def _now_ms():
    return time.monotonic_ns() // 1_000_000


class RateLimiter(abc.ABC):
    """Common interface of the rate limiters."""

    @abc.abstractmethod
    def try_acquire(self):
        """Take a resource at once or raise."""

    @abc.abstractmethod
    def wait_until_acquire(self):
        """Block until a resource is taken."""


class LeakyBucket(RateLimiter):
    """Grants one resource per `interval_ms` milliseconds."""

    def __init__(self, interval_ms):
        self._interval_ms = interval_ms
        self._lock = threading.Lock()
        # The first acquisition is measured from the moment of creation.
        self._last_tick = _now_ms()

    def try_acquire(self):
        """Take a resource, or raise ResourceNotAvailableError if the interval has not passed."""
        with self._lock:
            now = _now_ms()
            if now - self._last_tick > self._interval_ms:
                self._last_tick = now
                return
        raise ResourceNotAvailableError("naza.ratelimit: resource not available")

    def wait_until_acquire(self):
        """Block until a resource is granted."""
        with self._lock:
            now = _now_ms()
            diff = now - self._last_tick
            if diff > self._interval_ms:
                self._last_tick = now
                return
            # Reserve the next slot so that other waiters queue behind it.
            self._last_tick += self._interval_ms
        time.sleep((self._interval_ms - diff) / 1000)

    def maybe_available_interval_ms(self):
        """Milliseconds until a resource may be available; 0 means now. Not a guarantee."""
        with self._lock:
            now = _now_ms()
            if now - self._last_tick > self._interval_ms:
                return 0
            return self._last_tick + self._interval_ms - now


class TokenBucket(RateLimiter):
    """Holds up to `capacity` tokens; a background thread adds
    `prod_token_num_every_interval` tokens every `prod_token_interval_ms` milliseconds.
    """

    def __init__(self, capacity, prod_token_interval_ms, prod_token_num_every_interval):
        self._capacity = capacity
        self._interval = prod_token_interval_ms / 1000
        self._prod_num = prod_token_num_every_interval
        self._available = 0
        self._cond = threading.Condition()
        self._disposed = threading.Event()
        self._thread = threading.Thread(target=self._produce, name="token-bucket", daemon=True)
        self._thread.start()

    def try_acquire(self):
        self.try_acquire_with_num(1)

    def wait_until_acquire(self):
        self.wait_until_acquire_with_num(1)

    def try_acquire_with_num(self, num):
        """Take `num` tokens, or raise TokenNotEnoughError if there are too few."""
        self._check_acquire_num(num)
        with self._cond:
            if self._available >= num:
                self._available -= num
                return
        raise TokenNotEnoughError("naza.ratelimit: token not enough")

    def wait_until_acquire_with_num(self, num):
        """Block until `num` tokens are taken."""
        self._check_acquire_num(num)
        with self._cond:
            self._cond.wait_for(lambda: self._available >= num)
            self._available -= num

    def dispose(self):
        """Stop producing tokens."""
        self._disposed.set()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.dispose()

    def _produce(self):
        next_tick = time.monotonic() + self._interval
        while not self._disposed.wait(max(0.0, next_tick - time.monotonic())):
            with self._cond:
                self._available = min(self._available + self._prod_num, self._capacity)
                self._cond.notify_all()
            now = time.monotonic()
            next_tick += self._interval
            if next_tick < now:
                # Ticks missed while busy are dropped.
                next_tick = now + self._interval

    def _check_acquire_num(self, num):
        if num > self._capacity:
            raise ValueError(
                f"acquire num should not bigger than capacity. num={num}, capacity={self._capacity}"
            )