"""A pool of byte buffers bucketed by power-of-two capacity.

Buffers handed out are memoryviews of the requested length over a bytearray
whose length is the buffer's capacity (``view.obj``).
"""

import collections
import gc
import threading
import weakref
from dataclasses import dataclass
from enum import IntEnum

_MIN_SIZE = 1024
_MAX_SIZE = 1073741824


class Strategy(IntEnum):
    # Buckets may drop their buffers at any garbage collection.
    MULTI_STD_POOL_BUCKET = 1
    # Buckets keep their buffers forever.
    MULTI_SLICE_POOL_BUCKET = 2


@dataclass(frozen=True)
class Status:
    get_count: int = 0
    put_count: int = 0
    hit_count: int = 0
    size_bytes: int = 0


def up2power(n):
    """The smallest power of two >= n, at least 2; n itself once n >= 2**30."""
    if n >= _MAX_SIZE:
        return n
    if n <= 2:
        return 2
    return 1 << (n - 1).bit_length()


def down2power(n):
    """The largest power of two <= n, clamped to [2, 2**30]."""
    if n < 2:
        return 2
    if n >= _MAX_SIZE:
        return _MAX_SIZE
    return 1 << (n.bit_length() - 1)


def _storage(buf):
    """The object holding the memory of `buf`, whose length is its capacity."""
    if isinstance(buf, memoryview):
        return buf.obj
    return buf


def _view(store, size):
    if size > len(store):
        raise ValueError(f"slice bounds out of range. size={size}, capacity={len(store)}")
    return memoryview(store)[:size]


class SliceBucket:
    """A bucket that keeps every buffer put into it."""

    def __init__(self):
        self._lock = threading.Lock()
        self._core = []

    def get(self, size):
        """A view of `size` bytes over a cached buffer, or None if the bucket is empty."""
        with self._lock:
            if not self._core:
                return None
            store = self._core.pop()
        return _view(store, size)

    def put(self, buf):
        with self._lock:
            self._core.append(_storage(buf))


_std_buckets = weakref.WeakSet()


def _drop_std_buckets(phase, info):
    if phase == "start":
        for bucket in list(_std_buckets):
            bucket._core.clear()


gc.callbacks.append(_drop_std_buckets)


class StdPoolBucket:
    """A bucket whose cached buffers are released at each garbage collection."""

    def __init__(self):
        self._core = collections.deque()
        _std_buckets.add(self)

    def get(self, size):
        try:
            store = self._core.pop()
        except IndexError:
            return None
        return _view(store, size)

    def put(self, buf):
        self._core.append(_storage(buf))


class SliceBytePool:
    """Hands out byte buffers, reusing ones that were put back."""

    def __init__(self, strategy):
        strategy = Strategy(strategy)
        bucket_cls = SliceBucket if strategy == Strategy.MULTI_SLICE_POOL_BUCKET else StdPoolBucket
        self.strategy = strategy
        self._buckets = {}
        size = _MIN_SIZE
        while size <= _MAX_SIZE:
            self._buckets[size] = bucket_cls()
            size <<= 1
        self._lock = threading.Lock()
        self._get_count = 0
        self._put_count = 0
        self._hit_count = 0
        self._size_bytes = 0

    def get(self, size):
        """A writable buffer of length `size`, like ``bytearray(size)`` but maybe reused."""
        with self._lock:
            self._get_count += 1
        ss = max(up2power(size), _MIN_SIZE)
        bucket = self._buckets.get(ss)
        buf = bucket.get(size) if bucket is not None else None
        if buf is None:
            return memoryview(bytearray(ss))[:size]
        with self._lock:
            self._hit_count += 1
            self._size_bytes -= len(buf.obj)
        return buf

    def put(self, buf):
        """Give a buffer back for reuse."""
        capacity = len(_storage(buf))
        with self._lock:
            self._put_count += 1
            self._size_bytes += capacity
        self._buckets[max(down2power(capacity), _MIN_SIZE)].put(buf)

    def retrieve_status(self):
        with self._lock:
            return Status(self._get_count, self._put_count, self._hit_count, self._size_bytes)


class SharedSliceByte:
    """A reference-counted buffer that returns to its pool when the last reference is released."""

    def __init__(self, core, pool):
        self.core = core
        self._pool = pool
        self._count = 1
        self._lock = threading.Lock()

    def ref(self):
        """Take another reference; returns self."""
        with self._lock:
            self._count += 1
        return self

    def release_if_needed(self):
        """Drop a reference; the buffer goes back to the pool when none are left."""
        with self._lock:
            self._count -= 1
            last = self._count == 0
        if last:
            self._pool.put(self.core)


def new_shared_slice_byte(size, pool=None):
    """A shared buffer of `size` bytes taken from `pool` (the default pool if None)."""
    pool = pool if pool is not None else _default_pool
    return SharedSliceByte(pool.get(size), pool)


def wrap_shared_slice_byte(b, pool=None):
    """Share an existing buffer; it goes to `pool` (the default pool if None) when released."""
    return SharedSliceByte(b, pool if pool is not None else _default_pool)


_default_pool = SliceBytePool(Strategy.MULTI_SLICE_POOL_BUCKET)


def get(size):
    return _default_pool.get(size)


def put(buf):
    _default_pool.put(buf)


def retrieve_status():
    return _default_pool.retrieve_status()


def init(strategy):
    """Replace the default pool with a fresh one using `strategy`."""
    global _default_pool
    _default_pool = SliceBytePool(strategy)