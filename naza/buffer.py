"""A first-in first-out growable byte buffer with direct access to its storage."""

import logging

_log = logging.getLogger(__name__)

_GROW_MIN_THRESHOLD = 128
_GROW_ROUND_THRESHOLD = 1048576  # 1MB


def round_up_power_of_two(n):
    """Return the smallest power of two that is >= n, and at least 2."""
    if n <= 2:
        return 2
    return 1 << (n - 1).bit_length()


class Buffer:
    """FIFO growable byte buffer.

    Unread data and free space can be accessed directly as memoryviews of the
    internal storage, which avoids copies:

    * reading: ``view = buf.bytes()`` then ``buf.skip(n)``; or ``buf.peek(n)``;
      or ``buf.read(n)`` / ``buf.readinto(target)``.
    * writing: ``view = buf.reserve_bytes(n)``, fill it, then ``buf.flush(n)``;
      or ``buf.write(data)`` / ``buf.write_string(s)``.
    """

    def __init__(self, init_cap=0):
        self._core = bytearray(init_cap) if init_cap > 0 else bytearray()
        self._rpos = 0
        self._wpos = 0

    # ------------------------------------------------------------------ reading

    def bytes(self):
        """All unread data, as a view without copying."""
        return memoryview(self._core)[self._rpos:self._wpos]

    def peek(self, n):
        """Up to `n` bytes of unread data, as a view; the read position is unchanged."""
        end = self._rpos + min(n, len(self))
        return memoryview(self._core)[self._rpos:end]

    def skip(self, n):
        """Mark the first `n` unread bytes as consumed."""
        if n > len(self):
            _log.warning("[%x] Buffer::Skip too large. n=%d, %s", id(self), n, self.debug_string())
            self.reset()
            return
        self._rpos += n
        self._reset_if_empty()

    def read(self, size=-1):
        """Copy out and consume up to `size` bytes; all of them if `size` is negative."""
        if size == 0 or len(self) == 0:
            return b""
        n = len(self) if size < 0 else min(size, len(self))
        data = bytes(self._core[self._rpos:self._rpos + n])
        self.skip(n)
        return data

    def readinto(self, b):
        """Copy unread data into the writable buffer `b`; return the number of bytes copied."""
        target = memoryview(b)
        n = min(target.nbytes, len(self))
        if n == 0:
            return 0
        target[:n] = self._core[self._rpos:self._rpos + n]
        self.skip(n)
        return n

    # ------------------------------------------------------------------ writing

    def grow(self, n):
        """Make sure at least `n` bytes of free space follow the unread data."""
        tail = len(self._core) - self._wpos
        if tail >= n:
            return

        length = len(self)
        if self._rpos + tail >= n:
            # Reclaim the consumed space at the front.
            _log.debug("[%x] Buffer::Grow. move, this round need=%d, copy=%d", id(self), n, length)
            self._core[0:length] = self._core[self._rpos:self._wpos]
            self._wpos = length
            self._rpos = 0
            return

        if n <= _GROW_MIN_THRESHOLD:
            n = _GROW_MIN_THRESHOLD
        elif n < _GROW_ROUND_THRESHOLD:
            n = round_up_power_of_two(n)

        needed = length + n
        if self._core:
            _log.debug(
                "[%x] Buffer::Grow. realloc, this round need=%d, copy=%d, cap=(%d -> %d)",
                id(self), n, length, self.capacity(), needed,
            )
        core = bytearray(needed)
        core[0:length] = self._core[self._rpos:self._wpos]
        self._core = core
        self._wpos = length
        self._rpos = 0

    def writable_bytes(self):
        """The free space after the unread data, as a writable view."""
        return memoryview(self._core)[self._wpos:]

    def reserve_bytes(self, n):
        """A writable view of exactly `n` bytes, growing if needed. Call flush() afterwards."""
        self.grow(n)
        return memoryview(self._core)[self._wpos:self._wpos + n]

    def flush(self, n):
        """Mark `n` bytes written into the free space as readable data."""
        if len(self._core) - self._wpos < n:
            _log.warning("[%x] Buffer::Flush too large. n=%d, %s", id(self), n, self.debug_string())
            self._wpos = len(self._core)
            return
        self._wpos += n

    def write(self, data):
        """Append a copy of `data`, growing as needed; return the number of bytes written."""
        view = memoryview(data)
        n = view.nbytes
        self.grow(n)
        self._core[self._wpos:self._wpos + n] = view
        self._wpos += n
        return n

    def write_string(self, s):
        """Append `s` encoded as UTF-8; return the number of bytes written."""
        return self.write(s.encode("utf-8"))

    # ------------------------------------------------------------------ state

    def truncate(self, n):
        """Drop the last `n` bytes of unread data."""
        if len(self) < n:
            _log.warning("[%x] Buffer::Truncate too large. n=%d, %s", id(self), n, self.debug_string())
            self.reset()
            return
        self._wpos -= n
        self._reset_if_empty()

    def reset(self):
        """Discard all data but keep the storage for reuse."""
        self._rpos = 0
        self._wpos = 0

    def reset_and_free(self):
        """Discard all data and release the storage."""
        self._core = bytearray()
        self._rpos = 0
        self._wpos = 0

    def capacity(self):
        """Total size of the internal storage."""
        return len(self._core)

    def debug_string(self):
        return f"len(core)={len(self._core)}, rpos={self._rpos}, wpos={self._wpos}"

    def __len__(self):
        return self._wpos - self._rpos

    def __str__(self):
        return self._core[self._rpos:self._wpos].decode("utf-8", errors="replace")

    def _reset_if_empty(self):
        if self._rpos == self._wpos:
            self.reset()


def ref_bytes(data):
    """Create a Buffer whose storage is `data` itself when it is a bytearray.

    The buffer starts empty; the memory of `data` is used as free space.
    """
    buf = Buffer()
    buf._core = data if isinstance(data, bytearray) else bytearray(data)
    return buf