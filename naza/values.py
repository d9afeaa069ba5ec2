"""Value comparison helpers."""

_BYTES_LIKE = (bytes, bytearray, memoryview)


def is_nil(actual):
    """Whether `actual` is None."""
    return actual is None


def equal(expected, actual):
    """Strict equality: values must be equal and of the same type.

    A None `expected` matches only None; byte sequences compare by content
    whatever their concrete byte type.
    """
    if expected is None:
        return is_nil(actual)
    if isinstance(expected, _BYTES_LIKE):
        if not isinstance(actual, _BYTES_LIKE):
            return False
        return bytes(expected) == bytes(actual)
    return type(expected) is type(actual) and expected == actual


def _is_integer(v):
    return isinstance(v, int) and not isinstance(v, bool)


def equal_integer(a, b):
    """Whether `a` and `b` are both integers with the same value."""
    return _is_integer(a) and _is_integer(b) and a == b