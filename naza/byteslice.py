"""Helpers for converting and safely slicing byte sequences."""


def bytes_to_str(b):
    """Decode UTF-8 bytes into a string."""
    return bytes(b).decode("utf-8")


def str_to_bytes(s):
    """Encode a string as UTF-8 bytes."""
    return s.encode("utf-8")


def sub(b, index, length):
    """Slice `length` items from `index`, clipped to the end of `b`.

    An `index` at or past the end gives an empty slice.
    """
    if index < 0 or length < 0:
        raise ValueError(f"index and length must not be negative. index={index}, length={length}")
    if index >= len(b):
        return b[0:0]
    return b[index:index + length]


def prefix(b, length):
    """The first `length` items of `b`, clipped to its size."""
    return sub(b, 0, length)