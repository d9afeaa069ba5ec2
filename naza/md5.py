"""MD5 digests as lowercase hex strings."""

import hashlib


def md5(b):
    """Return the 32-character lowercase hex MD5 digest of `b`."""
    return hashlib.md5(b or b"").hexdigest()