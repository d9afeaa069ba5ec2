"""Helpers for combining and wrapping errors with source locations."""

import inspect
import os


class WrappedError(Exception):
    """An error that wraps another and records where it was wrapped."""

    def __init__(self, err, location, messages=()):
        self.err = err
        self.location = location
        self.messages = tuple(messages)
        if self.messages:
            text = f"{err}([{' '.join(self.messages)}] {location})"
        else:
            text = f"{err}({location})"
        super().__init__(text)
        self.__cause__ = err


def combine_errors(*args):
    """Return the first error that is not None, or None."""
    return next((err for err in args if err is not None), None)


def wrap(err, *args):
    """Wrap `err` with the caller's file and line and optional messages.

    Returns None when `err` is None.
    """
    if err is None:
        return None
    frame = inspect.currentframe().f_back
    try:
        location = f"{os.path.basename(frame.f_code.co_filename)}:{frame.f_lineno}"
    finally:
        del frame
    return WrappedError(err, location, args)


def unwrap(err):
    """The error directly wrapped by `err`, or None."""
    if err is None:
        return None
    return getattr(err, "__cause__", None)


def _chain(err):
    seen = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = unwrap(err)


def is_error(err, target):
    """Whether `target` is `err` or anywhere in its wrap chain."""
    return any(e is target or e == target for e in _chain(err))


def as_error(err, cls):
    """The first error in the wrap chain of `err` that is an instance of `cls`, or None."""
    return next((e for e in _chain(err) if isinstance(e, cls)), None)