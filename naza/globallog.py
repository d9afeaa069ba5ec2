"""Process-wide logger and module-level logging functions that write through it."""

import sys

from naza.log import AssertBehavior, Level, Logger, LogPanic, new
from naza.values import equal

_global = Logger()


def _log_nothing(option):
    option.level = Level.LOG_NOTHING


DUMMY_LOGGER = new(_log_nothing)
"""A logger that discards everything."""


def _sprint(args):
    return " ".join(str(a) for a in args)


def _sprintf(fmt, args):
    return fmt % args if args else fmt


def _format_value(v):
    return "<nil>" if v is None else str(v)


def tracef(fmt, *args):
    _global.out(Level.TRACE, 2, _sprintf(fmt, args))


def debugf(fmt, *args):
    _global.out(Level.DEBUG, 2, _sprintf(fmt, args))


def infof(fmt, *args):
    _global.out(Level.INFO, 2, _sprintf(fmt, args))


def warnf(fmt, *args):
    _global.out(Level.WARN, 2, _sprintf(fmt, args))


def errorf(fmt, *args):
    _global.out(Level.ERROR, 2, _sprintf(fmt, args))


def fatalf(fmt, *args):
    """Log at fatal level and exit the program with status 1."""
    _global.out(Level.FATAL, 2, _sprintf(fmt, args))
    sys.exit(1)


def panicf(fmt, *args):
    """Log at panic level and raise LogPanic."""
    msg = _sprintf(fmt, args)
    _global.out(Level.PANIC, 2, msg)
    raise LogPanic(msg)


def trace(*args):
    _global.out(Level.TRACE, 2, _sprint(args))


def debug(*args):
    _global.out(Level.DEBUG, 2, _sprint(args))


def info(*args):
    _global.out(Level.INFO, 2, _sprint(args))


def warn(*args):
    _global.out(Level.WARN, 2, _sprint(args))


def error(*args):
    _global.out(Level.ERROR, 2, _sprint(args))


def fatal(*args):
    _global.out(Level.FATAL, 2, _sprint(args))
    sys.exit(1)


def panic(*args):
    msg = _sprint(args)
    _global.out(Level.PANIC, 2, msg)
    raise LogPanic(msg)


def output(calldepth, s):
    _global.out(Level.INFO, calldepth, s)


def print(*args):
    _global.out(Level.INFO, 2, _sprint(args))


def printf(fmt, *args):
    _global.out(Level.INFO, 2, _sprintf(fmt, args))


def println(*args):
    _global.out(Level.INFO, 2, _sprint(args))


def fatalln(*args):
    _global.out(Level.INFO, 2, _sprint(args))
    sys.exit(1)


def panicln(*args):
    msg = _sprint(args)
    _global.out(Level.INFO, 2, msg)
    raise LogPanic(msg)


def assert_equal(expected, actual, *args):
    """Check equality; on failure act per the global logger's assert_behavior."""
    if equal(expected, actual):
        return
    v = f"assert failed. excepted={_format_value(expected)}, but actual={_format_value(actual)}"
    if args:
        v += f", extInfo=[{' '.join(args)}]"
    behavior = _global.get_option().assert_behavior
    if behavior == AssertBehavior.ERROR:
        _global.out(Level.ERROR, 2, v)
    elif behavior == AssertBehavior.FATAL:
        _global.out(Level.FATAL, 2, v)
        sys.exit(1)
    elif behavior == AssertBehavior.PANIC:
        _global.out(Level.PANIC, 2, v)
        raise LogPanic(v)


def out(level, calldepth, s):
    _global.out(level, calldepth, s)


def sync():
    _global.sync()


def with_prefix(s):
    return _global.with_prefix(s)


def get_option():
    return _global.get_option()


def get_global_logger():
    """The current global logger."""
    return _global


def init(*args):
    """Reconfigure the global logger in place with option modifiers."""
    _global.init(*args)


def set_global_logger(logger):
    """Replace the global logger with another one."""
    global _global
    _global = logger