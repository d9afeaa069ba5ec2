"""A levelled logger that writes to the console, to a file, or to both.

Features: log levels, daily or hourly rotation of the log file, optional
source file and line of the call, timestamps, stacked prefixes, a hook that
receives every written line, and assertions whose failure behaviour is
configurable.
"""

import dataclasses
import os
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Callable, Optional

from naza.color import (
    SIMPLE_PREFIX_BLUE,
    SIMPLE_PREFIX_CYAN,
    SIMPLE_PREFIX_GREEN,
    SIMPLE_PREFIX_RED,
    SIMPLE_PREFIX_YELLOW,
    SIMPLE_SUFFIX,
)
from naza.values import equal


class LogError(Exception):
    """Raised when a logger is configured with invalid options."""


class LogPanic(Exception):
    """Raised after logging at panic level."""


class Level(IntEnum):
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    FATAL = 5
    PANIC = 6
    LOG_NOTHING = 7

    def readable_string(self):
        return {
            Level.TRACE: "LevelTrace",
            Level.DEBUG: "LevelDebug",
            Level.INFO: "LevelInfo",
            Level.WARN: "LevelWarn",
            Level.ERROR: "LevelError",
            Level.FATAL: "LevelFatal",
            Level.PANIC: "LevelPanic",
            Level.LOG_NOTHING: "LevelLogNothing",
        }.get(self, "unknown")


class AssertBehavior(IntEnum):
    ERROR = 1
    FATAL = 2
    PANIC = 3

    def readable_string(self):
        return {
            AssertBehavior.ERROR: "AssertError",
            AssertBehavior.FATAL: "AssertFatal",
            AssertBehavior.PANIC: "AssertPanic",
        }.get(self, "unknown")


@dataclass
class Option:
    """Logger configuration; fields left alone keep these defaults."""

    level: Level = Level.DEBUG
    filename: str = ""
    is_to_stdout: bool = True
    is_rotate_daily: bool = False
    is_rotate_hourly: bool = False
    short_file_flag: bool = True
    timestamp_flag: bool = True
    timestamp_with_ms_flag: bool = True
    level_flag: bool = True
    assert_behavior: AssertBehavior = AssertBehavior.ERROR
    # Called with (level, line) for every line written, under the logger's lock.
    hook_backend_out_fn: Optional[Callable] = None


class Clock:
    """The wall clock used to timestamp log lines."""

    def now(self):
        return datetime.now()


class FakeClock(Clock):
    """A clock that returns a fixed, settable time."""

    def __init__(self, t=None):
        self._t = t if t is not None else datetime.now()

    def now(self):
        return self._t

    def set(self, t):
        self._t = t


_clock = Clock()


def set_clock(clock):
    """Replace the clock used by all loggers; None restores the wall clock."""
    global _clock
    _clock = clock if clock is not None else Clock()


_USE_COLOR = os.name != "nt"

_LEVEL_STRINGS = {
    Level.TRACE: "TRACE ",
    Level.DEBUG: "DEBUG ",
    Level.INFO: " INFO ",
    Level.WARN: " WARN ",
    Level.ERROR: "ERROR ",
    Level.FATAL: "FATAL ",
    Level.PANIC: "PANIC ",
}

_LEVEL_COLORS = {
    Level.TRACE: SIMPLE_PREFIX_GREEN,
    Level.DEBUG: SIMPLE_PREFIX_BLUE,
    Level.INFO: SIMPLE_PREFIX_CYAN,
    Level.WARN: SIMPLE_PREFIX_YELLOW,
    Level.ERROR: SIMPLE_PREFIX_RED,
    Level.FATAL: SIMPLE_PREFIX_RED,
    Level.PANIC: SIMPLE_PREFIX_RED,
}

_LEVEL_COLOR_STRINGS = {
    level: _LEVEL_COLORS[level] + text + SIMPLE_SUFFIX for level, text in _LEVEL_STRINGS.items()
}


class _Core:
    """State shared by a logger and all loggers derived from it by prefixing."""

    def __init__(self):
        self.option = Option()
        self.lock = threading.Lock()
        self.fp = None
        self.console = None
        self.curr_round_time = datetime.now()


def _format_value(v):
    return "<nil>" if v is None else str(v)


def _sprint(args):
    return " ".join(str(a) for a in args)


def _sprintf(fmt, args):
    return fmt % args if args else fmt


def _format_time(t, with_ms):
    s = f"{t.year:04d}/{t.month:02d}/{t.day:02d} {t.hour:02d}:{t.minute:02d}:{t.second:02d}"
    if with_ms:
        s += f".{t.microsecond:06d}"
    return s + " "


def _validate(option):
    try:
        option.level = Level(option.level)
        option.assert_behavior = AssertBehavior(option.assert_behavior)
    except ValueError as exc:
        raise LogError(f"invalid option. {exc}") from exc


class Logger:
    """A logger configured by option-modifying callables."""

    def __init__(self, *args):
        self._prefixes = ()
        self._core = _Core()
        self.init(*args)

    # ------------------------------------------------------------ levelled

    def tracef(self, fmt, *args):
        self.out(Level.TRACE, 2, _sprintf(fmt, args))

    def debugf(self, fmt, *args):
        self.out(Level.DEBUG, 2, _sprintf(fmt, args))

    def infof(self, fmt, *args):
        self.out(Level.INFO, 2, _sprintf(fmt, args))

    def warnf(self, fmt, *args):
        self.out(Level.WARN, 2, _sprintf(fmt, args))

    def errorf(self, fmt, *args):
        self.out(Level.ERROR, 2, _sprintf(fmt, args))

    def fatalf(self, fmt, *args):
        """Log at fatal level and exit the program with status 1."""
        self.out(Level.FATAL, 2, _sprintf(fmt, args))
        sys.exit(1)

    def panicf(self, fmt, *args):
        """Log at panic level and raise LogPanic."""
        msg = _sprintf(fmt, args)
        self.out(Level.PANIC, 2, msg)
        raise LogPanic(msg)

    def trace(self, *args):
        self.out(Level.TRACE, 2, _sprint(args))

    def debug(self, *args):
        self.out(Level.DEBUG, 2, _sprint(args))

    def info(self, *args):
        self.out(Level.INFO, 2, _sprint(args))

    def warn(self, *args):
        self.out(Level.WARN, 2, _sprint(args))

    def error(self, *args):
        self.out(Level.ERROR, 2, _sprint(args))

    def fatal(self, *args):
        self.out(Level.FATAL, 2, _sprint(args))
        sys.exit(1)

    def panic(self, *args):
        msg = _sprint(args)
        self.out(Level.PANIC, 2, msg)
        raise LogPanic(msg)

    # ------------------------------------------------------------ std-log style

    def output(self, calldepth, s):
        self.out(Level.INFO, calldepth, s)

    def print(self, *args):
        self.out(Level.INFO, 2, _sprint(args))

    def printf(self, fmt, *args):
        self.out(Level.INFO, 2, _sprintf(fmt, args))

    def println(self, *args):
        self.out(Level.INFO, 2, _sprint(args))

    def fatalln(self, *args):
        self.out(Level.INFO, 2, _sprint(args))
        sys.exit(1)

    def panicln(self, *args):
        msg = _sprint(args)
        self.out(Level.INFO, 2, msg)
        raise LogPanic(msg)

    # ------------------------------------------------------------ assert

    def assert_equal(self, expected, actual, *args):
        """Check that `expected` equals `actual`; on failure act per assert_behavior."""
        if equal(expected, actual):
            return
        v = f"assert failed. excepted={_format_value(expected)}, but actual={_format_value(actual)}"
        if args:
            v += f", extInfo=[{' '.join(args)}]"
        behavior = self._core.option.assert_behavior
        if behavior == AssertBehavior.ERROR:
            self.out(Level.ERROR, 2, v)
        elif behavior == AssertBehavior.FATAL:
            self.out(Level.FATAL, 2, v)
            sys.exit(1)
        elif behavior == AssertBehavior.PANIC:
            self.out(Level.PANIC, 2, v)
            raise LogPanic(v)

    # ------------------------------------------------------------ backend

    def out(self, level, calldepth, s):
        """Write one line at `level`; `calldepth` picks the frame reported as the caller."""
        core = self._core
        option = core.option
        if option.level > level:
            return

        now = _clock.now()

        location = None
        if option.short_file_flag:
            try:
                frame = sys._getframe(calldepth)
            except ValueError:
                frame = None
            if frame is not None:
                location = f"{os.path.basename(frame.f_code.co_filename)}:{frame.f_lineno}"
                del frame

        with core.lock:
            parts = []
            if option.timestamp_flag:
                parts.append(_format_time(now, option.timestamp_with_ms_flag))
            if option.level_flag:
                if core.console is not None and _USE_COLOR:
                    parts.append(_LEVEL_COLOR_STRINGS.get(level, ""))
                else:
                    parts.append(_LEVEL_STRINGS.get(level, ""))
            parts.extend(f"[{p}] " for p in self._prefixes)
            parts.append(s)
            if location:
                parts.append(f" - {location}")
            line = "".join(parts)
            if not line.endswith("\n"):
                line += "\n"

            if core.console is not None:
                core.console.write(line)
                if level in (Level.FATAL, Level.PANIC):
                    core.console.flush()

            if core.fp is not None:
                if not self._rotate_if_needed(now):
                    return
                core.fp.write(line.encode("utf-8"))
                if level in (Level.FATAL, Level.PANIC):
                    os.fsync(core.fp.fileno())

            if option.hook_backend_out_fn is not None:
                option.hook_backend_out_fn(level, line)

    def _rotate_if_needed(self, now):
        core = self._core
        option = core.option
        curr = core.curr_round_time
        backup_name = None
        if option.is_rotate_hourly and now.hour != curr.hour:
            backup_name = f"{option.filename}.{curr.strftime('%Y%m%d%H')}"
        elif option.is_rotate_daily and now.day != curr.day:
            backup_name = f"{option.filename}.{curr.strftime('%Y%m%d')}"
        if backup_name is None:
            return True

        try:
            core.fp.close()
        except OSError:
            pass
        try:
            try:
                os.rename(option.filename, backup_name)
            except OSError:
                core.fp = open(option.filename, "ab", buffering=0)
            else:
                core.fp = open(option.filename, "wb", buffering=0)
        except OSError as exc:
            core.fp = None
            sys.stderr.write(
                f"reopen error. err={exc}, filename={option.filename}, backupName={backup_name}, "
                f"now={now}, curr={curr}"
            )
            return False
        core.curr_round_time = now
        return True

    def sync(self):
        """Flush the console and commit the log file to disk."""
        core = self._core
        with core.lock:
            if core.console is not None:
                core.console.flush()
            if core.fp is not None:
                os.fsync(core.fp.fileno())

    def with_prefix(self, s):
        """A new logger sharing this one's backend, with `s` appended to its prefixes."""
        logger = object.__new__(Logger)
        logger._prefixes = self._prefixes + (s,)
        logger._core = self._core
        return logger

    def get_option(self):
        """A copy of the current options."""
        return dataclasses.replace(self._core.option)

    def init(self, *args):
        """Reset the options to their defaults, apply each modifier, and open outputs.

        Not safe to call concurrently with logging.
        """
        core = self._core
        option = Option()
        for fn in args:
            fn(option)
        _validate(option)

        fp = None
        if option.filename:
            directory = os.path.dirname(option.filename) or "."
            os.makedirs(directory, exist_ok=True)
            fp = open(option.filename, "ab", buffering=0)

        if core.fp is not None:
            try:
                core.fp.close()
            except OSError:
                pass
        core.curr_round_time = datetime.now()
        core.option = option
        core.fp = fp
        core.console = sys.stdout if option.is_to_stdout else None


def new(*args):
    """Create a logger; each argument is a callable that modifies an Option."""
    return Logger(*args)