"""ANSI terminal colour escape sequences."""

from enum import IntEnum


class Format(IntEnum):
    NON_BOLD = 22


class FgColor(IntEnum):
    """Foreground (text) colour."""

    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    CYAN = 36
    WHITE = 37


class BgColor(IntEnum):
    """Background colour."""

    BLACK = 40
    RED = 41
    GREEN = 42
    YELLOW = 43
    BLUE = 44
    CYAN = 46
    WHITE = 47


_PREFIX = "\033["
_SUFFIX = "\033[0m"

SIMPLE_PREFIX_BLACK = "\033[22;30m"
SIMPLE_PREFIX_RED = "\033[22;31m"
SIMPLE_PREFIX_GREEN = "\033[22;32m"
SIMPLE_PREFIX_YELLOW = "\033[22;33m"
SIMPLE_PREFIX_BLUE = "\033[22;34m"
SIMPLE_PREFIX_CYAN = "\033[22;36m"
SIMPLE_PREFIX_WHITE = "\033[22;37m"

SIMPLE_SUFFIX = _SUFFIX


def wrap(v, format, fg, bg):
    """Wrap `v` with a format, a foreground colour and a background colour."""
    return f"{_PREFIX}{int(format)};{int(fg)};{int(bg)}m{v}{_SUFFIX}"


def wrap_with_fg_color(v, fg):
    """Wrap `v` with a foreground colour only."""
    return f"{_PREFIX}{int(Format.NON_BOLD)};{int(fg)}m{v}{_SUFFIX}"


def wrap_black(v):
    return wrap_with_fg_color(v, FgColor.BLACK)


def wrap_red(v):
    return wrap_with_fg_color(v, FgColor.RED)


def wrap_green(v):
    return wrap_with_fg_color(v, FgColor.GREEN)


def wrap_yellow(v):
    return wrap_with_fg_color(v, FgColor.YELLOW)


def wrap_blue(v):
    return wrap_with_fg_color(v, FgColor.BLUE)


def wrap_cyan(v):
    return wrap_with_fg_color(v, FgColor.CYAN)


def wrap_white(v):
    return wrap_with_fg_color(v, FgColor.WHITE)