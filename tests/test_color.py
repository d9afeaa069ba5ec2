import pytest

from naza import color
from naza.color import BgColor, FgColor, Format


def test_wrap():
    assert color.wrap("Hello", Format.NON_BOLD, FgColor.RED, BgColor.GREEN) == "\033[22;31;42mHello\033[0m"


def test_wrap_with_fg_color():
    assert color.wrap_with_fg_color("Hello", FgColor.RED) == "\033[22;31mHello\033[0m"


@pytest.mark.parametrize(
    "fn, code",
    [
        (color.wrap_black, 30),
        (color.wrap_red, 31),
        (color.wrap_green, 32),
        (color.wrap_yellow, 33),
        (color.wrap_blue, 34),
        (color.wrap_cyan, 36),
        (color.wrap_white, 37),
    ],
)
def test_wrap_shortcuts(fn, code):
    assert fn("Hello") == f"\033[22;{code}mHello\033[0m"


def test_simple_prefix_matches_wrap():
    assert color.SIMPLE_PREFIX_RED + "Hello" + color.SIMPLE_SUFFIX == color.wrap_red("Hello")
    assert color.SIMPLE_PREFIX_CYAN + "x" + color.SIMPLE_SUFFIX == color.wrap_cyan("x")