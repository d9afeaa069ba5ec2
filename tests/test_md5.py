import pytest

from naza.md5 import md5


def test_md5_none():
    assert md5(None) == "d41d8cd98f00b204e9800998ecf8427e"


@pytest.mark.parametrize(
    "data, expected",
    [
        ("", "d41d8cd98f00b204e9800998ecf8427e"),
        ("aaa", "47bce5c74f589f4867dbd57e9ca9f808"),
        ("AAA", "e1faffb3e614e6c2fba74296962386b7"),
        ("HELLO WORLD!", "b59bc37d6441d96785bda7ab2ae98f75"),
    ],
)
def test_md5(data, expected):
    assert md5(data.encode()) == expected