from naza.values import equal, equal_integer, is_nil


def test_is_nil():
    assert is_nil(None)
    assert not is_nil(1)


def test_equal():
    assert equal(None, None)
    assert equal(1, 1)
    assert equal("aaa", "aaa")
    assert equal(b"", b"")
    assert equal(bytes([0, 1, 2]), bytes([0, 1, 2]))
    assert equal(bytes([0, 1, 2]), bytearray([0, 1, 2]))

    assert not equal(None, 1)
    assert not equal(b"", "aaa")
    assert not equal(None, Exception("mock error"))


def test_equal_strict_types():
    assert not equal(1, 1.0)
    assert not equal(1, True)
    assert not equal([1, 2], (1, 2))
    assert equal([1, 2], [1, 2])


def test_equal_integer():
    assert equal_integer(0, 0)
    assert equal_integer(1, 1)

    assert not equal_integer(1, 0)
    assert not equal_integer(-1, 0)
    assert not equal_integer(0, -1)
    assert not equal_integer(0, 1)
    assert not equal_integer(0, "aaa")
    assert not equal_integer(1, 1.0)
    assert not equal_integer(1, True)