import io

import pytest

from xvkit.ulib import atoi, gets, memcmp, strcmp


def test_strcmp_equal():
    assert strcmp("abc", "abc") == 0


def test_strcmp_ordering():
    assert strcmp("abc", "abd") < 0
    assert strcmp("abd", "abc") > 0
    assert strcmp("ab", "abc") < 0


def test_strcmp_is_unsigned():
    assert strcmp(b"\xff", b"a") > 0


def test_strcmp_stops_at_nul():
    assert strcmp("ab\0x", "ab\0y") == 0


def test_atoi_leading_digits():
    assert atoi("123abc") == 123
    assert atoi("") == 0


def test_atoi_has_no_sign_or_space_handling():
    assert atoi("-5") == 0
    assert atoi(" 5") == 0


def test_memcmp():
    assert memcmp(b"abc", b"abd", 2) == 0
    assert memcmp(b"abc", b"abd", 3) < 0
    assert memcmp(b"\x80", b"\x01", 1) > 0


def test_memcmp_rejects_overlong_length():
    with pytest.raises(ValueError):
        memcmp(b"ab", b"abc", 3)


def test_gets_reads_a_line():
    stream = io.StringIO("hello\nworld")
    assert gets(stream, 100) == "hello\n"
    assert gets(stream, 100) == "world"
    assert gets(stream, 100) == ""


def test_gets_respects_max():
    assert gets(io.StringIO("abcdef"), 4) == "abc"
    assert gets(io.StringIO("abcdef"), 1) == ""


def test_gets_stops_at_carriage_return():
    assert gets(io.StringIO("ab\rcd"), 10) == "ab\r"