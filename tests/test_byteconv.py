"""Tests for raw byte / integer conversion."""

import pytest

from midify.byteconv import bytes_to_ascii, bytes_to_int, int_to_bytes, to_int16, trunc_div


def test_three_bytes_decode_default_tempo():
    assert bytes_to_int(b"\x07\xA1\x20") == 500000


def test_three_bytes_little_endian_pad_high_byte():
    assert bytes_to_int(b"\x20\xA1\x07", little_endian=True) == 500000


def test_single_byte_is_unsigned():
    assert bytes_to_int(b"\x80") == 128
    assert bytes_to_int(b"\xFF", little_endian=True) == 255


def test_two_and_four_bytes_are_signed():
    assert bytes_to_int(b"\x01\x02") == 258
    assert bytes_to_int(b"\x01\x02", little_endian=True) == 513
    assert bytes_to_int(b"\xFF\xFF") == -1
    assert bytes_to_int(b"\x00\x00\x00\x06") == 6
    assert bytes_to_int(b"\x44\xAC\x00\x00", little_endian=True) == 44100


@pytest.mark.parametrize("data", [b"", b"\x00" * 5, b"\x00" * 8])
def test_unsupported_lengths_raise(data):
    with pytest.raises(ValueError):
        bytes_to_int(data)


@pytest.mark.parametrize(
    "length, value",
    [
        (1, 0),
        (1, 255),
        (2, -32768),
        (2, 0),
        (2, 32767),
        (3, 500000),
        (4, -(2**31)),
        (4, 123456),
        (4, 2**31 - 1),
    ],
)
@pytest.mark.parametrize("little_endian", [False, True])
def test_int_round_trip(length, value, little_endian):
    raw = int_to_bytes(value, length, little_endian)
    assert len(raw) == length
    assert bytes_to_int(raw, little_endian) == value


def test_int_to_bytes_rejects_unrepresentable_values():
    with pytest.raises(OverflowError):
        int_to_bytes(256, 1)
    with pytest.raises(OverflowError):
        int_to_bytes(40000, 2)
    with pytest.raises(ValueError):
        int_to_bytes(1, 8)


def test_ascii_tag():
    assert bytes_to_ascii(b"MThd") == "MThd"
    assert bytes_to_ascii(b"fmt ") == "fmt "


def test_to_int16_wraps_like_a_narrowing_cast():
    assert to_int16(100) == 100
    assert to_int16(32768) == -32768
    assert to_int16(65025) == -511
    assert to_int16(-32769) == 32767


def test_trunc_div_rounds_toward_zero():
    assert trunc_div(7, 2) == 3
    assert trunc_div(-7, 2) == -3
    assert trunc_div(-2000, 2) == -1000
    assert trunc_div(-10, 65535) == 0
