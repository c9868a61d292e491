import os
import zlib

import pytest

from ssrcore.checksum import (
    adler32,
    check_adler32,
    crc32,
    crc32_bytes,
    fill_adler32,
    fill_crc32,
)


@pytest.mark.parametrize("data", [b"", b"a", b"123456789", bytes(range(256)) * 3])
def test_crc32_agrees_with_zlib(data):
    assert crc32(data) == zlib.crc32(data)


def test_crc32_bytes_is_little_endian():
    data = b"some packet header"
    assert int.from_bytes(crc32_bytes(data), "little") == crc32(data)
    assert len(crc32_bytes(data)) == 4


@pytest.mark.parametrize("length", [4, 5, 10, 100, 3000])
def test_fill_crc32_makes_whole_buffer_check(length):
    buffer = os.urandom(length)
    filled = fill_crc32(buffer)
    assert len(filled) == length
    assert filled[:-4] == buffer[:-4]
    assert crc32(filled) == 0xFFFFFFFF


def test_fill_crc32_accepts_bytearray():
    filled = fill_crc32(bytearray(b"abcdefgh"))
    assert crc32(filled) == 0xFFFFFFFF


@pytest.mark.parametrize("length", [0, 1, 100, 5552, 5553, 20000])
def test_adler32_agrees_with_zlib(length):
    data = os.urandom(length)
    assert adler32(data) == zlib.adler32(data)


def test_adler32_of_empty_is_one():
    assert adler32(b"") == 1


@pytest.mark.parametrize("length", [4, 9, 1300, 8000])
def test_fill_and_check_adler32_round_trip(length):
    buffer = os.urandom(length)
    filled = fill_adler32(buffer)
    assert filled[:-4] == buffer[:-4]
    assert check_adler32(filled) is True


def test_check_adler32_detects_corruption():
    filled = bytearray(fill_adler32(b"payload bytes" + b"\0" * 4))
    filled[2] ^= 0x01
    assert check_adler32(bytes(filled)) is False


@pytest.mark.parametrize("func", [fill_crc32, fill_adler32, check_adler32])
def test_short_buffers_are_rejected(func):
    with pytest.raises(ValueError):
        func(b"abc")