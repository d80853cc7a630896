import struct

import pytest

from d2odatamine.d2o.errors import D2OError, ReadError
from d2odatamine.d2o.reader import ByteReader


def test_primitives_are_big_endian():
    data = (
        b"\xff" + b"\xff" + struct.pack(">h", -2) + struct.pack(">H", 65535)
        + struct.pack(">i", -1431655766) + struct.pack(">I", 0xAAAAAAAA)
        + struct.pack(">f", 0.5) + struct.pack(">d", -1.25)
    )
    reader = ByteReader.from_bytes(data)

    assert reader.read_int8() == -1
    assert reader.read_uint8() == 255
    assert reader.read_int16() == -2
    assert reader.read_uint16() == 65535
    assert reader.read_int32() == -1431655766
    assert reader.read_uint32() == 0xAAAAAAAA
    assert reader.read_float() == 0.5
    assert reader.read_double() == -1.25
    assert reader.position() == len(data)


def test_bool_is_any_nonzero_byte():
    reader = ByteReader.from_bytes(b"\x00\x01\x7f")

    assert reader.read_bool() is False
    assert reader.read_bool() is True
    assert reader.read_bool() is True


def test_read_string_uses_uint16_prefix():
    text = "Bouftou royal é"
    raw = text.encode("utf-8")
    reader = ByteReader.from_bytes(struct.pack(">H", len(raw)) + raw + b"tail")

    assert reader.read_string() == text
    assert reader.read_bytes(4) == b"tail"


def test_empty_string():
    reader = ByteReader.from_bytes(b"\x00\x00")

    assert reader.read_string() == ""


def test_short_read_raises_read_error():
    reader = ByteReader.from_bytes(b"\x00\x01")

    with pytest.raises(ReadError):
        reader.read_int32()


def test_truncated_string_raises_read_error():
    reader = ByteReader.from_bytes(struct.pack(">H", 10) + b"abc")

    with pytest.raises(ReadError) as excinfo:
        reader.read_string()

    assert isinstance(excinfo.value, D2OError)
    assert isinstance(excinfo.value, EOFError)


def test_goto_and_skip():
    reader = ByteReader.from_bytes(bytes(range(16)))

    reader.goto(10)
    assert reader.read_uint8() == 10
    reader.skip(2)
    assert reader.read_uint8() == 13
    reader.skip(-4)
    assert reader.position() == 10


def test_negative_seek_is_a_read_error():
    reader = ByteReader.from_bytes(bytes(range(16)))
    reader.goto(3)

    with pytest.raises(ReadError):
        reader.goto(-1)
    with pytest.raises(ReadError):
        reader.skip(-4)
    assert reader.position() == 3


def test_preserve_position_restores_cursor():
    reader = ByteReader.from_bytes(bytes(range(16)))
    reader.goto(3)

    with reader.preserve_position() as saved:
        reader.goto(12)
        assert reader.read_uint8() == 12

    assert saved == 3
    assert reader.position() == 3


def test_preserve_position_restores_on_error():
    reader = ByteReader.from_bytes(bytes(range(4)))
    reader.goto(1)

    with pytest.raises(ReadError):
        with reader.preserve_position():
            reader.goto(2)
            reader.read_int32()

    assert reader.position() == 1
