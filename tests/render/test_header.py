from __future__ import annotations

import struct

import pytest

from src.deltaframe.render import header as header_mod
from src.deltaframe.render.errors import InvalidArgumentError
from src.deltaframe.render.geometry import HEADER_SIZE, compute_geometry


def _written(width: int, height: int) -> bytearray:
    geometry = compute_geometry(width, height)
    buffer = bytearray(geometry.total_size)
    header_mod.write_header(buffer, geometry)
    return buffer


def test_header_fields_at_fixed_offsets() -> None:
    buffer = _written(3, 2)
    assert buffer[0:2] == b"BM"
    assert struct.unpack_from("<I", buffer, 2)[0] == 54 + 12 * 2
    assert struct.unpack_from("<I", buffer, 6)[0] == 0
    assert struct.unpack_from("<I", buffer, 10)[0] == 54
    assert struct.unpack_from("<I", buffer, 14)[0] == 40
    assert struct.unpack_from("<i", buffer, 18)[0] == 3
    assert struct.unpack_from("<i", buffer, 22)[0] == 2
    assert struct.unpack_from("<H", buffer, 26)[0] == 1
    assert struct.unpack_from("<H", buffer, 28)[0] == 32
    assert struct.unpack_from("<I", buffer, 30)[0] == 0
    assert struct.unpack_from("<I", buffer, 34)[0] == 12 * 2
    assert struct.unpack_from("<i", buffer, 38)[0] == 2835
    assert struct.unpack_from("<i", buffer, 42)[0] == 2835
    assert struct.unpack_from("<I", buffer, 46)[0] == 0
    assert struct.unpack_from("<I", buffer, 50)[0] == 0


def test_header_leaves_pixel_region_untouched() -> None:
    buffer = _written(2, 2)
    assert bytes(buffer[HEADER_SIZE:]) == bytes(16)


def test_read_header_round_trips_geometry() -> None:
    decoded = header_mod.read_header(bytes(_written(640, 480)))
    assert decoded.width == 640
    assert decoded.height == 480
    assert decoded.bits_per_pixel == 32
    assert decoded.compression == header_mod.BI_RGB
    assert decoded.pixel_offset == HEADER_SIZE
    assert decoded.bottom_up
    assert decoded.as_dict()["signature"] == "BM"


def test_write_header_rejects_short_buffer() -> None:
    with pytest.raises(InvalidArgumentError):
        header_mod.write_header(bytearray(10), compute_geometry(2, 2))


def test_read_header_rejects_short_or_foreign_data() -> None:
    with pytest.raises(InvalidArgumentError):
        header_mod.read_header(b"BM")
    foreign = bytearray(_written(2, 2))
    foreign[0:2] = b"PK"
    with pytest.raises(InvalidArgumentError, match="signature"):
        header_mod.read_header(foreign)


def test_header_struct_covers_both_bitmap_headers() -> None:
    assert header_mod.HEADER_STRUCT.size == HEADER_SIZE == 14 + 40
