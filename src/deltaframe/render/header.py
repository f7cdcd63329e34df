"""BMP file header and BITMAPINFOHEADER encoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from src.deltaframe.render.errors import InvalidArgumentError
from src.deltaframe.render.geometry import (
    BITS_PER_PIXEL,
    HEADER_SIZE,
    INFO_HEADER_SIZE,
    ImageGeometry,
)

__all__ = [
    "BI_RGB",
    "BMP_SIGNATURE",
    "HEADER_STRUCT",
    "PIXELS_PER_METER",
    "BitmapHeader",
    "read_header",
    "write_header",
]

BMP_SIGNATURE = b"BM"
BI_RGB = 0
PLANES = 1
# 72 DPI * 39.3701 inches per meter
PIXELS_PER_METER = 2835

# signature, file size, reserved, pixel offset | info size, width, height,
# planes, bit count, compression, image size, x/y resolution, colors used,
# important colors
HEADER_STRUCT = struct.Struct("<2sIIIIiiHHIIiiII")


@dataclass(frozen=True)
class BitmapHeader:
    """Decoded view of the 54-byte header prefix."""

    signature: bytes
    file_size: int
    reserved: int
    pixel_offset: int
    info_header_size: int
    width: int
    height: int
    planes: int
    bits_per_pixel: int
    compression: int
    image_size: int
    x_pixels_per_meter: int
    y_pixels_per_meter: int
    colors_used: int
    colors_important: int

    @property
    def bottom_up(self) -> bool:
        return self.height > 0

    def as_dict(self) -> dict[str, object]:
        return {
            "signature": self.signature.decode("ascii", "replace"),
            "file_size": self.file_size,
            "reserved": self.reserved,
            "pixel_offset": self.pixel_offset,
            "info_header_size": self.info_header_size,
            "width": self.width,
            "height": self.height,
            "planes": self.planes,
            "bits_per_pixel": self.bits_per_pixel,
            "compression": self.compression,
            "image_size": self.image_size,
            "x_pixels_per_meter": self.x_pixels_per_meter,
            "y_pixels_per_meter": self.y_pixels_per_meter,
            "colors_used": self.colors_used,
            "colors_important": self.colors_important,
        }


def write_header(buffer: bytearray, geometry: ImageGeometry) -> None:
    """
    Write the file header and BITMAPINFOHEADER for ``geometry`` into ``buffer``.

    The buffer must already hold at least ``HEADER_SIZE`` bytes; only the
    header prefix is touched. Height is written positive, which marks the
    pixel rows as stored bottom-up.

    Raises:
        InvalidArgumentError: If ``buffer`` is too small for the header.
    """

    if len(buffer) < HEADER_SIZE:
        raise InvalidArgumentError(
            f"Buffer of {len(buffer)} bytes cannot hold a {HEADER_SIZE}-byte header"
        )
    HEADER_STRUCT.pack_into(
        buffer,
        0,
        BMP_SIGNATURE,
        geometry.total_size,
        0,
        HEADER_SIZE,
        INFO_HEADER_SIZE,
        geometry.width,
        geometry.height,
        PLANES,
        BITS_PER_PIXEL,
        BI_RGB,
        geometry.image_size,
        PIXELS_PER_METER,
        PIXELS_PER_METER,
        0,
        0,
    )


def read_header(data: bytes | bytearray | memoryview) -> BitmapHeader:
    """Decode the header prefix of a BMP buffer."""

    if len(data) < HEADER_SIZE:
        raise InvalidArgumentError(
            f"Expected at least {HEADER_SIZE} bytes of header, got {len(data)}"
        )
    header = BitmapHeader(*HEADER_STRUCT.unpack_from(data, 0))
    if header.signature != BMP_SIGNATURE:
        raise InvalidArgumentError(f"Not a BMP buffer (signature {header.signature!r})")
    return header
