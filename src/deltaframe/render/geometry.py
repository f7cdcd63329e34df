from __future__ import annotations

import math
import numbers
from dataclasses import dataclass

from src.deltaframe.render.errors import InvalidArgumentError

__all__ = [
    "BITS_PER_PIXEL",
    "BYTES_PER_PIXEL",
    "FILE_HEADER_SIZE",
    "HEADER_SIZE",
    "INFO_HEADER_SIZE",
    "ROW_ALIGNMENT",
    "ImageGeometry",
    "compute_geometry",
    "format_dimensions",
]

BYTES_PER_PIXEL = 4
BITS_PER_PIXEL = BYTES_PER_PIXEL * 8
ROW_ALIGNMENT = 4

FILE_HEADER_SIZE = 14
INFO_HEADER_SIZE = 40
HEADER_SIZE = FILE_HEADER_SIZE + INFO_HEADER_SIZE


@dataclass(frozen=True)
class ImageGeometry:
    """Byte layout of a bottom-up 32-bit bitmap of ``width`` x ``height``."""

    width: int
    height: int
    stride: int
    row_padding: int
    bytes_per_row: int
    image_size: int
    total_size: int
    bytes_per_pixel: int = BYTES_PER_PIXEL
    header_size: int = HEADER_SIZE

    @property
    def pixel_offset(self) -> int:
        return self.header_size

    def storage_row(self, y: int) -> int:
        """Return the stored scanline index for logical (top-down) row ``y``."""

        return self.height - 1 - y

    def row_offset(self, y: int) -> int:
        """Return the buffer offset where logical row ``y`` begins."""

        return self.header_size + self.storage_row(y) * self.bytes_per_row


def format_dimensions(width: int, height: int) -> str:
    """Return a human readable ``width × height`` label."""

    return f"{int(width)} × {int(height)}"


def _coerce_dimension(value: object, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgumentError(f"{label} must be a number, got {value!r}")
    if not math.isfinite(float(value)):
        raise InvalidArgumentError(f"{label} must be finite")
    if int(value) != value:
        raise InvalidArgumentError(f"{label} must be an integer, got {value!r}")
    result = int(value)
    if result <= 0:
        raise InvalidArgumentError(f"{label} must be positive, got {result}")
    return result


def compute_geometry(width: int, height: int) -> ImageGeometry:
    """Compute stride, row padding and buffer sizes for a 32-bit bitmap."""

    resolved_w = _coerce_dimension(width, "width")
    resolved_h = _coerce_dimension(height, "height")

    stride = resolved_w * BYTES_PER_PIXEL
    row_padding = (ROW_ALIGNMENT - (stride % ROW_ALIGNMENT)) % ROW_ALIGNMENT
    bytes_per_row = stride + row_padding
    image_size = bytes_per_row * resolved_h
    return ImageGeometry(
        width=resolved_w,
        height=resolved_h,
        stride=stride,
        row_padding=row_padding,
        bytes_per_row=bytes_per_row,
        image_size=image_size,
        total_size=HEADER_SIZE + image_size,
    )
