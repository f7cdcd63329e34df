from __future__ import annotations

import math

import pytest

from src.deltaframe.render import geometry
from src.deltaframe.render.errors import CompositorError, InvalidArgumentError


@pytest.mark.parametrize(
    ("width", "height", "bytes_per_row", "total_size"),
    [
        (1, 1, 4, 58),
        (4, 2, 16, 86),
        (3, 5, 12, 114),
        (1920, 1080, 7680, 54 + 7680 * 1080),
    ],
)
def test_compute_geometry_sizes(width: int, height: int, bytes_per_row: int, total_size: int) -> None:
    result = geometry.compute_geometry(width, height)
    assert result.stride == width * 4
    assert result.row_padding == 0
    assert result.bytes_per_row == bytes_per_row
    assert result.image_size == bytes_per_row * height
    assert result.total_size == total_size


@pytest.mark.parametrize("width", [1, 2, 3, 7, 641])
def test_row_padding_stays_in_range(width: int) -> None:
    result = geometry.compute_geometry(width, 3)
    pad = (4 - (width * 4) % 4) % 4
    assert result.row_padding == pad
    assert 0 <= result.row_padding <= 3
    assert result.total_size == 54 + (width * 4 + pad) * 3


def test_row_offset_inverts_rows() -> None:
    result = geometry.compute_geometry(4, 3)
    assert result.storage_row(0) == 2
    assert result.row_offset(0) == geometry.HEADER_SIZE + 2 * 16
    assert result.row_offset(2) == geometry.HEADER_SIZE


def test_geometry_is_immutable() -> None:
    result = geometry.compute_geometry(2, 2)
    with pytest.raises(AttributeError):
        result.width = 3  # type: ignore[misc]


@pytest.mark.parametrize(
    ("width", "height"),
    [(0, 10), (10, 0), (-1, 5), (5, -3), (math.inf, 4), (4, math.nan), (2.5, 4), (True, 4), ("4", 4)],
)
def test_compute_geometry_rejects_invalid_dimensions(width: object, height: object) -> None:
    with pytest.raises(InvalidArgumentError):
        geometry.compute_geometry(width, height)  # type: ignore[arg-type]


def test_invalid_argument_is_value_error() -> None:
    with pytest.raises(ValueError):
        geometry.compute_geometry(0, 0)
    assert issubclass(InvalidArgumentError, CompositorError)


def test_integral_floats_are_accepted() -> None:
    assert geometry.compute_geometry(4.0, 2.0).width == 4


def test_format_dimensions() -> None:
    assert geometry.format_dimensions(1920, 1080) == "1920 × 1080"
