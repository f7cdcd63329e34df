"""Incremental bottom-up bitmap framebuffer patched by dirty and move regions."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from src.datatypes import MoveStrategy
from src.deltaframe.regions import DirtyRegion, MoveRegion
from src.deltaframe.render.errors import (
    InvalidRegionError,
    NotInitializedError,
)
from src.deltaframe.render.geometry import (
    ImageGeometry,
    compute_geometry,
    format_dimensions,
)
from src.deltaframe.render.header import write_header

__all__ = [
    "Framebuffer",
    "ScanlineView",
]

logger = logging.getLogger(__name__)


class ScanlineView:
    """
    Bounds-checked access to logical (top-down) rows of a bitmap buffer.

    All offsets go through :meth:`ImageGeometry.row_offset`, so callers work in
    screen coordinates and never touch the header or row padding.
    """

    def __init__(self, buffer: bytearray, geometry: ImageGeometry) -> None:
        if len(buffer) != geometry.total_size:
            raise ValueError(
                f"Buffer holds {len(buffer)} bytes, geometry needs {geometry.total_size}"
            )
        self._buffer = buffer
        self._geometry = geometry

    @property
    def geometry(self) -> ImageGeometry:
        return self._geometry

    def span(self, y: int, x_start: int, x_stop: int) -> slice:
        """Return the buffer slice covering pixels ``[x_start, x_stop)`` of row ``y``."""

        geometry = self._geometry
        if not 0 <= y < geometry.height:
            raise IndexError(f"row {y} outside [0, {geometry.height})")
        if not 0 <= x_start <= x_stop <= geometry.width:
            raise IndexError(
                f"columns [{x_start}, {x_stop}) outside [0, {geometry.width}]"
            )
        base = geometry.row_offset(y)
        bpp = geometry.bytes_per_pixel
        return slice(base + x_start * bpp, base + x_stop * bpp)

    def read(self, y: int, x_start: int, x_stop: int) -> bytes:
        return bytes(self._buffer[self.span(y, x_start, x_stop)])

    def write(self, y: int, x_start: int, data: bytes | bytearray | memoryview) -> None:
        bpp = self._geometry.bytes_per_pixel
        if len(data) % bpp:
            raise ValueError(f"pixel data length {len(data)} is not a multiple of {bpp}")
        target = self.span(y, x_start, x_start + len(data) // bpp)
        self._buffer[target] = data


def _visible_extent(origin: int, size: int, limit: int) -> int:
    """Count leading offsets in ``[0, size)`` for which ``origin + offset < limit``."""

    return max(0, min(size, limit - origin))


def _validate_dirty(region: DirtyRegion) -> None:
    if not isinstance(region, DirtyRegion):
        raise InvalidRegionError(f"Expected DirtyRegion, got {type(region).__name__}")
    if region.width < 0 or region.height < 0:
        raise InvalidRegionError(
            f"Dirty region size must be non-negative, got {region.width}x{region.height}"
        )
    if region.left < 0 or region.top < 0:
        raise InvalidRegionError(
            f"Dirty region origin must be non-negative, got ({region.left}, {region.top})"
        )
    if len(region.pixels) < region.expected_length:
        raise InvalidRegionError(
            f"Dirty region {region.width}x{region.height} needs {region.expected_length} "
            f"pixel bytes, got {len(region.pixels)}"
        )


def _validate_move(region: MoveRegion) -> None:
    if not isinstance(region, MoveRegion):
        raise InvalidRegionError(f"Expected MoveRegion, got {type(region).__name__}")
    if region.width < 0 or region.height < 0:
        raise InvalidRegionError(
            f"Move destination must have non-negative size, got {region.width}x{region.height}"
        )
    point = region.source_point
    rect = region.destination_rect
    if point.x < 0 or point.y < 0:
        raise InvalidRegionError(f"Move source point must be non-negative, got ({point.x}, {point.y})")
    if rect.left < 0 or rect.top < 0:
        raise InvalidRegionError(
            f"Move destination origin must be non-negative, got ({rect.left}, {rect.top})"
        )


class Framebuffer:
    """
    Owns one BMP-ready byte buffer and patches it with region updates.

    The buffer is laid out as a 54-byte header followed by ``height`` padded
    scanlines stored bottom-up. Region coordinates are top-down screen
    coordinates; coordinates past the right or bottom edge are clipped.
    """

    def __init__(self, move_strategy: MoveStrategy | str = MoveStrategy.DIRECTIONAL) -> None:
        self.move_strategy = MoveStrategy(move_strategy)
        self._buffer = bytearray()
        self._geometry: Optional[ImageGeometry] = None

    @property
    def geometry(self) -> ImageGeometry:
        if self._geometry is None:
            raise NotInitializedError("Framebuffer has not been initialized")
        return self._geometry

    @property
    def is_initialized(self) -> bool:
        return self._geometry is not None

    def __len__(self) -> int:
        return len(self._buffer)

    def initialize(self, width: int, height: int) -> ImageGeometry:
        """
        Allocate a zeroed buffer for ``width`` x ``height`` and write its header.

        Any previous content is discarded, even when the dimensions are unchanged.

        Raises:
            InvalidArgumentError: If either dimension is not a positive integer.
        """

        geometry = compute_geometry(width, height)
        buffer = bytearray(geometry.total_size)
        write_header(buffer, geometry)
        previous = self._geometry
        self._buffer = buffer
        self._geometry = geometry
        if previous is None:
            logger.info("Framebuffer initialized at %s", format_dimensions(geometry.width, geometry.height))
        else:
            logger.info(
                "Framebuffer reset from %s to %s",
                format_dimensions(previous.width, previous.height),
                format_dimensions(geometry.width, geometry.height),
            )
        return geometry

    def _view(self) -> ScanlineView:
        return ScanlineView(self._buffer, self.geometry)

    def apply_dirty_regions(self, regions: Iterable[DirtyRegion]) -> None:
        """
        Copy each region's pixels into the buffer, in order.

        Later regions overwrite earlier ones where they overlap. Pixels that
        fall past the right or bottom edge are skipped. The whole batch is
        validated first, so a rejected batch leaves the buffer untouched.

        Raises:
            NotInitializedError: If :meth:`initialize` has not been called.
            InvalidRegionError: If a region has a negative origin or size, or
                its pixel payload is shorter than ``width * height * 4``.
        """

        view = self._view()
        geometry = view.geometry
        bpp = geometry.bytes_per_pixel
        batch = list(regions)
        for region in batch:
            _validate_dirty(region)
        for region in batch:
            rows = _visible_extent(region.top, region.height, geometry.height)
            columns = _visible_extent(region.left, region.width, geometry.width)
            if rows == 0 or columns == 0:
                continue
            pixels = memoryview(region.pixels)
            source_stride = region.width * bpp
            for y in range(rows):
                start = y * source_stride
                view.write(region.top + y, region.left, pixels[start : start + columns * bpp])
        logger.debug("Applied %d dirty region(s)", len(batch))

    def apply_move_regions(self, regions: Iterable[MoveRegion]) -> None:
        """
        Copy pixels within the buffer from each region's source to its destination.

        Rows or columns whose source or destination falls past the image edge
        are skipped. Overlapping source and destination rectangles produce the
        same result as copying through an intermediate buffer. The whole
        batch is validated first, so a rejected batch leaves the buffer untouched.

        Raises:
            NotInitializedError: If :meth:`initialize` has not been called.
            InvalidRegionError: If a region has a negative origin or size.
        """

        view = self._view()
        batch = list(regions)
        for region in batch:
            _validate_move(region)
        for region in batch:
            if self.move_strategy is MoveStrategy.STAGED:
                self._move_staged(view, region)
            else:
                self._move_directional(view, region)
        logger.debug("Applied %d move region(s) using %s copy", len(batch), self.move_strategy.value)

    @staticmethod
    def _move_bounds(geometry: ImageGeometry, region: MoveRegion) -> Tuple[int, int]:
        point = region.source_point
        rect = region.destination_rect
        rows = min(
            _visible_extent(point.y, region.height, geometry.height),
            _visible_extent(rect.top, region.height, geometry.height),
        )
        columns = min(
            _visible_extent(point.x, region.width, geometry.width),
            _visible_extent(rect.left, region.width, geometry.width),
        )
        return rows, columns

    def _move_directional(self, view: ScanlineView, region: MoveRegion) -> None:
        rows, columns = self._move_bounds(view.geometry, region)
        if rows == 0 or columns == 0:
            return
        point = region.source_point
        rect = region.destination_rect
        # Destination below source: walk rows bottom-first so no source row is
        # overwritten before it is read.
        order = range(rows - 1, -1, -1) if rect.top > point.y else range(rows)
        for y in order:
            row = view.read(point.y + y, point.x, point.x + columns)
            view.write(rect.top + y, rect.left, row)

    def _move_staged(self, view: ScanlineView, region: MoveRegion) -> None:
        rows, columns = self._move_bounds(view.geometry, region)
        if rows == 0 or columns == 0:
            return
        point = region.source_point
        rect = region.destination_rect
        staged: List[bytes] = [
            view.read(point.y + y, point.x, point.x + columns) for y in range(rows)
        ]
        for y, row in enumerate(staged):
            view.write(rect.top + y, rect.left, row)

    def snapshot(self) -> bytes:
        """Return an independent copy of the header and pixel data."""

        if self._geometry is None:
            raise NotInitializedError("Cannot snapshot a framebuffer before initialize()")
        return bytes(self._buffer)

    def pixel_at(self, x: int, y: int) -> bytes:
        """Return the 4 stored bytes of the pixel at screen position ``(x, y)``."""

        return self._view().read(y, x, x + 1)

    def row_bytes(self, y: int) -> bytes:
        """Return the unpadded pixel bytes of screen row ``y``."""

        view = self._view()
        return view.read(y, 0, view.geometry.width)
