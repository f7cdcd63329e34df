from __future__ import annotations

from src.deltaframe.framebuffer import Framebuffer
from src.deltaframe.regions import DirtyRegion, MoveRegion, Point, Rect
from src.deltaframe.render.geometry import HEADER_SIZE, ImageGeometry


def pattern_pixel(x: int, y: int) -> bytes:
    """Return a pixel whose bytes identify its screen position."""

    return bytes((x % 256, y % 256, (x * 7 + y * 13) % 256, 255))


def solid_region(left: int, top: int, width: int, height: int, pixel: bytes) -> DirtyRegion:
    return DirtyRegion(left=left, top=top, width=width, height=height, pixels=pixel * (width * height))


def pattern_region(left: int, top: int, width: int, height: int) -> DirtyRegion:
    pixels = b"".join(
        pattern_pixel(left + x, top + y) for y in range(height) for x in range(width)
    )
    return DirtyRegion(left=left, top=top, width=width, height=height, pixels=pixels)


def patterned_framebuffer(width: int, height: int, **kwargs: object) -> Framebuffer:
    framebuffer = Framebuffer(**kwargs)  # type: ignore[arg-type]
    framebuffer.initialize(width, height)
    framebuffer.apply_dirty_regions([pattern_region(0, 0, width, height)])
    return framebuffer


def move(src_x: int, src_y: int, left: int, top: int, right: int, bottom: int) -> MoveRegion:
    return MoveRegion(source_point=Point(src_x, src_y), destination_rect=Rect(left, top, right, bottom))


def storage_scanline(buffer: bytes, geometry: ImageGeometry, index: int) -> bytes:
    """Return stored scanline ``index`` (0 is the first row after the header)."""

    start = HEADER_SIZE + index * geometry.bytes_per_row
    return buffer[start : start + geometry.bytes_per_row]


def reference_move(before: bytes, geometry: ImageGeometry, region: MoveRegion) -> bytes:
    """Apply ``region`` pixel by pixel, always reading from the untouched ``before`` copy."""

    result = bytearray(before)
    point = region.source_point
    rect = region.destination_rect
    for y in range(region.height):
        src_y = point.y + y
        dest_y = rect.top + y
        if src_y >= geometry.height or dest_y >= geometry.height:
            continue
        src_row = geometry.row_offset(src_y)
        dest_row = geometry.row_offset(dest_y)
        for x in range(region.width):
            src_x = point.x + x
            dest_x = rect.left + x
            if src_x >= geometry.width or dest_x >= geometry.width:
                continue
            src = src_row + src_x * 4
            dest = dest_row + dest_x * 4
            result[dest : dest + 4] = before[src : src + 4]
    return bytes(result)
