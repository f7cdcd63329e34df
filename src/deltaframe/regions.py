"""Value types describing per-frame screen updates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

__all__ = [
    "DirtyRegion",
    "FrameUpdate",
    "MoveRegion",
    "Point",
    "Rect",
]


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class Rect:
    """Half-open rectangle in top-down screen coordinates."""

    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top


@dataclass(frozen=True)
class DirtyRegion:
    """
    Rectangle whose pixels changed, with its new pixel bytes.

    ``pixels`` holds ``width * height`` tightly packed 4-byte pixels in
    top-down row-major order.
    """

    left: int
    top: int
    width: int
    height: int
    pixels: bytes = field(repr=False)

    @property
    def expected_length(self) -> int:
        return self.width * self.height * 4

    @property
    def rect(self) -> Rect:
        return Rect(self.left, self.top, self.left + self.width, self.top + self.height)


@dataclass(frozen=True)
class MoveRegion:
    """Rectangle whose content moved from ``source_point`` to ``destination_rect``."""

    source_point: Point
    destination_rect: Rect

    @property
    def width(self) -> int:
        return self.destination_rect.width

    @property
    def height(self) -> int:
        return self.destination_rect.height

    @property
    def source_rect(self) -> Rect:
        return Rect(
            self.source_point.x,
            self.source_point.y,
            self.source_point.x + self.width,
            self.source_point.y + self.height,
        )


def _dirty_list_factory() -> list[DirtyRegion]:
    return []


def _move_list_factory() -> list[MoveRegion]:
    return []


@dataclass
class FrameUpdate:
    """Everything one capture cycle reports: geometry plus ordered regions."""

    width: int
    height: int
    dirty_regions: Sequence[DirtyRegion] = field(default_factory=_dirty_list_factory)
    move_regions: Sequence[MoveRegion] = field(default_factory=_move_list_factory)

    @property
    def is_empty(self) -> bool:
        return not self.dirty_regions and not self.move_regions
