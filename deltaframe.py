"""Public shim exposing the deltaframe CLI and library surface."""

from __future__ import annotations

from typing import Callable, cast

import src.deltaframe.cli_entry as _cli_entry
from src.datatypes import AppConfig, MoveStrategy
from src.deltaframe.framebuffer import Framebuffer
from src.deltaframe.regions import DirtyRegion, FrameUpdate, MoveRegion, Point, Rect
from src.deltaframe.render.errors import (
    CompositorError,
    InvalidArgumentError,
    InvalidRegionError,
    NotInitializedError,
)
from src.deltaframe.render.geometry import ImageGeometry, compute_geometry
from src.deltaframe.render.header import BitmapHeader, read_header
from src.deltaframe.session import (
    FrameAcquireTimeoutError,
    FrameCompositor,
    FrameSource,
    FrameSourceError,
    FrameSourceLostError,
    SessionLostError,
    run_frames,
)
from src.deltaframe.stream import FrameStreamError, iter_frame_updates

__all__ = (
    "main",
    "AppConfig",
    "BitmapHeader",
    "CompositorError",
    "DirtyRegion",
    "FrameAcquireTimeoutError",
    "FrameCompositor",
    "FrameSource",
    "FrameSourceError",
    "FrameSourceLostError",
    "FrameStreamError",
    "FrameUpdate",
    "Framebuffer",
    "ImageGeometry",
    "InvalidArgumentError",
    "InvalidRegionError",
    "MoveRegion",
    "MoveStrategy",
    "NotInitializedError",
    "Point",
    "Rect",
    "SessionLostError",
    "compute_geometry",
    "iter_frame_updates",
    "read_header",
    "run_frames",
)

main = _cli_entry.main


if __name__ == "__main__":
    _entry_point = cast(Callable[[], None], main)
    _entry_point()
