"""Frame-cycle driving: pull updates from a frame source and composite them."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator
from typing import Optional, Protocol

from src.datatypes import MoveStrategy
from src.deltaframe.framebuffer import Framebuffer
from src.deltaframe.regions import FrameUpdate
from src.deltaframe.render.geometry import format_dimensions

__all__ = [
    "FrameAcquireTimeoutError",
    "FrameCompositor",
    "FrameSource",
    "FrameSourceError",
    "FrameSourceExhausted",
    "FrameSourceLostError",
    "FrameStreamReplaySource",
    "SessionLostError",
    "log_reacquire_attempt",
    "run_frames",
]

logger = logging.getLogger(__name__)


class FrameSourceError(RuntimeError):
    """Raised by a frame source when a single acquisition fails."""


class FrameAcquireTimeoutError(FrameSourceError):
    """Raised when no new frame arrived within the acquire timeout."""


class FrameSourceLostError(FrameSourceError):
    """Raised when the capture session is gone and must be reinitialized."""


class FrameSourceExhausted(FrameSourceError):
    """Raised by finite sources once every frame has been delivered."""


class SessionLostError(RuntimeError):
    """Raised when reinitializing a lost capture session keeps failing."""


class FrameSource(Protocol):
    """Producer of per-cycle screen updates."""

    def acquire(self, timeout_ms: Optional[int] = None) -> FrameUpdate: ...

    def reinitialize(self) -> None: ...


class FrameCompositor:
    """
    Apply whole frame updates to a :class:`Framebuffer`.

    The framebuffer is (re)initialized whenever an update reports dimensions
    different from the current ones; dirty regions are applied before move
    regions, then a snapshot is taken.
    """

    def __init__(self, move_strategy: MoveStrategy | str = MoveStrategy.DIRECTIONAL) -> None:
        self.framebuffer = Framebuffer(move_strategy)
        self.frames_applied = 0
        self.latest: Optional[bytes] = None

    def apply(self, update: FrameUpdate) -> bytes:
        framebuffer = self.framebuffer
        if (
            not framebuffer.is_initialized
            or framebuffer.geometry.width != update.width
            or framebuffer.geometry.height != update.height
        ):
            framebuffer.initialize(update.width, update.height)
        framebuffer.apply_dirty_regions(update.dirty_regions)
        framebuffer.apply_move_regions(update.move_regions)
        self.latest = framebuffer.snapshot()
        self.frames_applied += 1
        return self.latest


class FrameStreamReplaySource:
    """Expose already-decoded frame updates through the :class:`FrameSource` protocol."""

    def __init__(self, updates: Iterable[FrameUpdate]) -> None:
        self._updates: Iterator[FrameUpdate] = iter(updates)
        self.reinitialize_count = 0

    def acquire(self, timeout_ms: Optional[int] = None) -> FrameUpdate:
        try:
            return next(self._updates)
        except StopIteration:
            raise FrameSourceExhausted("Frame stream has no more records") from None

    def reinitialize(self) -> None:
        self.reinitialize_count += 1


def log_reacquire_attempt(attempt: int, delay: float) -> None:
    """Emit a concise log entry describing the next reinitialize window."""

    logger.info("Capture session reinitialize retry #%d scheduled in %.2f s", attempt, delay)


def _reinitialize_with_backoff(
    source: FrameSource,
    *,
    retries: int,
    initial_backoff: float,
    max_backoff: float,
    sleep: Callable[[float], None],
) -> None:
    backoff = max(0.0, initial_backoff)
    upper_backoff = max(backoff, max_backoff)
    last_error: Optional[FrameSourceError] = None
    max_attempts = max(0, retries) + 1
    for attempt_index in range(max_attempts):
        try:
            source.reinitialize()
        except FrameSourceError as exc:
            last_error = exc
        else:
            logger.info(
                "Capture session reinitialized after %d attempt%s",
                attempt_index + 1,
                "" if attempt_index == 0 else "s",
            )
            return
        if attempt_index >= max_attempts - 1:
            break
        log_reacquire_attempt(attempt_index + 1, backoff)
        sleep(backoff)
        backoff = min(backoff * 2, upper_backoff)
    raise SessionLostError(
        f"Capture session could not be reinitialized after {max_attempts} attempt(s)"
    ) from last_error


def run_frames(
    source: FrameSource,
    compositor: FrameCompositor,
    *,
    max_frames: int = 0,
    acquire_timeout_ms: Optional[int] = None,
    reacquire_retries: int = 3,
    initial_backoff: float = 0.5,
    max_backoff: float = 4.0,
    sleep: Callable[[float], None] | None = None,
    on_frame: Callable[[FrameUpdate, bytes], None] | None = None,
) -> int:
    """
    Drive ``compositor`` from ``source`` until it is exhausted or ``max_frames`` are applied.

    Acquire timeouts are retried without counting a frame. A lost session is
    reinitialized with exponential backoff; once ``reacquire_retries`` are
    spent :class:`SessionLostError` is raised. Other :class:`FrameSourceError`
    subclasses propagate unchanged.

    Returns:
        int: Number of frames applied during this call.
    """

    sleep_impl = sleep or time.sleep
    timeout = acquire_timeout_ms if acquire_timeout_ms else None
    applied = 0
    while not max_frames or applied < max_frames:
        try:
            update = source.acquire(timeout)
        except FrameSourceExhausted:
            break
        except FrameAcquireTimeoutError:
            logger.debug("No frame within %s ms; waiting again", timeout)
            continue
        except FrameSourceLostError as exc:
            logger.warning("Capture session lost: %s", exc)
            _reinitialize_with_backoff(
                source,
                retries=reacquire_retries,
                initial_backoff=initial_backoff,
                max_backoff=max_backoff,
                sleep=sleep_impl,
            )
            continue
        snapshot = compositor.apply(update)
        applied += 1
        if on_frame is not None:
            on_frame(update, snapshot)
    if applied and compositor.framebuffer.is_initialized:
        geometry = compositor.framebuffer.geometry
        logger.info(
            "Composited %d frame(s) at %s",
            applied,
            format_dimensions(geometry.width, geometry.height),
        )
    return applied
