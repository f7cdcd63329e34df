"""Exception hierarchy raised by the compositor."""

from __future__ import annotations

__all__ = [
    "CompositorError",
    "InvalidArgumentError",
    "InvalidRegionError",
    "NotInitializedError",
]


class CompositorError(RuntimeError):
    """Base class for framebuffer compositor failures."""


class InvalidArgumentError(CompositorError, ValueError):
    """Raised when image dimensions or header data are unusable."""


class InvalidRegionError(CompositorError, ValueError):
    """Raised when a dirty or move region is inconsistent with its payload."""


class NotInitializedError(CompositorError):
    """Raised when region or snapshot calls happen before ``initialize``."""
