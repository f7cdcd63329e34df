from __future__ import annotations

import logging
import zlib
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import pytest
from click.testing import CliRunner

from src.deltaframe.framebuffer import Framebuffer
from src.deltaframe.regions import FrameUpdate
from src.deltaframe.stream import encode_frame_record


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click runner configured for CLI smoke tests."""

    return CliRunner()


@pytest.fixture
def framebuffer() -> Framebuffer:
    """Return an uninitialized framebuffer using the default move strategy."""

    return Framebuffer()


@pytest.fixture
def write_stream(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper that records frame updates as a frame-stream file."""

    def _write(
        updates: Sequence[FrameUpdate],
        *,
        name: str = "frames.jsonl",
        compressed: bool = False,
        extra_lines: Sequence[str] = (),
    ) -> Path:
        lines = [encode_frame_record(update) for update in updates]
        lines.extend(extra_lines)
        payload = ("\n".join(lines) + "\n").encode("utf-8")
        if compressed:
            payload = zlib.compress(payload)
        path = tmp_path / name
        path.write_bytes(payload)
        return path

    return _write


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Iterator[None]:
    """Undo handler/level changes the CLI makes to the package logger."""

    package_logger = logging.getLogger("src.deltaframe")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    yield
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)
