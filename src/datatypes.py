"""Configuration dataclasses for the delta framebuffer compositor."""
from dataclasses import dataclass, field
from enum import Enum


class MoveStrategy(str, Enum):
    """How move regions copy pixels when source and destination overlap."""

    DIRECTIONAL = "directional"
    STAGED = "staged"


@dataclass
class CompositorConfig:
    """Region application behaviour."""

    move_strategy: MoveStrategy = MoveStrategy.DIRECTIONAL


@dataclass
class StreamConfig:
    """Recorded frame stream decoding options."""

    compressed: bool = False
    max_frames: int = 0
    strict: bool = True


@dataclass
class SourceConfig:
    """Frame source acquisition and session-loss recovery."""

    reacquire_retries: int = 3
    initial_backoff: float = 0.5
    max_backoff: float = 4.0
    acquire_timeout_ms: int = 0


@dataclass
class OutputConfig:
    """Where composited snapshots are written by the CLI."""

    path: str = "latest_frame.bmp"
    overwrite: bool = True


@dataclass
class AppConfig:
    """Aggregated configuration loaded from the user-provided TOML file."""

    compositor: CompositorConfig = field(default_factory=CompositorConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
