"""Click CLI wiring and entry points for deltaframe."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, cast

import click
from rich import print
from rich.markup import escape

from src.config_loader import ConfigError, load_config
from src.datatypes import AppConfig, MoveStrategy
from src.deltaframe.cli_runtime import CLIAppError, configure_logging, resolve_log_level
from src.deltaframe.render.errors import CompositorError
from src.deltaframe.render.geometry import format_dimensions
from src.deltaframe.render.header import read_header
from src.deltaframe.session import (
    FrameCompositor,
    FrameSourceError,
    FrameStreamReplaySource,
    SessionLostError,
    run_frames,
)
from src.deltaframe.stream import FrameStreamError, iter_frame_updates

__all__ = ["main"]


def _load_app_config(config_path: Optional[str]) -> AppConfig:
    if not config_path:
        return AppConfig()
    path = Path(config_path).expanduser()
    try:
        return load_config(str(path))
    except FileNotFoundError as exc:
        raise CLIAppError(
            f"Config file not found: {path}",
            rich_message=f"[red]Config file not found:[/red] {escape(str(path))}",
        ) from exc
    except OSError as exc:
        raise CLIAppError(
            f"Unable to read config {path}: {exc}",
            rich_message=f"[red]Unable to read config[/red] {escape(str(path))}: {escape(str(exc))}",
        ) from exc
    except ConfigError as exc:
        raise CLIAppError(
            f"Config parsing failed: {exc}",
            rich_message=f"[red]Config parsing failed:[/red] {escape(str(exc))}",
        ) from exc


def _replay(
    *,
    stream_path: Path,
    config_path: Optional[str],
    output: Optional[str],
    compressed: Optional[bool],
    max_frames: Optional[int],
    strategy: Optional[str],
    lenient: bool,
    quiet: bool,
) -> None:
    cfg = _load_app_config(config_path)
    if compressed is not None:
        cfg.stream.compressed = compressed
    if max_frames is not None:
        cfg.stream.max_frames = max_frames
    if strategy is not None:
        cfg.compositor.move_strategy = MoveStrategy(strategy)
    if lenient:
        cfg.stream.strict = False
    if output is not None:
        cfg.output.path = output

    out_path = Path(cfg.output.path).expanduser()
    if out_path.exists() and not cfg.output.overwrite:
        raise CLIAppError(
            f"Refusing to overwrite existing output {out_path}",
            code=2,
            rich_message=(
                f"[red]Refusing to overwrite[/red] {escape(str(out_path))} "
                "(set \\[output].overwrite = true)"
            ),
        )

    compositor = FrameCompositor(cfg.compositor.move_strategy)
    try:
        with stream_path.open("rb") as handle:
            updates = iter_frame_updates(
                handle,
                compressed=cfg.stream.compressed,
                strict=cfg.stream.strict,
                max_frames=cfg.stream.max_frames,
            )
            applied = run_frames(
                FrameStreamReplaySource(updates),
                compositor,
                max_frames=cfg.stream.max_frames,
                acquire_timeout_ms=cfg.source.acquire_timeout_ms,
                reacquire_retries=cfg.source.reacquire_retries,
                initial_backoff=cfg.source.initial_backoff,
                max_backoff=cfg.source.max_backoff,
            )
    except FrameStreamError as exc:
        raise CLIAppError(
            f"Frame stream decoding failed: {exc}",
            rich_message=f"[red]Frame stream decoding failed:[/red] {escape(str(exc))}",
        ) from exc
    except CompositorError as exc:
        raise CLIAppError(
            f"Frame could not be composited: {exc}",
            rich_message=f"[red]Frame could not be composited:[/red] {escape(str(exc))}",
        ) from exc
    except (SessionLostError, FrameSourceError) as exc:
        raise CLIAppError(f"Frame source failed: {exc}") from exc
    except OSError as exc:
        raise CLIAppError(f"Unable to read frame stream {stream_path}: {exc}") from exc

    if applied == 0 or compositor.latest is None:
        raise CLIAppError(
            f"Frame stream {stream_path} contained no frames",
            code=2,
            rich_message=f"[yellow]Frame stream {escape(str(stream_path))} contained no frames[/yellow]",
        )

    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(compositor.latest)
    except OSError as exc:
        raise CLIAppError(f"Unable to write {out_path}: {exc}") from exc

    if not quiet:
        geometry = compositor.framebuffer.geometry
        print(
            f"[green]✓[/green] Composited {applied} frame(s) at "
            f"{format_dimensions(geometry.width, geometry.height)} "
            f"({geometry.total_size} bytes, {cfg.compositor.move_strategy.value} moves)"
        )
        print(f"Snapshot: {escape(str(out_path))}")


def _inspect(image_path: Path, *, json_mode: bool) -> None:
    try:
        data = image_path.read_bytes()
    except OSError as exc:
        raise CLIAppError(f"Unable to read {image_path}: {exc}") from exc
    try:
        header = read_header(data)
    except CompositorError as exc:
        raise CLIAppError(
            f"{image_path} is not a readable bitmap: {exc}",
            rich_message=f"[red]{escape(str(image_path))} is not a readable bitmap:[/red] {escape(str(exc))}",
        ) from exc

    summary: Dict[str, Any] = header.as_dict()
    summary["bottom_up"] = header.bottom_up
    summary["actual_size"] = len(data)
    summary["size_matches"] = header.file_size == len(data)
    if json_mode:
        click.echo(json.dumps(summary, separators=(",", ":")))
        return

    print(f"[bold]{escape(str(image_path))}[/bold]")
    print(f"  dimensions: {format_dimensions(header.width, abs(header.height))}")
    for key, value in summary.items():
        print(f"  {key}: {value}")
    if not summary["size_matches"]:
        print(
            f"[yellow]Warning:[/yellow] header declares {header.file_size} bytes "
            f"but the file holds {len(data)}"
        )


def _run_command(func: Any, **kwargs: Any) -> None:
    try:
        func(**kwargs)
    except CLIAppError as exc:
        print(exc.rich_message)
        raise click.exceptions.Exit(exc.code) from exc


@click.group()
@click.option("--config", "config_path", default=None, help="Path to a deltaframe TOML config.")
@click.option("--verbose", is_flag=True, help="Log compositor activity.")
@click.option("--quiet", is_flag=True, help="Only print errors.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool, quiet: bool) -> None:
    """Rebuild full-frame bitmaps from dirty and move region updates."""

    if verbose and quiet:
        raise click.ClickException("Cannot use both --verbose and --quiet.")
    configure_logging(resolve_log_level(verbose=verbose, quiet=quiet))
    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    params.update({"config_path": config_path, "verbose": verbose, "quiet": quiet})


@main.command("replay")
@click.argument("stream", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", default=None, help="Override [output].path.")
@click.option(
    "--compressed/--plain",
    "compressed",
    default=None,
    help="Treat the stream as zlib-deflated (overrides [stream].compressed).",
)
@click.option("--max-frames", type=click.IntRange(min=0), default=None, help="Stop after N frames.")
@click.option(
    "--strategy",
    type=click.Choice([member.value for member in MoveStrategy], case_sensitive=False),
    default=None,
    help="Overlap-safe copy strategy for move regions.",
)
@click.option("--lenient", is_flag=True, help="Skip malformed frame records instead of failing.")
@click.pass_context
def replay(
    ctx: click.Context,
    stream: Path,
    output: str | None,
    compressed: bool | None,
    max_frames: int | None,
    strategy: str | None,
    lenient: bool,
) -> None:
    """Composite a recorded frame stream and write the final bitmap."""

    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    _run_command(
        _replay,
        stream_path=stream,
        config_path=params.get("config_path"),
        output=output,
        compressed=compressed,
        max_frames=max_frames,
        strategy=strategy.lower() if strategy else None,
        lenient=lenient,
        quiet=bool(params.get("quiet", False)),
    )


@main.command("inspect")
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "json_mode", is_flag=True, help="Emit machine-readable header fields.")
def inspect(image: Path, json_mode: bool) -> None:
    """Decode and print the header of a bitmap file."""

    _run_command(_inspect, image_path=image, json_mode=json_mode)
