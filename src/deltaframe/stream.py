"""Decode recorded frame streams into :class:`FrameUpdate` values.

A frame stream is newline-delimited JSON, one record per capture cycle, and
may be zlib-deflated, either as a whole or one member per record written back
to back. Dirty-region pixels travel as base64.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import zlib
from collections.abc import Mapping
from typing import IO, Any, Iterator, List, cast

from src.deltaframe.regions import DirtyRegion, FrameUpdate, MoveRegion, Point, Rect

__all__ = [
    "FrameStreamError",
    "decode_dirty_region",
    "decode_frame_record",
    "decode_move_region",
    "encode_frame_record",
    "iter_frame_lines",
    "iter_frame_updates",
]

logger = logging.getLogger(__name__)

_READ_CHUNK = 1 << 16


class FrameStreamError(ValueError):
    """Raised when a frame stream record cannot be decoded."""


def _require_int(payload: Mapping[str, Any], key: str, context: str) -> int:
    if key not in payload:
        raise FrameStreamError(f"{context} is missing '{key}'")
    value = payload[key]
    if isinstance(value, bool):
        raise FrameStreamError(f"{context}.{key} must be an integer")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise FrameStreamError(f"{context}.{key} must be an integer, got {value!r}")
    return value


def _require_mapping(value: object, context: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise FrameStreamError(f"{context} must be an object")
    return cast(Mapping[str, Any], value)


def _require_list(payload: Mapping[str, Any], key: str) -> List[Any]:
    value = payload.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list):
        raise FrameStreamError(f"frame.{key} must be a list")
    return cast(List[Any], value)


def decode_dirty_region(payload: object, index: int = 0) -> DirtyRegion:
    """Decode one dirty-region object; ``width``/``height`` may come from ``right``/``bottom``."""

    context = f"dirtyRegions[{index}]"
    mapping = _require_mapping(payload, context)
    left = _require_int(mapping, "left", context)
    top = _require_int(mapping, "top", context)
    if "width" in mapping or "right" not in mapping:
        width = _require_int(mapping, "width", context)
    else:
        width = _require_int(mapping, "right", context) - left
    if "height" in mapping or "bottom" not in mapping:
        height = _require_int(mapping, "height", context)
    else:
        height = _require_int(mapping, "bottom", context) - top

    raw_pixels = mapping.get("pixels")
    if not isinstance(raw_pixels, str):
        raise FrameStreamError(f"{context}.pixels must be a base64 string")
    try:
        pixels = base64.b64decode(raw_pixels, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FrameStreamError(f"{context}.pixels is not valid base64") from exc
    return DirtyRegion(left=left, top=top, width=width, height=height, pixels=pixels)


def decode_move_region(payload: object, index: int = 0) -> MoveRegion:
    """
    Decode one move-region object.

    Accepts the nested ``sourcePoint``/``destinationRect`` layout and the flat
    ``x``/``y``/``left``/``top``/``right``/``bottom`` layout. Capture servers
    that wrap a flat object as both ``sourcePoint`` and ``destinationRect``
    decode naturally through the nested path.
    """

    context = f"moveRegions[{index}]"
    mapping = _require_mapping(payload, context)
    if "sourcePoint" in mapping or "destinationRect" in mapping:
        point_raw = _require_mapping(mapping.get("sourcePoint"), f"{context}.sourcePoint")
        rect_raw = _require_mapping(mapping.get("destinationRect"), f"{context}.destinationRect")
    else:
        point_raw = mapping
        rect_raw = mapping
    point = Point(
        x=_require_int(point_raw, "x", f"{context}.sourcePoint"),
        y=_require_int(point_raw, "y", f"{context}.sourcePoint"),
    )
    rect_context = f"{context}.destinationRect"
    rect = Rect(
        left=_require_int(rect_raw, "left", rect_context),
        top=_require_int(rect_raw, "top", rect_context),
        right=_require_int(rect_raw, "right", rect_context),
        bottom=_require_int(rect_raw, "bottom", rect_context),
    )
    return MoveRegion(source_point=point, destination_rect=rect)


def decode_frame_record(payload: object) -> FrameUpdate:
    """Decode one JSON frame record into a :class:`FrameUpdate`."""

    mapping = _require_mapping(payload, "frame")
    width = _require_int(mapping, "width", "frame")
    height = _require_int(mapping, "height", "frame")
    dirty = [
        decode_dirty_region(item, index)
        for index, item in enumerate(_require_list(mapping, "dirtyRegions"))
    ]
    moves = [
        decode_move_region(item, index)
        for index, item in enumerate(_require_list(mapping, "moveRegions"))
    ]
    return FrameUpdate(width=width, height=height, dirty_regions=dirty, move_regions=moves)


def encode_frame_record(update: FrameUpdate) -> str:
    """Serialize ``update`` as one frame-stream line (without the trailing newline)."""

    payload = {
        "width": update.width,
        "height": update.height,
        "dirtyRegions": [
            {
                "left": region.left,
                "top": region.top,
                "width": region.width,
                "height": region.height,
                "pixels": base64.b64encode(bytes(region.pixels)).decode("ascii"),
            }
            for region in update.dirty_regions
        ],
        "moveRegions": [
            {
                "sourcePoint": {"x": move.source_point.x, "y": move.source_point.y},
                "destinationRect": {
                    "left": move.destination_rect.left,
                    "top": move.destination_rect.top,
                    "right": move.destination_rect.right,
                    "bottom": move.destination_rect.bottom,
                },
            }
            for move in update.move_regions
        ],
    }
    return json.dumps(payload, separators=(",", ":"))


def _inflate_members(stream: IO[bytes]) -> Iterator[bytes]:
    """Inflate one or more zlib members written back to back."""

    inflater = zlib.decompressobj()
    member_open = False
    while True:
        chunk = stream.read(_READ_CHUNK)
        if not chunk:
            break
        while chunk:
            member_open = True
            try:
                data = inflater.decompress(chunk)
            except zlib.error as exc:
                raise FrameStreamError(f"Frame stream is not valid zlib data: {exc}") from exc
            if data:
                yield data
            if not inflater.eof:
                break
            # Whatever follows a finished member starts the next one.
            chunk = inflater.unused_data
            inflater = zlib.decompressobj()
            member_open = False
    if member_open:
        raise FrameStreamError("Frame stream is truncated: zlib data ends mid-member")


def _iter_chunks(stream: IO[bytes], compressed: bool) -> Iterator[bytes]:
    if compressed:
        yield from _inflate_members(stream)
        return
    while True:
        chunk = stream.read(_READ_CHUNK)
        if not chunk:
            break
        yield chunk


def iter_frame_lines(stream: IO[bytes], *, compressed: bool = False) -> Iterator[bytes]:
    """Yield each non-blank line of a (possibly deflated) frame stream."""

    pending = bytearray()
    for chunk in _iter_chunks(stream, compressed):
        start = 0
        newline = chunk.find(b"\n")
        while newline != -1:
            pending += chunk[start:newline]
            if pending.strip():
                yield bytes(pending)
            pending.clear()
            start = newline + 1
            newline = chunk.find(b"\n", start)
        pending += chunk[start:]
    if pending.strip():
        yield bytes(pending)


def iter_frame_updates(
    stream: IO[bytes],
    *,
    compressed: bool = False,
    strict: bool = True,
    max_frames: int = 0,
) -> Iterator[FrameUpdate]:
    """
    Decode a frame stream lazily.

    Parameters:
        stream: Binary file-like object positioned at the first record.
        compressed: Inflate the stream with zlib before splitting records.
        strict: Raise on malformed records; when False they are logged and skipped.
        max_frames: Stop after this many decoded frames (0 means no limit).

    Raises:
        FrameStreamError: On malformed records in strict mode, or corrupt zlib data.
    """

    produced = 0
    for record_number, line in enumerate(iter_frame_lines(stream, compressed=compressed), start=1):
        if max_frames and produced >= max_frames:
            return
        try:
            payload = json.loads(line)
            update = decode_frame_record(payload)
        except (FrameStreamError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            message = f"record {record_number}: {exc}"
            if strict:
                raise FrameStreamError(message) from exc
            logger.warning("Skipping malformed frame %s", message)
            continue
        produced += 1
        yield update
