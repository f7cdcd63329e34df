from __future__ import annotations

import base64
import io
import json
import logging
import zlib

import pytest

from src.deltaframe import stream
from src.deltaframe.regions import FrameUpdate, MoveRegion, Point, Rect
from tests.helpers.frames import pattern_region


def _record(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "width": 4,
        "height": 2,
        "dirtyRegions": [
            {
                "left": 0,
                "top": 0,
                "width": 1,
                "height": 1,
                "pixels": base64.b64encode(b"\x01\x02\x03\x04").decode("ascii"),
            }
        ],
        "moveRegions": [],
    }
    payload.update(overrides)
    return payload


def _as_stream(*records: object, compressed: bool = False) -> io.BytesIO:
    text = "\n".join(json.dumps(record) for record in records) + "\n"
    data = text.encode("utf-8")
    if compressed:
        data = zlib.compress(data)
    return io.BytesIO(data)


def test_decode_frame_record_builds_regions() -> None:
    update = stream.decode_frame_record(_record())
    assert (update.width, update.height) == (4, 2)
    assert len(update.dirty_regions) == 1
    region = update.dirty_regions[0]
    assert region.pixels == b"\x01\x02\x03\x04"
    assert (region.left, region.top, region.width, region.height) == (0, 0, 1, 1)
    assert update.move_regions == []


def test_dirty_region_size_from_right_and_bottom() -> None:
    region = stream.decode_dirty_region(
        {"left": 2, "top": 3, "right": 4, "bottom": 4, "pixels": base64.b64encode(bytes(8)).decode()}
    )
    assert (region.width, region.height) == (2, 1)


@pytest.mark.parametrize(
    "payload",
    [
        {"sourcePoint": {"x": 1, "y": 2}, "destinationRect": {"left": 3, "top": 4, "right": 5, "bottom": 6}},
        {"x": 1, "y": 2, "left": 3, "top": 4, "right": 5, "bottom": 6},
    ],
    ids=["nested", "flat"],
)
def test_decode_move_region_layouts(payload: dict[str, object]) -> None:
    region = stream.decode_move_region(payload)
    assert region == MoveRegion(Point(1, 2), Rect(3, 4, 5, 6))


def test_decode_move_region_shared_flat_object() -> None:
    flat = {"x": 0, "y": 1, "left": 2, "top": 3, "right": 6, "bottom": 7}
    region = stream.decode_move_region({"sourcePoint": flat, "destinationRect": flat})
    assert region.source_point == Point(0, 1)
    assert (region.width, region.height) == (4, 4)


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ([], "frame must be an object"),
        (_record(width="wide"), "frame.width must be an integer"),
        ({"height": 2}, "frame is missing 'width'"),
        (_record(dirtyRegions={}), "frame.dirtyRegions must be a list"),
        (_record(dirtyRegions=[{"left": 0, "top": 0, "width": 1, "height": 1, "pixels": "***"}]), "base64"),
        (_record(dirtyRegions=[{"left": 0, "top": 0, "width": 1, "height": 1}]), "pixels"),
        (_record(moveRegions=[{"sourcePoint": {"x": 0}, "destinationRect": {}}]), "missing 'y'"),
    ],
)
def test_decode_frame_record_errors(payload: object, message: str) -> None:
    with pytest.raises(stream.FrameStreamError, match=message):
        stream.decode_frame_record(payload)


def test_encode_then_decode_preserves_update() -> None:
    update = FrameUpdate(
        width=6,
        height=5,
        dirty_regions=[pattern_region(1, 1, 2, 2)],
        move_regions=[MoveRegion(Point(0, 0), Rect(1, 1, 3, 3))],
    )
    decoded = stream.decode_frame_record(json.loads(stream.encode_frame_record(update)))
    assert decoded.dirty_regions == list(update.dirty_regions)
    assert decoded.move_regions == list(update.move_regions)


@pytest.mark.parametrize("compressed", [False, True])
def test_iter_frame_updates_reads_every_record(compressed: bool) -> None:
    handle = _as_stream(_record(), _record(width=8), compressed=compressed)
    updates = list(stream.iter_frame_updates(handle, compressed=compressed))
    assert [update.width for update in updates] == [4, 8]


def test_iter_frame_lines_skips_blank_lines_and_handles_missing_newline() -> None:
    handle = io.BytesIO(b'\n{"a":1}\n\n  \n{"b":2}')
    assert list(stream.iter_frame_lines(handle)) == [b'{"a":1}', b'{"b":2}']


def test_iter_frame_updates_honours_max_frames() -> None:
    handle = _as_stream(_record(), _record(), _record())
    assert len(list(stream.iter_frame_updates(handle, max_frames=2))) == 2


def test_strict_mode_reports_record_number() -> None:
    handle = io.BytesIO(json.dumps(_record()).encode() + b"\nnot json\n")
    with pytest.raises(stream.FrameStreamError, match="record 2"):
        list(stream.iter_frame_updates(handle))


def test_lenient_mode_skips_bad_records(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="src.deltaframe.stream")
    handle = io.BytesIO(b"not json\n" + json.dumps(_record()).encode() + b"\n")
    updates = list(stream.iter_frame_updates(handle, strict=False))
    assert len(updates) == 1
    assert "Skipping malformed frame record 1" in caplog.text


def test_corrupt_zlib_stream_raises() -> None:
    with pytest.raises(stream.FrameStreamError, match="zlib"):
        list(stream.iter_frame_updates(io.BytesIO(b"definitely not deflate"), compressed=True))


def test_per_record_zlib_members_are_all_decoded() -> None:
    data = b"".join(
        zlib.compress((json.dumps(_record(width=width)) + "\n").encode("utf-8"))
        for width in (4, 5, 6)
    )
    updates = list(stream.iter_frame_updates(io.BytesIO(data), compressed=True))
    assert [update.width for update in updates] == [4, 5, 6]


def test_zlib_members_split_across_reads_are_decoded(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(stream, "_READ_CHUNK", 7)
    data = b"".join(
        zlib.compress((json.dumps(_record(height=height)) + "\n").encode("utf-8"))
        for height in (1, 2, 3, 4)
    )
    updates = list(stream.iter_frame_updates(io.BytesIO(data), compressed=True))
    assert [update.height for update in updates] == [1, 2, 3, 4]


@pytest.mark.parametrize("strict", [True, False])
def test_truncated_zlib_stream_raises(strict: bool) -> None:
    text = "".join(json.dumps(_record()) + "\n" for _ in range(50))
    data = zlib.compress(text.encode("utf-8"))
    handle = io.BytesIO(data[: len(data) // 2])
    with pytest.raises(stream.FrameStreamError, match="truncated"):
        list(stream.iter_frame_updates(handle, compressed=True, strict=strict))


def test_trailing_garbage_after_zlib_member_raises() -> None:
    data = zlib.compress(json.dumps(_record()).encode("utf-8")) + b"garbage"
    with pytest.raises(stream.FrameStreamError, match="zlib"):
        list(stream.iter_frame_updates(io.BytesIO(data), compressed=True))


def test_iter_frame_lines_joins_long_records_across_reads(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(stream, "_READ_CHUNK", 5)
    long_line = b"x" * 123
    handle = io.BytesIO(b"ab\n" + long_line + b"\n\ncd")
    lines = list(stream.iter_frame_lines(handle))
    assert lines == [b"ab", long_line, b"cd"]
    assert all(isinstance(line, bytes) for line in lines)
