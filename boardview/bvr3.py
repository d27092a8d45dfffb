"""Reader for the BVR3 (BVRAW_FORMAT_3) boardview format."""

from __future__ import annotations

import math
from typing import Callable, Iterator

from .board import (
    BoardFile,
    BoardFormatError,
    FieldReader,
    Part,
    PartMountingSide,
    PartType,
    Pin,
    PinSide,
    Point,
    contains,
    split_lines,
)

Segment = tuple[Point, Point]

_SIDES = {"T": "TOP", "B": "BOTTOM", "O": "BOTH"}
_IGNORED = frozenset(
    {
        b"PART_ORIGIN",
        b"PART_OUTLINE_RELATIVE",
        b"PIN_ID",
        b"PIN_TYPE",
        b"PIN_COMMENT",
        b"PIN_OUTLINE_RELATIVE",
    }
)


def manhattan_distance(p1: Point, p2: Point) -> int:
    """Sum of the absolute coordinate differences."""
    return abs(p1.x - p2.x) + abs(p1.y - p2.y)


def chain_outline_segments(segments: list[Segment]) -> list[Point]:
    """Chain segments into an outline path, starting from the first one.

    Consumed segments are removed from the given list; any left over stay there.
    """
    if not segments:
        return []
    start, end = segments.pop(0)
    points = [start, end]

    while start != end and segments:
        for index, (first, second) in enumerate(segments):
            if end == first:
                points.append(second)
                end = second
                del segments[index]
                break
            if end == second:
                points.append(first)
                end = first
                del segments[index]
                break
        else:
            nearest = min(
                segments,
                key=lambda seg: min(manhattan_distance(end, seg[0]), manhattan_distance(end, seg[1])),
            )
            start_distance = manhattan_distance(end, start)
            first_distance = manhattan_distance(end, nearest[0])
            second_distance = manhattan_distance(end, nearest[1])
            if start_distance <= first_distance and start_distance <= second_distance:
                points.append(start)
                break
            if first_distance <= second_distance:
                points.extend(nearest)
                end = nearest[1]
            else:
                points.extend((nearest[1], nearest[0]))
                end = nearest[0]
            segments.remove(nearest)
    return points


def _trunc(value: float) -> int:
    if not math.isfinite(value):
        raise BoardFormatError(f"coordinate is not a finite number: {value}")
    return math.trunc(value)


def _read_numbers(reader: FieldReader, count: int) -> Iterator[list[float]]:
    """Yield groups of count numbers until the reader stops advancing."""
    while reader.rest():
        before = len(reader.rest())
        values = [reader.read_double() for _ in range(count)]
        if len(reader.rest()) == before:
            break
        yield values


class BVR3File(BoardFile):
    """A parsed BVR3 board file."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        data = bytes(data)
        self._check_size(data)
        self._part = Part()
        self._pin = Pin()
        self._pending_segments: list[Segment] = []

        handlers: dict[bytes, Callable[[FieldReader], None]] = {
            b"PART_NAME": self._part_name,
            b"PART_SIDE": self._part_side,
            b"PART_MOUNT": self._part_mount,
            b"PIN_NUMBER": self._pin_number,
            b"PIN_NAME": self._pin_name,
            b"PIN_SIDE": self._pin_side,
            b"PIN_ORIGIN": self._pin_origin,
            b"PIN_RADIUS": self._pin_radius,
            b"PIN_NET": self._pin_net,
            b"OUTLINE_POINTS": self._outline_points,
            b"OUTLINE_SEGMENTED": self._outline_segmented,
        }

        for line in self._content_lines(data):
            if line == b"PIN_END":
                self._end_pin()
                continue
            if line == b"PART_END":
                self._end_part()
                continue
            if b" " not in line:
                continue
            keyword, rest = line.split(b" ", 1)
            if keyword in _IGNORED:
                continue
            handler = handlers.get(keyword)
            if handler is not None:
                handler(FieldReader(rest))

        self.update_counts()
        self.valid = self.num_parts > 0 or self.num_format > 0

    def _part_name(self, reader: FieldReader) -> None:
        self._part.name = reader.read_str()

    def _part_side(self, reader: FieldReader) -> None:
        side = _SIDES.get(reader.read_str())
        if side is not None:
            self._part.mounting_side = PartMountingSide[side]

    def _part_mount(self, reader: FieldReader) -> None:
        mount = reader.read_str()
        self._part.part_type = PartType.SMD if mount == "SMD" else PartType.THROUGH_HOLE

    def _pin_number(self, reader: FieldReader) -> None:
        self._pin.snum = reader.read_str()

    def _pin_name(self, reader: FieldReader) -> None:
        self._pin.name = reader.read_str()

    def _pin_side(self, reader: FieldReader) -> None:
        side = _SIDES.get(reader.read_str())
        if side is not None:
            self._pin.side = PinSide[side]

    def _pin_origin(self, reader: FieldReader) -> None:
        x = _trunc(reader.read_double())
        y = _trunc(reader.read_double())
        self._pin.pos = Point(x, y)

    def _pin_radius(self, reader: FieldReader) -> None:
        self._pin.radius = reader.read_double()

    def _pin_net(self, reader: FieldReader) -> None:
        self._pin.net = reader.read_str()

    def _end_pin(self) -> None:
        # The pin belongs to the part being built, which is not yet in the list.
        self._pin.part = len(self.parts) + 1
        self.pins.append(self._pin)
        self._pin = Pin()

    def _end_part(self) -> None:
        self._part.end_of_pins = len(self.pins)
        self.parts.append(self._part)
        self._part = Part()

    def _outline_points(self, reader: FieldReader) -> None:
        for x, y in _read_numbers(reader, 2):
            self.format.append(Point(_trunc(x), _trunc(y)))

    def _outline_segmented(self, reader: FieldReader) -> None:
        for x1, y1, x2, y2 in _read_numbers(reader, 4):
            self._pending_segments.append(
                (Point(_trunc(x1), _trunc(y1)), Point(_trunc(x2), _trunc(y2)))
            )
        self.format.extend(chain_outline_segments(self._pending_segments))

    @staticmethod
    def verify_format(data: bytes) -> bool:
        """Return whether data looks like a BVR3 file."""
        return contains(data, b"BVRAW_FORMAT_3")