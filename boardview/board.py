"""Board model shared by the boardview file readers, plus low-level text helpers."""

from __future__ import annotations

import bisect
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

_WHITESPACE = b" \t\n\r\x0b\x0c"
_INT_RE = re.compile(rb"[ \t\n\r\x0b\x0c]*([+-]?[0-9]+)")
_FLOAT_RE = re.compile(
    rb"[ \t\n\r\x0b\x0c]*([+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    rb"|[iI][nN][fF](?:[iI][nN][iI][tT][yY])?|[nN][aA][nN]))"
)

OUTLINE_MARGIN = 20


class BoardFormatError(ValueError):
    """Raised when a board file is malformed."""


@dataclass(frozen=True)
class Point:
    """A board coordinate in mils."""

    x: int = 0
    y: int = 0


class PartMountingSide(Enum):
    BOTH = 0
    BOTTOM = 1
    TOP = 2


class PartType(Enum):
    SMD = 0
    THROUGH_HOLE = 1


class PinSide(Enum):
    BOTH = 0
    BOTTOM = 1
    TOP = 2


@dataclass
class Part:
    name: str | None = None
    mfgcode: str = ""
    mounting_side: PartMountingSide = PartMountingSide.BOTH
    part_type: PartType = PartType.SMD
    end_of_pins: int = 0
    p1: Point = field(default_factory=Point)
    p2: Point = field(default_factory=Point)


@dataclass
class Pin:
    pos: Point = field(default_factory=Point)
    probe: int = 0
    part: int = 0
    side: PinSide = PinSide.BOTH
    net: str = "UNCONNECTED"
    radius: float = 0.5
    snum: str | None = None
    name: str | None = None

    def __lt__(self, other: Pin) -> bool:
        if self.part == other.part:
            return (self.snum or "") < (other.snum or "")
        return self.part < other.part


@dataclass
class Nail:
    probe: int = 0
    pos: Point = field(default_factory=Point)
    side: PartMountingSide = PartMountingSide.BOTH
    net: str = "UNCONNECTED"


def split_lines(text: bytes | str) -> list[bytes]:
    """Split a buffer into lines; a CR/LF pair counts as one break, a NUL ends the data."""
    data = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    size = len(data)
    starts = [0]
    cuts: list[int] = []
    i = 0
    while i < size and data[i] != 0:
        if data[i] in (10, 13):
            cuts.append(i)
            i += 1
            if i < size and data[i] in (10, 13):
                i += 1
            if i < size and data[i] != 0:
                starts.append(i)
        i += 1

    lines = []
    for start in starts:
        end = size
        k = bisect.bisect_left(cuts, start)
        if k < len(cuts):
            end = cuts[k]
        nul = data.find(b"\0", start, end)
        if nul >= 0:
            end = nul
        lines.append(data[start:end])
    return lines


def fix_to_utf8(raw: bytes | str) -> str:
    """Decode a field as UTF-8, falling back to Latin-1 for invalid sequences."""
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def contains(data: bytes | str, needle: bytes | str) -> bool:
    """Return whether needle occurs anywhere in data."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    if isinstance(needle, str):
        needle = needle.encode("utf-8")
    return needle in bytes(data)


class FieldReader:
    """Sequential reader of whitespace-separated fields within one line."""

    def __init__(self, text: bytes | str) -> None:
        self._buf = text.encode("utf-8") if isinstance(text, str) else bytes(text)
        self._pos = 0

    def read_int(self) -> int:
        """Read a decimal integer; return 0 without advancing if there is none."""
        match = _INT_RE.match(self._buf, self._pos)
        if not match:
            return 0
        self._pos = match.end()
        return int(match.group(1))

    def read_uint(self) -> int:
        """Read a non-negative decimal integer."""
        value = self.read_int()
        if value < 0:
            raise BoardFormatError(f"expected a non-negative integer, got {value}")
        return value

    def read_double(self) -> float:
        """Read a floating-point number; return 0.0 without advancing if there is none."""
        match = _FLOAT_RE.match(self._buf, self._pos)
        if not match:
            return 0.0
        self._pos = match.end()
        return float(match.group(1))

    def read_str(self) -> str:
        """Read the next whitespace-delimited word and consume its terminator."""
        size = len(self._buf)
        pos = self._pos
        while pos < size and self._buf[pos] in _WHITESPACE:
            pos += 1
        start = pos
        while pos < size and self._buf[pos] not in _WHITESPACE:
            pos += 1
        word = self._buf[start:pos]
        self._pos = min(pos + 1, size)
        return fix_to_utf8(word)

    def skip(self, count: int) -> None:
        """Advance past count bytes."""
        self._pos = min(self._pos + count, len(self._buf))

    def rest(self) -> str:
        """Return the unread remainder of the line."""
        return fix_to_utf8(self._buf[self._pos:])


class BoardFile:
    """Common state and helpers of every parsed board file."""

    arc_slice_angle_rad = 0.1

    def __init__(self) -> None:
        self.num_format = 0
        self.num_parts = 0
        self.num_pins = 0
        self.num_nails = 0
        self.format: list[Point] = []
        self.outline_segments: list[tuple[Point, Point]] = []
        self.parts: list[Part] = []
        self.pins: list[Pin] = []
        self.nails: list[Nail] = []
        self.valid = False
        self.error_msg = ""

    @staticmethod
    def _check_size(data: bytes) -> None:
        if len(data) <= 4:
            raise BoardFormatError("file is too small")

    @staticmethod
    def _content_lines(data: bytes) -> Iterator[bytes]:
        for line in split_lines(data):
            line = line.lstrip(_WHITESPACE)
            if line:
                yield line

    def add_nails_as_pins(self) -> None:
        """Append a pin for every nail, attached to the trailing dummy parts."""
        for nail in self.nails:
            if nail.side is PartMountingSide.BOTH:
                part, side = len(self.parts), PinSide.BOTH
            elif nail.side is PartMountingSide.TOP:
                part, side = len(self.parts), PinSide.TOP
            else:
                part, side = len(self.parts) - 1, PinSide.BOTTOM
            self.pins.append(Pin(pos=nail.pos, part=part, side=side, probe=nail.probe, net=nail.net))

    def arc_to_segments(
        self, start_angle: float, end_angle: float, r: float, p1: Point, p2: Point, pc: Point
    ) -> list[tuple[Point, Point]]:
        """Approximate an arc around pc from p1 to p2 with straight segments."""
        segments: list[tuple[Point, Point]] = []
        p = p1
        previous = p1
        angle = start_angle + self.arc_slice_angle_rad
        while angle < end_angle:
            p = Point(int(pc.x + r * math.cos(angle)), int(pc.y + r * math.sin(angle)))
            segments.append((previous, p))
            previous = p
            angle += self.arc_slice_angle_rad
        segments.append((p, p2))
        return segments

    def distance(self, p1: Point, p2: Point) -> float:
        """Euclidean distance between two points."""
        return math.hypot(p1.x - p2.x, p1.y - p2.y)

    def gen_outline(self) -> None:
        """Add a rectangular outline around the outermost pins, with a margin."""
        if not self.pins:
            raise BoardFormatError("no pins to derive an outline from")
        xs = [pin.pos.x for pin in self.pins]
        ys = [pin.pos.y for pin in self.pins]
        minx, maxx = min(xs) - OUTLINE_MARGIN, max(xs) + OUTLINE_MARGIN
        miny, maxy = min(ys) - OUTLINE_MARGIN, max(ys) + OUTLINE_MARGIN
        self.format.extend(
            [Point(minx, miny), Point(maxx, miny), Point(maxx, maxy), Point(minx, maxy), Point(minx, miny)]
        )

    def update_counts(self) -> None:
        """Refresh the element counters from the element lists."""
        self.num_parts = len(self.parts)
        self.num_pins = len(self.pins)
        self.num_format = len(self.format)
        self.num_nails = len(self.nails)