"""Reader for the BVR (BVRAW_FORMAT_1) boardview format."""

from __future__ import annotations

import math
from itertools import islice
from typing import Iterator

from .board import (
    BoardFile,
    BoardFormatError,
    FieldReader,
    Nail,
    Part,
    PartMountingSide,
    PartType,
    Pin,
    PinSide,
    Point,
    contains,
    split_lines,
)

_SECTIONS = {b"<<Layout>>": 1, b"<<Pin>>": 2, b"<<Nail>>": 3}
_PART_NAME_LIMIT = 99


def next_field(text: bytes | str) -> bytes:
    """Return what follows the first tab-separated field of a line."""
    data = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    for index, byte in enumerate(data):
        if byte == 0x09:
            return data[index + 1 :]
        if byte in (0x00, 0x0D, 0x0A):
            return data[index:]
    return b""


def _to_mils(value: float) -> int:
    scaled = value * 1000
    if not math.isfinite(scaled):
        raise BoardFormatError(f"coordinate is not a finite number: {value}")
    return math.trunc(scaled)


def _skip_lines(lines: Iterator[bytes], count: int) -> None:
    next(islice(lines, count, count), None)


class BVRFile(BoardFile):
    """A parsed BVR board file."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        data = bytes(data)
        self._check_size(data)
        self._previous_part = ""

        block = 0
        lines = iter(split_lines(data))
        for raw in lines:
            line = raw.lstrip()
            if not line:
                continue
            if line in _SECTIONS:
                block = _SECTIONS[line]
                _skip_lines(lines, 1)
                continue

            if block == 1:
                self._parse_layout(FieldReader(line))
            elif block == 2:
                self._parse_pin(FieldReader(line))
            elif block == 3:
                self._parse_nail(FieldReader(next_field(line)))

        self.update_counts()
        self.valid = block != 0

    def _parse_layout(self, reader: FieldReader) -> None:
        x = reader.read_double()
        if reader.rest().startswith(","):
            reader.skip(1)
        y = reader.read_double()
        self.format.append(Point(_to_mils(x), _to_mils(y)))

    def _parse_pin(self, reader: FieldReader) -> None:
        part = Part(name=reader.read_str(), part_type=PartType.SMD)
        location = reader.read_str()
        part.mounting_side = PartMountingSide.TOP if location == "(T)" else PartMountingSide.BOTTOM

        if part.name != self._previous_part:
            part.end_of_pins = 0
            self.parts.append(part)
            self._previous_part = part.name[:_PART_NAME_LIMIT]
        if not self.parts:
            raise BoardFormatError("pin listed without a part")

        reader.read_int()  # pin id
        name = reader.read_str()
        x = _to_mils(reader.read_double())
        y = _to_mils(reader.read_double())
        reader.read_int()  # layer
        net = reader.read_str()
        self.pins.append(
            Pin(
                pos=Point(x, y),
                part=len(self.parts),
                name=name,
                net=net,
                side=PinSide[part.mounting_side.name],
            )
        )
        self.parts[-1].end_of_pins = len(self.pins)

    def _parse_nail(self, reader: FieldReader) -> None:
        x = _to_mils(reader.read_double())
        y = _to_mils(reader.read_double())
        reader.read_int()  # type
        reader.read_str()  # grid
        location = reader.read_str()
        side = PartMountingSide.TOP if location == "(T)" else PartMountingSide.BOTTOM
        reader.read_str()  # net id
        net = reader.read_str()
        self.nails.append(Nail(pos=Point(x, y), side=side, net=net))

    @staticmethod
    def verify_format(data: bytes) -> bool:
        """Return whether data looks like a BVR file."""
        return contains(data, b"BVRAW_FORMAT_1")