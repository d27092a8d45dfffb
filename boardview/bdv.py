"""Reader for the BDV boardview format, an obfuscated bundle of .asc tables."""

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

_FIRST_KEY = 0xA0
_KEY_LIMIT = 285
_KEY_RESTART = 159

# Section marker -> (block number, unused lines following the marker)
_SECTIONS = {
    b"<<format.asc>>": (1, 8),
    b"<<pins.asc>>": (2, 8),
    b"<<nails.asc>>": (3, 7),
}


def decode_bdv(data: bytes) -> bytes:
    """Undo the BDV obfuscation; the key advances on every CR/LF pair.

    The transformation is its own inverse for text whose decoded bytes
    never fall on line-break or NUL values.
    """
    buf = bytes(data)
    out = bytearray(len(buf))
    key = _FIRST_KEY
    for index, byte in enumerate(buf):
        if byte == 0x0D and buf[index + 1 : index + 2] == b"\n":
            key += 1
        if byte not in (0x0D, 0x0A, 0x00):
            byte = (key - byte) & 0xFF
        if key > _KEY_LIMIT:
            key = _KEY_RESTART
        out[index] = byte
    return bytes(out)


def _to_mils(value: float) -> int:
    scaled = value * 1000.0
    if not math.isfinite(scaled):
        raise BoardFormatError(f"coordinate is not a finite number: {value}")
    return int(scaled)


def _skip_lines(lines: Iterator[bytes], count: int) -> None:
    next(islice(lines, count, count), None)


class BDVFile(BoardFile):
    """A parsed BDV board file."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        data = bytes(data)
        self._check_size(data)

        block = 0
        lines = iter(split_lines(decode_bdv(data)))
        for raw in lines:
            line = raw.lstrip()
            if not line:
                continue
            section = _SECTIONS.get(line)
            if section is not None:
                block, unused = section
                _skip_lines(lines, unused)
                continue

            if block == 1:
                self._parse_format(FieldReader(line))
            elif block == 2:
                self._parse_part_or_pin(line)
            elif block == 3:
                self._parse_nail(FieldReader(line))

        self.update_counts()
        self.valid = block != 0

    def _parse_format(self, reader: FieldReader) -> None:
        x = reader.read_double()
        y = reader.read_double()
        self.format.append(Point(_to_mils(x), _to_mils(y)))

    def _parse_part_or_pin(self, line: bytes) -> None:
        reader = FieldReader(line)
        if line.startswith(b"Part"):
            reader.skip(4)
            part = Part(name=reader.read_str(), part_type=PartType.SMD)
            location = reader.read_str()
            part.mounting_side = PartMountingSide.TOP if location == "(T)" else PartMountingSide.BOTTOM
            part.end_of_pins = 0
            self.parts.append(part)
            return

        if not self.parts:
            raise BoardFormatError("pin listed before any part")
        part = self.parts[-1]
        reader.read_int()  # pin id
        reader.read_str()  # pin name
        x = _to_mils(reader.read_double())
        y = _to_mils(reader.read_double())
        reader.read_int()  # layer
        net = reader.read_str()
        probe = reader.read_uint()
        self.pins.append(
            Pin(
                pos=Point(x, y),
                part=len(self.parts),
                net=net,
                probe=probe,
                side=PinSide[part.mounting_side.name],
            )
        )
        part.end_of_pins = len(self.pins)

    def _parse_nail(self, reader: FieldReader) -> None:
        reader.skip(1)
        probe = reader.read_uint()
        x = _to_mils(reader.read_double())
        y = _to_mils(reader.read_double())
        reader.read_int()  # type
        reader.read_str()  # grid
        location = reader.read_str()
        side = PartMountingSide.TOP if location == "(T)" else PartMountingSide.BOTTOM
        reader.read_str()  # net id
        net = reader.read_str()
        self.nails.append(Nail(probe=probe, pos=Point(x, y), side=side, net=net))

    @staticmethod
    def verify_format(data: bytes) -> bool:
        """Return whether data looks like a BDV file."""
        return contains(data, b"dd:1.3?,r?-=bb") or (
            contains(data, b"<<format.asc>>") and contains(data, b"<<pins.asc>>")
        )