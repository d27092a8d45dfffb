"""Reader for the CAD boardview format (COMP, C_PIN, NET and N_VIA records)."""

from __future__ import annotations

import math
from enum import Enum

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
)

_MULTIPLIER = 1000.0


class _Block(Enum):
    INVALID = 0
    NONE = 1
    PARTS = 2
    PINS = 3
    NETS = 4
    VIAS = 5


_PREFIXES = (
    (b"COMP", _Block.PARTS),
    (b"C_PIN", _Block.PINS),
    (b"NET ", _Block.NETS),
    (b"N_VIA", _Block.VIAS),
)


def _scale(value: float) -> int:
    scaled = value * _MULTIPLIER
    if not math.isfinite(scaled):
        raise BoardFormatError(f"coordinate is not a finite number: {value}")
    return int(scaled)


def _strip_net(name: str) -> str:
    # Net names containing a slash carry a leading marker character.
    return name[1:] if "/" in name else name


class CADFile(BoardFile):
    """A parsed CAD board file."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        data = bytes(data)
        self._check_size(data)
        self._parts_id: dict[str, int] = {}
        self._nail_net = "UNCONNECTED"

        block = _Block.NONE
        for line in self._content_lines(data):
            block = next((kind for prefix, kind in _PREFIXES if line.startswith(prefix)), _Block.INVALID)
            reader = FieldReader(line)
            if block is _Block.PARTS:
                self._parse_part(reader)
            elif block is _Block.PINS:
                self._parse_pin(reader)
            elif block is _Block.NETS:
                self._parse_net(reader)
            elif block is _Block.VIAS:
                self._parse_via(reader)

        self.gen_outline()
        self.update_counts()
        self.valid = block is not _Block.NONE

    def _parse_part(self, reader: FieldReader) -> None:
        reader.read_str()  # record type
        name = reader.read_str()
        for _ in range(5):  # part number, two unknowns, x, y
            reader.read_str()
        location = reader.read_str()
        reader.read_str()  # unknown
        side = PartMountingSide.TOP if location == "1" else PartMountingSide.BOTTOM
        self.parts.append(Part(name=name, part_type=PartType.SMD, mounting_side=side, end_of_pins=0))
        self._parts_id[name] = len(self.parts)

    def _parse_pin(self, reader: FieldReader) -> None:
        reader.read_str()  # record type
        part_name = reader.read_str().split("-", 1)[0]
        if part_name not in self._parts_id:
            raise BoardFormatError(f"pin refers to an unknown part: {part_name}")
        part_index = self._parts_id[part_name]
        x = _scale(reader.read_double())
        y = _scale(reader.read_double())
        for _ in range(3):
            reader.read_double()
        reader.read_str()  # unknown
        net = _strip_net(reader.read_str())
        side = PinSide[self.parts[part_index - 1].mounting_side.name]
        self.pins.append(Pin(pos=Point(x, y), part=part_index, net=net, side=side))

    def _parse_net(self, reader: FieldReader) -> None:
        reader.read_str()  # record type
        self._nail_net = _strip_net(reader.read_str())

    def _parse_via(self, reader: FieldReader) -> None:
        reader.read_str()  # record type
        x = _scale(reader.read_double())
        y = _scale(reader.read_double())
        reader.read_str()  # unknown
        side = PartMountingSide.TOP if reader.read_double() == 1 else PartMountingSide.BOTTOM
        reader.read_double()  # unknown
        self.nails.append(Nail(pos=Point(x, y), side=side, net=self._nail_net))

    @staticmethod
    def verify_format(data: bytes) -> bool:
        """Return whether data looks like a CAD file."""
        return contains(data, b"###Panel Added") and contains(data, b"C_PIN")