"""Reader for the binary CST boardview format."""

from __future__ import annotations

import struct

from .board import (
    BoardFile,
    BoardFormatError,
    Part,
    PartMountingSide,
    PartType,
    Pin,
    PinSide,
    Point,
    fix_to_utf8,
)

_SHORT = struct.Struct("<h")
_BYTE = struct.Struct("<b")

_LAYER_TOP = 0x0C
_LAYER_BOTTOM = 0x01
_PAD_SECTION = b"CPad"


class _Cursor:
    """Little-endian reader over a byte buffer that refuses to run off its ends."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self.pos = 0

    def _unpack(self, fmt: struct.Struct) -> int:
        if self.pos < 0 or self.pos + fmt.size > len(self._data):
            raise BoardFormatError("unexpected end of CST data")
        (value,) = fmt.unpack_from(self._data, self.pos)
        self.pos += fmt.size
        return value

    def short(self) -> int:
        return self._unpack(_SHORT)

    def byte(self) -> int:
        return self._unpack(_BYTE)

    def count(self) -> int:
        value = self.short()
        if value < 0:
            raise BoardFormatError(f"negative element count: {value}")
        return value

    def take(self, size: int) -> bytes:
        if size < 0:
            raise BoardFormatError(f"negative string length: {size}")
        if self.pos < 0 or self.pos + size > len(self._data):
            raise BoardFormatError("unexpected end of CST data")
        chunk = self._data[self.pos : self.pos + size]
        self.pos += size
        return chunk

    def skip(self, size: int) -> None:
        self.pos += size


class CSTFile(BoardFile):
    """A parsed CST board file."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        data = bytes(data)
        self._check_size(data)
        self._nets: list[str] = []
        cursor = _Cursor(data)

        self._read_parts(cursor)
        self._read_nets(cursor)

        # Dummy part for pins that belong to no component.
        self.parts.append(
            Part(name="...", mounting_side=PartMountingSide.BOTH, part_type=PartType.THROUGH_HOLE)
        )

        self._read_pins(data, cursor)

        self.gen_outline()  # the outline itself is not stored in the file
        self.update_counts()
        self.valid = True

    @property
    def nets(self) -> list[str]:
        """Net names in file order."""
        return list(self._nets)

    def _read_parts(self, cursor: _Cursor) -> None:
        num_parts = cursor.count()
        cursor.skip(4)  # section signature
        cursor.take(cursor.short())  # section name
        for _ in range(num_parts):
            name = fix_to_utf8(cursor.take(cursor.byte()))
            cursor.skip(4)
            layer = cursor.byte()
            part = Part(name=name, part_type=PartType.SMD, end_of_pins=0)
            if layer == _LAYER_TOP:
                part.mounting_side = PartMountingSide.TOP
            elif layer == _LAYER_BOTTOM:
                part.mounting_side = PartMountingSide.BOTTOM
            self.parts.append(part)
            cursor.skip(6)

    def _read_nets(self, cursor: _Cursor) -> None:
        cursor.skip(-2)  # the net count overlaps the tail of the part records
        num_nets = cursor.count()
        for _ in range(num_nets):
            self._nets.append(fix_to_utf8(cursor.take(cursor.byte())))

    def _read_pins(self, data: bytes, cursor: _Cursor) -> None:
        section = data.find(_PAD_SECTION, cursor.pos + 1)
        if section < 0:
            raise BoardFormatError("CPad section not found")
        cursor.pos = section - 8
        num_pins = cursor.count()
        cursor.skip(10)

        for _ in range(num_pins):
            part_id = cursor.short()
            part = part_id + 1 if part_id >= 0 else len(self.parts)
            if part > len(self.parts):
                raise BoardFormatError(f"pin refers to an unknown part: {part_id}")
            probe = cursor.short()
            net_id = cursor.short()
            if not 0 <= net_id < len(self._nets):
                raise BoardFormatError(f"pin refers to an unknown net: {net_id}")
            x = cursor.short()
            y = cursor.short()
            cursor.short()  # shape index
            cursor.skip(4)
            self.pins.append(
                Pin(
                    pos=Point(x, y),
                    probe=probe,
                    part=part,
                    net=self._nets[net_id],
                    side=PinSide[self.parts[part - 1].mounting_side.name],
                )
            )