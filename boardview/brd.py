"""Reader for the BRD boardview format, plain or byte-encoded."""

from __future__ import annotations

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

SIGNATURE = bytes([0x23, 0xE2, 0x63, 0x28])

_BLOCK_MARKERS = {
    b"str_length:": 1,
    b"var_data:": 2,
    b"Format:": 3,
    b"format:": 3,
    b"Parts:": 4,
    b"Pins1:": 4,
    b"Pins:": 5,
    b"Pins2:": 5,
    b"Nails:": 6,
}


def decode_brd(data: bytes) -> bytes:
    """Undo the byte obfuscation of encoded BRD files; line breaks and NULs are kept."""
    out = bytearray(data)
    for index, byte in enumerate(out):
        if byte not in (0x0D, 0x0A, 0x00):
            out[index] = ~(((byte >> 6) & 3) | (byte << 2)) & 0xFF
    return bytes(out)


class BRDFile(BoardFile):
    """A parsed BRD board file."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        data = bytes(data)
        self._check_size(data)
        if data[:4] == SIGNATURE:
            data = decode_brd(data)

        block = 0
        for line in self._content_lines(data):
            if line in _BLOCK_MARKERS:
                block = _BLOCK_MARKERS[line]
                continue
            reader = FieldReader(line)
            if block == 2:
                self.num_format = reader.read_uint()
                self.num_parts = reader.read_uint()
                self.num_pins = reader.read_uint()
                self.num_nails = reader.read_uint()
            elif block == 3:
                self._parse_format(reader)
            elif block == 4:
                self._parse_part(reader)
            elif block == 5:
                self._parse_pin(reader)
            elif block == 6:
                self._parse_nail(reader)

        self._resolve_pins()
        self.valid = block != 0

    def _parse_format(self, reader: FieldReader) -> None:
        if len(self.format) >= self.num_format:
            raise BoardFormatError("more format points than declared")
        self.format.append(Point(reader.read_int(), reader.read_int()))

    def _parse_part(self, reader: FieldReader) -> None:
        if len(self.parts) >= self.num_parts:
            raise BoardFormatError("more parts than declared")
        part = Part(name=reader.read_str())
        kind = reader.read_uint()  # type and layer together
        part.part_type = PartType.SMD if kind & 0xC else PartType.THROUGH_HOLE
        if kind == 1 or 4 <= kind < 8:
            part.mounting_side = PartMountingSide.TOP
        if kind == 2 or kind >= 8:
            part.mounting_side = PartMountingSide.BOTTOM
        part.end_of_pins = reader.read_uint()
        if part.end_of_pins > self.num_pins:
            raise BoardFormatError("part pin range exceeds pin count")
        self.parts.append(part)

    def _parse_pin(self, reader: FieldReader) -> None:
        if len(self.pins) >= self.num_pins:
            raise BoardFormatError("more pins than declared")
        pos = Point(reader.read_int(), reader.read_int())
        probe = reader.read_int()  # may be negative
        part = reader.read_uint()
        if part > self.num_parts:
            raise BoardFormatError("pin refers to an unknown part")
        self.pins.append(Pin(pos=pos, probe=probe, part=part, net=reader.read_str()))

    def _parse_nail(self, reader: FieldReader) -> None:
        if len(self.nails) >= self.num_nails:
            raise BoardFormatError("more nails than declared")
        probe = reader.read_uint()
        pos = Point(reader.read_int(), reader.read_int())
        side = PartMountingSide.TOP if reader.read_uint() == 1 else PartMountingSide.BOTTOM
        self.nails.append(Nail(probe=probe, pos=pos, side=side, net=reader.read_str()))

    def _resolve_pins(self) -> None:
        # Some variants leave pin nets empty; the nail with the same probe names it.
        nets_by_probe = {nail.probe: nail.net for nail in self.nails}
        for pin in self.pins:
            if pin.net == "":
                pin.net = nets_by_probe.get(pin.probe, "")
            if not 1 <= pin.part <= len(self.parts):
                raise BoardFormatError("pin refers to an unknown part")
            pin.side = PinSide[self.parts[pin.part - 1].mounting_side.name]

    @staticmethod
    def verify_format(data: bytes) -> bool:
        """Return whether data looks like a BRD file."""
        data = bytes(data)
        if data[:4] == SIGNATURE:
            return True
        return contains(data, b"str_length:") and contains(data, b"var_data:")