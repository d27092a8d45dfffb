"""Reader for the BRD2 boardview format (BRDOUT/NETS/PARTS/PINS/NAILS blocks)."""

from __future__ import annotations

import logging

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

log = logging.getLogger(__name__)


class BRD2File(BoardFile):
    """A parsed BRD2 board file."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        data = bytes(data)
        self._check_size(data)
        self._nets: dict[int, str] = {}
        self._num_nets = 0
        self._max = Point(0, 0)

        block = 0
        for line in self._content_lines(data):
            reader = FieldReader(line)
            if line.startswith(b"BRDOUT:"):
                block = 1
                reader.skip(7)
                self.num_format = reader.read_uint()
                self._max = Point(reader.read_int(), reader.read_int())
                continue
            if line.startswith(b"NETS:"):
                block = 2
                reader.skip(5)
                self._num_nets = reader.read_uint()
                continue
            if line.startswith(b"PARTS:"):
                block = 3
                reader.skip(6)
                self.num_parts = reader.read_uint()
                continue
            if line.startswith(b"PINS:"):
                block = 4
                reader.skip(5)
                self.num_pins = reader.read_uint()
                continue
            if line.startswith(b"NAILS:"):
                block = 5
                reader.skip(6)
                self.num_nails = reader.read_uint()
                continue

            if block == 1:
                self._parse_format(reader)
            elif block == 2:
                self._parse_net(reader)
            elif block == 3:
                self._parse_part(reader)
            elif block == 4:
                self._parse_pin(reader)
            elif block == 5:
                self._parse_nail(reader)

        self._check_counts()
        self._assign_pins_to_parts()

        # Dummy parts for probe points: bottom first, top last.
        self.parts.append(Part(name="...", mounting_side=PartMountingSide.BOTTOM))
        self.parts.append(Part(name="...", mounting_side=PartMountingSide.TOP))
        self.add_nails_as_pins()

        self.valid = block != 0

    def _parse_format(self, reader: FieldReader) -> None:
        if len(self.format) >= self.num_format:
            raise BoardFormatError("more outline points than declared")
        point = Point(reader.read_int(), reader.read_int())
        if point.x > self._max.x or point.y > self._max.y:
            raise BoardFormatError("outline point outside the board boundary")
        self.format.append(point)

    def _parse_net(self, reader: FieldReader) -> None:
        if len(self._nets) >= self._num_nets:
            raise BoardFormatError("more nets than declared")
        net_id = reader.read_uint()
        self._nets[net_id] = reader.read_str()

    def _parse_part(self, reader: FieldReader) -> None:
        if len(self.parts) >= self.num_parts:
            raise BoardFormatError("more parts than declared")
        part = Part(name=reader.read_str())
        part.p1 = Point(reader.read_int(), reader.read_int())
        part.p2 = Point(reader.read_int(), reader.read_int())
        part.end_of_pins = reader.read_uint()  # first pin index in this format
        part.part_type = PartType.SMD
        side = reader.read_uint()
        if side == 1:
            part.mounting_side = PartMountingSide.TOP
        elif side == 2:
            part.mounting_side = PartMountingSide.BOTTOM
        else:
            part.mounting_side = PartMountingSide.BOTH
        self.parts.append(part)

    def _parse_pin(self, reader: FieldReader) -> None:
        if len(self.pins) >= self.num_pins:
            raise BoardFormatError("more pins than declared")
        pos = Point(reader.read_int(), reader.read_int())
        net_id = reader.read_uint()
        side = reader.read_uint()
        if side == 1:
            pin_side = PinSide.TOP
        elif side == 2:
            pin_side = PinSide.BOTTOM
        else:
            pin_side = PinSide.BOTH
        net = self._nets.get(net_id, "")
        self.pins.append(Pin(pos=pos, side=pin_side, net=net, probe=1, part=0))

    def _parse_nail(self, reader: FieldReader) -> None:
        if len(self.nails) >= self.num_nails:
            raise BoardFormatError("more nails than declared")
        probe = reader.read_uint()
        x, y = reader.read_int(), reader.read_int()
        net_id = reader.read_uint()
        if net_id in self._nets:
            net = self._nets[net_id]
        else:
            net = "UNCONNECTED"
            log.warning("Missing net id: %d", net_id)
        if reader.read_uint() == 1:
            nail = Nail(probe=probe, pos=Point(x, y), side=PartMountingSide.TOP, net=net)
        else:
            nail = Nail(probe=probe, pos=Point(x, self._max.y - y), side=PartMountingSide.BOTTOM, net=net)
        self.nails.append(nail)

    def _check_counts(self) -> None:
        if self.num_format != len(self.format):
            raise BoardFormatError("outline point count does not match header")
        if self._num_nets != len(self._nets):
            raise BoardFormatError("net count does not match header")
        if self.num_parts != len(self.parts):
            raise BoardFormatError("part count does not match header")
        if self.num_pins != len(self.pins):
            raise BoardFormatError("pin count does not match header")
        if self.num_nails != len(self.nails):
            raise BoardFormatError("nail count does not match header")

    def _assign_pins_to_parts(self) -> None:
        max_y = self._max.y
        current = 0
        last = len(self.parts) - 1
        for index, part in enumerate(self.parts):
            if part.mounting_side is PartMountingSide.BOTTOM:
                part.p1 = Point(part.p1.x, max_y - part.p1.y)
                part.p2 = Point(part.p2.x, max_y - part.p2.y)

            end = len(self.pins) if index == last else self.parts[index + 1].end_of_pins
            if end > len(self.pins):
                raise BoardFormatError("part pin range exceeds pin count")

            is_dip = True
            for pin in self.pins[current:end]:
                pin.part = index + 1
                if pin.side is not PinSide.TOP:
                    pin.pos = Point(pin.pos.x, max_y - pin.pos.y)
                if (pin.side is PinSide.TOP and part.mounting_side is PartMountingSide.TOP) or (
                    pin.side is PinSide.BOTTOM and part.mounting_side is PartMountingSide.BOTTOM
                ):
                    is_dip = False
            current = max(current, end)

            if is_dip:
                part.part_type = PartType.THROUGH_HOLE
                part.mounting_side = PartMountingSide.BOTH
            else:
                part.part_type = PartType.SMD

    @staticmethod
    def verify_format(data: bytes) -> bool:
        """Return whether data looks like a BRD2 file."""
        return contains(data, b"BRDOUT:") and contains(data, b"NETS:")