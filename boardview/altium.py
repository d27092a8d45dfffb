"""Reader for ASCII Altium (Protel Advanced PCB) board files."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

from .board import (
    BoardFile,
    BoardFormatError,
    Part,
    PartMountingSide,
    PartType,
    Pin,
    PinSide,
    Point,
    contains,
    fix_to_utf8,
)

_ITEM_RE = re.compile(rb"[ \t\n\r\x0b\x0c]*([^ \t\n\r\x0b\x0c|\x00]*)")
_INT_RE = re.compile(rb"[ \t\n\r\x0b\x0c]*([+-]?[0-9]+)")
_FLOAT_RE = re.compile(
    rb"[ \t\n\r\x0b\x0c]*([+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    rb"|[iI][nN][fF](?:[iI][nN][iI][tT][yY])?|[nN][aA][nN]))"
)

_DEG_TO_RAD = math.pi / 180.0


class _Block(Enum):
    NONE = 0
    NETS = 2
    COMPONENTS = 3
    PADS = 4
    TRACKS = 5
    ARC = 6


# Checked in this order; the last marker found in a line wins.
_RECORDS = (
    (b"RECORD=Track", _Block.TRACKS),
    (b"RECORD=Net", _Block.NETS),
    (b"RECORD=Component", _Block.COMPONENTS),
    (b"RECORD=Pad", _Block.PADS),
    (b"RECORD=Arc", _Block.ARC),
)


@dataclass
class ADNet:
    id: int = 0
    name: str = ""


@dataclass
class ADPart:
    name: str = ""
    description: str = ""
    layer: str = ""
    part_id: int = 0
    x: float = 0.0
    y: float = 0.0
    orientation: float = 0.0


@dataclass
class ADPad:
    id: int = 0
    net_id: int = 0
    part_id: int = 0
    snum: str | None = None
    x: float = 0.0
    y: float = 0.0
    drill: float = 0.0
    radius: float = 0.0
    x_size: float = 0.0
    y_size: float = 0.0
    rotation: float = 0.0
    type: int = 0  # 0 = SMD, 1 = through hole
    unique_id: str | None = None
    layer: str | None = None


def read_item(text: bytes | str) -> str:
    """Return the value at the start of text, ending at whitespace or '|'."""
    data = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    match = _ITEM_RE.match(data)
    return fix_to_utf8(match.group(1)) if match else ""


def _after(line: bytes, key: bytes, start: int = 0) -> int | None:
    index = line.find(key, start)
    return None if index < 0 else index + len(key)


def _strtol(line: bytes, pos: int) -> tuple[int, int]:
    match = _INT_RE.match(line, pos)
    if not match:
        return 0, pos
    return int(match.group(1)), match.end()


def _strtod(line: bytes, pos: int) -> tuple[float, int]:
    match = _FLOAT_RE.match(line, pos)
    if not match:
        return 0.0, pos
    return float(match.group(1)), match.end()


def _to_int(value: float) -> int:
    if not math.isfinite(value):
        raise BoardFormatError(f"coordinate is not a finite number: {value}")
    return int(value)


def _require(line: bytes, key: bytes, start: int = 0) -> int:
    pos = _after(line, key, start)
    if pos is None:
        raise BoardFormatError(f"record lacks {key.decode()}: {fix_to_utf8(line)}")
    return pos


def _pin_number(pin: Pin) -> float:
    return _strtod((pin.snum or "").encode("utf-8"), 0)[0]


class ADFile(BoardFile):
    """A parsed ASCII Altium board file."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        data = bytes(data)
        self._check_size(data)
        self.ad_nets: list[ADNet] = []
        self.ad_parts: list[ADPart] = []
        self.ad_pads: list[ADPad] = []

        block = _Block.NONE
        for line in self._content_lines(data):
            for marker, kind in _RECORDS:
                if marker in line:
                    block = kind

            if block is _Block.ARC:
                self._parse_arc(line)
            elif block is _Block.TRACKS:
                if self._parse_track(line):
                    block = _Block.NONE
            elif block is _Block.NETS:
                self._parse_net(line)
                block = _Block.NONE
            elif block is _Block.COMPONENTS:
                self._parse_component(line)
                block = _Block.NONE
            elif block is _Block.PADS:
                self._parse_pad(line)
                block = _Block.NONE

        # The file has no net for unconnected pads, so one is appended.
        self.ad_nets.append(ADNet(id=len(self.ad_nets) + 1, name="NC"))
        self._build_board()
        self.update_counts()
        self.valid = True

    def _parse_arc(self, line: bytes) -> None:
        pos = _after(line, b"|LAYER=")
        if pos is None or read_item(line[pos:]) != "KEEPOUT":
            return
        values = []
        pos = 0
        for key in (b"LOCATION.X=", b"LOCATION.Y=", b"RADIUS=", b"STARTANGLE=", b"ENDANGLE="):
            found = _after(line, key, pos)
            if found is None:
                return
            value, pos = _strtod(line, found)
            values.append(value)
        cx, cy, radius, start, end = values
        start *= _DEG_TO_RAD
        end *= _DEG_TO_RAD
        pc = Point(_to_int(cx), _to_int(cy))
        p1 = Point(_to_int(pc.x + radius * math.cos(start)), _to_int(pc.y + radius * math.sin(start)))
        p2 = Point(_to_int(pc.x + radius * math.cos(end)), _to_int(pc.y + radius * math.sin(end)))
        self.outline_segments.extend(self.arc_to_segments(start, end, radius, p1, p2, pc))

    def _parse_track(self, line: bytes) -> bool:
        """Handle a track record; return whether the record block ends here."""
        layer = None
        pos = _after(line, b"|LAYER=")
        if pos is not None:
            layer = read_item(line[pos:])

        pos = _after(line, b"|COMPONENT=")
        if pos is not None:
            component, _ = _strtol(line, pos)
            if component < 0:
                raise BoardFormatError(f"expected a non-negative integer, got {component}")

        coords = []
        pos = 0
        for key in (b"X1=", b"Y1=", b"X2=", b"Y2="):
            found = _after(line, key, pos)
            if found is None:
                return True
            value, pos = _strtod(line, found)
            coords.append(_to_int(value))
        x1, y1, x2, y2 = coords

        if layer == "KEEPOUT":
            # The board outline usually lives on the keepout layer.
            self.outline_segments.append((Point(x1, y1), Point(x2, y2)))
        elif layer is not None and ("OVERLAY" in layer or layer.startswith("MECHANICAL")):
            pass
        else:
            return False
        return True

    def _parse_net(self, line: bytes) -> None:
        pos = _require(line, b"|ID=")
        net_id, pos = _strtol(line, pos)
        pos = _require(line, b"|NAME=", pos)
        self.ad_nets.append(ADNet(id=net_id + 1, name=read_item(line[pos:])))

    def _parse_component(self, line: bytes) -> None:
        pos = _after(line, b"|ID=")
        if pos is None:
            return
        part_id, pos = _strtol(line, pos)
        part = ADPart(part_id=part_id + 1)
        pos = _require(line, b"|LAYER=", pos)
        part.layer = read_item(line[pos:])
        pos = _require(line, b"|X=", pos)
        part.x, pos = _strtod(line, pos)
        pos = _require(line, b"|Y=", pos)
        part.y, pos = _strtod(line, pos)
        pos = _require(line, b"|ROTATION=", pos)
        part.orientation, pos = _strtod(line, pos)

        found = _after(line, b"|SOURCEDESIGNATOR=", pos)
        if found is None:
            part.name = f"UNKNOWN-{part.part_id}"
        else:
            part.name = read_item(line[found:])
            described = _after(line, b"|SOURCEDESCRIPTION=", found)
            if described is not None:
                part.description = read_item(line[described:])
        self.ad_parts.append(part)

    def _parse_pad(self, line: bytes) -> None:
        pad = ADPad()
        got_net = False

        pos = _after(line, b"|NET=")
        if pos is not None:
            pad.net_id = _strtol(line, pos)[0] + 1
            got_net = True

        pos = _after(line, b"|NAME=")
        if pos is not None:
            pad.snum = read_item(line[pos:])

        pos = _after(line, b"|COMPONENT=")
        if pos is None:
            return
        pad.part_id = _strtol(line, pos)[0] + 1
        if not got_net:
            pad.net_id = 0

        pos = _after(line, b"|X=")
        if pos is None:
            return
        pad.x = _strtod(line, pos)[0]

        pos = _after(line, b"|Y=")
        if pos is None:
            return
        pad.y = _strtod(line, pos)[0]

        pos = _after(line, b"|ROTATION=")
        if pos is not None:
            pad.rotation = _strtod(line, pos)[0]

        pos = _after(line, b"|XSIZE=")
        if pos is not None:
            pad.x_size = _strtod(line, pos)[0]

        pos = _after(line, b"|YSIZE=")
        if pos is not None:
            pad.y_size = _strtod(line, pos)[0]

        pos = _after(line, b"|INDEXFORSAVE=")
        if pos is not None:
            pad.id = _strtol(line, pos)[0]

        pos = _after(line, b"|UNIQUEID=")
        if pos is not None:
            pad.unique_id = read_item(line[pos:])

        pos = _after(line, b"|LAYER=")
        if pos is not None:
            pad.layer = read_item(line[pos:])
            if pad.layer == "MULTILAYER":
                pad.type = 1

        if pad.x_size > 0.0 and pad.y_size > 0.0:
            pad.radius = min(pad.x_size, pad.y_size) / 2

        self.ad_pads.append(pad)

    def _build_board(self) -> None:
        net_names: dict[int, str] = {}
        for net in self.ad_nets:
            net_names.setdefault(net.id, net.name)
        nc_net = len(self.ad_nets)

        for ad_part in self.ad_parts:
            if not ad_part.name:
                ad_part.name = "UNKNOWN"
            if ad_part.layer == "TOP":
                side = PartMountingSide.TOP
            elif ad_part.layer == "BOTTOM":
                side = PartMountingSide.BOTTOM
            else:
                side = PartMountingSide.BOTH
            part = Part(name=ad_part.name, mounting_side=side)

            for pad in self.ad_pads:
                if pad.part_id != ad_part.part_id:
                    continue
                net_id = pad.net_id or nc_net
                if pad.type == 1:
                    part.part_type = PartType.THROUGH_HOLE
                self.pins.append(
                    Pin(
                        pos=Point(_to_int(pad.x), _to_int(pad.y)),
                        part=ad_part.part_id,
                        net=net_names.get(net_id, "UNCONNECTED"),
                        snum=pad.snum,
                        radius=pad.radius,
                        side=PinSide[side.name],
                    )
                )
            part.end_of_pins = len(self.pins)
            self.parts.append(part)

        self.pins.sort(key=_pin_number)

    @staticmethod
    def verify_format(data: bytes) -> bool:
        """Return whether data looks like an ASCII Altium board file."""
        return contains(data, b"|KIND=Protel_Advanced_PCB") and not contains(data, b"Binary")