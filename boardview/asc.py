"""Reader for boardviews split over separate format.asc, pins.asc and nails.asc tables."""

from __future__ import annotations

import math
from itertools import islice
from pathlib import Path
from typing import Callable, Iterator

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
    fix_to_utf8,
    split_lines,
)

_WHITESPACE = b" \t\n\r\x0b\x0c"

# Unused lines following the first non-empty line of each table.
_FORMAT_HEADER_LINES = 7
_PINS_HEADER_LINES = 7
_NAILS_HEADER_LINES = 6


class _AscReader(FieldReader):
    """Field reader that also understands names ending at a double space."""

    def read_str2(self) -> str:
        """Read a field that may contain single spaces; two whitespace characters end it."""
        buf = self._buf
        size = len(buf)
        pos = self._pos
        while pos < size and buf[pos] in _WHITESPACE:
            pos += 1
        start = pos
        while pos + 1 < size and not (buf[pos] in _WHITESPACE and buf[pos + 1] in _WHITESPACE):
            pos += 1
        word = buf[start:pos]
        self._pos = min(pos + 1, size)
        return fix_to_utf8(word)


Parser = Callable[[_AscReader, Iterator[bytes]], None]


def _to_mils(value: float) -> int:
    scaled = value * 1000.0
    if not math.isfinite(scaled):
        raise BoardFormatError(f"coordinate is not a finite number: {value}")
    return int(scaled)


def _skip_lines(lines: Iterator[bytes], count: int) -> None:
    next(islice(lines, count, count), None)


def find_file_insensitive(directory: str | Path, filename: str) -> Path | None:
    """Find filename in directory, ignoring case; return None if it is not there."""
    directory = Path(directory)
    exact = directory / filename
    if exact.is_file():
        return exact
    if not directory.is_dir():
        return None
    wanted = filename.lower()
    matches = sorted(
        entry for entry in directory.iterdir() if entry.name.lower() == wanted and entry.is_file()
    )
    return matches[0] if matches else None


class ASCFile(BoardFile):
    """A board read from the .asc tables found next to the given file."""

    def __init__(self, data: bytes, filepath: str | Path) -> None:
        super().__init__()
        self._first_format = True
        self._first_pin = True
        self._first_nail = True

        try:
            directory = Path(filepath).resolve(strict=False).parent
        except (OSError, RuntimeError) as exc:
            self.error_msg = str(exc)
            return

        self.valid = (
            self.load_and_parse(directory, "format.asc", self.parse_format)
            and self.load_and_parse(directory, "pins.asc", self.parse_pin)
            and self.load_and_parse(directory, "nails.asc", self.parse_nail)
        )
        self.update_counts()

    def parse_format(self, reader: _AscReader, lines: Iterator[bytes]) -> None:
        """Parse one outline point line of format.asc."""
        if self._first_format:
            _skip_lines(lines, _FORMAT_HEADER_LINES)
            self._first_format = False
            return
        x = _to_mils(reader.read_double())
        y = _to_mils(reader.read_double())
        self.format.append(Point(x, y))

    def parse_pin(self, reader: _AscReader, lines: Iterator[bytes]) -> None:
        """Parse one part or pin line of pins.asc."""
        if self._first_pin:
            _skip_lines(lines, _PINS_HEADER_LINES)
            self._first_pin = False
            return
        if reader.rest().startswith("Part"):
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
        reader.read_str2()  # pin name
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

    def parse_nail(self, reader: _AscReader, lines: Iterator[bytes]) -> None:
        """Parse one nail line of nails.asc."""
        if self._first_nail:
            _skip_lines(lines, _NAILS_HEADER_LINES)
            self._first_nail = False
            return
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

    def read_asc(self, filepath: str | Path | None, parser: Parser) -> bool:
        """Feed every non-empty line of one .asc file to parser; return whether it was read."""
        if not filepath:
            return False
        try:
            data = Path(filepath).read_bytes()
        except OSError as exc:
            self.error_msg = str(exc)
            return False
        if not data:
            return False
        self._check_size(data)

        lines = iter(split_lines(data))
        for raw in lines:
            line = raw.lstrip(_WHITESPACE)
            if not line:
                continue
            parser(_AscReader(line), lines)
        return True

    def load_and_parse(self, directory: str | Path, filename: str, parser: Parser) -> bool:
        """Locate filename in directory regardless of case and parse it."""
        path = find_file_insensitive(directory, filename)
        if path is None:
            self.error_msg = f"Could not find {filename} in {directory}"
            return False
        return self.read_asc(path, parser)