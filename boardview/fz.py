"""Reader for the FZ boardview format: an RC6-encrypted pair of zlib streams."""

from __future__ import annotations

import math
import struct
import zlib
from dataclasses import dataclass, field
from typing import Sequence

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

KEY_WORDS = 44
KEY_PARITY = (
    0, 1, 1, 0, 1, 0, 1, 0, 0, 0, 1, 0, 0, 1, 1, 0, 1, 1, 0, 1, 0, 0,
    0, 1, 1, 1, 0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 1, 1, 0, 1,
)

_MASK = 0xFFFFFFFF
_ROUNDS = 20
_LOG_W = 5
_WINDOW = struct.Struct("<4I")
_ZLIB_HEADERS = (b"\x78\x9c", b"\x78\xda")
_CHUNK = 4096

_WHITESPACE = b" \t\n\r\x0b\x0c"
_CONTENT_DELIMITER = ord("!")
_DESCR_DELIMITER = ord("\t")

_MILLIMETERS = 25.4
_MIN_RADIUS = 0.5

_BLOCKS = (
    (b"REFDES", 1),
    (b"NET_NAME", 2),
    (b"TESTVIA", 3),
    (b"GRAPHIC_DATA_NAME", 4),
    (b"CLASS", 5),
    (b"LOGOInfo", 6),
    (b"UnDrawSym", 7),
)


@dataclass
class FZPartDesc:
    """One row of the parts description table."""

    partno: str = ""
    description: str = ""
    quantity: int = 0
    locations: list[str] = field(default_factory=list)
    partno2: str = ""


def fz_key_to_string(key: Sequence[int]) -> str:
    """Format a key as hexadecimal words, four per line."""
    words = [f" 0x{word & _MASK:08x}" for word in key]
    return "".join("".join(words[i : i + 4]) + "\n" for i in range(0, len(words), 4))


def check_fz_key(key: Sequence[int]) -> bool:
    """Return whether every key word has the expected parity."""
    if len(key) != KEY_WORDS:
        return False
    for word, expected in zip(key, KEY_PARITY):
        even = bin(word & _MASK).count("1") % 2 == 0
        if int(even) != expected:
            return False
    return True


def _key_words(key: Sequence[int]) -> list[int]:
    words = [word & _MASK for word in key]
    if len(words) != KEY_WORDS:
        raise ValueError(f"an FZ key has {KEY_WORDS} words, got {len(words)}")
    return words


def _rotl(value: int, shift: int) -> int:
    shift &= 31
    return ((value << shift) | (value >> (32 - shift))) & _MASK


def decode(data: bytes, key: Sequence[int]) -> bytes:
    """Decrypt data with RC6 run as a byte-wise cipher-feedback stream."""
    words = _key_words(key)
    a = b = c = d = 0
    window = bytearray(16)
    out = bytearray()
    for byte in bytes(data):
        b = (b + words[0]) & _MASK
        d = (d + words[1]) & _MASK
        for i in range(1, _ROUNDS + 1):
            t = _rotl((b * (2 * b + 1)) & _MASK, _LOG_W)
            u = _rotl((d * (2 * d + 1)) & _MASK, _LOG_W)
            a = (_rotl(a ^ t, u) + words[2 * i]) & _MASK
            c = (_rotl(c ^ u, t) + words[2 * i + 1]) & _MASK
            a, b, c, d = b, c, d, a
        a = (a + words[2 * _ROUNDS + 2]) & _MASK
        out.append(byte ^ (a & 0xFF))

        # The ciphertext byte is shifted into the feedback register.
        del window[0]
        window.append(byte)
        a, b, c, d = _WINDOW.unpack(window)
    return bytes(out)


def split(data: bytes) -> tuple[bytes, bytes]:
    """Split decoded data into its compressed content and description streams."""
    data = bytes(data)
    size = len(data)
    if size < 4:
        raise BoardFormatError("FZ data is too short to split")
    length = int.from_bytes(data[-4:], "little", signed=True)
    if length < 0 or length > size:
        raise BoardFormatError(f"invalid FZ description length: {length}")
    content_size = size - length + 4
    return data[4 : 4 + content_size], data[content_size : content_size + length]


def decompress(data: bytes) -> bytes:
    """Inflate a zlib stream, keeping whatever came out before any corruption."""
    data = bytes(data)
    if not data:
        raise BoardFormatError("no compressed data")
    inflater = zlib.decompressobj()
    out = bytearray()
    try:
        for start in range(0, len(data), _CHUNK):
            out += inflater.decompress(data[start : start + _CHUNK])
            if inflater.eof:
                break
        out += inflater.flush()
    except zlib.error as exc:
        if not out:
            raise BoardFormatError(f"cannot decompress FZ data: {exc}") from exc
    return bytes(out)


class _Reader(FieldReader):
    """Field reader for fields separated by a single delimiter character."""

    def __init__(self, text: bytes, delimiter: int) -> None:
        super().__init__(text)
        self._delimiter = delimiter
        self._skippable = bytes(c for c in _WHITESPACE if c != delimiter)

    def _consume_delimiter(self) -> None:
        if self._pos < len(self._buf) and self._buf[self._pos] == self._delimiter:
            self._pos += 1

    def read_int(self) -> int:
        value = super().read_int()
        self._consume_delimiter()
        return value

    def read_uint(self) -> int:
        value = self.read_int()
        if value < 0:
            raise BoardFormatError(f"expected a non-negative integer, got {value}")
        return value

    def read_double(self) -> float:
        value = super().read_double()
        self._consume_delimiter()
        return value

    def read_str(self) -> str:
        buf = self._buf
        size = len(buf)
        pos = self._pos
        while pos < size and buf[pos] in self._skippable:
            pos += 1
        end = buf.find(bytes([self._delimiter]), pos)
        if end < 0:
            end = size
        self._pos = min(end + 1, size)
        return fix_to_utf8(buf[pos:end])


def _block_of(header: bytes) -> int:
    return next((block for prefix, block in _BLOCKS if header.startswith(prefix)), -1)


class FZFile(BoardFile):
    """A parsed FZ board file; key is the 44-word RC6 key."""

    def __init__(self, data: bytes, key: Sequence[int]) -> None:
        super().__init__()
        self.key = tuple(key)
        self.parts_desc: list[FZPartDesc] = []
        self._multiplier = 1.0
        self._parts_id: dict[str, int] = {}

        if not check_fz_key(self.key):
            self.error_msg = "Invalid FZ key\nFZ Key:\n" + fz_key_to_string(self.key)
            return

        data = bytes(data)
        self._check_size(data)
        # Some files are compressed but not encrypted.
        if data[4:6] not in _ZLIB_HEADERS:
            data = decode(data, self.key)

        content, descr = split(data)
        content = decompress(content)
        descr = decompress(descr)

        # Some boards use commas as decimal separators.
        block = self._parse_content(content.replace(b",", b"."))
        self._parse_descr(descr)
        self._apply_descriptions()

        for index, pin in enumerate(self.pins):
            if pin.part > 0:
                self.parts[pin.part - 1].end_of_pins = index

        self.gen_outline()
        self.update_counts()
        self.valid = block != 0
        if not self.valid:
            self.error_msg += "FZ Key:\n" + fz_key_to_string(self.key)

    def _parse_content(self, content: bytes) -> int:
        block = 0
        for line in self._content_lines(content):
            if line == b"UNIT:millimeters":
                self._multiplier = _MILLIMETERS
            kind = line[:1]
            if kind == b"A":
                block = _block_of(line[2:])
                continue
            if kind != b"S":
                continue
            reader = _Reader(line[2:], _CONTENT_DELIMITER)
            if block == 1:
                self._parse_part(reader)
            elif block == 2:
                self._parse_pin(reader)
            elif block == 3:
                reader.skip(2)
                self._parse_nail(reader)
        return block

    def _scale(self, value: float) -> int:
        scaled = value * self._multiplier
        if not math.isfinite(scaled):
            raise BoardFormatError(f"coordinate is not a finite number: {value}")
        return int(scaled)

    def _parse_part(self, reader: _Reader) -> None:
        name = reader.read_str()
        reader.read_str()  # insertion code
        reader.read_str()  # symbol name
        mirror = reader.read_str()
        reader.read_str()  # rotation
        side = PartMountingSide.TOP if mirror == "YES" else PartMountingSide.BOTTOM
        self.parts.append(Part(name=name, part_type=PartType.SMD, mounting_side=side, end_of_pins=0))
        self._parts_id[name] = len(self.parts)

    def _parse_pin(self, reader: _Reader) -> None:
        net = reader.read_str()
        part_name = reader.read_str()
        if part_name not in self._parts_id:
            raise BoardFormatError(f"pin refers to an unknown part: {part_name}")
        part = self._parts_id[part_name]
        snum = reader.read_str()
        reader.read_str()  # pin name
        x = self._scale(reader.read_double())
        y = self._scale(reader.read_double())
        probe = reader.read_uint()
        radius = max(reader.read_double() / 100, _MIN_RADIUS)
        self.pins.append(
            Pin(
                pos=Point(x, y),
                probe=probe,
                part=part,
                net=net,
                snum=snum,
                radius=radius * self._multiplier,
                side=PinSide[self.parts[part - 1].mounting_side.name],
            )
        )

    def _parse_nail(self, reader: _Reader) -> None:
        net = reader.read_str()
        reader.read_str()  # reference designator
        reader.read_int()  # pin number
        reader.read_str()  # pin name
        x = self._scale(reader.read_double())
        y = self._scale(reader.read_double())
        location = reader.read_str()
        reader.read_double()  # radius
        side = PartMountingSide.TOP if location == "T" else PartMountingSide.BOTTOM
        self.nails.append(Nail(pos=Point(x, y), side=side, net=net))

    def _parse_descr(self, descr: bytes) -> None:
        # The first two lines hold the board description and the column names.
        for raw in split_lines(descr)[2:]:
            line = raw.lstrip(_WHITESPACE)
            if not line or line.startswith(b"s"):
                continue
            reader = _Reader(line, _DESCR_DELIMITER)
            self.parts_desc.append(
                FZPartDesc(
                    partno=reader.read_str(),
                    description=reader.read_str(),
                    quantity=reader.read_uint(),
                    locations=reader.read_str().split(),
                    partno2=reader.read_str(),
                )
            )

    def _apply_descriptions(self) -> None:
        for desc in self.parts_desc:
            for name in desc.locations:
                index = self._parts_id.get(name)
                if index is not None:
                    self.parts[index - 1].mfgcode = desc.description