import pytest

from boardview.bdv import BDVFile, decode_bdv
from boardview.board import BoardFormatError, PartMountingSide, PinSide, Point


def _encode(lines):
    plain = ("\r\n".join(lines) + "\r\n").encode("ascii")
    return decode_bdv(plain)


FILLER8 = ["x"] * 8
FILLER7 = ["x"] * 7

SAMPLE = (
    ["<<format.asc>>"]
    + FILLER8
    + ["1 2", "0 0", "<<pins.asc>>"]
    + FILLER8
    + [
        "Part U1 (T)",
        "1 A 0 0 1 GND 5",
        "2 B 0 0 1 VCC 6",
        "Part U2 (B)",
        "1 A 0 0 1 NET3 7",
        "<<nails.asc>>",
    ]
    + FILLER7
    + ["$9 0 0 1 G (T) 4 GND", "$8 0 0 1 G (B) 5 VCC"]
)


def test_decode_is_involution_on_text():
    plain = b"<<pins.asc>>\r\nPart U1 (T)\r\n1 A 0 0 1 GND 5\r\n"
    assert decode_bdv(decode_bdv(plain)) == plain


def test_decode_keeps_line_breaks():
    encoded = decode_bdv(b"abc\r\ndef\r\n")
    assert encoded[3:5] == b"\r\n"
    assert encoded[8:10] == b"\r\n"
    assert encoded[:3] != b"abc"


def test_decode_first_key():
    assert decode_bdv(b"A") == b"_"


def test_parse_format_points():
    board = BDVFile(_encode(SAMPLE))
    assert board.format == [Point(1000, 2000), Point(0, 0)]
    assert board.num_format == 2


def test_parse_parts_and_pins():
    board = BDVFile(_encode(SAMPLE))
    assert [p.name for p in board.parts] == ["U1", "U2"]
    assert [p.mounting_side for p in board.parts] == [PartMountingSide.TOP, PartMountingSide.BOTTOM]
    assert [p.end_of_pins for p in board.parts] == [2, 3]
    assert [pin.part for pin in board.pins] == [1, 1, 2]
    assert [pin.net for pin in board.pins] == ["GND", "VCC", "NET3"]
    assert [pin.probe for pin in board.pins] == [5, 6, 7]
    assert [pin.side for pin in board.pins] == [PinSide.TOP, PinSide.TOP, PinSide.BOTTOM]
    assert board.num_parts == 2
    assert board.num_pins == 3


def test_parse_nails():
    board = BDVFile(_encode(SAMPLE))
    assert [n.probe for n in board.nails] == [9, 8]
    assert [n.side for n in board.nails] == [PartMountingSide.TOP, PartMountingSide.BOTTOM]
    assert [n.net for n in board.nails] == ["GND", "VCC"]
    assert board.num_nails == 2
    assert board.valid is True


def test_without_sections_is_invalid():
    board = BDVFile(_encode(["hello", "world"]))
    assert board.valid is False
    assert board.parts == []


def test_pin_before_part_raises():
    lines = ["<<pins.asc>>"] + FILLER8 + ["1 A 0 0 1 GND 5"]
    with pytest.raises(BoardFormatError):
        BDVFile(_encode(lines))


def test_too_small_raises():
    with pytest.raises(BoardFormatError):
        BDVFile(b"ab")


def test_verify_format():
    assert BDVFile.verify_format(b"xx dd:1.3?,r?-=bb yy")
    assert BDVFile.verify_format(b"<<format.asc>>\n<<pins.asc>>")
    assert not BDVFile.verify_format(b"<<format.asc>> only")