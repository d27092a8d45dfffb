import math

import pytest

from boardview.board import (
    OUTLINE_MARGIN,
    BoardFile,
    BoardFormatError,
    FieldReader,
    Nail,
    Part,
    PartMountingSide,
    Pin,
    PinSide,
    Point,
    contains,
    fix_to_utf8,
    split_lines,
)


def test_split_lines_crlf():
    assert split_lines(b"a\r\nb\nc") == [b"a", b"b", b"c"]


def test_split_lines_collapses_double_newline():
    assert split_lines(b"a\n\nb") == [b"a", b"b"]


def test_split_lines_stops_at_nul():
    assert split_lines(b"a\nb\0c\nd") == [b"a", b"b"]


def test_split_lines_empty():
    assert split_lines(b"") == [b""]


def test_fix_to_utf8_valid_and_latin1():
    assert fix_to_utf8("café".encode("utf-8")) == "café"
    assert fix_to_utf8("café".encode("latin-1")) == "café"


def test_contains():
    assert contains(b"xx BRDOUT: yy", "BRDOUT:")
    assert not contains(b"xx BRDOUT yy", b"BRDOUT:")


def test_reader_ints_and_strings():
    reader = FieldReader(b"  -99 12 GND")
    assert reader.read_int() == -99
    assert reader.read_uint() == 12
    assert reader.read_str() == "GND"
    assert reader.read_str() == ""


def test_reader_uint_rejects_negative():
    reader = FieldReader("-5")
    with pytest.raises(BoardFormatError):
        reader.read_uint()


def test_reader_int_without_digits_does_not_advance():
    reader = FieldReader("abc")
    assert reader.read_int() == 0
    assert reader.read_str() == "abc"


def test_reader_double_skip_and_rest():
    reader = FieldReader("  1.5e2x BRDOUT: rest of line")
    assert reader.read_double() == 1.5e2
    assert reader.read_str() == "x"
    reader.skip(7)
    assert reader.rest() == " rest of line"


def test_add_nails_as_pins():
    board = BoardFile()
    board.parts = [Part(name="a"), Part(name="b")]
    board.nails = [
        Nail(probe=1, pos=Point(1, 2), side=PartMountingSide.TOP, net="N1"),
        Nail(probe=2, side=PartMountingSide.BOTTOM),
        Nail(probe=3, side=PartMountingSide.BOTH),
    ]
    board.add_nails_as_pins()
    assert [pin.part for pin in board.pins] == [2, 1, 2]
    assert [pin.side for pin in board.pins] == [PinSide.TOP, PinSide.BOTTOM, PinSide.BOTH]
    assert board.pins[0].net == "N1"
    assert board.pins[0].pos == Point(1, 2)
    assert board.pins[1].net == "UNCONNECTED"
    assert [pin.probe for pin in board.pins] == [1, 2, 3]


def test_arc_to_segments_forms_chain():
    board = BoardFile()
    p1, p2, pc = Point(100, 0), Point(0, 100), Point(0, 0)
    segments = board.arc_to_segments(0.0, math.pi / 2, 100, p1, p2, pc)
    assert segments[0][0] == p1
    assert segments[-1][1] == p2
    for (_, end), (start, _) in zip(segments, segments[1:]):
        assert end == start
    for start, _ in segments:
        assert board.distance(start, pc) <= 100


def test_arc_to_segments_short_arc():
    board = BoardFile()
    p1, p2 = Point(10, 0), Point(9, 1)
    assert board.arc_to_segments(0.0, 0.05, 10, p1, p2, Point(0, 0)) == [(p1, p2)]


def test_distance():
    assert BoardFile().distance(Point(0, 0), Point(3, 4)) == 5.0


def test_gen_outline():
    board = BoardFile()
    board.pins = [Pin(pos=Point(0, 0)), Pin(pos=Point(10, 5))]
    board.gen_outline()
    assert len(board.format) == 5
    assert board.format[0] == board.format[-1]
    assert board.format[0] == Point(0 - OUTLINE_MARGIN, 0 - OUTLINE_MARGIN)
    assert board.format[2] == Point(10 + OUTLINE_MARGIN, 5 + OUTLINE_MARGIN)


def test_gen_outline_without_pins():
    with pytest.raises(BoardFormatError):
        BoardFile().gen_outline()


def test_update_counts():
    board = BoardFile()
    board.parts = [Part()]
    board.pins = [Pin(), Pin()]
    board.nails = [Nail()]
    board.update_counts()
    assert (board.num_parts, board.num_pins, board.num_format, board.num_nails) == (1, 2, 0, 1)


def test_pin_ordering():
    pins = [Pin(part=2, snum="1"), Pin(part=1, snum="b"), Pin(part=1, snum="a")]
    ordered = sorted(pins)
    assert [(p.part, p.snum) for p in ordered] == [(1, "a"), (1, "b"), (2, "1")]