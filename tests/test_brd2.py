import pytest

from boardview.board import BoardFormatError, PartMountingSide, PartType, PinSide, Point
from boardview.brd2 import BRD2File

SAMPLE = b"""BRDOUT: 4 100 50
0 0
100 0
100 50
0 50
NETS: 2
1 GND
2 VCC
PARTS: 2
U1 10 10 20 20 0 1
R1 30 5 40 15 2 2
PINS: 3
12 12 1 1
18 18 2 1
35 10 1 2
NAILS: 2
7 50 20 1 1
8 60 30 9 2
"""

DIP_SAMPLE = b"""BRDOUT: 0 100 100
NETS: 1
1 SIG
PARTS: 1
J1 0 0 10 10 0 1
PINS: 2
1 1 1 0
2 2 1 0
NAILS: 0
"""


def test_verify_format():
    assert BRD2File.verify_format(SAMPLE)
    assert not BRD2File.verify_format(b"BRDOUT: only")


def test_parse_counts_and_dummy_parts():
    board = BRD2File(SAMPLE)
    assert board.valid
    assert len(board.format) == 4
    assert len(board.parts) == 4
    assert [p.name for p in board.parts[2:]] == ["...", "..."]
    assert board.parts[2].mounting_side is PartMountingSide.BOTTOM
    assert board.parts[3].mounting_side is PartMountingSide.TOP
    assert len(board.pins) == 5


def test_pins_assigned_to_parts():
    board = BRD2File(SAMPLE)
    assert [p.part for p in board.pins[:3]] == [1, 1, 2]
    assert board.pins[0].net == "GND"
    assert board.pins[1].net == "VCC"
    assert board.pins[0].pos == Point(12, 12)
    assert board.pins[2].pos.y == 40
    assert board.parts[0].part_type is PartType.SMD
    assert board.parts[0].mounting_side is PartMountingSide.TOP
    assert board.parts[1].p1.y == 45


def test_nails():
    board = BRD2File(SAMPLE)
    assert board.nails[0].net == "GND"
    assert board.nails[0].side is PartMountingSide.TOP
    assert board.nails[0].pos == Point(50, 20)
    assert board.nails[1].net == "UNCONNECTED"
    assert board.nails[1].side is PartMountingSide.BOTTOM
    assert board.nails[1].pos.y == 20
    nail_pins = board.pins[3:]
    assert [p.part for p in nail_pins] == [4, 3]
    assert [p.side for p in nail_pins] == [PinSide.TOP, PinSide.BOTTOM]
    assert [p.probe for p in nail_pins] == [7, 8]


def test_dip_part():
    board = BRD2File(DIP_SAMPLE)
    assert board.parts[0].part_type is PartType.THROUGH_HOLE
    assert board.parts[0].mounting_side is PartMountingSide.BOTH
    assert all(p.part == 1 for p in board.pins)


def test_unknown_pin_net_is_empty():
    data = SAMPLE.replace(b"18 18 2 1", b"18 18 5 1")
    assert BRD2File(data).pins[1].net == ""


def test_net_count_mismatch():
    data = SAMPLE.replace(b"NETS: 2", b"NETS: 3")
    with pytest.raises(BoardFormatError):
        BRD2File(data)


def test_outline_point_outside_boundary():
    data = SAMPLE.replace(b"100 50\n0 50", b"100 50\n0 51")
    with pytest.raises(BoardFormatError):
        BRD2File(data)


def test_too_small():
    with pytest.raises(BoardFormatError):
        BRD2File(b"abc")