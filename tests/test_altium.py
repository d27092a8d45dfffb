import pytest

from boardview.altium import ADFile, read_item
from boardview.board import BoardFormatError, PartMountingSide, PartType, PinSide, Point

SAMPLE = b"\r\n".join(
    [
        b"|RECORD=Board|KIND=Protel_Advanced_PCB|",
        b"|RECORD=Net|ID=0|NAME=GND|",
        b"|RECORD=Net|ID=1|NAME=VCC|",
        b"|RECORD=Component|ID=0|LAYER=TOP|X=100|Y=200|ROTATION=0|SOURCEDESIGNATOR=R1|SOURCEDESCRIPTION=Resistor|",
        b"|RECORD=Component|ID=1|LAYER=BOTTOM|X=0|Y=0|ROTATION=90|",
        b"|RECORD=Pad|NET=1|NAME=2|COMPONENT=0|X=110|Y=200|XSIZE=20|YSIZE=10|LAYER=TOP|",
        b"|RECORD=Pad|NAME=1|COMPONENT=0|X=90|Y=200|XSIZE=20|YSIZE=30|LAYER=MULTILAYER|",
        b"|RECORD=Track|LAYER=KEEPOUT|X1=0|Y1=0|X2=1000|Y2=0|",
        b"",
    ]
)


@pytest.fixture
def board():
    return ADFile(SAMPLE)


def test_read_item():
    assert read_item(b"  GND|rest") == "GND"
    assert read_item("abc def") == "abc"
    assert read_item("") == ""


def test_verify_format():
    assert ADFile.verify_format(SAMPLE)
    assert not ADFile.verify_format(SAMPLE + b"Binary")
    assert not ADFile.verify_format(b"|RECORD=Net|ID=0|NAME=GND|")


def test_nets_include_nc(board):
    assert [net.name for net in board.ad_nets] == ["GND", "VCC", "NC"]
    assert [net.id for net in board.ad_nets] == [1, 2, 3]


def test_components(board):
    first, second = board.ad_parts
    assert first.name == "R1"
    assert first.description == "Resistor"
    assert first.layer == "TOP"
    assert (first.x, first.y) == (100.0, 200.0)
    assert second.name == "UNKNOWN-2"
    assert second.orientation == 90.0


def test_pads(board):
    first, second = board.ad_pads
    assert first.snum == "2"
    assert (first.x, first.y) == (110.0, 200.0)
    assert first.radius == 5.0
    assert first.type == 0
    assert second.type == 1
    assert second.net_id == 0
    assert second.radius == min(second.x_size, second.y_size) / 2


def test_parts(board):
    assert [part.name for part in board.parts] == ["R1", "UNKNOWN-2"]
    assert board.parts[0].mounting_side is PartMountingSide.TOP
    assert board.parts[0].part_type is PartType.THROUGH_HOLE
    assert board.parts[1].mounting_side is PartMountingSide.BOTTOM
    assert board.parts[1].part_type is PartType.SMD
    assert board.parts[0].end_of_pins == 2
    assert board.parts[1].end_of_pins == 2


def test_pins_sorted_and_nets_resolved(board):
    assert [pin.snum for pin in board.pins] == ["1", "2"]
    assert [pin.net for pin in board.pins] == ["NC", "VCC"]
    assert board.pins[0].pos == Point(90, 200)
    assert all(pin.part == board.ad_parts[0].part_id for pin in board.pins)
    assert all(pin.side is PinSide.TOP for pin in board.pins)


def test_keepout_track_outline(board):
    assert board.outline_segments == [(Point(0, 0), Point(1000, 0))]


def test_counts_and_valid(board):
    assert board.valid is True
    assert board.num_parts == len(board.parts)
    assert board.num_pins == len(board.pins)
    assert board.num_nails == 0


def test_other_layer_track_keeps_track_block():
    data = b"\n".join(
        [
            b"|RECORD=Track|LAYER=TOP|X1=1|Y1=1|X2=2|Y2=2|",
            b"|LAYER=KEEPOUT|X1=5|Y1=5|X2=6|Y2=6|",
        ]
    )
    board = ADFile(data)
    assert board.outline_segments == [(Point(5, 5), Point(6, 6))]


def test_overlay_track_ends_block():
    data = b"\n".join(
        [
            b"|RECORD=Track|LAYER=TOPOVERLAY|X1=1|Y1=1|X2=2|Y2=2|",
            b"|LAYER=KEEPOUT|X1=5|Y1=5|X2=6|Y2=6|",
        ]
    )
    board = ADFile(data)
    assert board.outline_segments == []


def test_keepout_arc_segments_are_connected():
    data = b"|RECORD=Arc|LAYER=KEEPOUT|LOCATION.X=0|LOCATION.Y=0|RADIUS=100|STARTANGLE=0|ENDANGLE=90|\n"
    board = ADFile(data)
    segments = board.outline_segments
    assert len(segments) > 1
    assert segments[0][0] == Point(100, 0)
    assert segments[-1][1] == Point(0, 100)
    for (_, end), (start, _) in zip(segments, segments[1:]):
        assert end == start


def test_non_keepout_arc_ignored():
    data = b"|RECORD=Arc|LAYER=TOP|LOCATION.X=0|LOCATION.Y=0|RADIUS=100|STARTANGLE=0|ENDANGLE=90|\n"
    assert ADFile(data).outline_segments == []


def test_negative_track_component_raises():
    data = b"|RECORD=Track|LAYER=KEEPOUT|COMPONENT=-3|X1=0|Y1=0|X2=1|Y2=1|\n"
    with pytest.raises(BoardFormatError):
        ADFile(data)


def test_net_without_name_raises():
    with pytest.raises(BoardFormatError):
        ADFile(b"|RECORD=Net|ID=0|\n")


def test_pad_without_component_is_dropped():
    data = b"|RECORD=Pad|NET=0|NAME=1|X=1|Y=1|\n"
    board = ADFile(data)
    assert board.ad_pads == []
    assert [net.name for net in board.ad_nets] == ["NC"]


def test_too_small_raises():
    with pytest.raises(BoardFormatError):
        ADFile(b"|ID")