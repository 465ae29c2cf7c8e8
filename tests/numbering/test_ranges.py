import logging

import pytest

from slatelog.numbering.errors import InvalidFileNumber
from slatelog.numbering.ranges import (
    BLANK,
    Range,
    Single,
    expand,
    format_value,
    highest_in,
    lower_bound,
    overlaps,
    parse_field,
    read_value,
    shifted,
    slot,
    span,
    upper_bound,
    write_value,
)


def test_parse_single_and_range():
    assert parse_field("0007") == Single(7)
    assert parse_field(" 12 ") == Single(12)
    assert parse_field("0001-0005") == Range(1, 5)
    assert parse_field("0003 – 0004") == Range(3, 4)


def test_parse_blank_values():
    assert parse_field(None) is BLANK
    assert parse_field("") is BLANK
    assert parse_field("   ") is BLANK


@pytest.mark.parametrize("raw", ["12a", "1-2-3", "-5", "abc", "0001-"])
def test_parse_rejects_garbage(raw):
    with pytest.raises(InvalidFileNumber):
        parse_field(raw)


def test_reversed_range_bounds_are_normalized():
    value = parse_field("0010-0005")
    assert lower_bound(value) == 5
    assert upper_bound(value) == 10
    assert expand(value) == [5, 6, 7, 8, 9, 10]


def test_blank_has_no_bounds():
    with pytest.raises(ValueError):
        lower_bound(BLANK)
    assert expand(BLANK) == []
    assert span(BLANK) == 0


def test_format_pads_to_four_digits():
    assert format_value(Single(3)) == "0003"
    assert format_value(Range(1, 12)) == "0001-0012"
    assert format_value(BLANK) == ""
    assert format_value(parse_field("0042")) == "0042"


def test_overlaps_is_symmetric_and_inclusive():
    pairs = [
        (Range(5, 10), Single(8), True),
        (Range(5, 10), Single(10), True),
        (Range(5, 10), Single(11), False),
        (Range(1, 3), Range(3, 6), True),
        (Single(4), BLANK, False),
    ]
    for a, b, expected in pairs:
        assert overlaps(a, b) is expected
        assert overlaps(b, a) is expected


def test_shifted_and_slot():
    assert shifted(Single(3), 1) == Single(4)
    assert shifted(Range(3, 5), 3) == Range(6, 8)
    assert shifted(BLANK, 1) is BLANK
    assert slot(3, 1) == Single(3)
    assert slot(3, 3) == Range(3, 5)
    assert span(Range(3, 5)) == 3


def test_read_prefers_stable_range_keys():
    fields = {"cameraFile1": "0001", "camera1_from": "0004", "camera1_to": "0006"}
    assert read_value(fields, "cameraFile1") == Range(4, 6)


def test_read_single_camera_uses_camera1_keys():
    assert read_value({"cameraFile": "0002-0003"}, "cameraFile") == Range(2, 3)
    assert read_value({"camera1_from": "0008", "camera1_to": "0009"}, "cameraFile") == Range(8, 9)


def test_read_unparseable_history_value_is_blank(caplog):
    with caplog.at_level(logging.WARNING):
        assert read_value({"soundFile": "n/a"}, "soundFile") is BLANK
    assert "soundFile" in caplog.text


def test_write_value_keeps_keys_consistent():
    fields = write_value({}, "soundFile", Range(1, 5))
    assert fields == {"soundFile": "0001-0005", "sound_from": "0001", "sound_to": "0005"}

    fields = write_value(fields, "soundFile", Single(9))
    assert fields == {"soundFile": "0009"}

    assert write_value(fields, "soundFile", BLANK) == {}


def test_highest_in_scans_display_and_stable_keys():
    fields = {"cameraFile2": "0004", "camera2_from": "0004", "camera2_to": "0009"}
    assert highest_in(fields, "cameraFile2") == 9
    assert highest_in({}, "cameraFile2") == 0
