import pytest

from workout_log.durations import format_clock, format_human, parse_duration


@pytest.mark.parametrize("text,expected", [
    ("60s", 60), ("1:30", 90), ("01:05", 65), ("1m 30s", 90), ("1m30s", 90),
    ("2m", 120), ("45", 45), (" 10s ", 10),
])
def test_parse_duration_forms(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "1h", "1:3", "-5s", None])
def test_parse_duration_unrecognized_is_zero(text):
    assert parse_duration(text) == 0


def test_format_human_omits_zero_component():
    assert format_human(0) == "0s"
    assert format_human(59) == "59s"
    assert format_human(60) == "1m"
    assert format_human(90) == "1m 30s"
    assert format_human(3600) == "60m"


def test_human_durations_parse_back():
    for n in range(0, 4000):
        assert parse_duration(format_human(n)) == n


def test_format_clock_pads_seconds():
    assert format_clock(75) == "1:15"
    assert format_clock(5) == "0:05"
