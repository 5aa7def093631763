"""Tests for tubemp3.utils.formatting module."""

from __future__ import annotations

from tubemp3.utils.formatting import format_duration, sanitize_filename


class TestSanitizeFilename:
    def test_example_title(self) -> None:
        assert sanitize_filename("My/Video: Title?") == "My_Video_ Title_"

    def test_every_invalid_char_replaced_one_for_one(self) -> None:
        assert sanitize_filename('a/b\\c:d*e?f"g<h>i|j') == "a_b_c_d_e_f_g_h_i_j"

    def test_other_characters_preserved(self) -> None:
        assert sanitize_filename("Live @ 東京 (2024) - Part 1.") == "Live @ 東京 (2024) - Part 1."

    def test_empty(self) -> None:
        assert sanitize_filename("") == ""


class TestFormatDuration:
    def test_seconds_only(self) -> None:
        assert format_duration(45) == "0:45"

    def test_minutes_and_seconds(self) -> None:
        assert format_duration(212) == "3:32"

    def test_hours(self) -> None:
        assert format_duration(3725) == "1:02:05"

    def test_float_and_none(self) -> None:
        assert format_duration(90.7) == "1:30"
        assert format_duration(None) == "0:00"
