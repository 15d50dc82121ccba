"""Tests for record identifiers."""

from datetime import datetime

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from taskstate.core.record_id import (
    find_record_id,
    format_record_id,
    generate_record_id,
    is_valid_record_id,
    parse_record_id,
)


@pytest.mark.unit
class TestFormatAndParse:
    """Tests for format_record_id and parse_record_id."""

    def test_format(self) -> None:
        """Timestamp is encoded zero-padded with the fixed prefix."""
        assert format_record_id(datetime(2026, 1, 4, 9, 5, 3)) == "task-20260104-090503"

    def test_format_drops_microseconds(self) -> None:
        """Sub-second precision is not part of the ID."""
        assert format_record_id(datetime(2026, 1, 4, 9, 5, 3, 999999)) == "task-20260104-090503"

    @pytest.mark.parametrize(
        "timestamp",
        [
            datetime(2026, 1, 4, 12, 0, 0),
            datetime(2024, 2, 29, 23, 59, 59),
            datetime(1999, 12, 31, 0, 0, 0),
            datetime(2000, 2, 29, 6, 30, 15),
            datetime(2025, 6, 30, 18, 45, 1),
        ],
    )
    def test_round_trip(self, timestamp: datetime) -> None:
        """Parsing a formatted ID returns the original timestamp."""
        assert parse_record_id(format_record_id(timestamp)) == timestamp

    @pytest.mark.parametrize(
        "record_id",
        [
            "task-20260230-120000",  # February 30
            "task-20250229-120000",  # not a leap year
            "task-20260431-120000",  # April 31
            "task-20261301-120000",  # month 13
            "task-20260001-120000",  # month 0
            "task-20260100-120000",  # day 0
            "task-20260132-120000",  # day 32
            "task-20260104-240000",  # hour 24
            "task-20260104-126000",  # minute 60
            "task-20260104-120060",  # second 60
        ],
    )
    def test_rejects_invalid_dates(self, record_id: str) -> None:
        """Out-of-range fields and impossible dates are rejected."""
        assert parse_record_id(record_id) is None
        assert is_valid_record_id(record_id) is False

    @pytest.mark.parametrize(
        "record_id",
        [
            "",
            "20260104-120000",
            "run-20260104-120000",
            "task-20260104120000",
            "task-2026014-120000",
            "task-20260104-120000-extra",
            " task-20260104-120000",
            "task-\uff12\uff10\uff12\uff160104-120000",  # full-width digits
        ],
    )
    def test_rejects_malformed(self, record_id: str) -> None:
        """Anything not matching the exact grammar is rejected."""
        assert is_valid_record_id(record_id) is False

    def test_lexicographic_order_is_chronological(self) -> None:
        """Sorting IDs as strings sorts them by creation time."""
        stamps = [
            datetime(2026, 1, 4, 12, 0, 0),
            datetime(2025, 12, 31, 23, 59, 59),
            datetime(2026, 1, 4, 9, 0, 0),
            datetime(2026, 10, 1, 0, 0, 0),
        ]
        ids = [format_record_id(s) for s in stamps]
        assert sorted(ids) == [format_record_id(s) for s in sorted(stamps)]


@pytest.mark.unit
class TestGenerateRecordId:
    """Tests for generate_record_id function."""

    def test_uses_given_time(self) -> None:
        """Explicit time is encoded."""
        assert generate_record_id(datetime(2026, 3, 1, 8, 0, 0)) == "task-20260301-080000"

    def test_defaults_to_now(self) -> None:
        """Generated ID is valid and close to the current time."""
        before = datetime.now().replace(microsecond=0)
        parsed = parse_record_id(generate_record_id())
        assert parsed is not None
        assert before <= parsed <= datetime.now()


@pytest.mark.unit
class TestFindRecordId:
    """Tests for find_record_id function."""

    def test_finds_embedded_id(self) -> None:
        """ID inside free text is extracted."""
        text = "# Current\n\nActive task: task-20260104-120000 (started Monday)\n"
        assert find_record_id(text) == "task-20260104-120000"

    def test_first_id_wins(self) -> None:
        """Only the first ID is returned."""
        text = "task-20260104-120000 then task-20260105-120000"
        assert find_record_id(text) == "task-20260104-120000"

    def test_invalid_first_id_gives_none(self) -> None:
        """A calendar-invalid first ID is not skipped over."""
        assert find_record_id("task-20260230-120000 task-20260105-120000") is None

    def test_no_id(self) -> None:
        """Text without an ID gives None."""
        assert find_record_id("nothing to see here") is None
        assert find_record_id("") is None

    def test_ignores_longer_digit_runs(self) -> None:
        """Digits running past the time field do not count as an ID."""
        assert find_record_id("task-20260104-1200001") is None


class TestRecordIdProperties:
    """Property-based tests for record IDs."""

    @given(
        timestamp=st.datetimes(
            min_value=datetime(1000, 1, 1),
            max_value=datetime(9999, 12, 31, 23, 59, 59),
        ).map(lambda d: d.replace(microsecond=0))
    )
    @settings(max_examples=200)
    def test_round_trip(self, timestamp: datetime) -> None:
        """Every calendar-valid timestamp survives format then parse."""
        record_id = format_record_id(timestamp)
        assert len(record_id) == len("task-YYYYMMDD-HHMMSS")
        assert parse_record_id(record_id) == timestamp

    @given(
        a=st.datetimes(min_value=datetime(1000, 1, 1)),
        b=st.datetimes(min_value=datetime(1000, 1, 1)),
    )
    def test_string_order_matches_time_order(self, a: datetime, b: datetime) -> None:
        """Comparing IDs as strings compares their timestamps."""
        a, b = a.replace(microsecond=0), b.replace(microsecond=0)
        assert (format_record_id(a) < format_record_id(b)) == (a < b)
