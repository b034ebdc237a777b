"""Tests for shared input validation helpers."""

from datetime import datetime, timezone

import pytest

from marketview.market.errors import InvalidTimeFormatError
from marketview.market.interface import parse_rfc3339, to_unix_ns

NEW_YEAR_2024_NS = 1_704_067_200_000_000_000


class TestParseRfc3339:
    def test_utc_z(self):
        """Test that a Z timestamp parses to epoch nanoseconds."""
        assert parse_rfc3339("2024-01-01T00:00:00Z", "start") == NEW_YEAR_2024_NS

    def test_offset_normalized_to_utc(self):
        """Test that a numeric offset is applied before conversion."""
        assert parse_rfc3339("2024-01-01T02:00:00+02:00", "start") == NEW_YEAR_2024_NS
        assert parse_rfc3339("2023-12-31T19:00:00-05:00", "start") == NEW_YEAR_2024_NS

    def test_lowercase_and_space_separators(self):
        """Test that lowercase t/z and a space separator are accepted."""
        assert parse_rfc3339("2024-01-01t00:00:00z", "start") == NEW_YEAR_2024_NS
        assert parse_rfc3339("2024-01-01 00:00:00Z", "start") == NEW_YEAR_2024_NS

    def test_microsecond_fraction(self):
        """Test that a six-digit fraction is kept exactly."""
        assert parse_rfc3339("2024-01-01T00:00:00.500000Z", "start") == NEW_YEAR_2024_NS + 500_000_000

    def test_nanosecond_fraction_is_not_truncated(self):
        """Test that a nine-digit fraction keeps full nanosecond precision."""
        assert parse_rfc3339("2024-01-01T00:00:00.123456789Z", "start") == 1_704_067_200_123_456_789

    def test_short_and_long_fractions(self):
        """Test that short fractions are scaled and digits past nanoseconds are dropped."""
        assert parse_rfc3339("2024-01-01T00:00:00.5Z", "start") == NEW_YEAR_2024_NS + 500_000_000
        assert parse_rfc3339("2024-01-01T00:00:00.0000000019Z", "start") == NEW_YEAR_2024_NS + 1

    @pytest.mark.parametrize(
        "value",
        [
            "invalid-time",
            "",
            "2024-01-01",
            "2024-01-01T00:00:00",
            "2024-13-01T00:00:00Z",
            "yesterday at noon",
            "2024-01-01T00:00:00+0000",
            "2024-01-01T00:00:00+00",
            "2024-01-01T00:00Z",
            "2024-01-01T00:00:00.Z",
        ],
    )
    def test_rejects_non_rfc3339(self, value):
        """Test that anything short of a full RFC3339 date-time is rejected."""
        with pytest.raises(InvalidTimeFormatError) as exc_info:
            parse_rfc3339(value, "start_rfc3339")
        assert "start_rfc3339" in str(exc_info.value)

    def test_error_message_names_value(self):
        """Test that the error reports the field and the rejected value."""
        with pytest.raises(InvalidTimeFormatError) as exc_info:
            parse_rfc3339("invalid-time", "end_rfc3339")
        assert str(exc_info.value) == "Invalid time format: end_rfc3339: 'invalid-time' is not an RFC3339 timestamp"


class TestToUnixNs:
    def test_epoch(self):
        """Test that the epoch itself is zero."""
        assert to_unix_ns(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0

    def test_exact_nanoseconds(self):
        """Test that microseconds convert without float rounding."""
        moment = datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)
        assert to_unix_ns(moment) == 1_704_067_200_123_456_000
