"""
Tests for quarter parsing and window resolution.
"""

from datetime import date

import pytest

from revenue_analytics.errors import InvalidQuarterError, ValidationError
from revenue_analytics.quarters import (
    QUARTER_LABELS,
    Quarter,
    month_range,
    parse_quarter,
    resolve_window,
)


class TestParseQuarter:
    """Test validation of raw (quarter, year) input."""

    def test_accepts_canonical_input(self):
        """Test that a well-formed pair parses."""
        quarter = parse_quarter('Q3', 2024)

        assert quarter == Quarter('Q3', 2024)

    def test_accepts_string_year(self):
        assert parse_quarter('Q2', '2025') == Quarter('Q2', 2025)

    @pytest.mark.parametrize('label', ['Q5', 'Q0', '', 'first', None, 'q1', ' Q1 ', 'Q1 '])
    def test_rejects_unknown_quarter(self, label):
        """Test that unknown labels are rejected, never defaulted."""
        with pytest.raises(InvalidQuarterError) as exc_info:
            parse_quarter(label, 2025)

        assert exc_info.value.context['quarter'] == label

    @pytest.mark.parametrize('year', ['abcd', '', '20250', ' 2025 ', '٢٠٢٥', 99, 10000, True, None, 2025.0])
    def test_rejects_invalid_year(self, year):
        """Test that anything but a four-digit year is rejected."""
        with pytest.raises(InvalidQuarterError):
            parse_quarter('Q1', year)

    def test_invalid_quarter_is_validation_error(self):
        """Test that the error sits in the input-error branch."""
        with pytest.raises(ValidationError):
            parse_quarter('Q9', 2025)


class TestQuarterRanges:
    """Test quarter date ranges and months."""

    def test_q1_range_and_months(self):
        quarter = Quarter('Q1', 2025)

        assert quarter.date_range.start == date(2025, 1, 1)
        assert quarter.date_range.end == date(2025, 3, 31)
        assert quarter.months == ['2025-01', '2025-02', '2025-03']
        assert quarter.display == 'Q1 2025'

    @pytest.mark.parametrize('label', QUARTER_LABELS)
    def test_months_span_exactly_the_range(self, label):
        """Test that the three months cover [start, end] exactly."""
        quarter = Quarter(label, 2024)
        rng = quarter.date_range

        assert rng.start <= rng.end
        assert len(quarter.months) == 3
        assert month_range(quarter.months[0]).start == rng.start
        assert month_range(quarter.months[-1]).end == rng.end

    def test_q4_ends_on_december_31(self):
        assert Quarter('Q4', 2024).date_range.end == date(2024, 12, 31)


class TestComparablePeriods:
    """Test previous-quarter, year-ago and trailing month resolution."""

    def test_previous_of_q1_wraps_year(self):
        assert Quarter('Q1', 2025).previous() == Quarter('Q4', 2024)

    @pytest.mark.parametrize('label,expected', [('Q2', 'Q1'), ('Q3', 'Q2'), ('Q4', 'Q3')])
    def test_previous_same_year(self, label, expected):
        assert Quarter(label, 2025).previous() == Quarter(expected, 2025)

    def test_year_ago(self):
        assert Quarter('Q3', 2025).year_ago() == Quarter('Q3', 2024)

    def test_trailing_months_wrap_year(self):
        """Test that Q1 2025 trails back into Q4 2024."""
        assert Quarter('Q1', 2025).trailing_months() == [
            '2024-10',
            '2024-11',
            '2024-12',
            '2025-01',
            '2025-02',
            '2025-03',
        ]

    @pytest.mark.parametrize('label', QUARTER_LABELS)
    def test_trailing_months_chronological(self, label):
        months = Quarter(label, 2025).trailing_months()

        assert len(months) == 6
        assert months == sorted(months)
        assert months[-1] == Quarter(label, 2025).months[-1]


class TestResolveWindow:
    """Test the resolved window bundle."""

    def test_window_contents(self):
        window = resolve_window(Quarter('Q2', 2025))

        assert window.label == 'Q2 2025'
        assert window.current.start == date(2025, 4, 1)
        assert window.previous.start == date(2025, 1, 1)
        assert window.year_ago.end == date(2024, 6, 30)
        assert window.months == ['2025-04', '2025-05', '2025-06']
        assert window.reference_date == date(2025, 6, 30)


class TestMonthRange:
    """Test calendar month bounds."""

    def test_leap_february(self):
        assert month_range('2024-02').end == date(2024, 2, 29)

    def test_common_february(self):
        assert month_range('2025-02').end == date(2025, 2, 28)

    def test_contains(self):
        rng = month_range('2025-04')

        assert rng.contains(date(2025, 4, 30))
        assert not rng.contains(date(2025, 5, 1))
