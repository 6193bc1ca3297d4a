"""Tests for timerdeck.core.units - Time units."""

import pytest

from timerdeck.core.units import (
    MS_IN_DAY,
    MS_IN_HOUR,
    MS_IN_MIN,
    Unit,
    convert,
    ms_to_unit,
    normalize_range,
    unit_to_ms,
)


class TestUnit:
    """Test the Unit enum."""

    def test_order(self):
        """Units are ordered smallest to largest."""
        assert Unit.ordered() == (Unit.MS, Unit.S, Unit.M, Unit.H, Unit.D)
        assert Unit.MS < Unit.S < Unit.M < Unit.H < Unit.D
        assert Unit.D >= Unit.D
        assert not Unit.H > Unit.D

    def test_values(self):
        """Unit values are their short names."""
        assert Unit("ms") is Unit.MS
        assert Unit.D.value == "d"

    def test_position_and_size(self):
        """Position and size are derived from the order."""
        assert Unit.MS.position == 0
        assert Unit.D.position == 4
        assert Unit.S.size_ms == 1000
        assert Unit.H.size_ms == MS_IN_HOUR

    def test_ratio(self):
        """Ratio is the count of a unit in the next larger one."""
        assert Unit.MS.ratio == 1000
        assert Unit.S.ratio == 60
        assert Unit.M.ratio == 60
        assert Unit.H.ratio == 24
        assert Unit.D.ratio is None

    def test_neighbours(self):
        """larger/smaller step through the order and stop at the ends."""
        assert Unit.S.larger is Unit.M
        assert Unit.S.smaller is Unit.MS
        assert Unit.D.larger is None
        assert Unit.MS.smaller is None

    @pytest.mark.parametrize(
        "token,unit",
        [
            ("d", Unit.D),
            ("days", Unit.D),
            ("hr", Unit.H),
            ("hours", Unit.H),
            ("min", Unit.M),
            ("minute", Unit.M),
            ("secs", Unit.S),
            ("ms", Unit.MS),
            ("millisecs", Unit.MS),
        ],
    )
    def test_from_token(self, token, unit):
        """Known spellings map to their unit."""
        assert Unit.from_token(token) is unit

    def test_from_token_unknown(self):
        """Unknown words are not units."""
        assert Unit.from_token("ha") is None
        assert Unit.from_token("") is None


class TestConversions:
    """Test unit conversion helpers."""

    def test_unit_to_ms(self):
        """Whole and fractional counts convert to ms."""
        assert unit_to_ms(2, Unit.D) == 2 * MS_IN_DAY
        assert unit_to_ms(1.5, Unit.M) == 90_000

    def test_ms_to_unit(self):
        """ms convert back to fractional units."""
        assert ms_to_unit(90_000, Unit.M) == 1.5
        assert ms_to_unit(MS_IN_MIN, Unit.S) == 60

    def test_convert(self):
        """Converts directly between units."""
        assert convert(2, Unit.H, Unit.M) == 120
        assert convert(30, Unit.S, Unit.M) == 0.5

    def test_normalize_range(self):
        """Ranges come back smallest first."""
        assert normalize_range((Unit.M, Unit.MS)) == (Unit.MS, Unit.M)
        assert normalize_range((Unit.S, Unit.D)) == (Unit.S, Unit.D)

    def test_normalize_range_strings(self):
        """Plain unit names are accepted."""
        assert normalize_range(("d", "s")) == (Unit.S, Unit.D)

    def test_normalize_range_invalid(self):
        """Unknown unit names are rejected."""
        with pytest.raises(ValueError):
            normalize_range(("x", "s"))
