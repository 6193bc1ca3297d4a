"""Tests for timerdeck.core.sequence - Duration sequences."""

from itertools import islice

import pytest

from timerdeck.core.parser import ParseError
from timerdeck.core.sequence import (
    DurationQueue,
    is_sequence,
    parse_sequence,
    tokenize_sequence,
)

S = 1000
MIN = 60 * S
HOUR = 60 * MIN
DAY = 24 * HOUR


def first(text, count=10):
    return list(islice(parse_sequence(text), count))


class TestTokenizeSequence:
    """Test splitting sequences into tokens."""

    def test_operators_and_values(self):
        """Values are trimmed, whitespace inside them is kept."""
        assert tokenize_sequence("1h 30m + 5m") == ["1h 30m", "+", "5m"]

    def test_implicit_multiply(self):
        """A number touching a group multiplies it."""
        assert tokenize_sequence("3(1h)2") == ["3", "*", "(", "1h", ")", "*", "2"]

    def test_trailing_multiply(self):
        """A trailing * gets an open count."""
        assert tokenize_sequence("1h*") == ["1h", "*", None]
        assert tokenize_sequence("1h* + 2h") == ["1h", "*", None, "+", "2h"]

    def test_is_sequence(self):
        """Only inputs with operators are sequences."""
        assert is_sequence("25m + 5m")
        assert is_sequence("(1h)")
        assert not is_sequence("1h 30m")
        assert not is_sequence("1:30")


class TestParseSequence:
    """Test evaluating sequences to durations."""

    def test_single_duration(self):
        """Plain input is one duration."""
        assert first("1:30") == [90 * S]
        assert first("0") == [0]

    def test_add(self):
        """+ runs durations one after another."""
        assert first("25m + 5m") == [25 * MIN, 5 * MIN]

    def test_precedence(self):
        """* binds tighter than +."""
        assert first("1 + 2 * 3") == [MIN, 2 * MIN, 2 * MIN, 2 * MIN]

    def test_grouping(self):
        """Parentheses group a run that is repeated as a whole."""
        assert first("(25m + 5m) * 2") == [25 * MIN, 5 * MIN] * 2
        assert first("2 + (3 + 4)") == [2 * MIN, 3 * MIN, 4 * MIN]

    def test_count_on_either_side(self):
        """The count can come before or after the durations."""
        expected = [2 * HOUR] + [15 * MIN, 45 * MIN] * 3
        assert first("2h + (15m + 45)*3") == expected
        assert first("2h + 3*(15m + 45)") == expected
        assert first("2h + 3(15m + 45)") == expected

    def test_chained_repeats(self):
        """Repeats of repeats multiply."""
        assert first("(3*2m)*2+14d", 20) == [2 * MIN] * 6 + [14 * DAY]

    def test_forever(self):
        """A trailing * repeats without end."""
        assert first("2h + 1h*", 5) == [2 * HOUR] + [HOUR] * 4
        assert first("(25m + 5m)*", 6) == [25 * MIN, 5 * MIN] * 3

    def test_large_count(self):
        """Huge counts are lazy."""
        assert first("1m * 99999999999999999999999", 3) == [MIN] * 3

    def test_separator(self):
        """Durations use the given separator."""
        assert list(parse_sequence("1/30 + 2", "/")) == [90 * S, 2 * MIN]

    def test_restartable_repeat(self):
        """Each repeat yields its durations again."""
        assert first("(1m + 2m) * 3", 20) == [MIN, 2 * MIN] * 3


class TestParseSequenceErrors:
    """Test malformed sequences."""

    @pytest.mark.parametrize("text", ["1h)", "(1h", "(1h)(2h)"])
    def test_unbalanced_parens(self, text):
        """Parentheses must pair up."""
        with pytest.raises(ParseError, match="Unbalanced parentheses"):
            parse_sequence(text)

    @pytest.mark.parametrize(
        "text,op",
        [
            ("+30d", r"\+"),
            ("30d+", r"\+"),
            ("12m+34d ++ 2h", r"\+"),
            ("12m+34d +* 2h", r"\*"),
            ("1d+20(2+)", r"\)"),
        ],
    )
    def test_misplaced_operator(self, text, op):
        """Operators need values on both sides."""
        with pytest.raises(ParseError, match=f"Unexpected '{op}'"):
            parse_sequence(text)

    def test_multiply_durations(self):
        """Two durations cannot be multiplied."""
        with pytest.raises(ParseError, match="Cannot multiply two durations"):
            parse_sequence("3h * 2m")

    def test_invalid_duration(self):
        """Every duration is checked before anything runs."""
        with pytest.raises(ParseError, match="Invalid unit"):
            parse_sequence("2h + 4a + 3d")
        with pytest.raises(ParseError, match="smaller than ms"):
            parse_sequence("(3h + 4 + (2ms 3)*2)*2")

    def test_invalid_duration_in_forever(self):
        """Durations are checked even inside endless repeats."""
        with pytest.raises(ParseError, match="Cannot mix"):
            parse_sequence("1m + 1:30h*")

    def test_zero_repeat(self):
        """A count of 0 is rejected."""
        with pytest.raises(ParseError, match="Cannot repeat 0 times"):
            parse_sequence("1m * 0")

    @pytest.mark.parametrize("text", ["0 + 1m", "0s*", "1m + 0 * 3"])
    def test_zero_duration_in_sequence(self, text):
        """A 0 duration in a sequence is rejected."""
        with pytest.raises(ParseError, match="longer than 0"):
            parse_sequence(text)

    def test_count_too_long_as_duration(self):
        """A count read as a duration still has the maximum."""
        with pytest.raises(ParseError, match="too long"):
            parse_sequence("9999999999 + 1m")

    def test_empty(self):
        """Empty input fails like a single duration."""
        with pytest.raises(ParseError, match="empty"):
            parse_sequence("")


class TestDurationQueue:
    """Test taking durations one at a time."""

    def test_pop_and_peek(self):
        """Durations come out in order, then None."""
        queue = DurationQueue("1m + 2m")
        assert queue.peek() == MIN
        assert queue.pop() == MIN
        assert queue.consumed == 1
        assert queue.peek() == 2 * MIN
        assert queue.pop() == 2 * MIN
        assert queue.pop() is None
        assert queue.peek() is None
        assert queue.consumed == 2

    def test_skip(self):
        """skip stops early when the durations run out."""
        queue = DurationQueue("1m * 3")
        assert queue.skip(2) == 2
        assert queue.skip(5) == 1
        assert queue.consumed == 3

    def test_forever(self):
        """An endless queue never runs out."""
        queue = DurationQueue("1m*")
        assert queue.skip(100) == 100
        assert queue.peek() == MIN

    def test_invalid(self):
        """Invalid text raises on creation."""
        with pytest.raises(ParseError):
            DurationQueue("1m +")
