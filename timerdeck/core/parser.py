"""Duration Parser - Free-form user text to milliseconds.

Accepts exactly one of three notations:
- a bare number, read as minutes: ``"12"``, ``"3.5"``
- separators: ``"1:34"`` (m:s), ``"6:23:34"`` (h:m:s), ``"5:22:54:03"`` (d:h:m:s)
- unit letters: ``"1h30m"``, ``"2 hours 5 min"``, ``"1m43"`` (trailing 43s)
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN

from timerdeck.core.units import MS_IN_DAY, Unit, unit_to_ms

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = ":"
MAX_SEPARATORS = 3
# about 27 years
MAX_DURATION_DAYS = 10_000
MAX_DURATION_MS = MAX_DURATION_DAYS * MS_IN_DAY
NUMBER_CHARS = "0123456789.-"

NUMBER = "number"
LETTER = "letter"
SEPARATOR = "separator"


class ParseError(ValueError):
    """Raised when user input cannot be read as a duration."""

    pass


@dataclass
class Token:
    """A run of same-class characters from the input."""

    text: str
    type: str


def _char_type(char: str, separator: str) -> str | None:
    if char == separator:
        return SEPARATOR
    if char.isascii() and char.isalpha():
        return LETTER
    if char in NUMBER_CHARS:
        return NUMBER
    return None


def tokenize(text: str, separator: str = DEFAULT_SEPARATOR) -> list[Token]:
    """Split input into number, letter and separator tokens.

    Whitespace is ignored. A separator always forms its own token, so
    ``"5::2"`` gives ``5 : : 2``.

    Args:
        text: Raw user input.
        separator: Character separating clock units.

    Returns:
        Tokens in input order.

    Raises:
        ParseError: If a character belongs to no token class.
    """
    tokens: list[Token] = []
    for char in "".join(text.split()):
        char_type = _char_type(char, separator)
        if char_type is None:
            raise ParseError(f"Invalid character '{char}'")

        if char_type != SEPARATOR and tokens and tokens[-1].type == char_type:
            tokens[-1].text += char
        else:
            tokens.append(Token(char, char_type))
    return tokens


def _to_number(text: str) -> Decimal:
    try:
        number = Decimal(text)
    except InvalidOperation:
        raise ParseError(f"Invalid number '{text}'") from None
    if not number.is_finite():
        raise ParseError(f"Invalid number '{text}'")
    return number


def _validate(tokens: list[Token]) -> str | None:
    """Check tokens and return the notation used (None for a bare number)."""
    notation: str | None = None
    separators = 0
    for token in tokens:
        if token.type == NUMBER:
            _to_number(token.text)
            continue

        if token.type == SEPARATOR:
            separators += 1
        elif Unit.from_token(token.text.lower()) is None:
            raise ParseError(f"Invalid unit '{token.text}'")

        if notation is None:
            notation = token.type
        elif notation != token.type:
            raise ParseError("Cannot mix separators and units")

    if separators > MAX_SEPARATORS:
        raise ParseError(
            f"Too many separators (max {MAX_SEPARATORS}, got {separators})"
        )
    if notation is None and len(tokens) != 1:
        raise ParseError("Expected a single number")
    return notation


def parse_input(text: str, separator: str = DEFAULT_SEPARATOR) -> int:
    """Parse a user-entered duration.

    A bare number is minutes. With separators, the number of separators
    sets the unit of the first number (1 -> minutes, 2 -> hours, 3 -> days).
    With letters, each number takes the unit that follows it. In both, a
    trailing number without a unit is one unit smaller than the last one.

    Args:
        text: User input, e.g. ``"1:30"``, ``"1h 30m"`` or ``"90"``.
        separator: Character separating clock units.

    Returns:
        Duration in milliseconds, rounded to the nearest millisecond.

    Raises:
        ParseError: If the input is empty, malformed, ambiguous or longer
            than MAX_DURATION_DAYS.
    """
    tokens = tokenize(text, separator)
    if not tokens:
        raise ParseError("Input is empty")

    notation = _validate(tokens)

    if notation is None:
        total = unit_to_ms(_to_number(tokens[0].text), Unit.M)
        return _check_max(_round_ms(total))

    remaining_separators = sum(1 for t in tokens if t.type == SEPARATOR)
    total = Decimal(0)
    pending: Decimal | None = None
    last_unit: Unit | None = None

    for token in tokens:
        if token.type == NUMBER:
            pending = _to_number(token.text)
            continue

        if token.type == LETTER:
            unit = Unit.from_token(token.text.lower())
            if pending is None:
                raise ParseError(f"Unit '{token.text}' has no number")
        else:
            # 1 separator left -> minutes, 2 -> hours, 3 -> days
            unit = Unit.ordered()[remaining_separators + 1]
            remaining_separators -= 1

        if pending is not None:
            total += unit_to_ms(pending, unit)
        pending = None
        last_unit = unit

    if pending is not None:
        if last_unit.smaller is None:
            raise ParseError("No units smaller than ms accepted")
        total += unit_to_ms(pending, last_unit.smaller)

    result = _check_max(_round_ms(total))
    logger.debug("Parsed '%s' as %dms", text, result)
    return result


def _round_ms(total: Decimal) -> int:
    return int(total.to_integral_value(rounding=ROUND_HALF_EVEN))


def _check_max(ms: int) -> int:
    if ms > MAX_DURATION_MS:
        raise ParseError(f"Duration is too long (max {MAX_DURATION_DAYS} days)")
    return ms
