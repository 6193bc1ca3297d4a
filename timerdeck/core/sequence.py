"""Duration Sequences - Several durations in one input.

``+`` runs durations one after another, ``*`` repeats them and parentheses
group them: ``"(25m + 5m) * 4"`` is four rounds of 25 then 5 minutes.
``*`` binds tighter than ``+``. A number touching a group multiplies it
(``"3(15m + 45)"``) and a trailing ``*`` repeats forever (``"25m + 5m*"``).

Every duration is checked with :func:`parse_input` before anything runs.
The durations themselves are produced lazily, so endless repeats are fine.
"""

import itertools
import logging
import math
import sys
from collections.abc import Callable, Iterator

from timerdeck.core.parser import DEFAULT_SEPARATOR, ParseError, parse_input

logger = logging.getLogger(__name__)

ADD = "+"
MUL = "*"
LPAREN = "("
RPAREN = ")"
OPERATORS = frozenset(ADD + MUL + LPAREN + RPAREN)

# (left, right) binding power of the infix operators
BINDING_POWER = {ADD: (1, 2), MUL: (3, 4)}

# repeat count of a trailing "*"
FOREVER = math.inf

# token standing in for a trailing "*"'s missing count
_FOREVER_TOKEN = None
_END = ""


class _EmptyInput(ParseError):
    def __init__(self) -> None:
        super().__init__("Input is empty")


class _Durations:
    """Re-iterable run of duration texts."""

    def __init__(self, make: Callable[[], Iterator[str]]):
        self._make = make

    def __iter__(self) -> Iterator[str]:
        return self._make()


def is_sequence(text: str) -> bool:
    """Whether ``text`` uses any sequence operator."""
    return any(char in OPERATORS for char in text)


def _is_value(token: str | None) -> bool:
    return token is _FOREVER_TOKEN or (token != _END and token not in OPERATORS)


def _is_count(token: str) -> bool:
    return token.isascii() and token.isdigit()


def tokenize_sequence(text: str) -> list[str | None]:
    """Split input into operators and the durations between them.

    Adds the ``*`` implied by ``"3(1h)"`` and ``"(1h)3"``, and a
    ``None`` count after a trailing ``*``.
    """
    raw: list[str] = []
    current = ""
    for char in text:
        if char in OPERATORS:
            if current.strip():
                raw.append(current.strip())
            raw.append(char)
            current = ""
        else:
            current += char
    if current.strip():
        raw.append(current.strip())

    tokens: list[str | None] = []
    for i, token in enumerate(raw):
        following = raw[i + 1] if i + 1 < len(raw) else _END
        tokens.append(token)
        if (token == RPAREN and _is_value(following)) or (
            _is_value(token) and following == LPAREN
        ):
            tokens.append(MUL)
        elif token == MUL and not (following == LPAREN or _is_value(following)):
            tokens.append(_FOREVER_TOKEN)
    return tokens


class _Parser:
    """Pratt parser over sequence tokens.

    Produces ``(operator, left, right)`` tuples with tokens as leaves.
    """

    def __init__(self, tokens: list[str | None]):
        self._tokens = tokens
        self._pos = 0

    def peek(self) -> str | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return _END

    def next(self) -> str | None:
        token = self.peek()
        self._pos += 1
        return token

    def parse(self):
        tree = self.expression(0)
        if self.peek() != _END:
            raise ParseError("Unbalanced parentheses")
        return tree

    def expression(self, min_bp: int):
        token = self.next()
        if token == LPAREN:
            lhs = self.expression(0)
            if self.next() != RPAREN:
                raise ParseError("Unbalanced parentheses")
        elif token == _END:
            raise _EmptyInput()
        elif token in OPERATORS:
            raise ParseError(f"Unexpected '{token}'")
        else:
            lhs = token

        while True:
            op = self.peek()
            if op == _END:
                break
            if op not in OPERATORS:
                raise ParseError(f"Unexpected '{op}'")
            if op not in BINDING_POWER:
                break
            left_bp, right_bp = BINDING_POWER[op]
            if left_bp < min_bp:
                break

            self.next()
            try:
                rhs = self.expression(right_bp)
            except _EmptyInput:
                raise ParseError(f"Unexpected '{op}'") from None
            lhs = (op, lhs, rhs)

        return lhs


def _check_duration(text: str, separator: str) -> None:
    if parse_input(text, separator) == 0:
        raise ParseError(f"Durations in a sequence must be longer than 0 ('{text}')")


def _repeat(items: _Durations, count: float) -> Iterator[_Durations]:
    if count == FOREVER:
        return itertools.repeat(items)
    # counts saturate rather than overflow
    return itertools.repeat(items, min(int(count), sys.maxsize))


class _Evaluator:
    def __init__(self, separator: str):
        self._separator = separator

    def durations(self, value: "_Durations | float") -> _Durations:
        """A count used where a duration is needed is read as a duration."""
        if isinstance(value, _Durations):
            return value
        if value == FOREVER:
            raise ParseError(f"Unexpected '{MUL}'")
        text = str(int(value))
        _check_duration(text, self._separator)
        return _Durations(lambda: iter((text,)))

    def evaluate(self, node) -> "_Durations | float":
        if not isinstance(node, tuple):
            if node is _FOREVER_TOKEN:
                return FOREVER
            if _is_count(node):
                return int(node)
            return _Durations(lambda: iter((node,)))

        op, left, right = node
        left, right = self.evaluate(left), self.evaluate(right)

        if op == ADD:
            first, second = self.durations(left), self.durations(right)
            return _Durations(lambda: itertools.chain(first, second))

        if isinstance(left, _Durations) and isinstance(right, _Durations):
            raise ParseError("Cannot multiply two durations")
        if isinstance(right, _Durations):
            items, count = right, left
        else:
            items, count = self.durations(left), right
        if count == 0:
            raise ParseError("Cannot repeat 0 times")
        return _Durations(lambda: itertools.chain.from_iterable(_repeat(items, count)))


def parse_sequence(text: str, separator: str = DEFAULT_SEPARATOR) -> Iterator[int]:
    """Parse input holding one or more durations.

    Input without operators is a single duration, parsed exactly as
    :func:`parse_input` would.

    Args:
        text: User input, e.g. ``"(25m + 5m) * 4"``.
        separator: Character separating clock units.

    Returns:
        The durations in ms, in order. Endless if the input ends in ``*``.

    Raises:
        ParseError: If any duration is invalid, the expression is malformed,
            two durations are multiplied, or a duration in a sequence is 0.
    """
    if not is_sequence(text):
        duration = parse_input(text, separator)
        return iter((duration,))

    tokens = tokenize_sequence(text)
    for token in tokens:
        if _is_value(token) and token is not _FOREVER_TOKEN and not _is_count(token):
            _check_duration(token, separator)

    tree = _Parser(tokens).parse()
    evaluator = _Evaluator(separator)
    items = evaluator.durations(evaluator.evaluate(tree))
    logger.debug("Parsed sequence '%s'", text)
    return (parse_input(item, separator) for item in items)


class DurationQueue:
    """The durations of one input, taken one at a time.

    ``consumed`` counts the durations taken so far.
    """

    def __init__(self, text: str, separator: str = DEFAULT_SEPARATOR):
        """Parse ``text``.

        Raises:
            ParseError: If ``text`` is invalid.
        """
        self.text = text
        self.consumed = 0
        self._durations = parse_sequence(text, separator)
        self._next = next(self._durations, None)

    def peek(self) -> int | None:
        """The next duration, or None once all are taken."""
        return self._next

    def pop(self) -> int | None:
        """Take the next duration, or None once all are taken."""
        current = self._next
        if current is not None:
            self._next = next(self._durations, None)
            self.consumed += 1
        return current

    def skip(self, count: int) -> int:
        """Take up to ``count`` durations.

        Returns:
            How many were taken.
        """
        taken = 0
        while taken < count and self.pop() is not None:
            taken += 1
        return taken
