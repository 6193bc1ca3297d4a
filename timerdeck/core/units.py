"""Time units - Conversions between milliseconds and named units.

Units form a fixed order ``ms < s < m < h < d``. The enum is the only
lookup table; position and size are derived from the member itself.
"""

from enum import Enum

MS_IN_SEC = 1000
SECS_IN_MIN = 60
MINS_IN_HOUR = 60
HOURS_IN_DAY = 24

MS_IN_MIN = SECS_IN_MIN * MS_IN_SEC
MS_IN_HOUR = MINS_IN_HOUR * MS_IN_MIN
MS_IN_DAY = HOURS_IN_DAY * MS_IN_HOUR

UnitRange = tuple["Unit", "Unit"]


class Unit(str, Enum):
    """A time unit, ordered from smallest to largest."""

    MS = "ms"
    S = "s"
    M = "m"
    H = "h"
    D = "d"

    @property
    def position(self) -> int:
        """Position in the unit order (``ms`` = 0, ``d`` = 4)."""
        return _ORDER.index(self)

    @property
    def size_ms(self) -> int:
        """Number of milliseconds in one of this unit."""
        return _SIZES[self.position]

    @property
    def ratio(self) -> int | None:
        """How many of this unit make one of the next larger unit."""
        if self is Unit.D:
            return None
        return self.larger.size_ms // self.size_ms

    @property
    def larger(self) -> "Unit | None":
        """The next larger unit, or None for days."""
        i = self.position + 1
        return _ORDER[i] if i < len(_ORDER) else None

    @property
    def smaller(self) -> "Unit | None":
        """The next smaller unit, or None for milliseconds."""
        i = self.position - 1
        return _ORDER[i] if i >= 0 else None

    @classmethod
    def ordered(cls) -> tuple["Unit", ...]:
        """All units from smallest to largest."""
        return _ORDER

    @classmethod
    def from_token(cls, token: str) -> "Unit | None":
        """Map a unit spelling like ``"hrs"`` to its unit.

        Args:
            token: Lowercase unit word.

        Returns:
            The matching unit, or None if the word is not a unit.
        """
        for unit, spellings in UNIT_SPELLINGS.items():
            if token in spellings:
                return unit
        return None

    def __lt__(self, other: "Unit") -> bool:
        if not isinstance(other, Unit):
            return NotImplemented
        return self.position < other.position

    def __le__(self, other: "Unit") -> bool:
        if not isinstance(other, Unit):
            return NotImplemented
        return self.position <= other.position

    def __gt__(self, other: "Unit") -> bool:
        if not isinstance(other, Unit):
            return NotImplemented
        return self.position > other.position

    def __ge__(self, other: "Unit") -> bool:
        if not isinstance(other, Unit):
            return NotImplemented
        return self.position >= other.position


_ORDER = (Unit.MS, Unit.S, Unit.M, Unit.H, Unit.D)
_SIZES = (1, MS_IN_SEC, MS_IN_MIN, MS_IN_HOUR, MS_IN_DAY)

UNIT_SPELLINGS: dict[Unit, tuple[str, ...]] = {
    Unit.D: ("d", "day", "days"),
    Unit.H: ("h", "hr", "hrs", "hour", "hours"),
    Unit.M: ("m", "min", "mins", "minute", "minutes"),
    Unit.S: ("s", "sec", "secs", "second", "seconds"),
    Unit.MS: (
        "ms",
        "milli",
        "millis",
        "millisec",
        "millisecs",
        "millisecond",
        "milliseconds",
    ),
}


def unit_to_ms(n, unit: Unit):
    """Convert ``n`` of ``unit`` to milliseconds. Fractions are kept."""
    return n * unit.size_ms


def ms_to_unit(ms, unit: Unit):
    """Convert milliseconds to a (possibly fractional) count of ``unit``."""
    return ms / unit.size_ms


def convert(n, from_unit: Unit, to_unit: Unit):
    """Convert ``n`` from one unit to another."""
    return ms_to_unit(unit_to_ms(n, from_unit), to_unit)


def normalize_range(unit_range: UnitRange) -> UnitRange:
    """Order a unit range as ``(smallest, largest)``.

    Args:
        unit_range: Two units in either order. Plain strings like ``"ms"``
            are accepted.

    Returns:
        The same two units, smallest first.
    """
    a, b = (Unit(u) for u in unit_range)
    return (a, b) if a <= b else (b, a)
