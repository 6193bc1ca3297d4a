"""Duration Formatter - Milliseconds to per-unit values and clock strings.

Formats a time in ms as:
- units: days + hours + minutes + seconds + milliseconds
- clock: a padded string like ``d:hh:mm:ss.mmm`` over a unit range
- strings: the clock segments keyed by unit, for styling each part
"""

from timerdeck.core.units import (
    MS_IN_DAY,
    MS_IN_HOUR,
    MS_IN_MIN,
    MS_IN_SEC,
    Unit,
    UnitRange,
    normalize_range,
)

DEFAULT_RANGE: UnitRange = (Unit.MS, Unit.D)

UNIT_SEPARATOR = ":"
DECIMAL_SEPARATOR = "."


def _trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // b
    return -q if a < 0 else q


def _trunc_mod(a: int, b: int) -> int:
    """Remainder with the sign of ``a``."""
    return a - b * _trunc_div(a, b)


def format_time_to_units(ms: int) -> dict[Unit, int]:
    """Split a time into days, hours, minutes, seconds and milliseconds.

    Uses truncation, so every component of a negative time is negative
    or zero (``-100`` gives ``{ms: -100}``, never ``{s: -1, ms: 900}``).

    Args:
        ms: Time in milliseconds.

    Returns:
        Mapping of each unit to its whole value.
    """
    ms = int(ms)
    return {
        Unit.D: _trunc_div(ms, MS_IN_DAY),
        Unit.H: _trunc_mod(_trunc_div(ms, MS_IN_HOUR), 24),
        Unit.M: _trunc_mod(_trunc_div(ms, MS_IN_MIN), 60),
        Unit.S: _trunc_mod(_trunc_div(ms, MS_IN_SEC), 60),
        Unit.MS: _trunc_mod(ms, MS_IN_SEC),
    }


def _reduce_to_range(ms: int, smallest: Unit, largest: Unit) -> dict[Unit, int]:
    """Fold a time's units into ``[smallest, largest]``.

    Units above the range are folded down. Units below it are dropped,
    rounding the next retained unit up when the time is not negative, so
    a countdown reaches 0 only when the time does.
    """
    values = format_time_to_units(ms)

    # large -> small
    for unit in reversed(Unit.ordered()):
        if unit <= largest:
            break
        values[unit.smaller] += values[unit] * unit.smaller.ratio
        values[unit] = 0

    # small -> large, rounding up
    for unit in Unit.ordered():
        if unit >= smallest:
            break
        if values[unit] != 0 and ms >= 0:
            values[unit.larger] += 1
        values[unit] = 0

    # carry any overflow from rounding, up to the top of the range
    unit = smallest
    while ms >= 0 and unit < largest:
        carry, values[unit] = divmod(values[unit], unit.ratio)
        if carry <= 0:
            break
        values[unit.larger] += carry
        unit = unit.larger

    return values


def _segments(
    ms: int, unit_range: UnitRange, auto: bool
) -> list[tuple[Unit, str]]:
    """Build the displayed ``(unit, padded string)`` pairs, largest first."""
    ms = int(ms)
    smallest, largest = normalize_range(unit_range)
    values = _reduce_to_range(ms, smallest, largest)

    segments: list[tuple[Unit, str]] = []
    for unit in reversed(Unit.ordered()):
        if unit > largest or unit < smallest:
            continue
        value = abs(values[unit])
        first = not segments
        if (
            auto
            and first
            and value == 0
            and unit is not Unit.S
            and unit is not smallest
        ):
            # trim 0's on the left only; seconds always stay so the
            # last second reads "0.123"
            continue

        if first:
            text = ("-" if ms < 0 else "") + str(value)
        elif unit is Unit.MS:
            text = str(value).zfill(3)
        else:
            text = str(value).zfill(2)
        segments.append((unit, text))
    return segments


def format_time_to_clock(
    ms: int,
    unit_range: UnitRange = DEFAULT_RANGE,
    auto: bool = False,
    separator: str = UNIT_SEPARATOR,
) -> str:
    """Format a time as a clock string over a range of units.

    Args:
        ms: Time in milliseconds. Negative times get a leading ``-``.
        unit_range: Smallest and largest unit to show, in either order.
            E.g. ``(Unit.MS, Unit.M)`` gives ``"2:17.020"``.
        auto: Drop leading zero units. ``unit_range`` becomes the widest
            range allowed.
        separator: Character between units (milliseconds always use ``.``).

    Returns:
        The formatted clock string.
    """
    out = ""
    for i, (unit, text) in enumerate(_segments(ms, unit_range, auto)):
        if i == 0:
            out += text
        elif unit is Unit.MS:
            out += DECIMAL_SEPARATOR + text
        else:
            out += separator + text
    return out


def format_time_to_strings(
    ms: int, unit_range: UnitRange = DEFAULT_RANGE, auto: bool = False
) -> dict[Unit, str]:
    """Format a time as padded strings for each displayed unit.

    Same computation as :func:`format_time_to_clock` without separators.
    Entries are ordered smallest unit first; reverse for display.
    """
    return dict(reversed(_segments(ms, unit_range, auto)))
