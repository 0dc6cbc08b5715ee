#!/usr/bin/env python3
"""
Duration expression parsing

Turns compact expressions such as "90m", "1d12h" or "1M2W" into a total
number of minutes. Units are case sensitive: "m" is minutes, "M" is months.
"""

import re

from kenosis_errors import InvalidDurationFormat

MINUTE = 1
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY
MONTH = 30 * DAY
YEAR = 365 * DAY

UNIT_MINUTES: dict[str, int] = {
    "m": MINUTE,
    "min": MINUTE,
    "minute": MINUTE,
    "minutes": MINUTE,
    "h": HOUR,
    "H": HOUR,
    "hour": HOUR,
    "hours": HOUR,
    "d": DAY,
    "D": DAY,
    "day": DAY,
    "days": DAY,
    "w": WEEK,
    "W": WEEK,
    "week": WEEK,
    "weeks": WEEK,
    "M": MONTH,
    "month": MONTH,
    "months": MONTH,
    "y": YEAR,
    "Y": YEAR,
    "year": YEAR,
    "years": YEAR,
}

_TOKEN = re.compile(r"\s*(\d+)\s*([A-Za-z]+)")


class DurationParser:
    """Parser for multi-unit duration expressions"""

    def __init__(self, units: dict[str, int] = UNIT_MINUTES):
        self.units = units

    def parse(self, expression: str) -> int:
        """Parse an expression into total minutes

        Args:
            expression: Duration such as "2d", "1w3d" or "1M2W"

        Returns:
            Total number of minutes, always > 0

        Raises:
            InvalidDurationFormat: empty input, unknown unit, trailing
                garbage, or a total that is not positive
        """
        if expression is None or not expression.strip():
            raise InvalidDurationFormat(expression or "", "empty expression")

        remainder = expression.strip()
        total = 0
        while remainder:
            match = _TOKEN.match(remainder)
            if not match:
                raise InvalidDurationFormat(expression, f"cannot parse '{remainder}'")
            amount, unit = match.groups()
            if unit not in self.units:
                raise InvalidDurationFormat(expression, f"unknown unit '{unit}'")
            total += int(amount) * self.units[unit]
            remainder = remainder[match.end() :].lstrip()

        if total <= 0:
            raise InvalidDurationFormat(expression, "duration must be greater than zero")
        return total


def parse_duration(expression: str) -> int:
    """Parse a duration expression into minutes using the default units"""
    return DurationParser().parse(expression)


def format_minutes(minutes: int) -> str:
    """Render a minute count using the largest exact units, e.g. 63360 -> "1M2w" """
    if minutes <= 0:
        return "0m"
    parts = []
    for unit, size in (("y", YEAR), ("M", MONTH), ("w", WEEK), ("d", DAY), ("h", HOUR), ("m", MINUTE)):
        count, minutes = divmod(minutes, size)
        if count:
            parts.append(f"{count}{unit}")
    return "".join(parts)
