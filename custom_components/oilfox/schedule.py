"""
Cron schedule helpers.

Only the minute and hour fields of a 5-field cron expression are supported;
day, month and weekday must be "*". parse_schedule() translates the two
fields into the time patterns understood by
homeassistant.helpers.event.async_track_time_change.
"""

from __future__ import annotations

import random
from typing import Any, Dict, List, Union

from .const import DEFAULT_SCHEDULE

TimePattern = Union[str, int, List[int]]


class ScheduleError(ValueError):
    """The cron expression cannot be used."""


def _parse_field(field: str, name: str, low: int, high: int) -> TimePattern:
    if field == "*":
        return "*"

    if field.startswith("*/"):
        step = _parse_int(field[2:], name)
        if step < 1 or step > high:
            raise ScheduleError(f"Invalid {name} step: {field!r}")
        return f"/{step}"

    values: List[int] = []
    for part in field.split(","):
        if "-" in part:
            start, _, end = part.partition("-")
            first, last = _parse_int(start, name), _parse_int(end, name)
            if first > last:
                raise ScheduleError(f"Invalid {name} range: {part!r}")
            values.extend(range(first, last + 1))
        else:
            values.append(_parse_int(part, name))

    for value in values:
        if not low <= value <= high:
            raise ScheduleError(f"{name.capitalize()} {value} out of range {low}-{high}")

    if len(values) == 1:
        return values[0]
    return sorted(set(values))


def _parse_int(text: str, name: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise ScheduleError(f"Invalid {name} value: {text!r}") from None


def parse_schedule(expression: str) -> Dict[str, Any]:
    """Translate a cron expression into async_track_time_change keywords.

    >>> parse_schedule("*/15 6-8 * * *")
    {'minute': '/15', 'hour': [6, 7, 8], 'second': 0}
    """
    fields = expression.split()
    if len(fields) != 5:
        raise ScheduleError(
            f"Expected 5 cron fields, got {len(fields)}: {expression!r}"
        )

    minute, hour, day, month, weekday = fields
    if (day, month, weekday) != ("*", "*", "*"):
        raise ScheduleError(
            "Only minute and hour can be restricted; day, month and weekday must be '*'"
        )

    return {
        "minute": _parse_field(minute, "minute", 0, 59),
        "hour": _parse_field(hour, "hour", 0, 23),
        "second": 0,
    }


def is_default_schedule(expression: str) -> bool:
    return " ".join(expression.split()) == DEFAULT_SCHEDULE


def spread_schedule(expression: str, rng: random.Random | None = None) -> str:
    """Replace the shipped default schedule with a random minute of the hour.

    Every installation on the default would otherwise hit the cloud at the
    same moment. Any other expression is returned unchanged.
    """
    if not is_default_schedule(expression):
        return expression

    minute = (rng or random).randint(0, 59)
    return f"{minute} * * * *"
