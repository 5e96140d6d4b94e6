"""String list helpers and human-readable durations."""

from __future__ import annotations


def string_contains(items, value: str) -> bool:
    return value in set(items)


def string_delete_slice(items: list[str], value: str) -> list[str]:
    """Return items without the last occurrence of value."""
    items = list(items)
    if value not in items:
        raise ValueError("slice not found")
    index = len(items) - 1 - items[::-1].index(value)
    return items[:index] + items[index + 1:]


def string_delete_all_slice(items: list[str], removals: list[str]) -> list[str]:
    """Remove each of removals in turn; only the outcome of the last removal decides failure."""
    result: list[str] = []
    error: ValueError | None = None
    for value in removals:
        base = result if result else items
        try:
            result = string_delete_slice(base, value)
            error = None
        except ValueError as exc:
            result = []
            error = exc
    if error is not None:
        raise error
    return result


def unique_slices(first, second) -> list[str]:
    """Merge two lists, skipping empty and repeated entries and trimming what is kept."""
    seen: set[str] = set()
    merged: list[str] = []
    for entry in (*first, *second):
        if entry == "" or entry in seen:
            continue
        seen.add(entry)
        merged.append(entry.strip())
    return merged


def _plural(count: int, word: str) -> str:
    return word if count == 1 else word + "s"


def seconds_to_duration(seconds: int) -> str:
    """Describe a number of seconds in seconds, minutes, or days/hours/minutes."""
    if seconds < 0:
        raise ValueError("seconds must not be negative")

    if seconds < 60:
        return f"{seconds} {_plural(seconds, 'second')}"

    if seconds < 3600:
        minutes = (seconds + 30) // 60
        return f"{minutes} {_plural(minutes, 'minute')}"

    hours = seconds // 3600
    minutes = seconds // 60 - hours * 60
    days = 0
    while hours > 24:
        days += 1
        hours -= 24

    if days >= 1:
        return (
            f"{days} {_plural(days, 'day')}, {hours} {_plural(hours, 'hour')}, "
            f"{minutes} {_plural(minutes, 'minute')}"
        )
    return f"{hours} {_plural(hours, 'hour')} {minutes} {_plural(minutes, 'minute')}"