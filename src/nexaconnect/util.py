"""Shared utilities for parsing, normalization and id allocation."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import fields, replace
from datetime import UTC, date, datetime
from typing import Any, TypeVar

from .const import IMMEDIATE_WAIT_TIME, TIERS
from .exceptions import ValidationError
from .models import Location

_LEADING_NUMBER_RE = re.compile(r"(\d+)")
_TIER_ALIASES = {
    "starter": "free",
    "professional": "pro",
}
_LOCATION_KEYS = ("suburb", "state", "postcode")

T = TypeVar("T")


def parse_wait_time_days(wait_time: str) -> int | None:
    """Return the wait time in days, or None when no number can be read.

    The literal "Immediate" is zero days. Otherwise the first integer is taken;
    the unit is weeks when the text mentions "week" and months (30 days)
    otherwise.
    """
    if not isinstance(wait_time, str):
        return None
    text = wait_time.strip()
    if text == IMMEDIATE_WAIT_TIME:
        return 0
    match = _LEADING_NUMBER_RE.search(text)
    if match is None:
        return None
    value = int(match.group(1))
    if "week" in text.lower():
        return value * 7
    return value * 30


def normalize_tier(value: Any) -> str | None:
    """Map tier names and plan ids onto a tier, or None when unknown."""
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    normalized = _TIER_ALIASES.get(normalized, normalized)
    if normalized in TIERS:
        return normalized
    return None


def parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str) or not value:
        raise ValidationError("Timestamp must be a non-empty string.")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError("Timestamp is not a valid ISO 8601 value.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_utc_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        raise ValidationError("Timestamp must include timezone information.")
    normalized = value.astimezone(UTC).replace(microsecond=0)
    return normalized.isoformat().replace("+00:00", "Z")


def parse_date(value: str) -> date:
    """Parse an ISO date, accepting full timestamps by keeping the date part."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Date must be a non-empty string.")
    try:
        return date.fromisoformat(value.strip().split("T")[0])
    except ValueError as exc:
        raise ValidationError("Date is not a valid ISO 8601 value.") from exc


def parse_message_time(day: str, clock_time: str | None) -> datetime:
    """Combine a message date and a 12-hour clock time such as "2:15 PM"."""
    base = parse_date(day)
    if not clock_time:
        return datetime(base.year, base.month, base.day, tzinfo=UTC)
    try:
        parsed = datetime.strptime(clock_time.strip().upper(), "%I:%M %p")
    except ValueError as exc:
        raise ValidationError("Message time is not a valid 12-hour time.") from exc
    return datetime(base.year, base.month, base.day, parsed.hour, parsed.minute, tzinfo=UTC)


def format_message_time(value: datetime) -> str:
    stamp = value.astimezone(UTC)
    hour = stamp.hour % 12 or 12
    suffix = "AM" if stamp.hour < 12 else "PM"
    return f"{hour}:{stamp.minute:02d} {suffix}"


def contains_casefold(haystack: str, needle: str) -> bool:
    return needle.casefold() in (haystack or "").casefold()


def short_display_name(name: str) -> str:
    """Return "First L." for review bylines."""
    parts = name.split()
    if len(parts) < 2:
        return name.strip()
    return f"{parts[0]} {parts[-1][0]}."


def next_id(prefix: str, existing: Iterable[str]) -> str:
    """Allocate prefix + (count + 1), bumping until the id is unused."""
    taken = set(existing)
    candidate = len(taken) + 1
    while f"{prefix}{candidate}" in taken:
        candidate += 1
    return f"{prefix}{candidate}"


def toggle_member(items: tuple[str, ...], item: str) -> tuple[str, ...]:
    if item in items:
        return tuple(existing for existing in items if existing != item)
    return (*items, item)


def merge_entity(entity: T, changes: Mapping[str, Any]) -> T:
    """Merge a partial update into a dataclass entity.

    Unknown keys are ignored and the id never changes. Flat location keys are
    folded into the nested location.
    """
    names = {item.name for item in fields(entity)}  # type: ignore[arg-type]
    updates: dict[str, Any] = {}
    for key, value in changes.items():
        if key == "id" or key not in names or key == "location":
            continue
        if isinstance(value, list):
            value = tuple(value)
        updates[key] = value
    if "location" in names:
        location = getattr(entity, "location")
        if isinstance(changes.get("location"), Location):
            location = changes["location"]
        location_updates = {
            key: str(changes[key]) for key in _LOCATION_KEYS if changes.get(key) is not None
        }
        if location_updates:
            location = replace(location, **location_updates)
        updates["location"] = location
    return replace(entity, **updates)  # type: ignore[type-var]
