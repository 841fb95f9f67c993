from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from nexaconnect.exceptions import ValidationError
from nexaconnect.models import Location, Participant, Provider
from nexaconnect.util import (
    contains_casefold,
    format_message_time,
    format_utc_timestamp,
    merge_entity,
    next_id,
    normalize_tier,
    parse_date,
    parse_message_time,
    parse_timestamp,
    parse_wait_time_days,
    short_display_name,
    toggle_member,
)


@pytest.mark.parametrize(
    ("text", "days"),
    [
        ("Immediate", 0),
        ("immediate", None),
        (" Immediate ", 0),
        ("1-2 weeks", 7),
        ("2-3 weeks", 14),
        ("1 month", 30),
        ("3 months", 90),
        ("TBA", None),
        ("", None),
    ],
)
def test_parse_wait_time_days(text: str, days: int | None) -> None:
    assert parse_wait_time_days(text) == days


def test_normalize_tier() -> None:
    assert normalize_tier(" Premium ") == "premium"
    assert normalize_tier("professional") == "pro"
    assert normalize_tier("starter") == "free"
    assert normalize_tier("gold") is None
    assert normalize_tier(None) is None


def test_format_utc_timestamp_converts_offset() -> None:
    dt = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert format_utc_timestamp(dt) == "2024-01-01T10:00:00Z"


def test_format_utc_timestamp_requires_timezone() -> None:
    with pytest.raises(ValidationError):
        format_utc_timestamp(datetime(2024, 1, 1, 12, 0))


def test_parse_timestamp_defaults_to_utc() -> None:
    assert parse_timestamp("2024-01-01T12:00:00") == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    assert parse_timestamp("2024-01-01T12:00:00Z").tzinfo == UTC


def test_parse_timestamp_invalid() -> None:
    with pytest.raises(ValidationError):
        parse_timestamp("not a time")


def test_parse_date_accepts_timestamps() -> None:
    assert parse_date("2025-11-05") == date(2025, 11, 5)
    assert parse_date("2025-11-05T09:30:00Z") == date(2025, 11, 5)
    with pytest.raises(ValidationError):
        parse_date("")


def test_message_time_round_trip() -> None:
    sent_at = parse_message_time("2025-11-08", "2:15 PM")
    assert sent_at == datetime(2025, 11, 8, 14, 15, tzinfo=UTC)
    assert format_message_time(sent_at) == "2:15 PM"
    assert parse_message_time("2025-11-08", None) == datetime(2025, 11, 8, tzinfo=UTC)
    with pytest.raises(ValidationError):
        parse_message_time("2025-11-08", "14h15")


def test_contains_casefold() -> None:
    assert contains_casefold("Newcastle", "CASTLE")
    assert not contains_casefold("", "x")


def test_short_display_name() -> None:
    assert short_display_name("Sarah Mitchell") == "Sarah M."
    assert short_display_name("Cher") == "Cher"


def test_next_id_skips_taken_ids() -> None:
    assert next_id("e", []) == "e1"
    assert next_id("e", ["e1", "e2"]) == "e3"
    assert next_id("e", ["e1", "e3"]) == "e4"


def test_toggle_member() -> None:
    assert toggle_member(("p1",), "p2") == ("p1", "p2")
    assert toggle_member(("p1", "p2"), "p1") == ("p2",)


def test_merge_entity_keeps_id_and_folds_location() -> None:
    provider = Provider(
        id="p1",
        name="Old",
        location=Location(suburb="Newcastle", state="NSW"),
        categories=("therapy",),
    )
    merged = merge_entity(
        provider,
        {"id": "p9", "name": "New", "suburb": "Maitland", "features": ["Parking"], "bogus": 1},
    )
    assert merged.id == "p1"
    assert merged.name == "New"
    assert merged.location == Location(suburb="Maitland", state="NSW")
    assert merged.features == ("Parking",)


def test_merge_entity_replaces_location() -> None:
    participant = Participant(id="u1", name="Sam", location=Location(suburb="Newcastle"))
    merged = merge_entity(participant, {"location": Location(suburb="Charlestown", postcode="2290")})
    assert merged.location.suburb == "Charlestown"
    assert merged.location.postcode == "2290"
