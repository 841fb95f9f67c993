"""Translation between wire rows and domain models.

Rows are flat snake_case objects as stored by the backend and the bundled
dataset: location fields sit at the top level, timestamps are ISO strings
and enquiry messages carry ``from``/``date``/``time`` keys.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import fields
from datetime import date, datetime
from typing import Any, TypeVar

from ..const import DEFAULT_PLAN_TYPE, MESSAGE_SENDERS
from ..exceptions import RemoteError, ValidationError
from ..models import (
    Booking,
    Enquiry,
    EnquiryMessage,
    Location,
    Participant,
    Provider,
    Review,
)
from ..util import (
    format_message_time,
    format_utc_timestamp,
    normalize_tier,
    parse_date,
    parse_message_time,
    parse_timestamp,
)

T = TypeVar("T")

_LOCATION_KEYS = ("suburb", "state", "postcode")
_READ_ONLY_KEYS = ("id", "user_id", "created_at")
_PROVIDER_FIELDS = frozenset(item.name for item in fields(Provider))
_PARTICIPANT_FIELDS = frozenset(item.name for item in fields(Participant))


def map_rows(data: Any, mapper: Callable[[Mapping[str, Any]], T], what: str) -> list[T]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise RemoteError(f"Response included invalid {what}.")
    return [mapper(item) for item in data if isinstance(item, Mapping)]


def _require_row(row: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(row, Mapping):
        raise RemoteError(f"Response included invalid {what} data.")
    return row


def _coerce_id(value: Any, what: str) -> str:
    if value is None or not str(value).strip():
        raise RemoteError(f"Response missing {what} id.")
    return str(value).strip()


def _optional_id(value: Any) -> str | None:
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _strings(value: Any, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    if not value:
        return default
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list | tuple):
        raise RemoteError("Response included an invalid list value.")
    return tuple(str(item) for item in value)


def _int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return parse_timestamp(str(value))
    except ValidationError as exc:
        raise RemoteError("Response included an invalid timestamp.") from exc


def _day(value: Any) -> date | None:
    if not value:
        return None
    try:
        return parse_date(str(value))
    except ValidationError as exc:
        raise RemoteError("Response included an invalid date.") from exc


def _location(row: Mapping[str, Any]) -> Location:
    return Location(
        suburb=_text(row.get("suburb")),
        state=_text(row.get("state")),
        postcode=_text(row.get("postcode")),
    )


def _format_optional_timestamp(value: datetime | None) -> str | None:
    return format_utc_timestamp(value) if value is not None else None


def _format_optional_day(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def provider_from_row(row: Any) -> Provider:
    data = _require_row(row, "provider")
    founded = data.get("founded")
    return Provider(
        id=_coerce_id(data.get("id"), "provider"),
        user_id=_optional_id(data.get("user_id")),
        name=_text(data.get("name")),
        email=_text(data.get("email")),
        tier=normalize_tier(data.get("tier")) or "free",  # type: ignore[arg-type]
        verified=data.get("verified") is True,
        categories=_strings(data.get("categories")),
        location=_location(data),
        phone=_text(data.get("phone")),
        website=_text(data.get("website")),
        description=_text(data.get("description")),
        short_description=_text(data.get("short_description")),
        photos=_strings(data.get("photos")),
        rating=_float(data.get("rating")),
        review_count=_int(data.get("review_count")),
        response_rate=_int(data.get("response_rate")),
        response_time=_text(data.get("response_time")) or "N/A",
        wait_time=_text(data.get("wait_time")) or "TBA",
        plan_types=_strings(data.get("plan_types"), (DEFAULT_PLAN_TYPE,)),
        availability={str(day): str(hours) for day, hours in (data.get("availability") or {}).items()},
        service_areas=_strings(data.get("service_areas")),
        founded=_int(founded) if founded is not None else None,
        team_size=_text(data.get("team_size")) or "1",
        languages=_strings(data.get("languages"), ("English",)),
        features=_strings(data.get("features")),
        views_this_month=_int(data.get("views_this_month")),
        enquiries_this_month=_int(data.get("enquiries_this_month")),
        bookings_this_month=_int(data.get("bookings_this_month")),
        stripe_customer_id=_optional_id(data.get("stripe_customer_id")),
        stripe_subscription_id=_optional_id(data.get("stripe_subscription_id")),
        created_at=_timestamp(data.get("created_at")),
    )


def provider_to_row(provider: Provider) -> dict[str, Any]:
    return {
        "id": provider.id,
        "user_id": provider.user_id,
        "name": provider.name,
        "email": provider.email,
        "tier": provider.tier,
        "verified": provider.verified,
        "categories": list(provider.categories),
        "suburb": provider.location.suburb,
        "state": provider.location.state,
        "postcode": provider.location.postcode,
        "phone": provider.phone,
        "website": provider.website,
        "description": provider.description,
        "short_description": provider.short_description,
        "photos": list(provider.photos),
        "rating": provider.rating,
        "review_count": provider.review_count,
        "response_rate": provider.response_rate,
        "response_time": provider.response_time,
        "wait_time": provider.wait_time,
        "plan_types": list(provider.plan_types),
        "availability": dict(provider.availability),
        "service_areas": list(provider.service_areas),
        "founded": provider.founded,
        "team_size": provider.team_size,
        "languages": list(provider.languages),
        "features": list(provider.features),
        "views_this_month": provider.views_this_month,
        "enquiries_this_month": provider.enquiries_this_month,
        "bookings_this_month": provider.bookings_this_month,
        "stripe_customer_id": provider.stripe_customer_id,
        "stripe_subscription_id": provider.stripe_subscription_id,
        "created_at": _format_optional_timestamp(provider.created_at),
    }


def _changes_to_row(changes: Mapping[str, Any], allowed: frozenset[str]) -> dict[str, Any]:
    row: dict[str, Any] = {}
    for key, value in changes.items():
        if key in _READ_ONLY_KEYS:
            continue
        if key == "location":
            if isinstance(value, Location):
                row.update(suburb=value.suburb, state=value.state, postcode=value.postcode)
            continue
        if key not in allowed and key not in _LOCATION_KEYS:
            continue
        if isinstance(value, tuple):
            value = list(value)
        elif isinstance(value, datetime):
            value = format_utc_timestamp(value)
        row[key] = value
    return row


def provider_changes_to_row(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Translate a partial provider update into an update row."""
    row = _changes_to_row(changes, _PROVIDER_FIELDS)
    if "tier" in row:
        tier = normalize_tier(row["tier"])
        if tier is None:
            del row["tier"]
        else:
            row["tier"] = tier
    return row


def participant_from_row(row: Any) -> Participant:
    data = _require_row(row, "participant")
    return Participant(
        id=_coerce_id(data.get("id"), "participant"),
        user_id=_optional_id(data.get("user_id")),
        name=_text(data.get("name")),
        email=_text(data.get("email")),
        location=_location(data),
        ndis_number=_text(data.get("ndis_number")),
        plan_type=_text(data.get("plan_type")) or DEFAULT_PLAN_TYPE,
        goals=_strings(data.get("goals")),
        categories=_strings(data.get("categories")),
        favourites=tuple(dict.fromkeys(_strings(data.get("favourites")))),
        created_at=_timestamp(data.get("created_at")),
    )


def participant_to_row(participant: Participant) -> dict[str, Any]:
    return {
        "id": participant.id,
        "user_id": participant.user_id,
        "name": participant.name,
        "email": participant.email,
        "suburb": participant.location.suburb,
        "state": participant.location.state,
        "postcode": participant.location.postcode,
        "ndis_number": participant.ndis_number,
        "plan_type": participant.plan_type,
        "goals": list(participant.goals),
        "categories": list(participant.categories),
        "favourites": list(participant.favourites),
        "created_at": _format_optional_timestamp(participant.created_at),
    }


def participant_changes_to_row(changes: Mapping[str, Any]) -> dict[str, Any]:
    return _changes_to_row(changes, _PARTICIPANT_FIELDS)


def review_from_row(row: Any) -> Review:
    data = _require_row(row, "review")
    rating = _int(data.get("rating"))
    if not 1 <= rating <= 5:
        raise RemoteError("Response included an invalid review rating.")
    response = data.get("response")
    return Review(
        id=_coerce_id(data.get("id"), "review"),
        provider_id=_coerce_id(data.get("provider_id"), "provider"),
        participant_id=_coerce_id(data.get("participant_id"), "participant"),
        participant_name=_text(data.get("participant_name")),
        rating=rating,
        text=_text(data.get("text")),
        created_on=_day(data.get("created_at")),
        response=None if response is None else str(response),
        response_date=_day(data.get("response_date")),
    )


def review_to_row(review: Review) -> dict[str, Any]:
    return {
        "id": review.id,
        "provider_id": review.provider_id,
        "participant_id": review.participant_id,
        "participant_name": review.participant_name,
        "rating": review.rating,
        "text": review.text,
        "created_at": _format_optional_day(review.created_on),
        "response": review.response,
        "response_date": _format_optional_day(review.response_date),
    }


def message_from_wire(data: Any) -> EnquiryMessage:
    item = _require_row(data, "message")
    sender = item.get("from", item.get("sender"))
    if sender not in MESSAGE_SENDERS:
        raise RemoteError("Response included an invalid message sender.")
    sent_at = _timestamp(item.get("sent_at"))
    if sent_at is None:
        try:
            sent_at = parse_message_time(_text(item.get("date")), item.get("time"))
        except ValidationError as exc:
            raise RemoteError("Response included an invalid message time.") from exc
    return EnquiryMessage(sender=sender, text=_text(item.get("text")), sent_at=sent_at)


def message_to_wire(message: EnquiryMessage) -> dict[str, Any]:
    return {
        "from": message.sender,
        "text": message.text,
        "date": message.sent_at.date().isoformat(),
        "time": format_message_time(message.sent_at),
        "sent_at": format_utc_timestamp(message.sent_at),
    }


def enquiry_from_row(row: Any) -> Enquiry:
    data = _require_row(row, "enquiry")
    messages = data.get("messages") or []
    if not isinstance(messages, list):
        raise RemoteError("Response included invalid enquiry messages.")
    status = data.get("status") or "active"
    if status not in ("active", "closed"):
        raise RemoteError("Response included an invalid enquiry status.")
    return Enquiry(
        id=_coerce_id(data.get("id"), "enquiry"),
        provider_id=_coerce_id(data.get("provider_id"), "provider"),
        participant_id=_coerce_id(data.get("participant_id"), "participant"),
        participant_name=_text(data.get("participant_name")),
        provider_name=_text(data.get("provider_name")),
        subject=_text(data.get("subject")),
        status=status,
        messages=tuple(message_from_wire(item) for item in messages),
        created_on=_day(data.get("created_at")),
    )


def enquiry_to_row(enquiry: Enquiry) -> dict[str, Any]:
    return {
        "id": enquiry.id,
        "provider_id": enquiry.provider_id,
        "participant_id": enquiry.participant_id,
        "participant_name": enquiry.participant_name,
        "provider_name": enquiry.provider_name,
        "subject": enquiry.subject,
        "status": enquiry.status,
        "messages": [message_to_wire(message) for message in enquiry.messages],
        "created_at": _format_optional_day(enquiry.created_on),
    }


def booking_from_row(row: Any) -> Booking:
    data = _require_row(row, "booking")
    status = data.get("status") or "pending"
    if status not in ("pending", "confirmed", "cancelled"):
        raise RemoteError("Response included an invalid booking status.")
    return Booking(
        id=_coerce_id(data.get("id"), "booking"),
        provider_id=_coerce_id(data.get("provider_id"), "provider"),
        participant_id=_coerce_id(data.get("participant_id"), "participant"),
        participant_name=_text(data.get("participant_name")),
        provider_name=_text(data.get("provider_name")),
        service=_text(data.get("service")),
        date=_day(data.get("date")),
        time=_text(data.get("time")),
        duration=_text(data.get("duration")),
        notes=_text(data.get("notes")),
        status=status,
        created_at=_timestamp(data.get("created_at")),
    )


def booking_to_row(booking: Booking) -> dict[str, Any]:
    return {
        "id": booking.id,
        "provider_id": booking.provider_id,
        "participant_id": booking.participant_id,
        "participant_name": booking.participant_name,
        "provider_name": booking.provider_name,
        "service": booking.service,
        "date": _format_optional_day(booking.date),
        "time": booking.time,
        "duration": booking.duration,
        "notes": booking.notes,
        "status": booking.status,
        "created_at": _format_optional_timestamp(booking.created_at),
    }
