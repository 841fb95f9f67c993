"""Actions accepted by the reducer.

Every state transition is one of the frozen dataclasses below. The legacy
``{"type": ..., "payload": ...}`` action stream is supported through
:func:`decode_action`, which maps each legacy tag onto its dataclass.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, ClassVar, Union

from .const import BOOKING_STATUSES, MESSAGE_SENDERS, ROLES
from .exceptions import ValidationError
from .models import (
    Booking,
    BookingStatus,
    Enquiry,
    Participant,
    Provider,
    Review,
    Sender,
    Session,
    Tier,
)
from .util import normalize_tier, parse_date, parse_message_time, parse_timestamp


@dataclass(frozen=True, slots=True)
class Goto:
    type: ClassVar[str] = "NAV_GOTO"
    route: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Back:
    type: ClassVar[str] = "NAV_BACK"


@dataclass(frozen=True, slots=True)
class Login:
    type: ClassVar[str] = "LOGIN"
    session: Session


@dataclass(frozen=True, slots=True)
class Register:
    type: ClassVar[str] = "REGISTER"
    session: Session
    profile: Provider | Participant | None = None


@dataclass(frozen=True, slots=True)
class Logout:
    type: ClassVar[str] = "LOGOUT"


@dataclass(frozen=True, slots=True)
class SetTheme:
    type: ClassVar[str] = "SET_THEME"
    theme: str


@dataclass(frozen=True, slots=True)
class SetSearchQuery:
    type: ClassVar[str] = "SET_SEARCH_QUERY"
    query: str


@dataclass(frozen=True, slots=True)
class SetSearchFilters:
    type: ClassVar[str] = "SET_SEARCH_FILTERS"
    changes: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ClearFilters:
    type: ClassVar[str] = "CLEAR_FILTERS"


@dataclass(frozen=True, slots=True)
class SelectProvider:
    type: ClassVar[str] = "SET_SELECTED_PROVIDER"
    provider_id: str | None


@dataclass(frozen=True, slots=True)
class SetDashboardTab:
    type: ClassVar[str] = "SET_DASHBOARD_TAB"
    tab: str


@dataclass(frozen=True, slots=True)
class DataLoaded:
    """Replace whole collections; None leaves a collection untouched."""

    type: ClassVar[str] = "DATA_LOADED"
    providers: tuple[Provider, ...] | None = None
    participants: tuple[Participant, ...] | None = None
    reviews: tuple[Review, ...] | None = None
    enquiries: tuple[Enquiry, ...] | None = None
    bookings: tuple[Booking, ...] | None = None


@dataclass(frozen=True, slots=True)
class ToggleFavourite:
    type: ClassVar[str] = "TOGGLE_FAVOURITE"
    provider_id: str


@dataclass(frozen=True, slots=True)
class SendEnquiry:
    type: ClassVar[str] = "SEND_ENQUIRY"
    provider_id: str
    participant_id: str
    message: str
    sent_at: datetime
    subject: str = ""
    participant_name: str = ""
    provider_name: str = ""
    enquiry_id: str | None = None


@dataclass(frozen=True, slots=True)
class ReplyEnquiry:
    type: ClassVar[str] = "REPLY_ENQUIRY"
    enquiry_id: str
    text: str
    sender: Sender
    sent_at: datetime


@dataclass(frozen=True, slots=True)
class CloseEnquiry:
    type: ClassVar[str] = "CLOSE_ENQUIRY"
    enquiry_id: str


@dataclass(frozen=True, slots=True)
class CreateBooking:
    type: ClassVar[str] = "CREATE_BOOKING"
    provider_id: str
    participant_id: str
    service: str
    date: date | None
    time: str = ""
    duration: str = ""
    notes: str = ""
    participant_name: str = ""
    provider_name: str = ""
    created_at: datetime | None = None
    booking_id: str | None = None


@dataclass(frozen=True, slots=True)
class UpdateBookingStatus:
    type: ClassVar[str] = "UPDATE_BOOKING"
    booking_id: str
    status: BookingStatus


@dataclass(frozen=True, slots=True)
class CancelBooking:
    type: ClassVar[str] = "CANCEL_BOOKING"
    booking_id: str


@dataclass(frozen=True, slots=True)
class SubmitReview:
    type: ClassVar[str] = "SUBMIT_REVIEW"
    provider_id: str
    participant_id: str
    rating: int
    text: str
    submitted_on: date
    participant_name: str = ""
    review_id: str | None = None


@dataclass(frozen=True, slots=True)
class RespondReview:
    type: ClassVar[str] = "RESPOND_REVIEW"
    review_id: str
    response: str
    responded_on: date


@dataclass(frozen=True, slots=True)
class UpdateProviderProfile:
    type: ClassVar[str] = "UPDATE_PROVIDER_PROFILE"
    provider_id: str
    changes: dict[str, Any]


@dataclass(frozen=True, slots=True)
class UpdateParticipantProfile:
    type: ClassVar[str] = "UPDATE_PARTICIPANT_PROFILE"
    participant_id: str
    changes: dict[str, Any]


@dataclass(frozen=True, slots=True)
class UpgradePlan:
    type: ClassVar[str] = "UPGRADE_PLAN"
    provider_id: str
    tier: Tier


@dataclass(frozen=True, slots=True)
class IncrementViews:
    type: ClassVar[str] = "INCREMENT_VIEWS"
    provider_id: str


Action = Union[
    Goto,
    Back,
    Login,
    Register,
    Logout,
    SetTheme,
    SetSearchQuery,
    SetSearchFilters,
    ClearFilters,
    SelectProvider,
    SetDashboardTab,
    DataLoaded,
    ToggleFavourite,
    SendEnquiry,
    ReplyEnquiry,
    CloseEnquiry,
    CreateBooking,
    UpdateBookingStatus,
    CancelBooking,
    SubmitReview,
    RespondReview,
    UpdateProviderProfile,
    UpdateParticipantProfile,
    UpgradePlan,
    IncrementViews,
]

ACTION_TYPES: tuple[type, ...] = Action.__args__  # type: ignore[attr-defined]


def decode_action(data: Mapping[str, Any], *, now: datetime | None = None) -> Action | None:
    """Translate a legacy ``{"type", "payload"}`` mapping into an action.

    Returns None for unknown tags. Raises ValidationError when the payload
    does not fit the tag. Timestamps missing from the payload are taken from
    ``now``; without it such payloads are rejected.
    """
    tag = data.get("type")
    decoder = _DECODERS.get(tag) if isinstance(tag, str) else None
    if decoder is None:
        return None
    return decoder(data.get("payload"), now)


def _require_mapping(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValidationError("Action payload must be an object.")
    return payload


def _require_text(payload: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return str(value)
    raise ValidationError(f"{keys[0]} is required.")


def _require_id(payload: Any) -> str:
    if isinstance(payload, Mapping):
        payload = payload.get("id")
    if payload is None or not str(payload).strip():
        raise ValidationError("id is required.")
    return str(payload).strip()


def _timestamp(payload: Mapping[str, Any], now: datetime | None) -> datetime:
    if payload.get("sentAt"):
        return parse_timestamp(str(payload["sentAt"]))
    if payload.get("date"):
        return parse_message_time(str(payload["date"]), payload.get("time"))
    if now is None:
        raise ValidationError("A timestamp is required.")
    return now


def _day(payload: Mapping[str, Any], key: str, now: datetime | None) -> date:
    if payload.get(key):
        return parse_date(str(payload[key]))
    if now is None:
        raise ValidationError(f"{key} is required.")
    return now.date()


def _session_from_user(user: Any) -> Session:
    if isinstance(user, Session):
        return user
    data = _require_mapping(user)
    role = data.get("role")
    if role not in ROLES:
        raise ValidationError("role must be participant, provider or admin.")
    return Session(
        id=_require_text(data, "id"),
        role=role,
        name=str(data.get("name") or ""),
        email=str(data.get("email") or ""),
        tier=normalize_tier(data.get("tier")),  # type: ignore[arg-type]
    )


def _decode_goto(payload: Any, _now: datetime | None) -> Goto:
    data = _require_mapping(payload)
    params = data.get("params") or {}
    return Goto(route=_require_text(data, "route"), params=dict(params))


def _decode_send_enquiry(payload: Any, now: datetime | None) -> SendEnquiry:
    data = _require_mapping(payload)
    return SendEnquiry(
        provider_id=_require_text(data, "providerId", "provider_id"),
        participant_id=_require_text(data, "participantId", "participant_id"),
        message=_require_text(data, "message"),
        sent_at=_timestamp(data, now),
        subject=str(data.get("subject") or ""),
        participant_name=str(data.get("participantName") or ""),
        provider_name=str(data.get("providerName") or ""),
        enquiry_id=data.get("id"),
    )


def _decode_reply_enquiry(payload: Any, now: datetime | None) -> ReplyEnquiry:
    data = _require_mapping(payload)
    sender = data.get("from", data.get("sender"))
    if sender not in MESSAGE_SENDERS:
        raise ValidationError("Reply sender must be participant or provider.")
    return ReplyEnquiry(
        enquiry_id=_require_text(data, "enquiryId", "enquiry_id"),
        text=_require_text(data, "text"),
        sender=sender,
        sent_at=_timestamp(data, now),
    )


def _decode_create_booking(payload: Any, now: datetime | None) -> CreateBooking:
    data = _require_mapping(payload)
    booking_date = parse_date(str(data["date"])) if data.get("date") else None
    return CreateBooking(
        provider_id=_require_text(data, "providerId", "provider_id"),
        participant_id=_require_text(data, "participantId", "participant_id"),
        service=str(data.get("service") or ""),
        date=booking_date,
        time=str(data.get("time") or ""),
        duration=str(data.get("duration") or ""),
        notes=str(data.get("notes") or ""),
        participant_name=str(data.get("participantName") or ""),
        provider_name=str(data.get("providerName") or ""),
        created_at=now,
        booking_id=data.get("id"),
    )


def _decode_update_booking(payload: Any, _now: datetime | None) -> UpdateBookingStatus:
    data = _require_mapping(payload)
    status = data.get("status")
    if status not in BOOKING_STATUSES:
        raise ValidationError("Booking status is not recognised.")
    return UpdateBookingStatus(booking_id=_require_id(data), status=status)


def _decode_submit_review(payload: Any, now: datetime | None) -> SubmitReview:
    data = _require_mapping(payload)
    try:
        rating = int(data.get("rating"))
    except (TypeError, ValueError) as exc:
        raise ValidationError("Review rating must be an integer.") from exc
    return SubmitReview(
        provider_id=_require_text(data, "providerId", "provider_id"),
        participant_id=_require_text(data, "participantId", "participant_id"),
        rating=rating,
        text=str(data.get("text") or ""),
        submitted_on=_day(data, "date", now),
        participant_name=str(data.get("participantName") or ""),
        review_id=data.get("id"),
    )


def _decode_respond_review(payload: Any, now: datetime | None) -> RespondReview:
    data = _require_mapping(payload)
    return RespondReview(
        review_id=_require_text(data, "reviewId", "review_id"),
        response=_require_text(data, "response"),
        responded_on=_day(data, "responseDate", now),
    )


_PROFILE_ALIASES = {
    "shortDescription": "short_description",
    "responseRate": "response_rate",
    "responseTime": "response_time",
    "reviewCount": "review_count",
    "waitTime": "wait_time",
    "planTypes": "plan_types",
    "planType": "plan_type",
    "serviceAreas": "service_areas",
    "teamSize": "team_size",
    "viewsThisMonth": "views_this_month",
    "enquiriesThisMonth": "enquiries_this_month",
    "bookingsThisMonth": "bookings_this_month",
    "ndisNumber": "ndis_number",
    "userId": "user_id",
    "stripeCustomerId": "stripe_customer_id",
    "stripeSubscriptionId": "stripe_subscription_id",
}


def _decode_profile(payload: Any) -> tuple[str, dict[str, Any]]:
    """Split a legacy profile payload into its id and snake_case changes.

    A nested location mapping is flattened into suburb, state and postcode.
    """
    data = _require_mapping(payload)
    changes: dict[str, Any] = {}
    for key, value in data.items():
        if key == "id":
            continue
        if key == "location" and isinstance(value, Mapping):
            for part in ("suburb", "state", "postcode"):
                if value.get(part) is not None:
                    changes[part] = value[part]
            continue
        changes[_PROFILE_ALIASES.get(key, key)] = value
    return _require_id(data), changes


def _decode_upgrade(payload: Any, _now: datetime | None) -> UpgradePlan:
    data = _require_mapping(payload)
    tier = normalize_tier(data.get("tier"))
    if tier is None:
        raise ValidationError("Tier is not recognised.")
    return UpgradePlan(provider_id=_require_text(data, "providerId", "provider_id"), tier=tier)  # type: ignore[arg-type]


_DECODERS = {
    Goto.type: _decode_goto,
    Back.type: lambda _payload, _now: Back(),
    Login.type: lambda payload, _now: Login(session=_session_from_user(payload)),
    "SET_USER": lambda payload, _now: Login(session=_session_from_user(payload)),
    Logout.type: lambda _payload, _now: Logout(),
    SetTheme.type: lambda payload, _now: SetTheme(theme=str(payload)),
    SetSearchQuery.type: lambda payload, _now: SetSearchQuery(query=str(payload or "")),
    SetSearchFilters.type: lambda payload, _now: SetSearchFilters(
        changes=dict(_require_mapping(payload))
    ),
    ClearFilters.type: lambda _payload, _now: ClearFilters(),
    SelectProvider.type: lambda payload, _now: SelectProvider(
        provider_id=None if payload is None else str(payload)
    ),
    SetDashboardTab.type: lambda payload, _now: SetDashboardTab(tab=str(payload)),
    ToggleFavourite.type: lambda payload, _now: ToggleFavourite(provider_id=_require_id(payload)),
    SendEnquiry.type: _decode_send_enquiry,
    ReplyEnquiry.type: _decode_reply_enquiry,
    CloseEnquiry.type: lambda payload, _now: CloseEnquiry(enquiry_id=_require_id(payload)),
    CreateBooking.type: _decode_create_booking,
    UpdateBookingStatus.type: _decode_update_booking,
    CancelBooking.type: lambda payload, _now: CancelBooking(booking_id=_require_id(payload)),
    SubmitReview.type: _decode_submit_review,
    RespondReview.type: _decode_respond_review,
    UpdateProviderProfile.type: lambda payload, _now: UpdateProviderProfile(
        *_decode_profile(payload)
    ),
    UpdateParticipantProfile.type: lambda payload, _now: UpdateParticipantProfile(
        *_decode_profile(payload)
    ),
    UpgradePlan.type: _decode_upgrade,
    IncrementViews.type: lambda payload, _now: IncrementViews(provider_id=_require_id(payload)),
}
