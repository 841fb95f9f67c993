from datetime import UTC, date, datetime

import pytest

from nexaconnect.actions import (
    ACTION_TYPES,
    Back,
    CloseEnquiry,
    CreateBooking,
    Goto,
    Login,
    ReplyEnquiry,
    RespondReview,
    SelectProvider,
    SendEnquiry,
    SetSearchFilters,
    SubmitReview,
    ToggleFavourite,
    UpdateBookingStatus,
    UpdateProviderProfile,
    UpgradePlan,
    decode_action,
)
from nexaconnect.exceptions import ValidationError

NOW = datetime(2025, 11, 20, 9, 30, tzinfo=UTC)


def test_action_tags_are_unique() -> None:
    tags = [action.type for action in ACTION_TYPES]
    assert len(tags) == len(set(tags))


def test_decode_unknown_action() -> None:
    assert decode_action({"type": "ADMIN_SUSPEND", "payload": "p1"}) is None
    assert decode_action({"payload": "p1"}) is None


def test_decode_navigation() -> None:
    assert decode_action({"type": "NAV_GOTO", "payload": {"route": "search", "params": {"q": "x"}}}) == Goto(
        route="search", params={"q": "x"}
    )
    assert decode_action({"type": "NAV_BACK"}) == Back()
    assert decode_action({"type": "SET_SELECTED_PROVIDER", "payload": None}) == SelectProvider(
        provider_id=None
    )
    with pytest.raises(ValidationError):
        decode_action({"type": "NAV_GOTO", "payload": {}})


def test_decode_login_and_set_user_alias() -> None:
    payload = {"id": "u1", "role": "participant", "name": "Sarah Mitchell"}
    login = decode_action({"type": "LOGIN", "payload": payload})
    alias = decode_action({"type": "SET_USER", "payload": payload})
    assert isinstance(login, Login)
    assert login == alias
    assert login.session.name == "Sarah Mitchell"
    with pytest.raises(ValidationError):
        decode_action({"type": "LOGIN", "payload": {"id": "x", "role": "guest"}})


def test_decode_filters_and_favourite() -> None:
    action = decode_action({"type": "SET_SEARCH_FILTERS", "payload": {"minRating": 4}})
    assert action == SetSearchFilters(changes={"minRating": 4})
    assert decode_action({"type": "TOGGLE_FAVOURITE", "payload": {"id": "p3"}}) == ToggleFavourite(
        provider_id="p3"
    )
    assert decode_action({"type": "TOGGLE_FAVOURITE", "payload": "p3"}) == ToggleFavourite(
        provider_id="p3"
    )


def test_decode_send_enquiry_uses_clock_when_untimed() -> None:
    action = decode_action(
        {
            "type": "SEND_ENQUIRY",
            "payload": {"providerId": "p1", "participantId": "u1", "message": "Hello"},
        },
        now=NOW,
    )
    assert isinstance(action, SendEnquiry)
    assert action.sent_at == NOW
    assert action.enquiry_id is None


def test_decode_send_enquiry_requires_a_timestamp() -> None:
    with pytest.raises(ValidationError):
        decode_action(
            {
                "type": "SEND_ENQUIRY",
                "payload": {"providerId": "p1", "participantId": "u1", "message": "Hello"},
            }
        )


def test_decode_reply_with_legacy_date_and_time() -> None:
    action = decode_action(
        {
            "type": "REPLY_ENQUIRY",
            "payload": {
                "enquiryId": "e1",
                "text": "Thanks",
                "from": "provider",
                "date": "2025-11-08",
                "time": "2:15 PM",
            },
        }
    )
    assert action == ReplyEnquiry(
        enquiry_id="e1",
        text="Thanks",
        sender="provider",
        sent_at=datetime(2025, 11, 8, 14, 15, tzinfo=UTC),
    )
    with pytest.raises(ValidationError):
        decode_action(
            {"type": "REPLY_ENQUIRY", "payload": {"enquiryId": "e1", "text": "x", "from": "admin"}},
            now=NOW,
        )


def test_decode_booking_actions() -> None:
    booking = decode_action(
        {
            "type": "CREATE_BOOKING",
            "payload": {
                "providerId": "p1",
                "participantId": "u1",
                "service": "Daily Living Support",
                "date": "2025-12-01",
                "time": "10:00 AM",
            },
        },
        now=NOW,
    )
    assert isinstance(booking, CreateBooking)
    assert booking.date == date(2025, 12, 1)
    assert booking.created_at == NOW
    assert decode_action(
        {"type": "UPDATE_BOOKING", "payload": {"id": "b1", "status": "confirmed"}}
    ) == UpdateBookingStatus(booking_id="b1", status="confirmed")
    with pytest.raises(ValidationError):
        decode_action({"type": "UPDATE_BOOKING", "payload": {"id": "b1", "status": "done"}})


def test_decode_review_actions() -> None:
    review = decode_action(
        {
            "type": "SUBMIT_REVIEW",
            "payload": {"providerId": "p1", "participantId": "u1", "rating": "5", "text": "Great"},
        },
        now=NOW,
    )
    assert isinstance(review, SubmitReview)
    assert review.rating == 5
    assert review.submitted_on == date(2025, 11, 20)
    response = decode_action(
        {
            "type": "RESPOND_REVIEW",
            "payload": {"reviewId": "r1", "response": "Thank you", "responseDate": "2025-11-21"},
        }
    )
    assert response == RespondReview(
        review_id="r1", response="Thank you", responded_on=date(2025, 11, 21)
    )
    with pytest.raises(ValidationError):
        decode_action(
            {"type": "SUBMIT_REVIEW", "payload": {"providerId": "p1", "participantId": "u1"}},
            now=NOW,
        )


def test_decode_profile_and_plan() -> None:
    assert decode_action(
        {"type": "UPDATE_PROVIDER_PROFILE", "payload": {"id": "p1", "phone": "02 1234 5678"}}
    ) == UpdateProviderProfile(provider_id="p1", changes={"phone": "02 1234 5678"})
    assert decode_action(
        {"type": "UPGRADE_PLAN", "payload": {"providerId": "p1", "tier": "Professional"}}
    ) == UpgradePlan(provider_id="p1", tier="pro")
    assert decode_action({"type": "CLOSE_ENQUIRY", "payload": {"id": "e2"}}) == CloseEnquiry(
        enquiry_id="e2"
    )
    with pytest.raises(ValidationError):
        decode_action({"type": "UPGRADE_PLAN", "payload": {"providerId": "p1", "tier": "gold"}})
