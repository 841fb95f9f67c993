"""Pure state transitions for the directory.

``reduce`` is the only function that produces a new :class:`AppState`. It
never raises, never reads the clock and never performs I/O; unknown actions
return the state object unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, TypeVar

from . import history
from .actions import (
    Action,
    Back,
    CancelBooking,
    ClearFilters,
    CloseEnquiry,
    CreateBooking,
    DataLoaded,
    Goto,
    IncrementViews,
    Login,
    Logout,
    Register,
    ReplyEnquiry,
    RespondReview,
    SelectProvider,
    SendEnquiry,
    SetDashboardTab,
    SetSearchFilters,
    SetSearchQuery,
    SetTheme,
    SubmitReview,
    ToggleFavourite,
    UpdateBookingStatus,
    UpdateParticipantProfile,
    UpdateProviderProfile,
    UpgradePlan,
    decode_action,
)
from .const import (
    BOOKING_ID_PREFIX,
    ENQUIRY_ID_PREFIX,
    LANDING_ROUTE,
    REVIEW_ID_PREFIX,
    THEMES,
)
from .exceptions import ValidationError
from .models import (
    AppState,
    Booking,
    Enquiry,
    EnquiryMessage,
    Participant,
    Provider,
    Review,
    SearchFilters,
    Session,
)
from .ranking import coerce_filters
from .util import merge_entity, next_id, normalize_tier, toggle_member

T = TypeVar("T")


def _replace_by_id(
    items: tuple[T, ...], item_id: str, update: Callable[[T], T]
) -> tuple[tuple[T, ...], T | None]:
    """Apply ``update`` to the entry with ``item_id``; return the new entry too."""
    updated: T | None = None
    result = []
    for item in items:
        if getattr(item, "id") == item_id:
            updated = update(item)
            result.append(updated)
        else:
            result.append(item)
    if updated is None:
        return items, None
    return tuple(result), updated


def _find(items: Iterable[T], item_id: str) -> T | None:
    for item in items:
        if getattr(item, "id") == item_id:
            return item
    return None


def _sync_session(state: AppState, entity: Provider | Participant) -> Session | None:
    """Re-point the session profile when ``entity`` is the session's own entry."""
    session = state.session
    if session is None or session.id != entity.id:
        return session
    if session.role == "provider" and not isinstance(entity, Provider):
        return session
    if session.role == "participant" and not isinstance(entity, Participant):
        return session
    changes: dict[str, Any] = {"profile": entity, "name": entity.name}
    if entity.email:
        changes["email"] = entity.email
    if isinstance(entity, Provider):
        changes["tier"] = entity.tier
    return replace(session, **changes)


def _profile_for(state: AppState, session: Session) -> Provider | Participant | None:
    if session.role == "provider":
        return _find(state.providers, session.id)
    if session.role == "participant":
        return _find(state.participants, session.id)
    return None


def _goto(state: AppState, action: Goto) -> AppState:
    return replace(
        state,
        route=action.route,
        route_params=dict(action.params),
        history=history.push(state.history, state.current_frame, state.history_limit),
    )


def _back(state: AppState, action: Back) -> AppState:
    frame, remaining = history.pop(state.history)
    if frame is None:
        return state
    return replace(state, route=frame.route, route_params=dict(frame.params), history=remaining)


def _login(state: AppState, action: Login) -> AppState:
    session = action.session
    if session.profile is None:
        profile = _profile_for(state, session)
        if profile is not None:
            session = replace(session, profile=profile)
    return replace(state, session=session)


def _register(state: AppState, action: Register) -> AppState:
    profile = action.profile
    providers, participants = state.providers, state.participants
    if isinstance(profile, Provider) and _find(providers, profile.id) is None:
        providers = (*providers, profile)
    elif isinstance(profile, Participant) and _find(participants, profile.id) is None:
        participants = (*participants, profile)
    state = replace(state, providers=providers, participants=participants)
    return _login(state, Login(session=replace(action.session, profile=None)))


def _logout(state: AppState, action: Logout) -> AppState:
    return replace(
        state,
        session=None,
        route=LANDING_ROUTE,
        route_params={},
        history=history.clear(),
    )


def _set_theme(state: AppState, action: SetTheme) -> AppState:
    if action.theme not in THEMES:
        return state
    return replace(state, theme=action.theme)


def _set_search_query(state: AppState, action: SetSearchQuery) -> AppState:
    return replace(state, search_query=action.query)


def _set_search_filters(state: AppState, action: SetSearchFilters) -> AppState:
    return replace(state, search_filters=coerce_filters(action.changes, base=state.search_filters))


def _clear_filters(state: AppState, action: ClearFilters) -> AppState:
    return replace(state, search_query="", search_filters=SearchFilters())


def _select_provider(state: AppState, action: SelectProvider) -> AppState:
    return replace(state, selected_provider_id=action.provider_id)


def _set_dashboard_tab(state: AppState, action: SetDashboardTab) -> AppState:
    return replace(state, dashboard_tab=action.tab)


def _data_loaded(state: AppState, action: DataLoaded) -> AppState:
    changes: dict[str, Any] = {}
    for name in ("providers", "participants", "reviews", "enquiries", "bookings"):
        value = getattr(action, name)
        if value is not None:
            changes[name] = tuple(value)
    if not changes:
        return state
    state = replace(state, **changes)
    if state.session is not None:
        profile = _profile_for(state, state.session)
        if profile is not None:
            state = replace(state, session=_sync_session(state, profile))
    return state


def _toggle_favourite(state: AppState, action: ToggleFavourite) -> AppState:
    session = state.session
    if session is None or session.role != "participant":
        return state
    participants, updated = _replace_by_id(
        state.participants,
        session.id,
        lambda participant: replace(
            participant, favourites=toggle_member(participant.favourites, action.provider_id)
        ),
    )
    if updated is None:
        return state
    state = replace(state, participants=participants)
    return replace(state, session=_sync_session(state, updated))


def _bump_provider_counter(state: AppState, provider_id: str, counter: str) -> AppState:
    providers, updated = _replace_by_id(
        state.providers,
        provider_id,
        lambda provider: replace(provider, **{counter: getattr(provider, counter) + 1}),
    )
    if updated is None:
        return state
    state = replace(state, providers=providers)
    return replace(state, session=_sync_session(state, updated))


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are read as UTC so thread messages stay comparable.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _send_enquiry(state: AppState, action: SendEnquiry) -> AppState:
    enquiry_id = action.enquiry_id or next_id(
        ENQUIRY_ID_PREFIX, (enquiry.id for enquiry in state.enquiries)
    )
    if _find(state.enquiries, enquiry_id) is not None:
        return state
    sent_at = _as_utc(action.sent_at)
    enquiry = Enquiry(
        id=enquiry_id,
        provider_id=action.provider_id,
        participant_id=action.participant_id,
        messages=(
            EnquiryMessage(sender="participant", text=action.message, sent_at=sent_at),
        ),
        status="active",
        subject=action.subject,
        participant_name=action.participant_name,
        provider_name=action.provider_name,
        created_on=sent_at.date(),
    )
    state = replace(state, enquiries=(*state.enquiries, enquiry))
    return _bump_provider_counter(state, action.provider_id, "enquiries_this_month")


def _reply_enquiry(state: AppState, action: ReplyEnquiry) -> AppState:
    enquiry = _find(state.enquiries, action.enquiry_id)
    if enquiry is None or enquiry.status == "closed":
        return state
    sent_at = _as_utc(action.sent_at)
    if enquiry.messages:
        previous = _as_utc(enquiry.messages[-1].sent_at)
        if sent_at < previous:
            sent_at = previous
    message = EnquiryMessage(sender=action.sender, text=action.text, sent_at=sent_at)
    enquiries, _ = _replace_by_id(
        state.enquiries,
        action.enquiry_id,
        lambda item: replace(item, messages=(*item.messages, message)),
    )
    return replace(state, enquiries=enquiries)


def _close_enquiry(state: AppState, action: CloseEnquiry) -> AppState:
    enquiry = _find(state.enquiries, action.enquiry_id)
    if enquiry is None or enquiry.status == "closed":
        return state
    enquiries, _ = _replace_by_id(
        state.enquiries, action.enquiry_id, lambda item: replace(item, status="closed")
    )
    return replace(state, enquiries=enquiries)


def _create_booking(state: AppState, action: CreateBooking) -> AppState:
    booking_id = action.booking_id or next_id(
        BOOKING_ID_PREFIX, (booking.id for booking in state.bookings)
    )
    if _find(state.bookings, booking_id) is not None:
        return state
    booking = Booking(
        id=booking_id,
        provider_id=action.provider_id,
        participant_id=action.participant_id,
        service=action.service,
        date=action.date,
        time=action.time,
        duration=action.duration,
        notes=action.notes,
        status="pending",
        participant_name=action.participant_name,
        provider_name=action.provider_name,
        created_at=action.created_at,
    )
    state = replace(state, bookings=(*state.bookings, booking))
    return _bump_provider_counter(state, action.provider_id, "bookings_this_month")


def _set_booking_status(state: AppState, booking_id: str, status: str) -> AppState:
    booking = _find(state.bookings, booking_id)
    if booking is None or booking.status == status:
        return state
    bookings, _ = _replace_by_id(
        state.bookings, booking_id, lambda item: replace(item, status=status)
    )
    return replace(state, bookings=bookings)


def _update_booking_status(state: AppState, action: UpdateBookingStatus) -> AppState:
    return _set_booking_status(state, action.booking_id, action.status)


def _cancel_booking(state: AppState, action: CancelBooking) -> AppState:
    return _set_booking_status(state, action.booking_id, "cancelled")


def _submit_review(state: AppState, action: SubmitReview) -> AppState:
    review_id = action.review_id or next_id(
        REVIEW_ID_PREFIX, (review.id for review in state.reviews)
    )
    if _find(state.reviews, review_id) is not None:
        return state
    review = Review(
        id=review_id,
        provider_id=action.provider_id,
        participant_id=action.participant_id,
        rating=action.rating,
        text=action.text,
        created_on=action.submitted_on,
        participant_name=action.participant_name,
        response=None,
        response_date=None,
    )
    return replace(state, reviews=(*state.reviews, review))


def _respond_review(state: AppState, action: RespondReview) -> AppState:
    reviews, updated = _replace_by_id(
        state.reviews,
        action.review_id,
        lambda review: replace(
            review, response=action.response, response_date=action.responded_on
        ),
    )
    if updated is None:
        return state
    return replace(state, reviews=reviews)


def _normalized_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(changes)
    if "tier" in result:
        tier = normalize_tier(result["tier"])
        if tier is None:
            del result["tier"]
        else:
            result["tier"] = tier
    return result


def _update_provider(state: AppState, action: UpdateProviderProfile) -> AppState:
    changes = _normalized_changes(action.changes)
    providers, updated = _replace_by_id(
        state.providers, action.provider_id, lambda provider: merge_entity(provider, changes)
    )
    if updated is None:
        return state
    state = replace(state, providers=providers)
    return replace(state, session=_sync_session(state, updated))


def _update_participant(state: AppState, action: UpdateParticipantProfile) -> AppState:
    participants, updated = _replace_by_id(
        state.participants,
        action.participant_id,
        lambda participant: merge_entity(participant, action.changes),
    )
    if updated is None:
        return state
    state = replace(state, participants=participants)
    return replace(state, session=_sync_session(state, updated))


def _upgrade_plan(state: AppState, action: UpgradePlan) -> AppState:
    tier = normalize_tier(action.tier)
    if tier is None:
        return state
    providers, updated = _replace_by_id(
        state.providers, action.provider_id, lambda provider: replace(provider, tier=tier)
    )
    if updated is None:
        return state
    state = replace(state, providers=providers)
    return replace(state, session=_sync_session(state, updated))


def _increment_views(state: AppState, action: IncrementViews) -> AppState:
    return _bump_provider_counter(state, action.provider_id, "views_this_month")


_HANDLERS: dict[type, Callable[[AppState, Any], AppState]] = {
    Goto: _goto,
    Back: _back,
    Login: _login,
    Register: _register,
    Logout: _logout,
    SetTheme: _set_theme,
    SetSearchQuery: _set_search_query,
    SetSearchFilters: _set_search_filters,
    ClearFilters: _clear_filters,
    SelectProvider: _select_provider,
    SetDashboardTab: _set_dashboard_tab,
    DataLoaded: _data_loaded,
    ToggleFavourite: _toggle_favourite,
    SendEnquiry: _send_enquiry,
    ReplyEnquiry: _reply_enquiry,
    CloseEnquiry: _close_enquiry,
    CreateBooking: _create_booking,
    UpdateBookingStatus: _update_booking_status,
    CancelBooking: _cancel_booking,
    SubmitReview: _submit_review,
    RespondReview: _respond_review,
    UpdateProviderProfile: _update_provider,
    UpdateParticipantProfile: _update_participant,
    UpgradePlan: _upgrade_plan,
    IncrementViews: _increment_views,
}


def reduce(
    state: AppState, action: Action | Mapping[str, Any], *, now: datetime | None = None
) -> AppState:
    """Return the state that results from applying ``action`` to ``state``.

    Legacy mappings whose payload carries no timestamp take it from ``now``;
    without one they are ignored.
    """
    if isinstance(action, Mapping):
        try:
            decoded = decode_action(action, now=now)
        except ValidationError:
            return state
        if decoded is None:
            return state
        action = decoded
    handler = _HANDLERS.get(type(action))
    if handler is None:
        return state
    return handler(state, action)


def replay(
    actions: Iterable[Action | Mapping[str, Any]],
    state: AppState | None = None,
    *,
    now: datetime | None = None,
) -> AppState:
    """Fold a sequence of actions over ``state`` (or a fresh initial state)."""
    current = state if state is not None else AppState()
    for action in actions:
        current = reduce(current, action, now=now)
    return current


def initial_state(
    providers: Iterable[Provider] = (),
    participants: Iterable[Participant] = (),
    reviews: Iterable[Review] = (),
    enquiries: Iterable[Enquiry] = (),
    bookings: Iterable[Booking] = (),
    *,
    history_limit: int | None = None,
    theme: str | None = None,
    session: Session | None = None,
    route: str = LANDING_ROUTE,
) -> AppState:
    state = AppState(
        route=route,
        history_limit=history_limit,
        providers=tuple(providers),
        participants=tuple(participants),
        reviews=tuple(reviews),
        enquiries=tuple(enquiries),
        bookings=tuple(bookings),
    )
    if theme in THEMES:
        state = replace(state, theme=theme)
    if session is not None:
        state = _login(state, Login(session=session))
    return state


