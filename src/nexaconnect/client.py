"""Client facade over the store, the bundled dataset and the remote adapter."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict, fields
from datetime import UTC, date, datetime
from typing import Any

import aiohttp

from . import billing, ranking
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
)
from .adapter import create_adapter
from .adapter.base import BaseAdapter, UserProfile
from .config import Settings
from .const import (
    BOOKING_STATUSES,
    DASHBOARD_ROUTES,
    DEFAULT_DASHBOARD_TAB,
    LANDING_ROUTE,
    MIN_PASSWORD_LENGTH,
    PARTICIPANT_ID_PREFIX,
    PROVIDER_ID_PREFIX,
    PROVIDER_PROFILE_ROUTE,
    THEMES,
)
from .dataset import Dataset, load_dataset
from .exceptions import (
    AuthError,
    ConfigError,
    FeatureUnavailableError,
    NexaConnectError,
    NotConfiguredError,
    NotFoundError,
    ValidationError,
)
from .models import (
    AppState,
    Booking,
    Enquiry,
    EnquiryMessage,
    Location,
    Participant,
    Provider,
    Review,
    SearchFilters,
    Session,
)
from .reducer import initial_state
from .snapshot import load_snapshot, restore_snapshot, save_snapshot
from .store import Clock, Listener, Store
from .tiers import (
    can_accept_direct_booking,
    can_respond_to_reviews,
    description_within_limit,
    provider_features,
)
from .util import next_id, normalize_tier, parse_date, short_display_name, toggle_member

_LOGGER = logging.getLogger(__name__)
_REGISTRABLE_ROLES = ("participant", "provider")
_PROTECTED_PROFILE_KEYS = ("id", "tier", "user_id", "created_at")


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _find(items: Iterable[Any], item_id: str) -> Any:
    for item in items:
        if item.id == item_id:
            return item
    return None


def _upsert(items: tuple[Any, ...], entity: Any) -> tuple[Any, ...]:
    if _find(items, entity.id) is None:
        return (*items, entity)
    return tuple(entity if item.id == entity.id else item for item in items)


def _entity_changes(entity: Provider | Participant) -> dict[str, Any]:
    return {item.name: getattr(entity, item.name) for item in fields(entity) if item.name != "id"}


class Client:
    """Facade for browsing, messaging, booking and account management.

    Without a configured backend every mutation is applied locally. With one,
    writes made by a signed-in account go to the backend first and the
    resulting action is dispatched only after the write succeeds.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        store: Store | None = None,
        dataset: Dataset | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=self._settings.timeout)
        self._clock = clock or _utc_now
        self._dataset = dataset
        if store is None:
            store = Store(
                self._restored(initial_state(history_limit=self._settings.history_limit)),
                clock=self._clock,
            )
        self._store = store
        self._adapter: BaseAdapter | None = None

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        self._adapter = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def store(self) -> Store:
        return self._store

    @property
    def state(self) -> AppState:
        return self._store.state

    @property
    def dataset(self) -> Dataset:
        if self._dataset is None:
            self._dataset = load_dataset()
        return self._dataset

    def subscribe(self, listener: Listener):
        return self._store.subscribe(listener)

    def dispatch(self, action: Action | Mapping[str, Any]) -> AppState:
        return self._store.dispatch(action)

    # Data loading

    async def load(self) -> AppState:
        """Fill the store from the backend, or from the bundled dataset."""
        adapter = self._remote_adapter()
        if adapter is None:
            data = self.dataset
            _LOGGER.debug("Loading bundled dataset")
            return self.dispatch(
                DataLoaded(
                    providers=data.providers,
                    participants=data.participants,
                    reviews=data.reviews,
                    enquiries=data.enquiries,
                    bookings=data.bookings,
                )
            )
        _LOGGER.debug("Loading remote data started")
        providers = await adapter.fetch_providers()
        reviews = await adapter.fetch_reviews()
        enquiries = bookings = participants = None
        if adapter.access_token:
            enquiries = tuple(await adapter.fetch_enquiries())
            bookings = tuple(await adapter.fetch_bookings())
            session = self.state.session
            if session is not None and isinstance(session.profile, Participant):
                user_id = session.profile.user_id
                participant = await adapter.fetch_participant(user_id) if user_id else None
                if participant is not None:
                    participants = _upsert(self.state.participants, participant)
        _LOGGER.debug("Loading remote data completed (%s providers)", len(providers))
        return self.dispatch(
            DataLoaded(
                providers=tuple(providers),
                participants=participants,
                reviews=tuple(reviews),
                enquiries=enquiries,
                bookings=bookings,
            )
        )

    # Session

    async def login(self, email: str, password: str) -> Session:
        if not email or not password:
            raise ValidationError("Email and password are required.")
        if not self.state.providers:
            await self.load()
        account = self.dataset.find_account(email, password)
        if account is not None:
            session = Session(
                id=account.id,
                role=account.role,
                name=account.name,
                email=account.email,
            )
            profile = self._profile_for(session)
            if isinstance(profile, Provider):
                session = Session(
                    id=session.id,
                    role=session.role,
                    name=profile.name,
                    email=session.email,
                    tier=profile.tier,
                )
        else:
            adapter = self._remote_adapter()
            if adapter is None:
                raise AuthError(
                    "Invalid email or password.",
                    user_message="Invalid email or password.",
                )
            session = await self._remote_login(adapter, email, password)
        self.dispatch(Login(session=session))
        self._enter_dashboard(session)
        _LOGGER.debug("Signed in as %s (%s)", session.id, session.role)
        return self.state.session or session

    async def _remote_login(self, adapter: BaseAdapter, email: str, password: str) -> Session:
        auth = await adapter.sign_in(email, password)
        profile = await adapter.fetch_user_profile(auth.user_id)
        role = profile.role if profile is not None else "participant"
        name = (profile.name if profile is not None else "") or auth.email
        entity: Provider | Participant | None = None
        if role == "provider":
            entity = await adapter.fetch_provider_by_user_id(auth.user_id)
            if entity is not None:
                self.dispatch(DataLoaded(providers=_upsert(self.state.providers, entity)))
        elif role == "participant":
            entity = await adapter.fetch_participant(auth.user_id)
            if entity is not None:
                self.dispatch(DataLoaded(participants=_upsert(self.state.participants, entity)))
        tier = None
        if role == "provider":
            tier = entity.tier if isinstance(entity, Provider) else (profile.tier if profile else "free")
        return Session(
            id=entity.id if entity is not None else auth.user_id,
            role=role,
            name=name,
            email=auth.email or email,
            tier=tier,
        )

    async def register(
        self,
        role: str,
        name: str,
        email: str,
        password: str,
        *,
        suburb: str = "",
        state: str = "",
        postcode: str = "",
        categories: Iterable[str] = (),
    ) -> Session:
        if role not in _REGISTRABLE_ROLES:
            raise ValidationError("Role must be participant or provider.")
        if not name.strip() or not email.strip() or not password:
            raise ValidationError(
                "Name, email and password are required.",
                user_message="Please fill in all required fields",
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
                user_message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            )
        if not self.state.providers:
            await self.load()
        location = Location(suburb=suburb, state=state, postcode=postcode)
        now = self._clock()
        profile: Provider | Participant
        if role == "provider":
            profile = Provider(
                id=next_id(PROVIDER_ID_PREFIX, (item.id for item in self.state.providers)),
                name=name.strip(),
                email=email.strip(),
                location=location,
                categories=tuple(categories),
                created_at=now,
            )
        else:
            profile = Participant(
                id=next_id(PARTICIPANT_ID_PREFIX, (item.id for item in self.state.participants)),
                name=name.strip(),
                email=email.strip(),
                location=location,
                categories=tuple(categories),
                created_at=now,
            )
        adapter = self._remote_adapter()
        if adapter is not None:
            auth = await adapter.sign_up(email, password, {"name": profile.name, "role": role})
            await adapter.create_user_profile(
                UserProfile(user_id=auth.user_id, role=role, name=profile.name, email=profile.email)
            )
            if isinstance(profile, Provider):
                profile = await adapter.create_provider(auth.user_id, profile)
            else:
                profile = await adapter.create_participant(auth.user_id, profile)
        session = Session(
            id=profile.id,
            role=role,  # type: ignore[arg-type]
            name=profile.name,
            email=profile.email,
            tier=profile.tier if isinstance(profile, Provider) else None,
        )
        self.dispatch(Register(session=session, profile=profile))
        self._enter_dashboard(session)
        return self.state.session or session

    async def logout(self) -> AppState:
        adapter = self._adapter
        if adapter is not None and adapter.access_token:
            try:
                await adapter.sign_out()
            except NexaConnectError as exc:
                _LOGGER.warning("Remote sign-out failed: %s", exc)
        state = self.dispatch(Logout())
        self._autosave()
        return state

    # Navigation and search

    def goto(self, route: str, params: Mapping[str, Any] | None = None) -> AppState:
        if not route:
            raise ValidationError("route is required.")
        return self.dispatch(Goto(route=route, params=dict(params or {})))

    def back(self) -> AppState:
        return self.dispatch(Back())

    def set_theme(self, theme: str) -> AppState:
        if theme not in THEMES:
            raise ValidationError(f"Theme must be one of {', '.join(THEMES)}.")
        state = self.dispatch(SetTheme(theme=theme))
        self._autosave()
        return state

    def set_dashboard_tab(self, tab: str) -> AppState:
        return self.dispatch(SetDashboardTab(tab=tab))

    def search(
        self,
        query: str | None = None,
        filters: SearchFilters | Mapping[str, Any] | None = None,
    ) -> list[Provider]:
        if query is not None:
            self.dispatch(SetSearchQuery(query=query))
        if filters is not None:
            changes = asdict(filters) if isinstance(filters, SearchFilters) else dict(filters)
            self.dispatch(SetSearchFilters(changes=changes))
        return ranking.search(self.state)

    def clear_filters(self) -> AppState:
        return self.dispatch(ClearFilters())

    def view_provider(self, provider_id: str) -> Provider:
        self._get_provider(provider_id)
        self.dispatch(SelectProvider(provider_id=provider_id))
        self.dispatch(IncrementViews(provider_id=provider_id))
        self.dispatch(Goto(route=PROVIDER_PROFILE_ROUTE, params={"id": provider_id}))
        return self._get_provider(provider_id)

    # Favourites

    async def toggle_favourite(self, provider_id: str) -> tuple[str, ...]:
        session = self._require_session("participant")
        participant = self._get_participant(session.id)
        adapter = self._writer()
        if adapter is None:
            self.dispatch(ToggleFavourite(provider_id=provider_id))
        else:
            favourites = toggle_member(participant.favourites, provider_id)
            updated = await adapter.update_participant(
                participant.id, {"favourites": list(favourites)}
            )
            self.dispatch(
                UpdateParticipantProfile(
                    participant_id=participant.id,
                    changes={"favourites": updated.favourites},
                )
            )
        return self._get_participant(session.id).favourites

    # Enquiries

    async def send_enquiry(self, provider_id: str, message: str, *, subject: str = "") -> Enquiry:
        session = self._require_session("participant")
        if not message or not message.strip():
            raise ValidationError(
                "Message text is required.",
                user_message="Please write a message",
            )
        provider = self._get_provider(provider_id)
        limit = provider_features(provider).enquiries_per_month
        if limit is not None and provider.enquiries_this_month >= limit:
            raise FeatureUnavailableError(
                f"{provider.name} has reached its monthly enquiry limit.",
                user_message="This provider cannot accept more enquiries this month.",
            )
        sent_at = self._clock()
        action = SendEnquiry(
            provider_id=provider.id,
            participant_id=session.id,
            message=message.strip(),
            sent_at=sent_at,
            subject=subject,
            participant_name=session.name,
            provider_name=provider.name,
        )
        adapter = self._writer()
        if adapter is not None:
            created = await adapter.send_enquiry(
                Enquiry(
                    id="",
                    provider_id=action.provider_id,
                    participant_id=action.participant_id,
                    messages=(
                        EnquiryMessage(sender="participant", text=action.message, sent_at=sent_at),
                    ),
                    subject=subject,
                    participant_name=action.participant_name,
                    provider_name=action.provider_name,
                    created_on=sent_at.date(),
                )
            )
            first_sent = created.messages[0].sent_at if created.messages else sent_at
            action = SendEnquiry(
                provider_id=created.provider_id,
                participant_id=created.participant_id,
                message=action.message,
                sent_at=first_sent,
                subject=created.subject,
                participant_name=created.participant_name,
                provider_name=created.provider_name,
                enquiry_id=created.id,
            )
        before = {item.id for item in self.state.enquiries}
        self.dispatch(action)
        for enquiry in self.state.enquiries:
            if enquiry.id not in before:
                return enquiry
        return self._get_enquiry(action.enquiry_id or "")

    async def reply_enquiry(self, enquiry_id: str, text: str) -> Enquiry:
        session = self._require_session()
        enquiry = self._get_enquiry(enquiry_id)
        self._require_party(session, enquiry.provider_id, enquiry.participant_id)
        if enquiry.status == "closed":
            raise ValidationError("Enquiry is closed.")
        if not text or not text.strip():
            raise ValidationError("Reply text is required.")
        sender = session.role
        sent_at = self._clock()
        adapter = self._writer()
        if adapter is not None:
            updated = await adapter.reply_enquiry(
                enquiry.id,
                EnquiryMessage(sender=sender, text=text.strip(), sent_at=sent_at),  # type: ignore[arg-type]
            )
            if updated.messages:
                sent_at = updated.messages[-1].sent_at
        self.dispatch(
            ReplyEnquiry(
                enquiry_id=enquiry.id,
                text=text.strip(),
                sender=sender,  # type: ignore[arg-type]
                sent_at=sent_at,
            )
        )
        return self._get_enquiry(enquiry.id)

    async def close_enquiry(self, enquiry_id: str) -> Enquiry:
        session = self._require_session()
        enquiry = self._get_enquiry(enquiry_id)
        self._require_party(session, enquiry.provider_id, enquiry.participant_id)
        adapter = self._writer()
        if adapter is not None and enquiry.status != "closed":
            await adapter.close_enquiry(enquiry.id)
        self.dispatch(CloseEnquiry(enquiry_id=enquiry.id))
        return self._get_enquiry(enquiry.id)

    # Bookings

    async def create_booking(
        self,
        provider_id: str,
        service: str,
        booking_date: date | str,
        *,
        time: str = "",
        duration: str = "",
        notes: str = "",
    ) -> Booking:
        session = self._require_session("participant")
        provider = self._get_provider(provider_id)
        if not can_accept_direct_booking(provider):
            raise FeatureUnavailableError(
                f"{provider.name} does not accept direct bookings.",
                user_message="Direct booking is available for Premium providers only.",
            )
        if not service or not service.strip():
            raise ValidationError("service is required.")
        day = booking_date if isinstance(booking_date, date) else parse_date(booking_date)
        action = CreateBooking(
            provider_id=provider.id,
            participant_id=session.id,
            service=service.strip(),
            date=day,
            time=time,
            duration=duration,
            notes=notes,
            participant_name=session.name,
            provider_name=provider.name,
            created_at=self._clock(),
        )
        adapter = self._writer()
        if adapter is not None:
            created = await adapter.create_booking(
                Booking(
                    id="",
                    provider_id=action.provider_id,
                    participant_id=action.participant_id,
                    service=action.service,
                    date=action.date,
                    time=action.time,
                    duration=action.duration,
                    notes=action.notes,
                    participant_name=action.participant_name,
                    provider_name=action.provider_name,
                )
            )
            action = CreateBooking(
                provider_id=created.provider_id,
                participant_id=created.participant_id,
                service=created.service,
                date=created.date,
                time=created.time,
                duration=created.duration,
                notes=created.notes,
                participant_name=created.participant_name,
                provider_name=created.provider_name,
                created_at=created.created_at or action.created_at,
                booking_id=created.id,
            )
        before = {item.id for item in self.state.bookings}
        self.dispatch(action)
        for booking in self.state.bookings:
            if booking.id not in before:
                return booking
        return self._get_booking(action.booking_id or "")

    async def update_booking_status(self, booking_id: str, status: str) -> Booking:
        if status not in BOOKING_STATUSES:
            raise ValidationError(f"Booking status must be one of {', '.join(BOOKING_STATUSES)}.")
        session = self._require_session()
        booking = self._get_booking(booking_id)
        self._require_party(session, booking.provider_id, booking.participant_id)
        adapter = self._writer()
        if adapter is not None:
            updated = await adapter.update_booking(booking.id, {"status": status})
            status = updated.status
        self.dispatch(UpdateBookingStatus(booking_id=booking.id, status=status))  # type: ignore[arg-type]
        return self._get_booking(booking.id)

    async def cancel_booking(self, booking_id: str) -> Booking:
        session = self._require_session()
        booking = self._get_booking(booking_id)
        self._require_party(session, booking.provider_id, booking.participant_id)
        adapter = self._writer()
        if adapter is not None and booking.status != "cancelled":
            await adapter.update_booking(booking.id, {"status": "cancelled"})
        self.dispatch(CancelBooking(booking_id=booking.id))
        return self._get_booking(booking.id)

    # Reviews

    async def submit_review(self, provider_id: str, rating: int, text: str) -> Review:
        session = self._require_session("participant")
        provider = self._get_provider(provider_id)
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be an integer from 1 to 5.")
        if not text or not text.strip():
            raise ValidationError("Review text is required.", user_message="Please write a review")
        action = SubmitReview(
            provider_id=provider.id,
            participant_id=session.id,
            rating=rating,
            text=text.strip(),
            submitted_on=self._clock().date(),
            participant_name=short_display_name(session.name),
        )
        adapter = self._writer()
        if adapter is not None:
            created = await adapter.submit_review(
                Review(
                    id="",
                    provider_id=action.provider_id,
                    participant_id=action.participant_id,
                    rating=action.rating,
                    text=action.text,
                    participant_name=action.participant_name,
                )
            )
            action = SubmitReview(
                provider_id=created.provider_id,
                participant_id=created.participant_id,
                rating=created.rating,
                text=created.text,
                submitted_on=created.created_on or action.submitted_on,
                participant_name=created.participant_name,
                review_id=created.id,
            )
        before = {item.id for item in self.state.reviews}
        self.dispatch(action)
        for review in self.state.reviews:
            if review.id not in before:
                return review
        return self._get_review(action.review_id or "")

    async def respond_to_review(self, review_id: str, response: str) -> Review:
        session = self._require_session("provider")
        provider = self._get_provider(session.id)
        review = self._get_review(review_id)
        if review.provider_id != provider.id:
            raise AuthError("Only the reviewed provider can respond.")
        if not can_respond_to_reviews(provider):
            raise FeatureUnavailableError(
                "Review responses require a Professional or Premium plan.",
                user_message="Upgrade your plan to respond to reviews.",
            )
        if not response or not response.strip():
            raise ValidationError("Response text is required.")
        responded_on = self._clock().date()
        text = response.strip()
        adapter = self._writer()
        if adapter is not None:
            updated = await adapter.respond_to_review(review.id, text, responded_on)
            text = updated.response or text
            responded_on = updated.response_date or responded_on
        self.dispatch(RespondReview(review_id=review.id, response=text, responded_on=responded_on))
        return self._get_review(review.id)

    # Profiles and plans

    async def update_profile(self, changes: Mapping[str, Any]) -> Provider | Participant:
        session = self._require_session()
        cleaned = {key: value for key, value in changes.items() if key not in _PROTECTED_PROFILE_KEYS}
        if not cleaned:
            raise ValidationError("No profile fields to update.")
        adapter = self._writer()
        if session.role == "provider":
            provider = self._get_provider(session.id)
            description = cleaned.get("description")
            if isinstance(description, str) and not description_within_limit(provider, description):
                raise FeatureUnavailableError(
                    "Description exceeds the limit for the current plan.",
                    user_message="Upgrade your plan for a longer description.",
                )
            if adapter is not None:
                updated = await adapter.update_provider(provider.id, cleaned)
                cleaned = _entity_changes(updated)
            self.dispatch(UpdateProviderProfile(provider_id=provider.id, changes=cleaned))
            return self._get_provider(provider.id)
        if session.role == "participant":
            participant = self._get_participant(session.id)
            if adapter is not None:
                updated_participant = await adapter.update_participant(participant.id, cleaned)
                cleaned = _entity_changes(updated_participant)
            self.dispatch(
                UpdateParticipantProfile(participant_id=participant.id, changes=cleaned)
            )
            return self._get_participant(participant.id)
        raise AuthError("Admin accounts have no profile to update.")

    async def change_plan(self, tier: str) -> Provider:
        session = self._require_session("provider")
        provider = self._get_provider(session.id)
        normalized = normalize_tier(tier)
        if normalized is None:
            raise ValidationError(f"Unknown plan {tier!r}.")
        adapter = self._writer()
        if adapter is not None:
            await adapter.update_provider_billing(provider.id, tier=normalized)
        self.dispatch(UpgradePlan(provider_id=provider.id, tier=normalized))  # type: ignore[arg-type]
        return self._get_provider(provider.id)

    # Billing

    async def start_checkout(self, plan_id: str, billing_cycle: str = "monthly") -> str:
        session = self._require_session("provider")
        adapter = self._billing_adapter()
        return await billing.start_checkout(
            adapter,
            provider_id=session.id,
            plan_id=plan_id,
            billing_cycle=billing_cycle,
            price_id=self._settings.price_id(plan_id, billing_cycle) or "",
            return_url=self._return_url(),
        )

    async def open_billing_portal(self) -> str:
        session = self._require_session("provider")
        adapter = self._billing_adapter()
        return await billing.open_billing_portal(
            adapter, provider_id=session.id, return_url=self._return_url()
        )

    async def unlock_lead(self, lead_id: str) -> str:
        session = self._require_session("provider")
        adapter = self._billing_adapter()
        return await billing.unlock_lead(
            adapter, provider_id=session.id, lead_id=lead_id, return_url=self._return_url()
        )

    def apply_billing_event(self, event: Mapping[str, Any]) -> AppState:
        for action in billing.actions_from_billing_event(event):
            self.dispatch(action)
        return self.state

    # Snapshot

    def save_snapshot(self) -> None:
        path = self._settings.snapshot_path
        if path is None:
            raise ConfigError("snapshot_path is not configured.")
        save_snapshot(path, self.state)

    def _restored(self, state: AppState) -> AppState:
        path = self._settings.snapshot_path
        if path is None:
            return state
        snapshot = load_snapshot(path)
        if snapshot is None:
            return state
        return restore_snapshot(state, snapshot)

    def _autosave(self) -> None:
        if self._settings.snapshot_path is not None:
            self.save_snapshot()

    # Helpers

    def _enter_dashboard(self, session: Session) -> None:
        self.dispatch(Goto(route=DASHBOARD_ROUTES.get(session.role, LANDING_ROUTE)))
        self.dispatch(SetDashboardTab(tab=DEFAULT_DASHBOARD_TAB))
        self._autosave()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def _remote_adapter(self) -> BaseAdapter | None:
        if self._adapter is not None:
            return self._adapter
        if not self._settings.remote_enabled:
            return None
        try:
            self._adapter = create_adapter(self._settings, self._ensure_session())
        except NotConfiguredError:
            _LOGGER.debug("No remote backend configured, using local mode")
            return None
        return self._adapter

    def _writer(self) -> BaseAdapter | None:
        # Demo accounts have no remote token; their writes stay local.
        adapter = self._remote_adapter()
        if adapter is None or not adapter.access_token:
            return None
        return adapter

    def _billing_adapter(self) -> BaseAdapter:
        adapter = self._writer()
        if adapter is None:
            raise NotConfiguredError(
                "Billing requires a configured backend and a signed-in account."
            )
        return adapter

    def _return_url(self) -> str:
        if not self._settings.return_url:
            raise ConfigError("return_url is not configured.")
        return self._settings.return_url

    def _profile_for(self, session: Session) -> Provider | Participant | None:
        if session.role == "provider":
            return _find(self.state.providers, session.id)
        if session.role == "participant":
            return _find(self.state.participants, session.id)
        return None

    def _require_session(self, role: str | None = None) -> Session:
        session = self.state.session
        if session is None:
            raise AuthError("Sign in required.", user_message="Please log in to continue.")
        if role is not None and session.role != role:
            raise AuthError(f"This action requires a {role} account.")
        return session

    def _require_party(self, session: Session, provider_id: str, participant_id: str) -> None:
        if session.role == "provider" and session.id == provider_id:
            return
        if session.role == "participant" and session.id == participant_id:
            return
        raise AuthError("Only the participant or provider involved can do this.")

    def _get_provider(self, provider_id: str) -> Provider:
        provider = _find(self.state.providers, provider_id)
        if provider is None:
            raise NotFoundError(f"Provider {provider_id!r} was not found.")
        return provider

    def _get_participant(self, participant_id: str) -> Participant:
        participant = _find(self.state.participants, participant_id)
        if participant is None:
            raise NotFoundError(f"Participant {participant_id!r} was not found.")
        return participant

    def _get_enquiry(self, enquiry_id: str) -> Enquiry:
        enquiry = _find(self.state.enquiries, enquiry_id)
        if enquiry is None:
            raise NotFoundError(f"Enquiry {enquiry_id!r} was not found.")
        return enquiry

    def _get_booking(self, booking_id: str) -> Booking:
        booking = _find(self.state.bookings, booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id!r} was not found.")
        return booking

    def _get_review(self, review_id: str) -> Review:
        review = _find(self.state.reviews, review_id)
        if review is None:
            raise NotFoundError(f"Review {review_id!r} was not found.")
        return review
