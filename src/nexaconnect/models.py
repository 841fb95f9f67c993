"""Public data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

from .const import DEFAULT_DASHBOARD_TAB, DEFAULT_PLAN_TYPE, DEFAULT_THEME, LANDING_ROUTE

Tier = Literal["free", "pro", "premium"]
Role = Literal["participant", "provider", "admin"]
EnquiryStatus = Literal["active", "closed"]
BookingStatus = Literal["pending", "confirmed", "cancelled"]
Sender = Literal["participant", "provider"]


@dataclass(frozen=True, slots=True)
class Location:
    suburb: str
    state: str = ""
    postcode: str = ""


@dataclass(frozen=True, slots=True)
class Provider:
    id: str
    name: str
    location: Location
    categories: tuple[str, ...]
    tier: Tier = "free"
    verified: bool = False
    email: str = ""
    phone: str = ""
    website: str = ""
    description: str = ""
    short_description: str = ""
    rating: float = 0.0
    review_count: int = 0
    response_rate: int = 0
    response_time: str = "N/A"
    wait_time: str = "TBA"
    plan_types: tuple[str, ...] = (DEFAULT_PLAN_TYPE,)
    availability: dict[str, str] = field(default_factory=dict)
    service_areas: tuple[str, ...] = ()
    views_this_month: int = 0
    enquiries_this_month: int = 0
    bookings_this_month: int = 0
    user_id: str | None = None
    photos: tuple[str, ...] = ()
    founded: int | None = None
    team_size: str = "1"
    languages: tuple[str, ...] = ("English",)
    features: tuple[str, ...] = ()
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    created_at: datetime | None = None

    @property
    def suburb(self) -> str:
        return self.location.suburb


@dataclass(frozen=True, slots=True)
class Participant:
    id: str
    name: str
    location: Location
    email: str = ""
    ndis_number: str = ""
    plan_type: str = DEFAULT_PLAN_TYPE
    goals: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    favourites: tuple[str, ...] = ()
    user_id: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Review:
    id: str
    provider_id: str
    participant_id: str
    rating: int
    text: str
    created_on: date | None = None
    participant_name: str = ""
    response: str | None = None
    response_date: date | None = None


@dataclass(frozen=True, slots=True)
class EnquiryMessage:
    sender: Sender
    text: str
    sent_at: datetime


@dataclass(frozen=True, slots=True)
class Enquiry:
    id: str
    provider_id: str
    participant_id: str
    messages: tuple[EnquiryMessage, ...]
    status: EnquiryStatus = "active"
    subject: str = ""
    participant_name: str = ""
    provider_name: str = ""
    created_on: date | None = None


@dataclass(frozen=True, slots=True)
class Booking:
    id: str
    provider_id: str
    participant_id: str
    service: str = ""
    date: date | None = None
    time: str = ""
    duration: str = ""
    notes: str = ""
    status: BookingStatus = "pending"
    participant_name: str = ""
    provider_name: str = ""
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Session:
    """The authenticated actor and a cached copy of its profile entry."""

    id: str
    role: Role
    name: str = ""
    email: str = ""
    tier: Tier | None = None
    profile: Provider | Participant | None = None

    @property
    def favourites(self) -> tuple[str, ...]:
        if isinstance(self.profile, Participant):
            return self.profile.favourites
        return ()


@dataclass(frozen=True, slots=True)
class NavigationFrame:
    route: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SearchFilters:
    category: str = ""
    suburb: str = ""
    wait_time: str = ""
    plan_type: str = ""
    min_rating: float = 0
    verified_only: bool = False


@dataclass(frozen=True, slots=True)
class ReviewSummary:
    count: int
    average_rating: float
    responded: int


@dataclass(frozen=True, slots=True)
class AppState:
    """Canonical client state. Only the reducer produces new instances."""

    route: str = LANDING_ROUTE
    route_params: dict[str, Any] = field(default_factory=dict)
    history: tuple[NavigationFrame, ...] = ()
    history_limit: int | None = None
    session: Session | None = None
    theme: str = DEFAULT_THEME
    providers: tuple[Provider, ...] = ()
    participants: tuple[Participant, ...] = ()
    reviews: tuple[Review, ...] = ()
    enquiries: tuple[Enquiry, ...] = ()
    bookings: tuple[Booking, ...] = ()
    search_query: str = ""
    search_filters: SearchFilters = SearchFilters()
    selected_provider_id: str | None = None
    dashboard_tab: str = DEFAULT_DASHBOARD_TAB

    @property
    def current_frame(self) -> NavigationFrame:
        return NavigationFrame(route=self.route, params=dict(self.route_params))
