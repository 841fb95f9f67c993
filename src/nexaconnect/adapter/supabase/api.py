"""Supabase adapter implementation (PostgREST, GoTrue and edge functions)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import date
from typing import Any

import aiohttp

from ...const import ROLES
from ...exceptions import AuthError, NotFoundError, RemoteError, ValidationError
from ...models import Booking, Enquiry, EnquiryMessage, Participant, Provider, Review
from ...util import normalize_tier
from .. import mapping
from ..base import AuthSession, BaseAdapter, UserProfile
from .const import (
    API_KEY_HEADER,
    BOOKING_UPDATE_COLUMNS,
    BOOKINGS_TABLE,
    DEFAULT_HEADERS,
    ENQUIRIES_TABLE,
    FUNCTIONS_PATH,
    LOGOUT_ENDPOINT,
    NEWEST_FIRST,
    PARTICIPANTS_TABLE,
    PREFER_HEADER,
    PROVIDERS_TABLE,
    REST_PATH,
    RETURN_MINIMAL,
    RETURN_REPRESENTATION,
    REVIEWS_TABLE,
    SERVER_ASSIGNED_COLUMNS,
    SIGNUP_ENDPOINT,
    TOKEN_ENDPOINT,
    USER_PROFILES_TABLE,
)

_LOGGER = logging.getLogger(__name__)


class SupabaseAdapter(BaseAdapter):
    """Adapter for a Supabase project."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        base_url: str | None = None,
        anon_key: str | None = None,
        access_token: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
    ) -> None:
        super().__init__(
            session,
            base_url=base_url,
            timeout=timeout,
            retry_count=retry_count,
        )
        if not anon_key:
            raise ValidationError("anon_key is required.")
        self._anon_key = anon_key
        self._access_token = access_token

    @property
    def access_token(self) -> str | None:
        return self._access_token

    # Auth

    async def sign_in(self, email: str, password: str) -> AuthSession:
        if not email or not password:
            raise ValidationError("email and password are required.")
        _LOGGER.debug("Sign-in started")
        data = await self._request_json(
            "POST",
            TOKEN_ENDPOINT,
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._build_headers(anonymous=True),
        )
        auth = self._map_auth_session(data)
        self._access_token = auth.access_token
        _LOGGER.debug("Sign-in completed")
        return auth

    async def sign_up(self, email: str, password: str, metadata: Mapping[str, Any]) -> AuthSession:
        if not email or not password:
            raise ValidationError("email and password are required.")
        _LOGGER.debug("Sign-up started")
        data = await self._request_json(
            "POST",
            SIGNUP_ENDPOINT,
            json={"email": email, "password": password, "data": dict(metadata)},
            headers=self._build_headers(anonymous=True),
        )
        auth = self._map_auth_session(data)
        if auth.access_token:
            self._access_token = auth.access_token
        _LOGGER.debug("Sign-up completed")
        return auth

    async def sign_out(self) -> None:
        if not self._access_token:
            return
        try:
            await self._request_text("POST", LOGOUT_ENDPOINT, headers=self._build_headers())
        finally:
            self._access_token = None

    async def fetch_user_profile(self, user_id: str) -> UserProfile | None:
        row = await self._select_one(USER_PROFILES_TABLE, id=self._require_id(user_id, "user_id"))
        if row is None:
            return None
        return self._map_user_profile(row)

    async def create_user_profile(self, profile: UserProfile) -> UserProfile:
        row = await self._insert(
            USER_PROFILES_TABLE,
            {
                "id": profile.user_id,
                "email": profile.email,
                "name": profile.name,
                "role": profile.role,
                "tier": profile.tier,
            },
        )
        return self._map_user_profile(row)

    # Providers

    async def fetch_providers(self) -> list[Provider]:
        data = await self._select(PROVIDERS_TABLE, order=NEWEST_FIRST)
        return mapping.map_rows(data, mapping.provider_from_row, "providers")

    async def fetch_provider(self, provider_id: str) -> Provider | None:
        row = await self._select_one(PROVIDERS_TABLE, id=self._require_id(provider_id, "provider_id"))
        return mapping.provider_from_row(row) if row is not None else None

    async def fetch_provider_by_user_id(self, user_id: str) -> Provider | None:
        row = await self._select_one(PROVIDERS_TABLE, user_id=self._require_id(user_id, "user_id"))
        return mapping.provider_from_row(row) if row is not None else None

    async def create_provider(self, user_id: str, provider: Provider) -> Provider:
        row = self._insert_row(mapping.provider_to_row(provider))
        row["user_id"] = self._require_id(user_id, "user_id")
        return mapping.provider_from_row(await self._insert(PROVIDERS_TABLE, row))

    async def update_provider(self, provider_id: str, changes: Mapping[str, Any]) -> Provider:
        row = mapping.provider_changes_to_row(changes)
        if not row:
            raise ValidationError("No provider fields to update.")
        data = await self._update(PROVIDERS_TABLE, self._require_id(provider_id, "provider_id"), row)
        return mapping.provider_from_row(data)

    async def update_provider_billing(
        self,
        provider_id: str,
        *,
        stripe_customer_id: str | None = None,
        stripe_subscription_id: str | None = None,
        tier: str | None = None,
    ) -> None:
        row: dict[str, Any] = {}
        if stripe_customer_id:
            row["stripe_customer_id"] = stripe_customer_id
        if stripe_subscription_id:
            row["stripe_subscription_id"] = stripe_subscription_id
        if tier:
            normalized = normalize_tier(tier)
            if normalized is None:
                raise ValidationError("tier is not recognised.")
            row["tier"] = normalized
        if not row:
            return
        await self._request_json(
            "PATCH",
            self._table_path(PROVIDERS_TABLE),
            params={"id": f"eq.{self._require_id(provider_id, 'provider_id')}"},
            json=row,
            headers=self._build_headers(prefer=RETURN_MINIMAL),
        )

    # Participants

    async def fetch_participant(self, user_id: str) -> Participant | None:
        row = await self._select_one(PARTICIPANTS_TABLE, user_id=self._require_id(user_id, "user_id"))
        return mapping.participant_from_row(row) if row is not None else None

    async def create_participant(self, user_id: str, participant: Participant) -> Participant:
        row = self._insert_row(mapping.participant_to_row(participant))
        row["user_id"] = self._require_id(user_id, "user_id")
        return mapping.participant_from_row(await self._insert(PARTICIPANTS_TABLE, row))

    async def update_participant(
        self, participant_id: str, changes: Mapping[str, Any]
    ) -> Participant:
        row = mapping.participant_changes_to_row(changes)
        if not row:
            raise ValidationError("No participant fields to update.")
        data = await self._update(
            PARTICIPANTS_TABLE, self._require_id(participant_id, "participant_id"), row
        )
        return mapping.participant_from_row(data)

    # Reviews

    async def fetch_reviews(self, provider_id: str | None = None) -> list[Review]:
        filters = {} if provider_id is None else {"provider_id": provider_id}
        data = await self._select(REVIEWS_TABLE, order=NEWEST_FIRST, **filters)
        return mapping.map_rows(data, mapping.review_from_row, "reviews")

    async def submit_review(self, review: Review) -> Review:
        row = self._insert_row(mapping.review_to_row(review))
        row.pop("response", None)
        row.pop("response_date", None)
        return mapping.review_from_row(await self._insert(REVIEWS_TABLE, row))

    async def respond_to_review(
        self, review_id: str, response: str, responded_on: date | None = None
    ) -> Review:
        data = await self._update(
            REVIEWS_TABLE,
            self._require_id(review_id, "review_id"),
            {"response": response, "response_date": (responded_on or date.today()).isoformat()},
        )
        return mapping.review_from_row(data)

    # Enquiries

    async def fetch_enquiries(self) -> list[Enquiry]:
        # Row level security limits the result to the signed-in account.
        data = await self._select(ENQUIRIES_TABLE, order=NEWEST_FIRST)
        return mapping.map_rows(data, mapping.enquiry_from_row, "enquiries")

    async def send_enquiry(self, enquiry: Enquiry) -> Enquiry:
        row = self._insert_row(mapping.enquiry_to_row(enquiry))
        row["status"] = "active"
        return mapping.enquiry_from_row(await self._insert(ENQUIRIES_TABLE, row))

    async def reply_enquiry(self, enquiry_id: str, message: EnquiryMessage) -> Enquiry:
        enquiry_id_value = self._require_id(enquiry_id, "enquiry_id")
        existing = await self._select_one(ENQUIRIES_TABLE, select="messages", id=enquiry_id_value)
        if existing is None:
            raise NotFoundError("Enquiry was not found.")
        messages = existing.get("messages") or []
        if not isinstance(messages, list):
            raise RemoteError("Response included invalid enquiry messages.")
        messages = [*messages, mapping.message_to_wire(message)]
        data = await self._update(ENQUIRIES_TABLE, enquiry_id_value, {"messages": messages})
        return mapping.enquiry_from_row(data)

    async def close_enquiry(self, enquiry_id: str) -> None:
        await self._request_json(
            "PATCH",
            self._table_path(ENQUIRIES_TABLE),
            params={"id": f"eq.{self._require_id(enquiry_id, 'enquiry_id')}"},
            json={"status": "closed"},
            headers=self._build_headers(prefer=RETURN_MINIMAL),
        )

    # Bookings

    async def fetch_bookings(self) -> list[Booking]:
        data = await self._select(BOOKINGS_TABLE, order=NEWEST_FIRST)
        return mapping.map_rows(data, mapping.booking_from_row, "bookings")

    async def create_booking(self, booking: Booking) -> Booking:
        row = self._insert_row(mapping.booking_to_row(replace(booking, status="pending")))
        return mapping.booking_from_row(await self._insert(BOOKINGS_TABLE, row))

    async def update_booking(self, booking_id: str, changes: Mapping[str, Any]) -> Booking:
        row: dict[str, Any] = {}
        for key in BOOKING_UPDATE_COLUMNS:
            if key not in changes:
                continue
            value = changes[key]
            row[key] = value.isoformat() if isinstance(value, date) else value
        if not row:
            raise ValidationError("No booking fields to update.")
        data = await self._update(BOOKINGS_TABLE, self._require_id(booking_id, "booking_id"), row)
        return mapping.booking_from_row(data)

    # Functions

    async def invoke_function(self, name: str, body: Mapping[str, Any]) -> Any:
        if not self._access_token:
            raise AuthError("Authentication required.")
        function_name = self._require_id(name, "name")
        _LOGGER.debug("Function %s started", function_name)
        data = await self._request_json(
            "POST",
            f"{FUNCTIONS_PATH}/{function_name}",
            json=dict(body),
            headers=self._build_headers(),
        )
        _LOGGER.debug("Function %s completed", function_name)
        return data

    # Helpers

    def _build_headers(self, *, anonymous: bool = False, prefer: str | None = None) -> dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        headers[API_KEY_HEADER] = self._anon_key
        token = self._anon_key if anonymous else (self._access_token or self._anon_key)
        headers["Authorization"] = f"Bearer {token}"
        if prefer is not None:
            headers[PREFER_HEADER] = prefer
        return headers

    def _table_path(self, table: str) -> str:
        return f"{REST_PATH}/{table}"

    def _insert_row(self, row: dict[str, Any]) -> dict[str, Any]:
        for key in SERVER_ASSIGNED_COLUMNS:
            row.pop(key, None)
        return row

    async def _select(
        self,
        table: str,
        *,
        select: str = "*",
        order: str | None = None,
        **filters: str,
    ) -> Any:
        params = {"select": select}
        for column, value in filters.items():
            params[column] = f"eq.{value}"
        if order is not None:
            params["order"] = order
        return await self._request_json(
            "GET",
            self._table_path(table),
            params=params,
            headers=self._build_headers(),
        )

    async def _select_one(self, table: str, *, select: str = "*", **filters: str) -> Any:
        data = await self._select(table, select=select, **filters)
        return self._first_row(data, allow_empty=True)

    async def _insert(self, table: str, row: Mapping[str, Any]) -> Mapping[str, Any]:
        data = await self._request_json(
            "POST",
            self._table_path(table),
            json=dict(row),
            headers=self._build_headers(prefer=RETURN_REPRESENTATION),
        )
        return self._first_row(data, allow_empty=False)

    async def _update(self, table: str, row_id: str, row: Mapping[str, Any]) -> Mapping[str, Any]:
        data = await self._request_json(
            "PATCH",
            self._table_path(table),
            params={"id": f"eq.{row_id}"},
            json=dict(row),
            headers=self._build_headers(prefer=RETURN_REPRESENTATION),
        )
        first = self._first_row(data, allow_empty=True)
        if first is None:
            raise NotFoundError(f"No {table} row matched id {row_id}.")
        return first

    def _first_row(self, data: Any, *, allow_empty: bool) -> Mapping[str, Any] | None:
        if isinstance(data, Mapping):
            return data
        if not isinstance(data, list):
            raise RemoteError("Response included invalid rows.")
        if not data:
            if allow_empty:
                return None
            raise RemoteError("Response did not include the written row.")
        first = data[0]
        if not isinstance(first, Mapping):
            raise RemoteError("Response included invalid rows.")
        return first

    def _map_auth_session(self, data: Any) -> AuthSession:
        if not isinstance(data, Mapping):
            raise RemoteError("Response included invalid auth data.")
        user = data.get("user") if isinstance(data.get("user"), Mapping) else data
        user_id = user.get("id")
        if not user_id:
            raise RemoteError("Response missing user id.")
        return AuthSession(
            user_id=str(user_id),
            email=str(user.get("email") or ""),
            access_token=data.get("access_token"),
            refresh_token=data.get("refresh_token"),
        )

    def _map_user_profile(self, row: Mapping[str, Any]) -> UserProfile:
        user_id = row.get("id")
        if not user_id:
            raise RemoteError("Response missing user profile id.")
        role = row.get("role") or "participant"
        if role not in ROLES:
            raise RemoteError("Response included an invalid role.")
        return UserProfile(
            user_id=str(user_id),
            role=role,
            name=str(row.get("name") or ""),
            email=str(row.get("email") or ""),
            tier=normalize_tier(row.get("tier")) or "free",  # type: ignore[arg-type]
        )
