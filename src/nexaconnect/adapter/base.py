"""Persistence adapter base class and shared transport behavior."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

import aiohttp

from ..exceptions import (
    AuthError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RemoteError,
    RequestTimeoutError,
    ServiceUnavailableError,
    ValidationError,
)
from ..models import (
    Booking,
    Enquiry,
    EnquiryMessage,
    Participant,
    Provider,
    Review,
    Role,
    Tier,
)

_LOGGER = logging.getLogger(__name__)
_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)
_UNAVAILABLE_STATUSES = (502, 503, 504)


@dataclass(frozen=True, slots=True)
class AuthSession:
    """Tokens returned by a successful sign-in or sign-up."""

    user_id: str
    email: str
    access_token: str | None = None
    refresh_token: str | None = None


@dataclass(frozen=True, slots=True)
class UserProfile:
    user_id: str
    role: Role
    name: str = ""
    email: str = ""
    tier: Tier = "free"


class BaseAdapter(ABC):
    """Base class for remote persistence adapters."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        base_url: str | None = None,
        api_uri: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = 0,
    ) -> None:
        if session is None:
            raise ValidationError("Session is required.")
        self._session = session
        self._base_url = self._normalize_base_url(base_url)
        self._api_uri = self._normalize_api_uri(api_uri)
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._retry_count = max(0, retry_count)

    def _build_url(self, path: str) -> str:
        if not isinstance(path, str) or not path:
            raise ValidationError("Path must be a non-empty string.")
        if path.startswith("http://") or path.startswith("https://"):
            raise ValidationError("Use relative paths when building adapter requests.")
        if self._base_url is None:
            raise ValidationError("base_url is required to build adapter requests.")
        normalized_path = path if path.startswith("/") else f"/{path}"
        return f"{self._base_url}{self._api_uri}{normalized_path}"

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self._build_url(path)
        return await self._request(method, url, expect_json=True, **kwargs)

    async def _request_text(self, method: str, path: str, **kwargs: Any) -> str:
        url = self._build_url(path)
        return await self._request(method, url, expect_json=False, **kwargs)

    async def _request(self, method: str, url: str, *, expect_json: bool, **kwargs: Any) -> Any:
        # Only idempotent reads are retried.
        retries = self._retry_count if method.upper() == "GET" else 0
        attempts = retries + 1
        timeout = kwargs.pop("timeout", None) or self._timeout
        last_error: Exception | None = None
        for attempt in range(attempts):
            try:
                _LOGGER.debug("%s %s started (attempt %s)", method, url, attempt + 1)
                async with self._session.request(
                    method,
                    url,
                    timeout=timeout,
                    ssl=True,
                    **kwargs,
                ) as response:
                    await self._raise_for_status(response)
                    if expect_json:
                        if response.status == 204:
                            return None
                        try:
                            data = await response.json()
                        except (aiohttp.ContentTypeError, ValueError) as exc:
                            raise RemoteError("Response did not contain valid JSON.") from exc
                    else:
                        data = await response.text()
                    _LOGGER.debug("%s %s completed", method, url)
                    return data
            except (RateLimitError, ServiceUnavailableError) as exc:
                last_error = exc
                if attempt >= attempts - 1:
                    raise
                _LOGGER.warning("%s %s returned a retryable status, retrying", method, url)
            except TimeoutError as exc:
                last_error = exc
                if attempt >= attempts - 1:
                    raise RequestTimeoutError("Network request timed out.") from exc
                _LOGGER.warning("%s %s timed out, retrying", method, url)
            except aiohttp.ClientError as exc:
                last_error = exc
                if attempt >= attempts - 1:
                    raise NetworkError("Network request failed.") from exc
                _LOGGER.warning("%s %s failed, retrying", method, url)
        if last_error is not None:
            raise NetworkError("Network request failed.") from last_error
        raise RemoteError("Request failed.")

    async def _raise_for_status(self, response: aiohttp.ClientResponse) -> None:
        status = response.status
        if 200 <= status < 300:
            return
        detail = await self._error_detail(response)
        if status in (401, 403):
            raise AuthError("Authentication failed.", detail=detail)
        if status == 404:
            raise NotFoundError("Resource was not found.", detail=detail)
        if status == 429:
            raise RateLimitError("Too many requests.", detail=detail)
        if status in _UNAVAILABLE_STATUSES:
            raise ServiceUnavailableError(
                f"Service unavailable (status {status}).", detail=detail
            )
        raise RemoteError(f"Remote request failed with status {status}.", detail=detail)

    async def _error_detail(self, response: aiohttp.ClientResponse) -> str | None:
        try:
            text = await response.text()
        except (aiohttp.ClientError, UnicodeDecodeError):
            return None
        return text.strip() or None

    def _normalize_base_url(self, base_url: str | None) -> str | None:
        if base_url is None:
            return None
        if not isinstance(base_url, str) or not base_url.strip():
            raise ValidationError("base_url must be a non-empty string.")
        return base_url.strip().rstrip("/")

    def _normalize_api_uri(self, api_uri: str | None) -> str:
        if api_uri is None:
            return ""
        if not isinstance(api_uri, str):
            raise ValidationError("api_uri must be a string.")
        normalized = api_uri.strip().strip("/")
        if not normalized:
            return ""
        return f"/{normalized}"

    def _require_id(self, value: Any, field: str) -> str:
        if value is None:
            raise ValidationError(f"{field} is required.")
        text = str(value).strip()
        if not text:
            raise ValidationError(f"{field} is required.")
        return text

    @property
    def access_token(self) -> str | None:
        return None

    # Auth

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Authenticate with email and password."""

    @abstractmethod
    async def sign_up(self, email: str, password: str, metadata: Mapping[str, Any]) -> AuthSession:
        """Create an account."""

    @abstractmethod
    async def sign_out(self) -> None:
        """Revoke the current access token."""

    @abstractmethod
    async def fetch_user_profile(self, user_id: str) -> UserProfile | None:
        """Return the role record for an account, if any."""

    @abstractmethod
    async def create_user_profile(self, profile: UserProfile) -> UserProfile:
        """Insert the role record for a new account."""

    # Providers

    @abstractmethod
    async def fetch_providers(self) -> list[Provider]:
        """Return all listings, newest first."""

    @abstractmethod
    async def fetch_provider(self, provider_id: str) -> Provider | None:
        """Return one listing."""

    @abstractmethod
    async def fetch_provider_by_user_id(self, user_id: str) -> Provider | None:
        """Return the listing owned by an account."""

    @abstractmethod
    async def create_provider(self, user_id: str, provider: Provider) -> Provider:
        """Insert a listing."""

    @abstractmethod
    async def update_provider(self, provider_id: str, changes: Mapping[str, Any]) -> Provider:
        """Apply a partial listing update."""

    @abstractmethod
    async def update_provider_billing(
        self,
        provider_id: str,
        *,
        stripe_customer_id: str | None = None,
        stripe_subscription_id: str | None = None,
        tier: str | None = None,
    ) -> None:
        """Store billing identifiers and tier for a listing."""

    # Participants

    @abstractmethod
    async def fetch_participant(self, user_id: str) -> Participant | None:
        """Return the participant owned by an account."""

    @abstractmethod
    async def create_participant(self, user_id: str, participant: Participant) -> Participant:
        """Insert a participant."""

    @abstractmethod
    async def update_participant(
        self, participant_id: str, changes: Mapping[str, Any]
    ) -> Participant:
        """Apply a partial participant update."""

    # Reviews

    @abstractmethod
    async def fetch_reviews(self, provider_id: str | None = None) -> list[Review]:
        """Return reviews, optionally for one provider."""

    @abstractmethod
    async def submit_review(self, review: Review) -> Review:
        """Insert a review."""

    @abstractmethod
    async def respond_to_review(
        self, review_id: str, response: str, responded_on: date | None = None
    ) -> Review:
        """Set the provider response on a review."""

    # Enquiries

    @abstractmethod
    async def fetch_enquiries(self) -> list[Enquiry]:
        """Return the enquiries visible to the signed-in account."""

    @abstractmethod
    async def send_enquiry(self, enquiry: Enquiry) -> Enquiry:
        """Insert an enquiry thread."""

    @abstractmethod
    async def reply_enquiry(self, enquiry_id: str, message: EnquiryMessage) -> Enquiry:
        """Append a message to an enquiry thread."""

    @abstractmethod
    async def close_enquiry(self, enquiry_id: str) -> None:
        """Mark an enquiry thread closed."""

    # Bookings

    @abstractmethod
    async def fetch_bookings(self) -> list[Booking]:
        """Return the bookings visible to the signed-in account."""

    @abstractmethod
    async def create_booking(self, booking: Booking) -> Booking:
        """Insert a booking request."""

    @abstractmethod
    async def update_booking(self, booking_id: str, changes: Mapping[str, Any]) -> Booking:
        """Update status, notes, date or time of a booking."""

    # Functions

    @abstractmethod
    async def invoke_function(self, name: str, body: Mapping[str, Any]) -> Any:
        """Call a server-side function and return its JSON response."""
