"""NexaConnect disability services directory client."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .client import Client
from .config import Settings
from .exceptions import (
    AuthError,
    CheckoutError,
    ConfigError,
    FeatureUnavailableError,
    NetworkError,
    NexaConnectError,
    NotConfiguredError,
    NotFoundError,
    RemoteError,
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
from .reducer import initial_state, reduce
from .store import Store

try:
    __version__ = version("nexaconnect")
except PackageNotFoundError:  # pragma: no cover - not installed
    __version__ = "0.0.0"

__all__ = [
    "AppState",
    "AuthError",
    "Booking",
    "CheckoutError",
    "Client",
    "ConfigError",
    "Enquiry",
    "EnquiryMessage",
    "FeatureUnavailableError",
    "Location",
    "NetworkError",
    "NexaConnectError",
    "NotConfiguredError",
    "NotFoundError",
    "Participant",
    "Provider",
    "RemoteError",
    "Review",
    "SearchFilters",
    "Session",
    "Settings",
    "Store",
    "ValidationError",
    "__version__",
    "initial_state",
    "reduce",
]
