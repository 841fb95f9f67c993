"""Bundled seed dataset loading."""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from typing import Any

from .adapter import mapping
from .const import ROLES
from .exceptions import ConfigError, RemoteError
from .models import Booking, Enquiry, Participant, Provider, Review, Role

DATASET_FILENAME = "dataset.json"
SCHEMA_FILENAME = "dataset.schema.json"
_DATASET_CACHE: Dataset | None = None


@dataclass(frozen=True, slots=True)
class DemoAccount:
    id: str
    email: str
    password: str
    role: Role
    name: str = ""


@dataclass(frozen=True, slots=True)
class Dataset:
    providers: tuple[Provider, ...] = ()
    participants: tuple[Participant, ...] = ()
    reviews: tuple[Review, ...] = ()
    enquiries: tuple[Enquiry, ...] = ()
    bookings: tuple[Booking, ...] = ()
    accounts: tuple[DemoAccount, ...] = ()

    def find_account(self, email: str, password: str) -> DemoAccount | None:
        """Match a demo account by case-insensitive email and exact password."""
        wanted = email.strip().casefold()
        for account in self.accounts:
            if account.email.casefold() == wanted and account.password == password:
                return account
        return None


def _data_root() -> Traversable:
    return resources.files("nexaconnect") / "data"


def read_dataset_file() -> Any:
    path = _data_root() / DATASET_FILENAME
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError("Bundled dataset is not valid JSON.") from exc


def load_dataset_schema() -> dict:
    schema_path = _data_root() / SCHEMA_FILENAME
    return json.loads(schema_path.read_text(encoding="utf-8"))


def _build_account(data: Any) -> DemoAccount:
    if not isinstance(data, dict):
        raise ConfigError("Dataset account must be a JSON object.")
    missing = [key for key in ("id", "email", "password", "role") if not data.get(key)]
    if missing:
        raise ConfigError(f"Dataset account missing keys: {', '.join(missing)}.")
    if data["role"] not in ROLES:
        raise ConfigError("Dataset account role is not recognised.")
    return DemoAccount(
        id=str(data["id"]),
        email=str(data["email"]),
        password=str(data["password"]),
        role=data["role"],
        name=str(data.get("name") or ""),
    )


def build_dataset(data: Any) -> Dataset:
    """Translate a parsed dataset document into domain models."""
    if not isinstance(data, dict):
        raise ConfigError("Dataset must be a JSON object.")

    def collection(name: str, mapper) -> tuple:
        return tuple(mapping.map_rows(data.get(name), mapper, name))

    try:
        return Dataset(
            providers=collection("providers", mapping.provider_from_row),
            participants=collection("participants", mapping.participant_from_row),
            reviews=collection("reviews", mapping.review_from_row),
            enquiries=collection("enquiries", mapping.enquiry_from_row),
            bookings=collection("bookings", mapping.booking_from_row),
            accounts=tuple(_build_account(item) for item in data.get("accounts") or []),
        )
    except RemoteError as exc:
        raise ConfigError("Dataset contains invalid rows.", detail=str(exc)) from exc


def load_dataset() -> Dataset:
    global _DATASET_CACHE
    if _DATASET_CACHE is not None:
        return _DATASET_CACHE
    _DATASET_CACHE = build_dataset(read_dataset_file())
    return _DATASET_CACHE


def clear_dataset_cache() -> None:
    """Clear the cached dataset (used in tests)."""
    global _DATASET_CACHE
    _DATASET_CACHE = None
