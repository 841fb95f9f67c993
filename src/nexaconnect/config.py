"""Runtime settings."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigError

ENV_PREFIX = "NEXACONNECT_"
BILLING_CYCLES = ("monthly", "annual")
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True, slots=True)
class Settings:
    """Connection and behaviour settings for :class:`nexaconnect.Client`.

    Remote mode is enabled only when both ``supabase_url`` and
    ``supabase_anon_key`` are set. ``price_ids`` maps ``(plan_id, cycle)`` to
    the billing price identifier used at checkout.
    """

    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    retry_count: int = 0
    history_limit: int | None = None
    snapshot_path: Path | None = None
    return_url: str | None = None
    price_ids: dict[tuple[str, str], str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive.")
        if self.retry_count < 0:
            raise ConfigError("retry_count must not be negative.")
        if self.history_limit is not None and self.history_limit < 0:
            raise ConfigError("history_limit must not be negative.")

    @property
    def remote_enabled(self) -> bool:
        return bool(self.supabase_url) and bool(self.supabase_anon_key)

    def price_id(self, plan_id: str, billing_cycle: str) -> str | None:
        return self.price_ids.get((plan_id, billing_cycle))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        def read(name: str) -> str | None:
            value = env.get(f"{ENV_PREFIX}{name}")
            if value is None or not value.strip():
                return None
            return value.strip()

        price_ids: dict[tuple[str, str], str] = {}
        price_prefix = f"{ENV_PREFIX}PRICE_"
        for key, value in env.items():
            if not key.startswith(price_prefix) or not value.strip():
                continue
            plan, _, cycle = key[len(price_prefix) :].lower().rpartition("_")
            if not plan or cycle not in BILLING_CYCLES:
                raise ConfigError(f"{key} must end with _MONTHLY or _ANNUAL.")
            price_ids[(plan, cycle)] = value.strip()

        snapshot = read("SNAPSHOT_PATH")
        return cls(
            supabase_url=read("SUPABASE_URL"),
            supabase_anon_key=read("SUPABASE_ANON_KEY"),
            timeout=_parse_number(read("TIMEOUT"), "TIMEOUT", float, DEFAULT_TIMEOUT),
            retry_count=_parse_number(read("RETRY_COUNT"), "RETRY_COUNT", int, 0),
            history_limit=_parse_number(read("HISTORY_LIMIT"), "HISTORY_LIMIT", int, None),
            snapshot_path=Path(snapshot).expanduser() if snapshot else None,
            return_url=read("RETURN_URL"),
            price_ids=price_ids,
        )


def _parse_number(raw, name, kind, default):
    if raw is None:
        return default
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be a number.") from exc
