"""Persisted session and theme snapshot."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

from .actions import Login, SetTheme
from .const import DASHBOARD_ROUTES, LANDING_ROUTE, ROLES
from .exceptions import ConfigError
from .models import AppState, Session
from .reducer import reduce
from .util import normalize_tier

_LOGGER = logging.getLogger(__name__)


def session_to_dict(session: Session) -> dict[str, Any]:
    return {
        "id": session.id,
        "role": session.role,
        "name": session.name,
        "email": session.email,
        "tier": session.tier,
    }


def session_from_dict(data: Any) -> Session | None:
    if not isinstance(data, dict):
        return None
    session_id = data.get("id")
    role = data.get("role")
    if not session_id or role not in ROLES:
        return None
    return Session(
        id=str(session_id),
        role=role,
        name=str(data.get("name") or ""),
        email=str(data.get("email") or ""),
        tier=normalize_tier(data.get("tier")),  # type: ignore[arg-type]
    )


def build_snapshot(state: AppState) -> dict[str, Any]:
    """Return the persisted subset of ``state``: theme and session only."""
    return {
        "theme": state.theme,
        "user": session_to_dict(state.session) if state.session is not None else None,
    }


def restore_snapshot(state: AppState, snapshot: Any) -> AppState:
    """Apply a snapshot and route to the restored role's dashboard.

    Malformed snapshots leave ``state`` unchanged.
    """
    if not isinstance(snapshot, dict):
        return state
    theme = snapshot.get("theme")
    if isinstance(theme, str):
        state = reduce(state, SetTheme(theme=theme))
    session = session_from_dict(snapshot.get("user"))
    if session is None:
        return replace(state, route=LANDING_ROUTE, route_params={})
    state = reduce(state, Login(session=session))
    return replace(state, route=DASHBOARD_ROUTES.get(session.role, LANDING_ROUTE), route_params={})


def save_snapshot(path: Path, state: AppState) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(build_snapshot(state), indent=2), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Snapshot could not be written to {path}.") from exc


def load_snapshot(path: Path) -> dict[str, Any] | None:
    """Read a snapshot file; unreadable or malformed files yield None."""
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        _LOGGER.warning("Ignoring unreadable snapshot %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        _LOGGER.warning("Ignoring snapshot %s: expected a JSON object", path)
        return None
    return data
