import json
from pathlib import Path

import pytest

from nexaconnect.exceptions import ConfigError
from nexaconnect.models import Location, Participant, Session
from nexaconnect.reducer import initial_state
from nexaconnect.snapshot import (
    build_snapshot,
    load_snapshot,
    restore_snapshot,
    save_snapshot,
    session_from_dict,
)

PARTICIPANT = Participant(id="u1", name="Sarah Mitchell", location=Location(suburb="Newcastle"))


def test_build_snapshot_only_keeps_theme_and_user() -> None:
    state = initial_state(
        participants=(PARTICIPANT,),
        theme="light",
        session=Session(id="u1", role="participant", name="Sarah Mitchell"),
    )
    assert build_snapshot(state) == {
        "theme": "light",
        "user": {
            "id": "u1",
            "role": "participant",
            "name": "Sarah Mitchell",
            "email": "",
            "tier": None,
        },
    }
    assert build_snapshot(initial_state()) == {"theme": "dark", "user": None}


def test_restore_routes_to_dashboard() -> None:
    state = restore_snapshot(
        initial_state(participants=(PARTICIPANT,)),
        {"theme": "light", "user": {"id": "u1", "role": "participant", "name": "Sarah"}},
    )
    assert state.theme == "light"
    assert state.route == "participant-dashboard"
    assert state.session.profile == PARTICIPANT


def test_restore_without_user_lands_on_landing() -> None:
    state = restore_snapshot(initial_state(), {"theme": "neon", "user": {"role": "guest"}})
    assert state.route == "landing"
    assert state.theme == "dark"
    assert state.session is None


def test_restore_ignores_non_objects() -> None:
    state = initial_state()
    assert restore_snapshot(state, ["theme"]) is state


def test_session_from_dict_normalizes_tier() -> None:
    session = session_from_dict({"id": "p1", "role": "provider", "tier": "Professional"})
    assert session == Session(id="p1", role="provider", tier="pro")
    assert session_from_dict("p1") is None


def test_save_and_load_snapshot(tmp_path: Path) -> None:
    path = tmp_path / "state" / "snapshot.json"
    state = initial_state(theme="light")
    save_snapshot(path, state)
    assert load_snapshot(path) == {"theme": "light", "user": None}


def test_load_snapshot_ignores_bad_files(tmp_path: Path) -> None:
    assert load_snapshot(tmp_path / "missing.json") is None
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    assert load_snapshot(broken) is None
    listing = tmp_path / "list.json"
    listing.write_text(json.dumps([1, 2]), encoding="utf-8")
    assert load_snapshot(listing) is None


def test_save_snapshot_wraps_os_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(ConfigError):
        save_snapshot(blocker / "snapshot.json", initial_state())
