"""Navigation history stack helpers."""

from __future__ import annotations

from .models import NavigationFrame


def push(
    history: tuple[NavigationFrame, ...],
    frame: NavigationFrame,
    limit: int | None = None,
) -> tuple[NavigationFrame, ...]:
    """Push a frame, dropping the oldest frames once ``limit`` is exceeded."""
    stacked = (*history, frame)
    if limit is not None and limit >= 0 and len(stacked) > limit:
        return stacked[len(stacked) - limit :]
    return stacked


def pop(
    history: tuple[NavigationFrame, ...],
) -> tuple[NavigationFrame | None, tuple[NavigationFrame, ...]]:
    if not history:
        return None, history
    return history[-1], history[:-1]


def clear() -> tuple[NavigationFrame, ...]:
    return ()
