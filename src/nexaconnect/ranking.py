"""Search and ranking engine.

Filtering is conjunctive: a provider is returned only when it passes every
active filter. Results are ordered by a tier-weighted score with a stable
sort, so providers with equal scores keep their relative input order.
Unknown filter values never raise; they either match nothing or pass.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import fields, replace
from typing import Any

from .const import CATEGORIES, TIER_WEIGHTS, WAIT_TIME_BUCKETS
from .models import AppState, Provider, Review, ReviewSummary, SearchFilters
from .util import contains_casefold, parse_wait_time_days

_FILTER_ALIASES = {
    "waitTime": "wait_time",
    "planType": "plan_type",
    "minRating": "min_rating",
    "verifiedOnly": "verified_only",
}
_FILTER_FIELDS = {item.name for item in fields(SearchFilters)}


def coerce_filters(
    value: SearchFilters | Mapping[str, Any] | None,
    base: SearchFilters | None = None,
) -> SearchFilters:
    """Build filters from a mapping, accepting legacy camelCase keys."""
    if isinstance(value, SearchFilters):
        return value
    filters = base or SearchFilters()
    if not value:
        return filters
    updates: dict[str, Any] = {}
    for key, raw in value.items():
        name = _FILTER_ALIASES.get(key, key)
        if name not in _FILTER_FIELDS:
            continue
        if name == "min_rating":
            try:
                updates[name] = float(raw or 0)
            except (TypeError, ValueError):
                updates[name] = 0.0
        elif name == "verified_only":
            updates[name] = bool(raw)
        else:
            updates[name] = "" if raw is None else str(raw)
    return replace(filters, **updates)


def score(provider: Provider) -> float:
    return (
        TIER_WEIGHTS.get(provider.tier, 0)
        + provider.rating * 10
        + provider.response_rate * 0.5
    )


def matches_query(provider: Provider, query: str) -> bool:
    if not query:
        return True
    if (
        contains_casefold(provider.name, query)
        or contains_casefold(provider.description, query)
        or contains_casefold(provider.short_description, query)
        or contains_casefold(provider.location.suburb, query)
    ):
        return True
    for category in provider.categories:
        name = CATEGORIES.get(category)
        if name and contains_casefold(name, query):
            return True
    return any(contains_casefold(area, query) for area in provider.service_areas)


def matches_category(provider: Provider, category: str) -> bool:
    if not category:
        return True
    return category in provider.categories


def matches_location(provider: Provider, suburb: str) -> bool:
    if not suburb:
        return True
    if provider.location.suburb == suburb:
        return True
    return any(contains_casefold(area, suburb) for area in provider.service_areas)


def matches_wait_time(provider: Provider, bucket: str) -> bool:
    if not bucket:
        return True
    ceiling = WAIT_TIME_BUCKETS.get(bucket)
    if ceiling is None:
        return True
    days = parse_wait_time_days(provider.wait_time)
    if days is None:
        # Unparseable wait times are not excluded.
        return True
    return days <= ceiling


def matches_plan_type(provider: Provider, plan_type: str) -> bool:
    if not plan_type:
        return True
    return plan_type in provider.plan_types


def matches_min_rating(provider: Provider, min_rating: float) -> bool:
    if not min_rating:
        return True
    return provider.rating >= min_rating


def matches_verified(provider: Provider, verified_only: bool) -> bool:
    if not verified_only:
        return True
    return provider.verified


def matches_filters(provider: Provider, filters: SearchFilters) -> bool:
    return (
        matches_category(provider, filters.category)
        and matches_location(provider, filters.suburb)
        and matches_wait_time(provider, filters.wait_time)
        and matches_plan_type(provider, filters.plan_type)
        and matches_min_rating(provider, filters.min_rating)
        and matches_verified(provider, filters.verified_only)
    )


def filter_providers(
    providers: Iterable[Provider],
    query: str = "",
    filters: SearchFilters | Mapping[str, Any] | None = None,
) -> list[Provider]:
    active = coerce_filters(filters)
    needle = (query or "").strip()
    return [
        provider
        for provider in providers
        if matches_query(provider, needle) and matches_filters(provider, active)
    ]


def rank(
    providers: Iterable[Provider],
    query: str = "",
    filters: SearchFilters | Mapping[str, Any] | None = None,
) -> list[Provider]:
    """Filter providers and order them by descending score."""
    candidates = filter_providers(providers, query, filters)
    # sorted() is stable, which keeps equal-score providers in candidate order.
    return sorted(candidates, key=score, reverse=True)


def search(state: AppState) -> list[Provider]:
    return rank(state.providers, state.search_query, state.search_filters)


def summarize_reviews(reviews: Sequence[Review], provider_id: str) -> ReviewSummary:
    matching = [review for review in reviews if review.provider_id == provider_id]
    if not matching:
        return ReviewSummary(count=0, average_rating=0.0, responded=0)
    average = sum(review.rating for review in matching) / len(matching)
    responded = sum(1 for review in matching if review.response is not None)
    return ReviewSummary(
        count=len(matching),
        average_rating=round(average, 1),
        responded=responded,
    )


def category_counts(providers: Iterable[Provider]) -> dict[str, int]:
    """Count listings per category display name, most common first."""
    counter: Counter[str] = Counter()
    for provider in providers:
        for category in provider.categories:
            counter[CATEGORIES.get(category, category)] += 1
    return dict(counter.most_common())
