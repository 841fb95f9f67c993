"""Subscription tiers, plans and the feature gates derived from them."""

from __future__ import annotations

from dataclasses import dataclass

from .const import TIERS
from .models import Provider
from .util import normalize_tier


@dataclass(frozen=True, slots=True)
class TierFeatures:
    description_limit: int
    enquiries_per_month: int | None
    photo_limit: int | None
    analytics: bool
    direct_booking: bool
    review_responses: bool
    verified_badge: bool
    promoted: bool


@dataclass(frozen=True, slots=True)
class Plan:
    id: str
    name: str
    tier: str
    monthly_price: int
    annual_price: int


# None means unlimited.
_FEATURES = {
    "free": TierFeatures(
        description_limit=200,
        enquiries_per_month=5,
        photo_limit=0,
        analytics=False,
        direct_booking=False,
        review_responses=False,
        verified_badge=False,
        promoted=False,
    ),
    "pro": TierFeatures(
        description_limit=2000,
        enquiries_per_month=None,
        photo_limit=10,
        analytics=True,
        direct_booking=False,
        review_responses=True,
        verified_badge=False,
        promoted=False,
    ),
    "premium": TierFeatures(
        description_limit=5000,
        enquiries_per_month=None,
        photo_limit=None,
        analytics=True,
        direct_booking=True,
        review_responses=True,
        verified_badge=True,
        promoted=True,
    ),
}

PLANS = (
    Plan(id="starter", name="Starter", tier="free", monthly_price=0, annual_price=0),
    Plan(id="professional", name="Professional", tier="pro", monthly_price=49, annual_price=39),
    Plan(id="premium", name="Premium", tier="premium", monthly_price=149, annual_price=119),
)


def tier_rank(tier: str) -> int:
    """Position of a tier in free < pro < premium; unknown tiers rank lowest."""
    normalized = normalize_tier(tier)
    if normalized is None:
        return -1
    return TIERS.index(normalized)


def is_upgrade(current: str, target: str) -> bool:
    return tier_rank(target) > tier_rank(current)


def features_for(tier: str) -> TierFeatures:
    return _FEATURES.get(normalize_tier(tier) or "free", _FEATURES["free"])


def provider_features(provider: Provider) -> TierFeatures:
    return features_for(provider.tier)


def can_access_analytics(provider: Provider) -> bool:
    return provider_features(provider).analytics


def can_accept_direct_booking(provider: Provider) -> bool:
    return provider_features(provider).direct_booking


def can_respond_to_reviews(provider: Provider) -> bool:
    return provider_features(provider).review_responses


def description_within_limit(provider: Provider, description: str) -> bool:
    return len(description) <= provider_features(provider).description_limit


def get_plan(plan_id: str) -> Plan | None:
    for plan in PLANS:
        if plan.id == plan_id:
            return plan
    return None


def plan_for_tier(tier: str) -> Plan:
    normalized = normalize_tier(tier) or "free"
    for plan in PLANS:
        if plan.tier == normalized:
            return plan
    return PLANS[0]


def tier_from_plan_name(plan_name: str | None) -> str:
    """Resolve a billing plan label to a tier, defaulting to free."""
    if not plan_name:
        return "free"
    lower = plan_name.lower()
    if "premium" in lower:
        return "premium"
    if "professional" in lower or "pro" in lower:
        return "pro"
    return "free"
