import pytest

from nexaconnect.models import Location, Provider
from nexaconnect.tiers import (
    PLANS,
    can_accept_direct_booking,
    can_access_analytics,
    can_respond_to_reviews,
    description_within_limit,
    features_for,
    get_plan,
    is_upgrade,
    plan_for_tier,
    tier_from_plan_name,
    tier_rank,
)


def _provider(tier: str) -> Provider:
    return Provider(
        id="p1",
        name="Example",
        location=Location(suburb="Newcastle"),
        categories=("therapy",),
        tier=tier,  # type: ignore[arg-type]
    )


def test_tier_order() -> None:
    assert tier_rank("free") < tier_rank("pro") < tier_rank("premium")
    assert tier_rank("gold") == -1
    assert is_upgrade("free", "premium")
    assert not is_upgrade("premium", "pro")


def test_unknown_tier_gets_free_features() -> None:
    assert features_for("gold") == features_for("free")


@pytest.mark.parametrize(
    ("tier", "booking", "responses", "analytics"),
    [
        ("free", False, False, False),
        ("pro", False, True, True),
        ("premium", True, True, True),
    ],
)
def test_feature_gates(tier: str, booking: bool, responses: bool, analytics: bool) -> None:
    provider = _provider(tier)
    assert can_accept_direct_booking(provider) is booking
    assert can_respond_to_reviews(provider) is responses
    assert can_access_analytics(provider) is analytics


def test_description_limits() -> None:
    assert description_within_limit(_provider("free"), "x" * 200)
    assert not description_within_limit(_provider("free"), "x" * 201)
    assert description_within_limit(_provider("pro"), "x" * 2000)
    assert description_within_limit(_provider("premium"), "x" * 5000)
    assert not description_within_limit(_provider("premium"), "x" * 5001)


def test_enquiry_allowance() -> None:
    assert features_for("free").enquiries_per_month == 5
    assert features_for("pro").enquiries_per_month is None


def test_plans() -> None:
    assert [plan.id for plan in PLANS] == ["starter", "professional", "premium"]
    assert get_plan("professional").tier == "pro"
    assert get_plan("enterprise") is None
    assert plan_for_tier("premium").name == "Premium"
    assert plan_for_tier("unknown").id == "starter"


@pytest.mark.parametrize(
    ("name", "tier"),
    [
        ("Premium", "premium"),
        ("Professional", "pro"),
        ("Starter", "free"),
        (None, "free"),
        ("", "free"),
    ],
)
def test_tier_from_plan_name(name: str | None, tier: str) -> None:
    assert tier_from_plan_name(name) == tier
