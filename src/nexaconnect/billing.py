"""Subscription checkout, billing portal and lead unlock calls.

Each call invokes a server-side function and returns the hosted page URL;
the caller is responsible for redirecting. Completion is reported later as a
billing event, which :func:`actions_from_billing_event` turns into actions.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from .actions import Action, UpdateProviderProfile, UpgradePlan
from .adapter.base import BaseAdapter
from .config import BILLING_CYCLES
from .exceptions import CheckoutError, RemoteError, ValidationError
from .tiers import get_plan, tier_from_plan_name

_LOGGER = logging.getLogger(__name__)

CHECKOUT_FUNCTION = "create-checkout"
PORTAL_FUNCTION = "create-portal"
UNLOCK_LEAD_FUNCTION = "unlock-lead"

CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"


def _hosted_url(data: Any) -> str:
    if isinstance(data, Mapping):
        if data.get("error"):
            raise CheckoutError(str(data["error"]))
        url = data.get("url")
        if isinstance(url, str) and url:
            return url
    raise CheckoutError("No checkout URL returned.")


def _error_message(exc: RemoteError) -> str:
    try:
        body = json.loads(exc.detail or "")
    except ValueError:
        return str(exc)
    if isinstance(body, Mapping) and body.get("error"):
        return str(body["error"])
    return str(exc)


async def _invoke(adapter: BaseAdapter, name: str, body: Mapping[str, Any]) -> str:
    try:
        data = await adapter.invoke_function(name, body)
    except RemoteError as exc:
        if exc.retryable:
            raise
        raise CheckoutError(_error_message(exc), detail=exc.detail) from exc
    return _hosted_url(data)


async def start_checkout(
    adapter: BaseAdapter,
    *,
    provider_id: str,
    plan_id: str,
    billing_cycle: str,
    price_id: str,
    return_url: str,
) -> str:
    plan = get_plan(plan_id)
    if plan is None:
        raise ValidationError(f"Unknown plan {plan_id!r}.")
    if billing_cycle not in BILLING_CYCLES:
        raise ValidationError("billing_cycle must be monthly or annual.")
    if not price_id:
        raise ValidationError(f"No price is configured for {plan_id} ({billing_cycle}).")
    _LOGGER.debug("Checkout for provider %s plan %s started", provider_id, plan.id)
    return await _invoke(
        adapter,
        CHECKOUT_FUNCTION,
        {
            "providerId": provider_id,
            "priceId": price_id,
            "planName": plan.name,
            "billingCycle": billing_cycle,
            "returnUrl": return_url,
        },
    )


async def open_billing_portal(adapter: BaseAdapter, *, provider_id: str, return_url: str) -> str:
    return await _invoke(
        adapter,
        PORTAL_FUNCTION,
        {"providerId": provider_id, "returnUrl": return_url},
    )


async def unlock_lead(
    adapter: BaseAdapter,
    *,
    provider_id: str,
    lead_id: str,
    return_url: str,
) -> str:
    if not lead_id:
        raise ValidationError("lead_id is required.")
    return await _invoke(
        adapter,
        UNLOCK_LEAD_FUNCTION,
        {"providerId": provider_id, "leadId": lead_id, "returnUrl": return_url},
    )


def actions_from_billing_event(event: Mapping[str, Any]) -> list[Action]:
    """Translate a subscription lifecycle event into tier-change actions.

    Events without a provider id in their metadata, and event types that do
    not change a subscription, produce no actions.
    """
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}
    metadata = obj.get("metadata") or {}
    provider_id = metadata.get("providerId")
    if not provider_id:
        return []

    if event_type == CHECKOUT_COMPLETED:
        subscription_id = obj.get("subscription")
        if not subscription_id:
            return []
        tier = tier_from_plan_name(metadata.get("planName"))
        return [
            UpgradePlan(provider_id=provider_id, tier=tier),  # type: ignore[arg-type]
            UpdateProviderProfile(
                provider_id=provider_id,
                changes={
                    "verified": tier == "premium",
                    "stripe_subscription_id": str(subscription_id),
                },
            ),
        ]
    if event_type == SUBSCRIPTION_UPDATED:
        if obj.get("status") != "active":
            return []
        tier = tier_from_plan_name(metadata.get("planName"))
        return [
            UpgradePlan(provider_id=provider_id, tier=tier),  # type: ignore[arg-type]
            UpdateProviderProfile(provider_id=provider_id, changes={"verified": tier == "premium"}),
        ]
    if event_type == SUBSCRIPTION_DELETED:
        return [
            UpgradePlan(provider_id=provider_id, tier="free"),
            UpdateProviderProfile(
                provider_id=provider_id,
                changes={"verified": False, "stripe_subscription_id": None},
            ),
        ]
    return []
