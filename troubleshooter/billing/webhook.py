# troubleshooter/billing/webhook.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from troubleshooter.services.user_store import UserStore
from .gateway import PaymentGateway, subscription_period_end


logger = logging.getLogger(__name__)


def _epoch_to_iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _owner_for(store: UserStore, obj: Dict[str, Any]) -> Optional[str]:
    owner = store.owner_of_subscription(obj.get("id", ""))
    if owner:
        return owner
    return (obj.get("metadata") or {}).get("userId")


def _current_subscription(store: UserStore, user_id: str) -> Dict[str, Any]:
    record = store.get(user_id) or {}
    subscription = record.get("subscription")
    return dict(subscription) if isinstance(subscription, dict) else {}


def _checkout_completed(store: UserStore, obj: Dict[str, Any], gateway: PaymentGateway) -> str:
    metadata = obj.get("metadata") or {}
    user_id = metadata.get("userId") or obj.get("client_reference_id")
    plan_id = metadata.get("planId")
    subscription_id = obj.get("subscription")

    if not user_id:
        logger.warning("Checkout session %s carries no user id", obj.get("id"))
        return "ignored"
    if not subscription_id:
        logger.warning("Checkout session %s has no subscription", obj.get("id"))
        return "ignored"

    details = gateway.retrieve_subscription(subscription_id)
    status = details.get("status")
    subscription = {
        "id": details.get("id") or subscription_id,
        "status": status,
        "planId": plan_id,
        "tier": plan_id,
        "currentPeriodEnd": _epoch_to_iso(details.get("current_period_end")),
        "cancelAtPeriodEnd": bool(details.get("cancel_at_period_end")),
        "createdAt": _epoch_to_iso(details.get("created")) or _now_iso(),
    }
    subscription = {key: value for key, value in subscription.items() if value is not None}

    store.merge(user_id, {"subscription": subscription, "isPro": status == "active"})
    store.assign_subscription(subscription["id"], user_id)

    logger.info("User %s subscribed to plan %s (%s)", user_id, plan_id, status)
    return "subscribed"


def _subscription_updated(store: UserStore, obj: Dict[str, Any], gateway: PaymentGateway) -> str:
    user_id = _owner_for(store, obj)
    if not user_id:
        logger.warning("No owner known for subscription %s", obj.get("id"))
        return "ignored"

    status = obj.get("status")
    subscription = _current_subscription(store, user_id)
    subscription.update(
        {
            "status": status,
            "currentPeriodEnd": _epoch_to_iso(subscription_period_end(obj)),
            "cancelAtPeriodEnd": bool(obj.get("cancel_at_period_end")),
        }
    )

    store.merge(
        user_id,
        {"subscription": subscription, "isPro": status == "active"},
    )
    logger.info("Subscription %s for user %s is now %s", obj.get("id"), user_id, status)
    return "updated"


def _subscription_deleted(store: UserStore, obj: Dict[str, Any], gateway: PaymentGateway) -> str:
    user_id = _owner_for(store, obj)
    if not user_id:
        logger.warning("No owner known for subscription %s", obj.get("id"))
        return "ignored"

    subscription = _current_subscription(store, user_id)
    subscription.update({"status": "canceled", "canceledAt": _now_iso()})

    store.merge(user_id, {"subscription": subscription, "isPro": False})
    logger.info("Subscription %s for user %s canceled", obj.get("id"), user_id)
    return "canceled"


HANDLERS = {
    "checkout.session.completed": _checkout_completed,
    "customer.subscription.updated": _subscription_updated,
    "customer.subscription.deleted": _subscription_deleted,
}


def apply_subscription_event(
    store: UserStore,
    event: Dict[str, Any],
    gateway: PaymentGateway,
) -> str:
    """
    Translate a Stripe event into subscription fields on the user's
    record. The event must already be verified (PaymentGateway.construct_event);
    checkout completion looks the subscription up through `gateway`.

    Returns a short outcome label for the response body.
    """
    event_type = event.get("type")
    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled event type: %s", event_type)
        return "unhandled"

    obj = (event.get("data") or {}).get("object") or {}
    return handler(store, obj, gateway)
