# troubleshooter/billing/gateway.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import stripe

from troubleshooter.config import get_settings
from troubleshooter.errors import (
    BillingNotConfigured,
    InvalidWebhookEvent,
    PaymentProviderError,
)
from .plans import CURRENCY, PRODUCT_DESCRIPTION, Plan


logger = logging.getLogger(__name__)


def _value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


def subscription_period_end(subscription: Any) -> Optional[int]:
    period_end = _value(subscription, "current_period_end")
    if period_end is None:
        # Newer API versions carry the billing period on each item
        items = _value(_value(subscription, "items"), "data") or []
        if items:
            period_end = _value(items[0], "current_period_end")
    return period_end


class PaymentGateway:
    """
    Thin wrapper around the Stripe SDK.

    Keys come from settings unless passed in. Every call raises
    BillingNotConfigured when the key it needs is missing, and
    PaymentProviderError when Stripe itself fails.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise BillingNotConfigured("STRIPE_SECRET_KEY is not set")
        return self.api_key

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook body against its Stripe-Signature header and
        return the event as a plain dict.
        """
        if not self.webhook_secret:
            raise BillingNotConfigured("STRIPE_WEBHOOK_SECRET is not set")

        # Signatures are hex digests, so anything outside ASCII is forged
        if not signature or not signature.isascii():
            raise InvalidWebhookEvent("Missing or malformed Stripe-Signature header")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise InvalidWebhookEvent("Signature verification failed") from e
        except ValueError as e:
            raise InvalidWebhookEvent("Webhook body is not valid JSON") from e

        return json.loads(payload)

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        api_key = self._require_api_key()
        try:
            subscription = stripe.Subscription.retrieve(subscription_id, api_key=api_key)
        except stripe.StripeError as e:
            raise PaymentProviderError("retrieve subscription", e) from e

        return {
            "id": _value(subscription, "id") or subscription_id,
            "status": _value(subscription, "status"),
            "current_period_end": subscription_period_end(subscription),
            "cancel_at_period_end": bool(_value(subscription, "cancel_at_period_end")),
            "created": _value(subscription, "created"),
        }

    def create_checkout_session(self, plan: Plan, user_id: str, base_url: str) -> str:
        """
        Start a Stripe Checkout subscription for `plan` and return the
        session id. The user and plan ride along as metadata on both the
        session and the subscription, so webhook events can be attributed.
        """
        api_key = self._require_api_key()
        metadata = {"userId": user_id, "planId": plan.id}
        try:
            session = stripe.checkout.Session.create(
                api_key=api_key,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": CURRENCY,
                            "product_data": {
                                "name": plan.name,
                                "description": PRODUCT_DESCRIPTION,
                            },
                            "unit_amount": plan.unit_amount,
                            "recurring": {"interval": plan.interval},
                        },
                        "quantity": 1,
                    }
                ],
                mode="subscription",
                success_url=f"{base_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{base_url}/go-pro",
                client_reference_id=user_id,
                metadata=metadata,
                subscription_data={"metadata": metadata},
            )
        except stripe.StripeError as e:
            raise PaymentProviderError("create checkout session", e) from e

        logger.info("Checkout session %s started for user %s on %s", _value(session, "id"), user_id, plan.id)
        return _value(session, "id")
