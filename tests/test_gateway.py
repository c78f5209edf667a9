"""Tests for the Stripe gateway wrapper."""

import json

import pytest
import stripe

from conftest import sign_payload
from troubleshooter.billing import PaymentGateway, plan_for
from troubleshooter.errors import (
    BillingNotConfigured,
    InvalidWebhookEvent,
    PaymentProviderError,
)


EVENT = json.dumps({"id": "evt_1", "type": "invoice.paid", "data": {"object": {}}}).encode()


def test_construct_event_accepts_a_valid_signature():
    event = PaymentGateway().construct_event(EVENT, sign_payload(EVENT))
    assert event["type"] == "invoice.paid"


@pytest.mark.parametrize(
    "signature",
    [None, "", "t=1,v1=deadbeef", "t\xe9st"],
)
def test_construct_event_rejects_bad_signatures(signature):
    with pytest.raises(InvalidWebhookEvent):
        PaymentGateway().construct_event(EVENT, signature)


def test_construct_event_rejects_a_signature_made_with_another_secret():
    with pytest.raises(InvalidWebhookEvent):
        PaymentGateway().construct_event(EVENT, sign_payload(EVENT, secret="whsec_other"))


def test_construct_event_rejects_a_tampered_body():
    signature = sign_payload(EVENT)
    tampered = EVENT.replace(b"invoice.paid", b"invoice.void")
    with pytest.raises(InvalidWebhookEvent):
        PaymentGateway().construct_event(tampered, signature)


def test_construct_event_requires_a_webhook_secret(monkeypatch):
    gateway = PaymentGateway()
    monkeypatch.setattr(gateway, "webhook_secret", None)
    with pytest.raises(BillingNotConfigured):
        gateway.construct_event(EVENT, sign_payload(EVENT))


def test_retrieve_subscription_reads_stripe_fields(monkeypatch):
    calls = []

    def fake_retrieve(subscription_id, **params):
        calls.append((subscription_id, params))
        return {
            "id": subscription_id,
            "status": "active",
            "current_period_end": 1714550400,
            "cancel_at_period_end": True,
            "created": 1711958400,
        }

    monkeypatch.setattr(stripe.Subscription, "retrieve", fake_retrieve)
    details = PaymentGateway().retrieve_subscription("sub_1")

    assert calls == [("sub_1", {"api_key": "sk_test_troubleshooter"})]
    assert details == {
        "id": "sub_1",
        "status": "active",
        "current_period_end": 1714550400,
        "cancel_at_period_end": True,
        "created": 1711958400,
    }


def test_retrieve_subscription_falls_back_to_item_period(monkeypatch):
    def fake_retrieve(subscription_id, **params):
        return {
            "id": subscription_id,
            "status": "active",
            "items": {"data": [{"current_period_end": 1717228800}]},
            "created": 1711958400,
        }

    monkeypatch.setattr(stripe.Subscription, "retrieve", fake_retrieve)
    assert PaymentGateway().retrieve_subscription("sub_1")["current_period_end"] == 1717228800


def test_stripe_failures_are_wrapped(monkeypatch):
    def fake_retrieve(subscription_id, **params):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.Subscription, "retrieve", fake_retrieve)
    with pytest.raises(PaymentProviderError) as exc_info:
        PaymentGateway().retrieve_subscription("sub_1")
    assert exc_info.value.action == "retrieve subscription"


def test_missing_api_key_is_reported(monkeypatch):
    gateway = PaymentGateway()
    monkeypatch.setattr(gateway, "api_key", None)
    with pytest.raises(BillingNotConfigured):
        gateway.retrieve_subscription("sub_1")


def test_checkout_session_carries_plan_and_user(monkeypatch):
    captured = {}

    def fake_create(**params):
        captured.update(params)
        return {"id": "cs_test_42"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    session_id = PaymentGateway().create_checkout_session(
        plan_for("annual"), "user-1", "https://app.example.test"
    )

    assert session_id == "cs_test_42"
    assert captured["mode"] == "subscription"
    assert captured["client_reference_id"] == "user-1"
    assert captured["metadata"] == {"userId": "user-1", "planId": "annual"}
    assert captured["subscription_data"] == {"metadata": {"userId": "user-1", "planId": "annual"}}
    price = captured["line_items"][0]["price_data"]
    assert price["unit_amount"] == 25948
    assert price["recurring"] == {"interval": "year"}
    assert captured["success_url"] == (
        "https://app.example.test/payment-success?session_id={CHECKOUT_SESSION_ID}"
    )
    assert captured["cancel_url"] == "https://app.example.test/go-pro"
