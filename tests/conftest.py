"""Test configuration and fixtures."""

import hashlib
import hmac
import os
import tempfile
import time
from pathlib import Path

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="troubleshooter-tests-")

# Settings are read once and cached, so the environment must be in place
# before anything under troubleshooter is imported.
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_troubleshooter"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_troubleshooter"
os.environ["APP_BASE_URL"] = "https://app.example.test"
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from fastapi.testclient import TestClient

from troubleshooter.db import Base, engine
from troubleshooter.main import app
from troubleshooter.api import guard
from troubleshooter.billing import PaymentGateway
from troubleshooter.services import AssessmentService, QuickDashReminders, UserStore


ALL_FLAGS = [
    "userDetailsCompleted",
    "medicalScreeningCompleted",
    "outcomeMeasureCompleted",
    "painRegionsCompleted",
    "nerveSymptomsCompleted",
    "mobilityTestCompleted",
    "enduranceTestCompleted",
    "nerveMobilityTestCompleted",
]


def flags_through(count):
    """Record with the first `count` completion flags set."""
    return {flag: True for flag in ALL_FLAGS[:count]}


@pytest.fixture(autouse=True)
def fresh_tables():
    """Recreate every table so each test starts from an empty store."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def store():
    return UserStore()


@pytest.fixture
def service(store):
    return AssessmentService(store)


@pytest.fixture
def client():
    with TestClient(app, follow_redirects=False) as client:
        yield client


@pytest.fixture
def as_user():
    """Headers the auth gateway would attach for a signed-in user."""

    def _headers(user_id="user-1"):
        return {"X-User-Id": user_id}

    return _headers


@pytest.fixture
def override_service():
    """Swap the service the routes use for one built around `store`."""

    def _override(store):
        replacement = AssessmentService(store)
        app.dependency_overrides[guard.get_assessment_service] = lambda: replacement
        return replacement

    return _override


def sign_payload(payload, secret=None, timestamp=None):
    """Stripe-Signature header value for `payload`, as Stripe computes it."""
    secret = secret or os.environ["STRIPE_WEBHOOK_SECRET"]
    timestamp = int(timestamp if timestamp is not None else time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


class FakeGateway(PaymentGateway):
    """Real webhook verification; canned answers instead of Stripe API calls."""

    def __init__(self):
        super().__init__()
        self.subscriptions = {}
        self.checkouts = []

    def retrieve_subscription(self, subscription_id):
        return self.subscriptions[subscription_id]

    def create_checkout_session(self, plan, user_id, base_url):
        self.checkouts.append({"plan": plan.id, "user_id": user_id, "base_url": base_url})
        return f"cs_test_{len(self.checkouts)}"


@pytest.fixture
def gateway():
    """A FakeGateway, also installed as the gateway the routes use."""
    fake = FakeGateway()
    app.dependency_overrides[guard.get_payment_gateway] = lambda: fake
    return fake


@pytest.fixture
def reminders(store):
    return QuickDashReminders(store)
