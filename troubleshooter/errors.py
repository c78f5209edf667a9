# troubleshooter/errors.py
from __future__ import annotations


class TroubleshooterError(Exception):
    """
    Base class for errors raised by the assessment backend.
    """


class AuthUnresolved(TroubleshooterError):
    """
    The auth provider has not settled on an identity yet.

    This is a wait state, not a failure: callers must not evaluate
    progression (and must not redirect to /login) until it clears.
    """


class RecordFetchError(TroubleshooterError):
    """
    Reading a user record from the document store failed.
    """

    def __init__(self, user_id: str, cause: Exception | None = None):
        super().__init__(f"Could not fetch record for user {user_id}")
        self.user_id = user_id
        self.cause = cause


class RecordWriteError(TroubleshooterError):
    """
    Merging fields into a user record failed.
    """

    def __init__(self, user_id: str, cause: Exception | None = None):
        super().__init__(f"Could not write record for user {user_id}")
        self.user_id = user_id
        self.cause = cause


class UnknownPathError(TroubleshooterError, LookupError):
    def __init__(self, path: str):
        super().__init__(f"{path!r} is not an assessment path")
        self.path = path


class ProgressionRedirect(TroubleshooterError):
    """
    Raised by the route guard to short-circuit a request with a redirect.
    """

    def __init__(self, location: str, message: str | None = None):
        super().__init__(f"Redirect to {location}")
        self.location = location
        self.message = message


class BillingNotConfigured(TroubleshooterError):
    """
    A billing call was made without the Stripe keys it needs.
    """


class InvalidWebhookEvent(TroubleshooterError):
    """
    A webhook body failed Stripe signature verification or is not JSON.
    """


class PaymentProviderError(TroubleshooterError):
    """
    A call to Stripe failed.
    """

    def __init__(self, action: str, cause: Exception | None = None):
        super().__init__(f"Stripe call failed: {action}")
        self.action = action
        self.cause = cause


class UnknownPlanError(TroubleshooterError, LookupError):
    def __init__(self, plan_id: str):
        super().__init__(f"{plan_id!r} is not a subscription plan")
        self.plan_id = plan_id
