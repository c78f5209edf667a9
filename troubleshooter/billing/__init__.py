from .entitlements import is_pro_user, get_user_tier, has_feature_access, entitlement_summary
from .gateway import PaymentGateway
from .plans import PLANS, Plan, plan_for
from .webhook import apply_subscription_event

__all__ = [
    "is_pro_user",
    "get_user_tier",
    "has_feature_access",
    "entitlement_summary",
    "PaymentGateway",
    "PLANS",
    "Plan",
    "plan_for",
    "apply_subscription_event",
]
