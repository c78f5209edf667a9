# troubleshooter/billing/entitlements.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from troubleshooter.assessment.state import UserRecord


FREE_TIER = "free"

# Which paid tiers unlock which features
FEATURE_TIERS: Dict[str, List[str]] = {
    "tracking": ["weekly", "monthly", "annual"],
    "multiplePrograms": ["monthly", "annual"],
    "loadManagement": ["weekly", "monthly", "annual"],
    "expertConsults": ["annual"],
    "exerciseLibrary": ["weekly", "monthly", "annual"],
    "progressStats": ["weekly", "monthly", "annual"],
}

FREE_FEATURES = ["basicExercises"]


def _parse_expiry(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        expiry = value
    elif isinstance(value, str):
        try:
            expiry = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    elif isinstance(value, (int, float)):
        expiry = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        return None

    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry


def is_pro_user(record: Optional[UserRecord], now: Optional[datetime] = None) -> bool:
    """
    Pro means: an active, unexpired subscription on a tier other than free.
    """
    if not record:
        return False

    subscription = record.get("subscription")
    if not isinstance(subscription, dict):
        return False

    if subscription.get("status") != "active":
        return False

    expires_at = subscription.get("expiresAt")
    if expires_at:
        expiry = _parse_expiry(expires_at)
        # An unreadable expiry is not proof of a live subscription
        if expiry is None or expiry < (now or datetime.now(timezone.utc)):
            return False

    if subscription.get("tier") == FREE_TIER:
        return False

    return True


def get_user_tier(record: Optional[UserRecord]) -> str:
    if not record or not isinstance(record.get("subscription"), dict):
        return FREE_TIER
    return record["subscription"].get("tier") or FREE_TIER


def has_feature_access(record: Optional[UserRecord], feature: str) -> bool:
    if not record or not isinstance(record.get("subscription"), dict):
        return False

    tier = record["subscription"].get("tier")
    if tier == FREE_TIER:
        return feature in FREE_FEATURES

    return tier in FEATURE_TIERS.get(feature, [])


def entitlement_summary(record: Optional[UserRecord]) -> Dict[str, Any]:
    return {
        "tier": get_user_tier(record),
        "is_pro": is_pro_user(record),
        "features": {
            feature: has_feature_access(record, feature)
            for feature in [*FREE_FEATURES, *FEATURE_TIERS]
        },
    }
