# troubleshooter/billing/plans.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from troubleshooter.errors import UnknownPlanError


CURRENCY = "usd"
PRODUCT_DESCRIPTION = "1HP Troubleshooter Pro Subscription"


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    unit_amount: int  # cents
    interval: str  # Stripe recurring interval


PLANS: Dict[str, Plan] = {
    "weekly": Plan("weekly", "Weekly Plan", 1499, "week"),
    # 4 weeks at $9.99/week
    "monthly": Plan("monthly", "Monthly Plan", 3996, "month"),
    # 52 weeks at $4.99/week
    "annual": Plan("annual", "Annual Plan", 25948, "year"),
}


def plan_for(plan_id: str) -> Plan:
    try:
        return PLANS[plan_id]
    except KeyError:
        raise UnknownPlanError(plan_id) from None
