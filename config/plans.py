# config/plans.py

from typing import Dict, Any, List, Optional

from config.settings import STRIPE_PRICE_ID

PLAN_CONFIG: Dict[str, Dict[str, Any]] = {
    "free": {
        "name": "Free",
        "price": 0,
        "currency": "JPY",
        "interval": None,
        "price_id": None,
        "features": [
            "Basic dashboard",
            "Community support",
        ],
    },
    "pro": {
        "name": "Pro",
        "price": 980,
        "currency": "JPY",
        "interval": "month",
        "price_id": STRIPE_PRICE_ID,
        "features": [
            "Pro dashboard",
            "Advanced analytics",
            "Priority support",
            "Cancel anytime from the billing portal",
        ],
    },
}

PRO_FEATURES: List[Dict[str, str]] = [
    {"id": "analytics", "name": "Advanced analytics", "description": "Usage trends and exports"},
    {"id": "automation", "name": "Automation", "description": "Scheduled jobs and integrations"},
    {"id": "support", "name": "Priority support", "description": "Replies within one business day"},
]


def get_plans() -> List[Dict[str, Any]]:
    """Plan catalog for the pricing page. Paid plans only show as available when a price is configured."""
    plans = []
    for plan_id, plan in PLAN_CONFIG.items():
        plans.append({
            "id": plan_id,
            **plan,
            "available": plan_id == "free" or bool(plan["price_id"]),
        })
    return plans


def get_plan_for_price(price_id: Optional[str]) -> Optional[str]:
    """Reverse lookup of a plan id from a Stripe price id."""
    if not price_id:
        return None
    for plan_id, plan in PLAN_CONFIG.items():
        if plan["price_id"] == price_id:
            return plan_id
    return None
