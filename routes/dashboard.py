"""
Dashboard routes for SubsBase
"""
from fastapi import APIRouter, HTTPException, status, Depends
import logging

from auth.dependencies import get_current_user, get_subscription_service, require_active_subscription
from config.plans import PRO_FEATURES
from models.subscription import DashboardResponse, StatusUser, Subscription, SubscriptionStatus
from services.subscription_service import SubscriptionService

router = APIRouter(tags=["Dashboard"])
logger = logging.getLogger(__name__)

@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    current_user: dict = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    """
    Dashboard data for a logged in user, with or without a subscription
    """
    try:
        subscription = subscription_service.get_active_subscription(current_user["id"])
    except Exception as e:
        logger.error(f"Dashboard subscription lookup failed for user {current_user['id']}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load dashboard"
        )

    return DashboardResponse(
        user=StatusUser(id=current_user["id"], email=current_user.get("email")),
        has_active_subscription=subscription is not None,
        is_expiring=bool(subscription) and subscription.get("status") == SubscriptionStatus.ACTIVE_UNTIL_PERIOD_END.value,
        subscription=Subscription(**subscription) if subscription else None
    )

@router.get("/pro-features")
async def get_pro_features(current_user: dict = Depends(require_active_subscription)):
    """
    Features unlocked by an active subscription
    """
    subscription = current_user["subscription"]
    return {
        "features": PRO_FEATURES,
        "status": subscription.get("status"),
        "is_expiring": subscription.get("status") == SubscriptionStatus.ACTIVE_UNTIL_PERIOD_END.value
    }
