"""
Billing routes for SubsBase subscription management
"""
from fastapi import APIRouter, Body, HTTPException, status, Depends, Request, Query
from typing import Optional
import logging

from auth.dependencies import get_current_user, get_subscription_service
from auth.middleware import get_auth_middleware
from config.plans import get_plans
from models.subscription import (
    CheckoutRequest,
    SessionUrlResponse,
    StatusUser,
    Subscription,
    SubscriptionStatusResponse,
    WebhookResponse,
)
from services.stripe_service import StripeService, WebhookSignatureError
from services.subscription_service import SubscriptionService

router = APIRouter(prefix="/api", tags=["Billing"])
logger = logging.getLogger(__name__)

def get_stripe_service() -> StripeService:
    return StripeService(get_auth_middleware().supabase)

@router.post("/create-checkout-session", response_model=SessionUrlResponse)
async def create_checkout_session(
    request: Optional[CheckoutRequest] = Body(default=None),
    current_user: dict = Depends(get_current_user),
    stripe_service: StripeService = Depends(get_stripe_service)
):
    """
    Create Stripe checkout session for subscription
    """
    request = request or CheckoutRequest()
    if request.user_id and request.user_id != current_user["id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="userId does not match the logged in user"
        )

    try:
        checkout_url = await stripe_service.create_checkout_session(
            current_user["id"],
            request.price_id
        )

        if not checkout_url:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create checkout session"
            )

        return SessionUrlResponse(url=checkout_url)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Checkout creation error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Request processing error: {str(e)}"
        )

@router.post("/create-portal-session", response_model=SessionUrlResponse)
async def create_portal_session(
    current_user: dict = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
    stripe_service: StripeService = Depends(get_stripe_service)
):
    """
    Create Stripe customer portal session
    """
    try:
        subscription = subscription_service.get_active_subscription(current_user["id"])
    except Exception as e:
        logger.error(f"❌ Subscription check error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Subscription check failed"
        )

    if not subscription:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No active subscription found"
        )

    if not subscription.get("stripe_customer_id"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Stripe customer ID not found"
        )

    try:
        portal_url = await stripe_service.create_portal_session(subscription["stripe_customer_id"])
        logger.info(f"Created portal session for user {current_user['id']}")
        return SessionUrlResponse(url=portal_url)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"💥 Portal session creation error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create portal session"
        )

@router.get(
    "/subscription-status",
    response_model=SubscriptionStatusResponse,
    response_model_by_alias=True
)
async def get_subscription_status(
    include_period: Optional[str] = Query(default=None),
    current_user: dict = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
    stripe_service: StripeService = Depends(get_stripe_service)
):
    """
    Current user's authoritative subscription, optionally with period info
    """
    try:
        subscription = subscription_service.get_active_subscription(current_user["id"])
    except Exception as e:
        logger.error(f"Subscription check error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Subscription check failed"
        )

    period_info = None
    # Only the literal "true" opts in
    if include_period == "true" and subscription and subscription.get("stripe_subscription_id"):
        period_info = await stripe_service.get_period_info(subscription)

    return SubscriptionStatusResponse(
        has_active_subscription=subscription is not None,
        subscription=Subscription(**subscription) if subscription else None,
        period_info=period_info,
        user=StatusUser(id=current_user["id"], email=current_user.get("email"))
    )

@router.get("/plans")
async def get_available_plans():
    """
    Get available subscription plans with pricing
    """
    return {"plans": get_plans()}

@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_service: StripeService = Depends(get_stripe_service)
):
    """
    Handle Stripe webhook events
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        logger.warning("Webhook request missing stripe-signature header")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature"
        )

    try:
        event = stripe_service.construct_event(payload, signature)
    except WebhookSignatureError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook Error: {str(e)}"
        )

    try:
        await stripe_service.handle_event(event)
    except Exception as e:
        # A 5xx makes Stripe redeliver the event later
        logger.error(f"Webhook processing error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed"
        )

    return WebhookResponse(received=True)
