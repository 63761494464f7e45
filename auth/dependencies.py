"""
Authentication dependencies for SubsBase
"""
import logging
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from .middleware import get_auth_middleware
from .utils import extract_cookie_token
from services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

# auto_error is off so the cookie fallback gets a chance
security = HTTPBearer(auto_error=False)

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> dict:
    """
    Get current authenticated user.

    The bearer token wins; the Supabase session cookie is the fallback.
    """
    auth_middleware = get_auth_middleware()
    cookie_token = extract_cookie_token(request.cookies)

    if credentials and credentials.credentials:
        try:
            return auth_middleware.verify_token(credentials.credentials)
        except HTTPException:
            if not cookie_token:
                raise
            logger.debug("Bearer token rejected, trying session cookie")

    return auth_middleware.verify_token(cookie_token)

async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[dict]:
    """
    Get current user if authenticated, otherwise return None
    """
    try:
        return await get_current_user(request, credentials)
    except HTTPException:
        return None

def get_subscription_service() -> SubscriptionService:
    return SubscriptionService(get_auth_middleware().supabase)

async def require_active_subscription(
    user: dict = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> dict:
    """
    Dependency that raises an exception if the user does not have an
    active (or active until period end) subscription.
    """
    try:
        subscription = subscription_service.get_active_subscription(user["id"])
    except Exception as e:
        logger.error(f"Subscription check error for user {user['id']}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Subscription check failed"
        )

    if not subscription:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This feature requires an active subscription"
        )

    return {**user, "subscription": subscription}
