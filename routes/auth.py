"""
Authentication routes for SubsBase
"""
from fastapi import APIRouter, HTTPException, Request, status, Depends
from fastapi.security import HTTPAuthorizationCredentials
from typing import Optional, Union
import logging
import asyncio
from asyncio import TimeoutError as AsyncTimeoutError

from auth.middleware import get_auth_middleware
from auth.dependencies import get_current_user, security
from auth.utils import extract_cookie_token, validate_email, validate_password
from config import settings
from models.user import (
    AuthUser,
    LoginRequest,
    RegisterRequest,
    RegistrationPendingResponse,
    TokenResponse,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)

SIGN_UP_TIMEOUT_SECONDS = 120

RegistrationResponse = Union[TokenResponse, RegistrationPendingResponse]

@router.post("/register", response_model=RegistrationResponse)
async def register(request: RegisterRequest):
    """
    Register a new user with timeout handling
    """
    auth_middleware = get_auth_middleware()

    if not validate_email(request.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid email format"
        )

    is_valid, message = validate_password(request.password)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message
        )

    auth_client = auth_middleware.create_auth_client()

    try:
        auth_response = await asyncio.wait_for(
            asyncio.to_thread(
                auth_client.auth.sign_up,
                {
                    "email": request.email,
                    "password": request.password,
                    "options": {
                        "email_redirect_to": f"{settings.BASE_URL}/login"
                    }
                }
            ),
            timeout=SIGN_UP_TIMEOUT_SECONDS
        )
    except AsyncTimeoutError:
        logger.error(f"Registration timeout for email: {request.email}")
        raise HTTPException(
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            detail="Registration request timed out. Please try again."
        )
    except Exception as e:
        logger.error(f"Registration error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Sign up failed: {str(e)}"
        )

    if auth_response.user is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Registration failed. Email might already be registered."
        )

    user = AuthUser(id=auth_response.user.id, email=auth_response.user.email)

    # Handle email confirmation
    if not auth_response.user.email_confirmed_at:
        logger.info(f"User registered but needs email confirmation: {request.email}")
        return RegistrationPendingResponse(
            message="Registration successful. Please check your email to confirm your account.",
            user_id=user.id,
            email_confirmation_required=True
        )

    access_token = (
        auth_response.session.access_token
        if auth_response.session
        else auth_middleware.create_access_token(user.id, user.email)
    )

    logger.info(f"User registered and confirmed successfully: {request.email}")
    return TokenResponse(access_token=access_token, user=user)

@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login user and return the Supabase access token
    """
    auth_client = get_auth_middleware().create_auth_client()

    try:
        auth_response = await asyncio.to_thread(
            auth_client.auth.sign_in_with_password,
            {
                "email": request.email,
                "password": request.password
            }
        )
    except Exception as e:
        logger.warning(f"Login failed for {request.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if auth_response.user is None or auth_response.session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    logger.info(f"User logged in successfully: {request.email}")

    return TokenResponse(
        access_token=auth_response.session.access_token,
        user=AuthUser(id=auth_response.user.id, email=auth_response.user.email)
    )

@router.post("/logout")
async def logout(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
):
    """
    Logout user by revoking the caller's Supabase session
    """
    token = credentials.credentials if credentials else extract_cookie_token(request.cookies)
    if not token:
        return {"message": "Logged out successfully"}

    try:
        auth_client = get_auth_middleware().create_auth_client()
        await asyncio.to_thread(auth_client.auth.admin.sign_out, token)
        logger.info("User logged out successfully")
    except Exception as e:
        # Don't raise error for logout, just log it
        logger.error(f"Logout error: {str(e)}")

    return {"message": "Logged out successfully"}

@router.get("/me", response_model=AuthUser)
async def get_me(current_user: dict = Depends(get_current_user)):
    """
    Get the authenticated user
    """
    return AuthUser(**current_user)
