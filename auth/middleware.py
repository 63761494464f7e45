"""
Authentication middleware for SubsBase with local JWT validation
"""
import jwt
import logging
from fastapi import HTTPException, status
from typing import Callable, Optional
from supabase import create_client, Client, ClientOptions
from datetime import datetime, timedelta, timezone

from config import settings

logger = logging.getLogger(__name__)

# JWT settings
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"
ACCESS_TOKEN_TTL = timedelta(hours=24)

class AuthMiddleware:
    def __init__(
        self,
        supabase_client: Optional[Client] = None,
        jwt_secret: Optional[str] = None,
        auth_client_factory: Optional[Callable[[], Client]] = None
    ):
        self.jwt_secret = jwt_secret or settings.SUPABASE_JWT_SECRET
        if not self.jwt_secret:
            raise ValueError("SUPABASE_JWT_SECRET environment variable is required")

        if supabase_client is None:
            if not settings.SUPABASE_URL:
                raise ValueError("SUPABASE_URL environment variable is required")
            if not settings.SUPABASE_SERVICE_KEY:
                raise ValueError("SUPABASE_SERVICE_KEY environment variable is required")
            # Service role key so table access bypasses row level security
            supabase_client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
            logger.info("✅ Supabase client initialized with local JWT validation")

        self.supabase: Client = supabase_client
        self._auth_client_factory = auth_client_factory

    def create_auth_client(self) -> Client:
        """
        Fresh client for a single sign-up, sign-in or sign-out call.

        A signed-in session rewrites its client's Authorization header, so
        these calls never run on `self.supabase`, which must keep the service
        role key for table access.
        """
        if self._auth_client_factory is not None:
            return self._auth_client_factory()

        return create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY,
            options=ClientOptions(auto_refresh_token=False, persist_session=False)
        )

    def verify_token(self, token: Optional[str]) -> dict:
        """
        Verify JWT token locally without round-trip to Supabase
        """
        if not token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not logged in"
            )

        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[JWT_ALGORITHM],
                audience=JWT_AUDIENCE
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired"
            )
        except jwt.InvalidAudienceError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token audience"
            )
        except jwt.InvalidSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token signature"
            )
        except jwt.InvalidTokenError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token: {str(e)}"
            )

        user_id = payload.get("sub")
        email = payload.get("email")

        if not user_id or not email:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: missing user information"
            )

        return {"id": user_id, "email": email}

    def create_access_token(self, user_id: str, email: str, expires_in: timedelta = ACCESS_TOKEN_TTL) -> str:
        """
        Create JWT access token (for custom auth flows)
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "aud": JWT_AUDIENCE,
            "role": "authenticated",
            "exp": now + expires_in,
            "iat": now
        }

        return jwt.encode(payload, self.jwt_secret, algorithm=JWT_ALGORITHM)

# Global auth middleware instance - will be initialized on first use
auth_middleware = None

def get_auth_middleware():
    """Get or create auth middleware instance"""
    global auth_middleware
    if auth_middleware is None:
        auth_middleware = AuthMiddleware()
    return auth_middleware
