"""
Authentication utilities for SubsBase
"""
import json
import re
from typing import Optional

# Cookie names written by the Supabase browser clients
ACCESS_TOKEN_COOKIE = "sb-access-token"
LEGACY_AUTH_COOKIE = "supabase-auth-token"

def validate_email(email: str) -> bool:
    """
    Basic email validation
    """
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None

def validate_password(password: str) -> tuple[bool, str]:
    """
    Validate password strength
    """
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"

    if not any(c.isupper() for c in password):
        return False, "Password must contain at least one uppercase letter"

    if not any(c.islower() for c in password):
        return False, "Password must contain at least one lowercase letter"

    if not any(c.isdigit() for c in password):
        return False, "Password must contain at least one number"

    return True, "Password is valid"

def extract_cookie_token(cookies: dict) -> Optional[str]:
    """
    Fallback token lookup in request cookies.

    `sb-access-token` holds the raw JWT, the legacy `supabase-auth-token`
    cookie holds a JSON array whose first element is the access token.
    """
    token = cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token

    legacy = cookies.get(LEGACY_AUTH_COOKIE)
    if not legacy:
        return None
    try:
        parsed = json.loads(legacy)
    except (json.JSONDecodeError, TypeError):
        return None
    if isinstance(parsed, list) and parsed and isinstance(parsed[0], str):
        return parsed[0]
    return None
