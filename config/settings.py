"""
Environment configuration for SubsBase
"""
import os
from typing import List
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

# Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
SUBSCRIPTIONS_TABLE = os.getenv("SUBSCRIPTIONS_TABLE", "subscriptions")

# Stripe
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_PRICE_ID = os.getenv("STRIPE_PRICE_ID")
STRIPE_API_VERSION = os.getenv("STRIPE_API_VERSION")

# Redirect target for Checkout and the Billing Portal
BASE_URL = (os.getenv("BASE_URL") or os.getenv("FRONTEND_URL") or "http://localhost:3000").rstrip("/")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "subsbase.log")


def get_cors_origins() -> List[str]:
    """Comma separated CORS_ORIGINS, defaults to everything."""
    raw = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
