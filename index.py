import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from routes.auth import router as auth_router
from routes.billing import router as billing_router
from routes.dashboard import router as dashboard_router


# Configure logging
handlers = [logging.StreamHandler()]
if settings.LOG_FILE:
    handlers.append(logging.FileHandler(settings.LOG_FILE))

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=handlers
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="SubsBase Backend",
    description="Subscription-gated SaaS starter backed by Supabase and Stripe",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(billing_router)
app.include_router(dashboard_router)


@app.on_event("startup")
async def startup_event():
    """Report configuration gaps on startup."""
    if not settings.STRIPE_SECRET_KEY:
        logger.warning("⚠️ STRIPE_SECRET_KEY is not set, billing endpoints will fail")
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.warning("⚠️ STRIPE_WEBHOOK_SECRET is not set, webhooks will be rejected")
    if not settings.STRIPE_PRICE_ID:
        logger.warning("⚠️ STRIPE_PRICE_ID is not set, checkout needs an explicit priceId")
    logger.info(f"✅ SubsBase Backend started (base URL: {settings.BASE_URL})")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "stripe_configured": bool(settings.STRIPE_SECRET_KEY),
    }


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "SubsBase Backend API",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "auth": "/auth",
            "checkout": "/api/create-checkout-session",
            "portal": "/api/create-portal-session",
            "subscription_status": "/api/subscription-status",
            "webhook": "/api/webhook",
            "plans": "/api/plans",
            "dashboard": "/dashboard",
            "pro_features": "/pro-features",
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
