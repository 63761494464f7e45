"""
Stripe service for SubsBase subscription management
"""
import stripe
from typing import Optional, Dict, Any, Callable, Awaitable
from datetime import datetime, timezone
import logging
from fastapi import HTTPException, status
from supabase import Client

from config import settings
from models.subscription import PeriodInfo, SubscriptionStatus
from services.subscription_service import SubscriptionService
from services.period_estimator import (
    field,
    period_from_subscription,
    period_from_invoice,
    period_from_created_at,
)

logger = logging.getLogger(__name__)

# Initialize Stripe
stripe.api_key = settings.STRIPE_SECRET_KEY
if settings.STRIPE_API_VERSION:
    stripe.api_version = settings.STRIPE_API_VERSION


class WebhookSignatureError(Exception):
    """Raised when a webhook payload cannot be verified or parsed."""


def _invoice_subscription_id(invoice) -> Optional[str]:
    subscription_ref = field(invoice, "subscription")
    if subscription_ref is None:
        # Newer API versions nest it under the invoice parent
        details = field(field(invoice, "parent"), "subscription_details")
        subscription_ref = field(details, "subscription")
    if subscription_ref is not None and not isinstance(subscription_ref, str):
        subscription_ref = field(subscription_ref, "id")
    return subscription_ref


def _timestamp_to_iso(value) -> Optional[str]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()


class StripeService:
    def __init__(self, supabase_client: Client, subscription_service: SubscriptionService = None):
        self.supabase = supabase_client
        self.subscriptions = subscription_service or SubscriptionService(supabase_client)
        self.webhook_secret = settings.STRIPE_WEBHOOK_SECRET
        self.base_url = settings.BASE_URL
        self.default_price_id = settings.STRIPE_PRICE_ID

        self._event_handlers: Dict[str, Callable[[Any], Awaitable[None]]] = {
            "checkout.session.completed": self._handle_checkout_completed,
            "invoice.paid": self._handle_invoice_paid,
            "invoice.payment_succeeded": self._handle_invoice_paid,
            "invoice.payment_failed": self._handle_payment_failed,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
        }

    async def create_checkout_session(self, user_id: str, price_id: Optional[str] = None) -> str:
        """
        Create Stripe checkout session for subscription
        """
        price_id = price_id or self.default_price_id
        if not price_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No price ID was provided"
            )

        # Fail early with a readable message when the price does not exist
        try:
            stripe.Price.retrieve(price_id)
        except stripe.StripeError as e:
            logger.warning(f"Price lookup failed for {price_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid price ID: {getattr(e, 'user_message', None) or str(e)}"
            )

        try:
            session = stripe.checkout.Session.create(
                payment_method_types=['card'],
                mode='subscription',
                line_items=[{
                    'price': price_id,
                    'quantity': 1,
                }],
                metadata={
                    "user_id": user_id,
                    "price_id": price_id
                },
                subscription_data={
                    "metadata": {"user_id": user_id}
                },
                success_url=f"{self.base_url}/dashboard?success=1",
                cancel_url=f"{self.base_url}/pricing?canceled=1",
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Stripe error: {getattr(e, 'user_message', None) or str(e)}"
            )

        logger.info(f"Created checkout session {session.id} for user {user_id}")
        return session.url

    async def create_portal_session(self, customer_id: str) -> str:
        """
        Create Stripe customer portal session
        """
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=f"{self.base_url}/dashboard"
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating portal session: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Portal error: {str(e)}"
            )

        logger.info(f"Created portal session for customer {customer_id}")
        return session.url

    def construct_event(self, payload: bytes, signature: str):
        """
        Verify the Stripe signature and parse the event
        """
        if not self.webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not configured")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Webhook secret is not configured"
            )

        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(str(e))
        except ValueError as e:
            # Invalid JSON payload
            raise WebhookSignatureError(str(e))

    async def handle_event(self, event) -> str:
        """
        Apply one webhook event to the local subscription table
        """
        event_type = field(event, "type")
        handler = self._event_handlers.get(event_type)

        if handler is None:
            logger.info(f"Unhandled event type: {event_type}")
            return event_type

        logger.info(f"Processing webhook event: {event_type} ({field(event, 'id')})")
        await handler(event["data"]["object"])
        return event_type

    async def _handle_checkout_completed(self, session):
        """Handle successful checkout completion"""
        metadata = field(session, "metadata", {})
        user_id = field(metadata, "user_id")
        if not user_id:
            logger.warning(f"Checkout session {field(session, 'id')} has no user_id metadata, skipping")
            return

        self.subscriptions.upsert_from_checkout(
            user_id=user_id,
            stripe_customer_id=field(session, "customer"),
            stripe_subscription_id=field(session, "subscription"),
            price_id=field(metadata, "price_id"),
        )
        logger.info(f"Checkout completed for user {user_id}")

    async def _handle_invoice_paid(self, invoice):
        """Handle successful payment"""
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id:
            logger.info(f"Invoice {field(invoice, 'id')} is not tied to a subscription, skipping")
            return

        self.subscriptions.update_status(subscription_id, SubscriptionStatus.ACTIVE.value)

    async def _handle_payment_failed(self, invoice):
        """Handle failed payment"""
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id:
            logger.info(f"Invoice {field(invoice, 'id')} is not tied to a subscription, skipping")
            return

        self.subscriptions.update_status(subscription_id, SubscriptionStatus.PAST_DUE.value)
        logger.info(f"Payment failed for subscription {subscription_id}")

    async def _handle_subscription_updated(self, subscription):
        """Handle subscription updates"""
        subscription_id = field(subscription, "id")
        stripe_status = field(subscription, "status")
        canceled_at = None

        if field(subscription, "cancel_at_period_end", False) and stripe_status == SubscriptionStatus.ACTIVE.value:
            new_status = SubscriptionStatus.ACTIVE_UNTIL_PERIOD_END.value
        elif stripe_status == SubscriptionStatus.CANCELED.value:
            new_status = stripe_status
            canceled_at = self._canceled_at(subscription)
        else:
            # Other Stripe statuses are stored verbatim
            new_status = stripe_status

        if not new_status:
            logger.warning(f"Subscription {subscription_id} update carried no status, skipping")
            return

        self.subscriptions.update_status(subscription_id, new_status, canceled_at=canceled_at)

    async def _handle_subscription_deleted(self, subscription):
        """Handle subscription cancellation"""
        subscription_id = field(subscription, "id")
        self.subscriptions.update_status(
            subscription_id,
            SubscriptionStatus.CANCELED.value,
            canceled_at=self._canceled_at(subscription),
        )
        logger.info(f"Subscription canceled: {subscription_id}")

    @staticmethod
    def _canceled_at(subscription) -> str:
        return (
            _timestamp_to_iso(field(subscription, "canceled_at"))
            or _timestamp_to_iso(field(subscription, "ended_at"))
            or datetime.now(timezone.utc).isoformat()
        )

    async def get_period_info(self, subscription_row: Dict[str, Any], now: Optional[datetime] = None) -> Optional[PeriodInfo]:
        """
        Best-effort billing period for display
        """
        stripe_subscription_id = subscription_row.get("stripe_subscription_id")
        if not stripe_subscription_id:
            return None

        try:
            logger.info(f"Fetching period info from Stripe for {stripe_subscription_id}")
            stripe_subscription = stripe.Subscription.retrieve(stripe_subscription_id)

            period_info = period_from_subscription(stripe_subscription, now)
            if period_info:
                return period_info

            cancel_at_period_end = field(stripe_subscription, "cancel_at_period_end", False)

            logger.info(f"Subscription {stripe_subscription_id} has no period fields, trying latest invoice")
            invoices = stripe.Invoice.list(subscription=stripe_subscription_id, limit=1)
            invoice_data = field(invoices, "data", [])
            if invoice_data:
                period_info = period_from_invoice(invoice_data[0], cancel_at_period_end, now)
                if period_info:
                    return period_info

            logger.warning(f"Falling back to creation date for period of {stripe_subscription_id}")
            return period_from_created_at(subscription_row.get("created_at"), cancel_at_period_end, now)

        except stripe.StripeError as e:
            logger.error(f"Stripe error fetching period info: {str(e)}")
            return None
