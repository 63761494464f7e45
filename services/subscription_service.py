"""
Subscription service for SubsBase database operations
"""
from typing import Optional, List, Dict, Any
import logging
from supabase import Client

from config import settings
from config.decorators import retry_on_transient_error
from models.subscription import ACTIVE_STATUSES, SubscriptionStatus

logger = logging.getLogger(__name__)

class SubscriptionService:
    """
    Thin access layer over the `subscriptions` table.

    Rows are never deleted and several rows per user are tolerated; the
    authoritative one is the newest row with an active-like status.
    """

    def __init__(self, supabase_client: Client, table_name: str = None):
        self.supabase = supabase_client
        self.table_name = table_name or settings.SUBSCRIPTIONS_TABLE

    def _table(self):
        return self.supabase.table(self.table_name)

    @retry_on_transient_error
    def get_active_subscription(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Newest active-like subscription row for a user
        """
        response = (
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .in_("status", list(ACTIVE_STATUSES))
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    @retry_on_transient_error
    def list_subscriptions(self, user_id: str) -> List[Dict[str, Any]]:
        response = (
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    @retry_on_transient_error
    def get_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Dict[str, Any]]:
        return self._find_by_stripe_subscription_id(stripe_subscription_id)

    def _find_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Dict[str, Any]]:
        response = (
            self._table()
            .select("*")
            .eq("stripe_subscription_id", stripe_subscription_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    @retry_on_transient_error
    def upsert_from_checkout(
        self,
        user_id: str,
        stripe_customer_id: Optional[str],
        stripe_subscription_id: Optional[str],
        price_id: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Record a completed checkout as an active subscription
        """
        subscription_data = {
            "user_id": user_id,
            "stripe_customer_id": stripe_customer_id,
            "stripe_subscription_id": stripe_subscription_id,
            "status": SubscriptionStatus.ACTIVE.value,
            "canceled_at": None,
        }
        if price_id:
            subscription_data["price_id"] = price_id

        existing = None
        if stripe_subscription_id:
            existing = self._find_by_stripe_subscription_id(stripe_subscription_id)

        if existing:
            response = (
                self._table()
                .update(subscription_data)
                .eq("stripe_subscription_id", stripe_subscription_id)
                .execute()
            )
            logger.info(f"Updated subscription {stripe_subscription_id} for user {user_id} from checkout")
        else:
            response = self._table().insert(subscription_data).execute()
            logger.info(f"Inserted subscription {stripe_subscription_id} for user {user_id}")

        return response.data[0] if response.data else None

    @retry_on_transient_error
    def update_status(
        self,
        stripe_subscription_id: str,
        status: str,
        canceled_at: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Set the status of every row matching an external subscription id
        """
        update_data = {"status": status}
        if canceled_at:
            update_data["canceled_at"] = canceled_at

        response = (
            self._table()
            .update(update_data)
            .eq("stripe_subscription_id", stripe_subscription_id)
            .execute()
        )
        rows = response.data or []

        if rows:
            logger.info(f"Subscription {stripe_subscription_id} -> {status} ({len(rows)} row(s))")
        else:
            logger.warning(f"No subscription rows matched {stripe_subscription_id} for status {status}")
        return rows
