"""
Subscription model for SubsBase
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Any
from enum import Enum

class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    ACTIVE_UNTIL_PERIOD_END = "active_until_period_end"  # canceled, still inside the paid period
    CANCELED = "canceled"
    PAST_DUE = "past_due"

# Statuses that grant access. Any other Stripe status is stored verbatim and does not.
ACTIVE_STATUSES = (
    SubscriptionStatus.ACTIVE.value,
    SubscriptionStatus.ACTIVE_UNTIL_PERIOD_END.value,
)

def is_active_status(status: Optional[str]) -> bool:
    return status in ACTIVE_STATUSES

class Subscription(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[Any] = None
    user_id: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    price_id: Optional[str] = None
    status: str
    created_at: Optional[str] = None
    canceled_at: Optional[str] = None

class ReadablePeriod(BaseModel):
    period_start: str
    period_end: str
    days_until_end: int

class PeriodInfo(BaseModel):
    current_period_start: int
    current_period_end: int
    readable: ReadablePeriod
    billing_cycle_anchor: Optional[int] = None
    cancel_at_period_end: Optional[bool] = None
    estimated: bool = False
    fallback: bool = False

class StatusUser(BaseModel):
    id: str
    email: Optional[str] = None

class SubscriptionStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_active_subscription: bool = Field(alias="hasActiveSubscription")
    subscription: Optional[Subscription] = None
    period_info: Optional[PeriodInfo] = Field(default=None, alias="periodInfo")
    user: StatusUser

class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    price_id: Optional[str] = Field(default=None, alias="priceId")
    user_id: Optional[str] = Field(default=None, alias="userId")

class SessionUrlResponse(BaseModel):
    url: str

class WebhookResponse(BaseModel):
    received: bool = True

class DashboardResponse(BaseModel):
    user: StatusUser
    has_active_subscription: bool
    is_expiring: bool = False
    subscription: Optional[Subscription] = None
