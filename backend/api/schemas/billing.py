"""
Billing and subscription request/response schemas.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SubscriptionStatus(BaseModel):
    """Current plan and credit balance for an account."""

    subscription_plan: str = Field(..., description="Current plan (free, premium)")
    credits_remaining: int | None = Field(
        None, description="Credits left this week (null means unlimited)"
    )
    last_credits_reset: datetime = Field(..., description="When credits were last provisioned")
    next_credits_reset: datetime | None = Field(
        None, description="Next weekly reset boundary (free plan only)"
    )
    customer_id: str | None = Field(None, description="Stripe customer ID")
    subscription_id: str | None = Field(None, description="Stripe subscription ID")
    can_manage: bool = Field(..., description="Whether the account has a Stripe customer")


class CheckoutResponse(BaseModel):
    """Response containing checkout URL."""

    checkout_url: str = Field(..., description="URL to the Stripe Checkout page")
    session_id: str = Field(..., description="Stripe Checkout session ID")


class WebhookAck(BaseModel):
    """Acknowledgement returned to Stripe."""

    status: str = Field(..., description="received or ignored")
    outcome: str | None = Field(None, description="What the reconciler did with the event")
