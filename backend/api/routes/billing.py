"""
Billing and subscription API routes.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.payments.stripe_adapter import (
    StripeAdapter,
    StripeConfigError,
    StripeError,
    StripeWebhookError,
)
from api.dependencies import get_clock, get_current_account, get_stripe_adapter
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.billing import CheckoutResponse, SubscriptionStatus, WebhookAck
from core.clock import Clock
from core.exceptions import MalformedBillingEvent
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User
from services.billing_reconciler import BillingEventReconciler
from services.entitlement_service import EntitlementService
from services.subscription_state import SubscriptionState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


@router.get("/subscription", response_model=SubscriptionStatus)
async def get_subscription_status(
    current_account: Annotated[User, Depends(get_current_account)],
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Get current account's plan and credit balance."""
    entitlement = EntitlementService(db, clock=clock)
    info = await entitlement.get_status(current_account.id)

    return SubscriptionStatus(
        subscription_plan=info.plan.value,
        credits_remaining=info.credits_remaining,
        last_credits_reset=info.last_credits_reset,
        next_credits_reset=info.next_credits_reset,
        customer_id=current_account.stripe_customer_id,
        subscription_id=current_account.stripe_subscription_id,
        can_manage=current_account.stripe_customer_id is not None,
    )


@router.post("/checkout", response_model=CheckoutResponse)
@limiter.limit("5/minute")
async def create_checkout(
    request: Request,
    current_account: Annotated[User, Depends(get_current_account)],
    db: AsyncSession = Depends(get_db),
    stripe_adapter: StripeAdapter = Depends(get_stripe_adapter),
):
    """
    Create a Stripe Checkout session for the premium plan.

    Returns a checkout URL where the user can complete payment.
    """
    if current_account.is_premium:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Account is already on the premium plan",
        )

    try:
        session = await stripe_adapter.create_checkout_session(
            account_id=current_account.id,
            email=current_account.email,
            customer_ref=current_account.stripe_customer_id,
        )
    except StripeConfigError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment system not configured",
        )
    except StripeError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Payment provider error",
        )

    if session.customer_id and not current_account.stripe_customer_id:
        await SubscriptionState(db).link_billing_customer(current_account.id, session.customer_id)
        await db.commit()

    return CheckoutResponse(checkout_url=session.url, session_id=session.id)


@router.post("/webhook", response_model=WebhookAck)
@limiter.limit(get_rate_limit("webhook"))
async def handle_webhook(
    request: Request,
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
    db: AsyncSession = Depends(get_db),
    stripe_adapter: StripeAdapter = Depends(get_stripe_adapter),
):
    """
    Handle Stripe webhook events.

    Subscription-affecting events:
    - checkout.session.completed: link customer, activate when paid
    - customer.subscription.created / updated: activate or downgrade by status
    - customer.subscription.deleted: downgrade to free
    - invoice.payment_failed: downgrade to free

    Malformed and unresolvable events are acknowledged so Stripe does not
    redeliver them forever. Unexpected failures return 500 and Stripe retries.
    """
    body = await request.body()

    try:
        payload = stripe_adapter.construct_event(body, stripe_signature)
    except StripeConfigError:
        # 403 rather than 503 so Stripe does not hammer an unconfigured endpoint
        logger.error("Webhook rejected: STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Webhook verification not configured",
        )
    except StripeWebhookError as e:
        logger.warning("Rejected Stripe webhook: %s", e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook signature",
        )

    event_type = payload.get("type") if isinstance(payload, dict) else None
    try:
        event = stripe_adapter.parse_billing_event(payload)
        if event is None:
            return WebhookAck(status="ignored")

        outcome = await BillingEventReconciler(db).handle(event)
    except MalformedBillingEvent as e:
        logger.warning(
            "Acknowledging malformed billing event %s: %s",
            event_type,
            e.message,
            extra={"event_type": event_type},
        )
        return WebhookAck(status="ignored")

    return WebhookAck(status="received", outcome=outcome.value)
