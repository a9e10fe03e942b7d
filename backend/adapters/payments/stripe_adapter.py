"""
Stripe billing adapter for subscription management.

Verifies webhook signatures, maps raw Stripe events onto the billing event
variants the reconciler understands, and creates hosted Checkout sessions.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import stripe

from core.domain.billing import (
    BillingEvent,
    CheckoutCompleted,
    PaymentFailed,
    SubscriptionActivated,
    SubscriptionCanceled,
    SubscriptionStatus,
    SubscriptionUpdated,
)
from core.exceptions import MalformedBillingEvent
from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


# Custom Exceptions
class StripeError(Exception):
    """Base exception for Stripe adapter errors."""

    pass


class StripeWebhookError(StripeError):
    """Raised when webhook verification fails."""

    pass


class StripeConfigError(StripeError):
    """Raised when a required Stripe setting is missing."""

    pass


# Dataclasses
@dataclass
class CheckoutSession:
    """Hosted checkout session returned to the client."""

    id: str
    url: str
    customer_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "url": self.url, "customer_id": self.customer_id}


PAID_CHECKOUT_STATUSES = ("paid", "no_payment_required")


def _object_id(value: Any) -> Optional[str]:
    """Return the id of a field that may be a plain id or an expanded object."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        return value.get("id") or None
    return None


class StripeAdapter:
    """
    Stripe adapter for subscription billing.

    Webhook handling is synchronous and local (signature check plus
    mapping). Checkout creation calls the Stripe API in a worker thread.
    """

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        price_id: str | None = None,
    ):
        """
        Initialize Stripe adapter.

        Args:
            api_key: Stripe secret key (defaults to settings)
            webhook_secret: Webhook signing secret (defaults to settings)
            price_id: Premium plan price id (defaults to settings)
        """
        self.api_key = api_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.price_id = price_id or settings.stripe_premium_price_id

        if not self.api_key:
            logger.warning("Stripe secret key not configured. Set stripe_secret_key in settings.")

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        """
        Verify the ``Stripe-Signature`` header and decode the event.

        Args:
            payload: Raw request body
            signature: Value of the Stripe-Signature header

        Returns:
            The decoded event payload

        Raises:
            StripeConfigError: If the webhook secret is not configured
            StripeWebhookError: If the signature is missing or invalid
        """
        if not self.webhook_secret:
            raise StripeConfigError(
                "Webhook secret not configured. Set stripe_webhook_secret in settings."
            )
        if not signature:
            raise StripeWebhookError("Missing Stripe-Signature header")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature verification failed")
            raise StripeWebhookError(f"Invalid webhook signature: {e}")
        except ValueError as e:
            raise StripeWebhookError(f"Invalid webhook payload: {e}")

        return event.to_dict()

    def parse_billing_event(self, payload: dict[str, Any]) -> Optional[BillingEvent]:
        """
        Map a verified Stripe event onto a BillingEvent variant.

        Returns:
            The mapped event, or None for event types that do not affect
            subscriptions

        Raises:
            MalformedBillingEvent: If a relevant event lacks required fields
        """
        event_type = payload.get("type") if isinstance(payload, dict) else None
        if not event_type:
            raise MalformedBillingEvent("Billing event has no type")

        data = payload.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        if not isinstance(obj, dict):
            raise MalformedBillingEvent(
                f"Billing event {event_type} has no data.object", event_type=event_type
            )

        if event_type not in (
            "checkout.session.completed",
            "customer.subscription.created",
            "customer.subscription.updated",
            "customer.subscription.deleted",
            "invoice.payment_failed",
        ):
            logger.debug("Ignoring Stripe event type %s", event_type)
            return None

        customer_ref = _object_id(obj.get("customer"))
        if not customer_ref:
            raise MalformedBillingEvent(
                f"Billing event {event_type} has no customer", event_type=event_type
            )
        event_id = payload.get("id")

        if event_type == "checkout.session.completed":
            metadata = obj.get("metadata") or {}
            return CheckoutCompleted(
                customer_ref=customer_ref,
                subscription_ref=_object_id(obj.get("subscription")),
                provider_event_id=event_id,
                account_id=(
                    metadata.get("user_id")
                    or metadata.get("userId")
                    or obj.get("client_reference_id")
                ),
                paid=obj.get("payment_status") in PAID_CHECKOUT_STATUSES,
            )

        if event_type == "invoice.payment_failed":
            return PaymentFailed(
                customer_ref=customer_ref,
                subscription_ref=_object_id(obj.get("subscription")),
                provider_event_id=event_id,
            )

        # customer.subscription.* events carry the subscription itself
        subscription_ref = obj.get("id")
        if event_type == "customer.subscription.deleted":
            return SubscriptionCanceled(
                customer_ref=customer_ref,
                subscription_ref=subscription_ref,
                provider_event_id=event_id,
            )

        variant = (
            SubscriptionActivated
            if event_type == "customer.subscription.created"
            else SubscriptionUpdated
        )
        return variant(
            customer_ref=customer_ref,
            subscription_ref=subscription_ref,
            provider_event_id=event_id,
            status=SubscriptionStatus.parse(obj.get("status")),
        )

    async def create_checkout_session(
        self,
        account_id: str,
        email: Optional[str] = None,
        customer_ref: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Create a subscription-mode Checkout session for the premium price.

        The account id travels as ``client_reference_id`` and
        ``metadata.user_id`` so the completion webhook can be resolved.

        Raises:
            StripeConfigError: If the secret key or price id is missing
            StripeError: If the Stripe API call fails
        """
        if not self.api_key or not self.price_id:
            raise StripeConfigError("Stripe secret key and premium price id are required")

        params: dict[str, Any] = {
            "mode": "subscription",
            "line_items": [{"price": self.price_id, "quantity": 1}],
            "client_reference_id": account_id,
            "metadata": {"user_id": account_id},
            "subscription_data": {"metadata": {"user_id": account_id}},
            "success_url": f"{settings.frontend_url}/account?checkout=success",
            "cancel_url": f"{settings.frontend_url}/subscribe?checkout=cancelled",
        }
        if customer_ref:
            params["customer"] = customer_ref
        elif email:
            params["customer_email"] = email

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create, api_key=self.api_key, **params
            )
        except stripe.StripeError as e:
            logger.error("Stripe checkout creation failed for account %s: %s", account_id, e)
            raise StripeError(f"Checkout creation failed: {e}")

        logger.info("Created checkout session %s for account %s", session.id, account_id)
        return CheckoutSession(
            id=session.id,
            url=session.url,
            customer_id=_object_id(getattr(session, "customer", None)),
        )


# Factory function for easy instantiation
def create_stripe_adapter(
    api_key: str | None = None,
    webhook_secret: str | None = None,
    price_id: str | None = None,
) -> StripeAdapter:
    """Create a Stripe adapter instance (settings fill in anything omitted)."""
    return StripeAdapter(
        api_key=api_key,
        webhook_secret=webhook_secret,
        price_id=price_id,
    )
