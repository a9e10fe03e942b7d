"""Payment adapters for billing and subscription management."""

from .stripe_adapter import (
    CheckoutSession,
    StripeAdapter,
    StripeConfigError,
    StripeError,
    StripeWebhookError,
    create_stripe_adapter,
)

__all__ = [
    "StripeAdapter",
    "CheckoutSession",
    "StripeError",
    "StripeWebhookError",
    "StripeConfigError",
    "create_stripe_adapter",
]
