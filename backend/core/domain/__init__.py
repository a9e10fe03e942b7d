# Domain Entities
# Pure business objects with no external dependencies
from .billing import (
    BillingEvent,
    CheckoutCompleted,
    PaymentFailed,
    SubscriptionActivated,
    SubscriptionCanceled,
    SubscriptionStatus,
    SubscriptionUpdated,
)
from .entitlement import ChargeReceipt

__all__ = [
    "BillingEvent",
    "SubscriptionActivated",
    "SubscriptionUpdated",
    "SubscriptionCanceled",
    "PaymentFailed",
    "CheckoutCompleted",
    "SubscriptionStatus",
    "ChargeReceipt",
]
