"""
API request and response schemas.
"""

from .billing import CheckoutResponse, SubscriptionStatus, WebhookAck
from .content import (
    EntitlementInfo,
    GenerateContentRequest,
    GenerateContentResponse,
    NicheProfileSchema,
)

__all__ = [
    "CheckoutResponse",
    "SubscriptionStatus",
    "WebhookAck",
    "EntitlementInfo",
    "GenerateContentRequest",
    "GenerateContentResponse",
    "NicheProfileSchema",
]
