"""Billing provider events, as consumed by the reconciler."""
from dataclasses import dataclass
from enum import StrEnum
from typing import Optional


class SubscriptionStatus(StrEnum):
    """Subscription statuses reported by the billing provider."""

    ACTIVE = "active"
    TRIALING = "trialing"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    CANCELED = "canceled"
    PAUSED = "paused"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubscriptionStatus":
        """Map a provider status string, treating anything unrecognised as UNKNOWN."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_active(self) -> bool:
        """Whether this status entitles the account to premium."""
        return self in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


@dataclass(frozen=True)
class BillingEvent:
    """Base for all billing events. ``customer_ref`` identifies the account."""

    customer_ref: Optional[str]
    subscription_ref: Optional[str] = None
    provider_event_id: Optional[str] = None

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class SubscriptionActivated(BillingEvent):
    """A subscription was created."""

    status: SubscriptionStatus = SubscriptionStatus.ACTIVE


@dataclass(frozen=True)
class SubscriptionUpdated(BillingEvent):
    """A subscription changed (plan, status, renewal)."""

    status: SubscriptionStatus = SubscriptionStatus.ACTIVE


@dataclass(frozen=True)
class SubscriptionCanceled(BillingEvent):
    """A subscription was deleted or ended."""


@dataclass(frozen=True)
class PaymentFailed(BillingEvent):
    """A renewal payment for a subscription failed."""


@dataclass(frozen=True)
class CheckoutCompleted(BillingEvent):
    """A hosted checkout finished for a known local account."""

    account_id: Optional[str] = None
    paid: bool = False
