"""
User account database model.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from core.clock import to_utc
from core.plans import SubscriptionPlan

from .base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Account under metering.

    ``credits_remaining`` is only meaningful on the free plan; premium
    accounts store NULL (no limit). Mutations go through CreditLedger and
    SubscriptionState, never through attribute writes in request code.
    """

    __tablename__ = "users"

    # Subject id issued by the auth provider
    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Subscription
    subscription_plan: Mapped[str] = mapped_column(
        String(20),
        default=SubscriptionPlan.FREE.value,
        nullable=False,
    )
    # No column default: NULL is the unlimited marker and must be storable
    credits_remaining: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_credits_reset: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # Stripe linkage
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, unique=True
    )
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "credits_remaining IS NULL OR credits_remaining >= 0",
            name="ck_users_credits_non_negative",
        ),
        CheckConstraint(
            "subscription_plan IN ('free', 'premium')",
            name="ck_users_subscription_plan",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<User(id={self.id}, plan={self.subscription_plan}, "
            f"credits={self.credits_remaining})>"
        )

    @property
    def plan(self) -> SubscriptionPlan:
        return SubscriptionPlan.parse(self.subscription_plan)

    @property
    def is_premium(self) -> bool:
        return self.plan == SubscriptionPlan.PREMIUM

    @property
    def last_reset_utc(self) -> datetime:
        """``last_credits_reset`` as an aware UTC datetime."""
        return to_utc(self.last_credits_reset)
