"""Result of a successful entitlement check."""
from dataclasses import dataclass
from typing import Optional

from core.plans import SubscriptionPlan


@dataclass(frozen=True)
class ChargeReceipt:
    """What the caller needs to render after a metered request was granted.

    ``remaining`` is None for premium accounts (no limit).
    """

    account_id: str
    plan: SubscriptionPlan
    remaining: Optional[int]
    granted: bool = True

    @property
    def unlimited(self) -> bool:
        return self.plan == SubscriptionPlan.PREMIUM

    def to_dict(self) -> dict:
        return {
            "granted": self.granted,
            "remaining": self.remaining,
            "plan": self.plan.value,
        }
