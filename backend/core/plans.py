"""
Plan configuration for subscription tiers.

This module is the single source of truth for plan names and credit
allowances. It lives in core/ so both service and API layers can import
from it without creating circular dependencies.
"""

from enum import StrEnum
from typing import Optional


class SubscriptionPlan(StrEnum):
    """The two plans an account can be on."""

    FREE = "free"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubscriptionPlan":
        """Map a stored or provider-sourced string onto a plan.

        Anything unrecognised is treated as free so a bad value can never
        unlock unlimited generation.
        """
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.FREE


# Credits granted at the start of every week to free accounts
FREE_WEEKLY_CREDITS = 3

# Stored in credits_remaining for premium accounts: no limit
UNLIMITED_CREDITS = None

