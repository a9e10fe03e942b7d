"""
Entitlement checks for metered content generation.

The only entry point the generation flow uses. It decides whether a request
may proceed and charges for it; it never calls the generator itself.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, next_week_start, system_clock, to_utc
from core.domain.entitlement import ChargeReceipt
from core.exceptions import CreditsExhausted
from core.plans import SubscriptionPlan
from services.accounts import AccountRepository
from services.credit_ledger import CreditLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntitlementStatus:
    """Snapshot shown on the account page and in upgrade prompts."""

    account_id: str
    plan: SubscriptionPlan
    credits_remaining: Optional[int]
    last_credits_reset: datetime
    next_credits_reset: Optional[datetime]

    @property
    def can_generate(self) -> bool:
        return self.plan == SubscriptionPlan.PREMIUM or (self.credits_remaining or 0) > 0


class EntitlementService:
    """Composes the account store and the credit ledger."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = system_clock,
        ledger: Optional[CreditLedger] = None,
    ):
        self.db = db
        self.clock = clock
        self.ledger = ledger or CreditLedger(db)
        self.accounts = AccountRepository(db, clock=clock)

    async def check_and_charge(
        self,
        account_id: str,
        now: Optional[datetime] = None,
    ) -> ChargeReceipt:
        """
        Gate one generation request and charge for it.

        Premium accounts are granted without touching the ledger. Free
        accounts get the lazy weekly reset, then one atomic credit
        decrement. The charge is committed before returning so it is
        durable before the (slow) generation call starts.

        Args:
            account_id: Account making the request
            now: Evaluation time, defaults to the service clock

        Returns:
            ChargeReceipt with the plan and remaining credits

        Raises:
            AccountNotFound: If the account does not exist
            CreditsExhausted: If a free account has no credits this week
        """
        now = to_utc(now or self.clock.now())
        account = await self.accounts.get_or_raise(account_id, refresh=True)

        if account.is_premium:
            return ChargeReceipt(
                account_id=account_id,
                plan=SubscriptionPlan.PREMIUM,
                remaining=None,
            )

        await self.ledger.maybe_weekly_reset(account_id, now)
        result = await self.ledger.try_consume(account_id)
        await self.db.commit()

        if not result.granted:
            # An upgrade can land between the plan check and the consume.
            current = await self.accounts.get_or_raise(account_id, refresh=True)
            if current.is_premium:
                return ChargeReceipt(
                    account_id=account_id,
                    plan=SubscriptionPlan.PREMIUM,
                    remaining=None,
                )
            logger.info(
                "Credits exhausted for account %s",
                account_id,
                extra={"account_id": account_id},
            )
            raise CreditsExhausted(
                account_id,
                plan=current.plan.value,
                remaining=current.credits_remaining or 0,
            )

        return ChargeReceipt(
            account_id=account_id,
            plan=SubscriptionPlan.FREE,
            remaining=result.remaining,
        )

    async def get_status(
        self,
        account_id: str,
        now: Optional[datetime] = None,
    ) -> EntitlementStatus:
        """Current plan and balance, with any pending weekly reset applied."""
        now = to_utc(now or self.clock.now())
        account = await self.accounts.get_or_raise(account_id, refresh=True)

        if account.is_premium:
            return EntitlementStatus(
                account_id=account_id,
                plan=SubscriptionPlan.PREMIUM,
                credits_remaining=None,
                last_credits_reset=account.last_reset_utc,
                next_credits_reset=None,
            )

        account = await self.ledger.maybe_weekly_reset(account_id, now)
        await self.db.commit()
        return EntitlementStatus(
            account_id=account_id,
            plan=SubscriptionPlan.FREE,
            credits_remaining=account.credits_remaining,
            last_credits_reset=account.last_reset_utc,
            next_credits_reset=next_week_start(now, self.ledger.reset_zone),
        )
