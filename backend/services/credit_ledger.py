"""
Credit ledger for free-tier accounts.

Every mutation here is a single conditional UPDATE evaluated by the
database, so concurrent requests from any number of stateless instances
cannot overdraw an account or provision the same week twice. Nothing in
this module reads a balance and writes it back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import to_utc, week_start
from core.exceptions import AccountNotFound
from core.plans import SubscriptionPlan
from infrastructure.config.settings import settings
from infrastructure.database.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsumeResult:
    """Outcome of a single ``try_consume`` call."""

    granted: bool
    remaining: Optional[int]


class CreditLedger:
    """Owns ``credits_remaining`` and ``last_credits_reset``."""

    def __init__(
        self,
        db: AsyncSession,
        weekly_allowance: Optional[int] = None,
        reset_zone: Optional[tzinfo] = None,
    ):
        self.db = db
        self.weekly_allowance = (
            settings.free_weekly_credits if weekly_allowance is None else weekly_allowance
        )
        self.reset_zone = reset_zone or settings.reset_zone

    async def try_consume(self, account_id: str) -> ConsumeResult:
        """
        Atomically take one credit if the balance is positive.

        The balance test and the decrement are the same statement
        (``UPDATE ... WHERE credits_remaining > 0 RETURNING``), so with k
        credits left at most k concurrent callers are granted.

        Returns:
            ConsumeResult with the balance after the decrement, or the
            untouched balance when denied.

        Raises:
            AccountNotFound: If the account does not exist
        """
        result = await self.db.execute(
            update(User)
            .where(User.id == account_id)
            .where(User.credits_remaining > 0)
            .values(credits_remaining=User.credits_remaining - 1)
            .returning(User.credits_remaining)
            .execution_options(synchronize_session=False)
        )
        remaining = result.scalar_one_or_none()
        if remaining is not None:
            logger.debug("Consumed credit for account %s, %d left", account_id, remaining)
            return ConsumeResult(granted=True, remaining=remaining)

        current = await self.db.execute(
            select(User.credits_remaining).where(User.id == account_id)
        )
        row = current.one_or_none()
        if row is None:
            raise AccountNotFound(account_id)
        return ConsumeResult(granted=False, remaining=row[0])

    async def maybe_weekly_reset(self, account_id: str, now: datetime) -> User:
        """
        Re-provision the weekly allowance if ``now`` is in a later week.

        ``week_start(now) > week_start(last_reset)`` is the same test as
        ``last_reset < week_start(now)``, which the database evaluates in the
        UPDATE itself. A second call in the same week, or a concurrent call
        that lost the race, matches no row. Because the new timestamp is
        ``now`` and ``now >= week_start(now) > last_reset``, the reset
        timestamp only ever moves forward.

        Returns:
            The account as stored after the check

        Raises:
            AccountNotFound: If the account does not exist
        """
        now = to_utc(now)
        boundary = week_start(now, self.reset_zone)
        result = await self.db.execute(
            update(User)
            .where(User.id == account_id)
            .where(User.subscription_plan == SubscriptionPlan.FREE.value)
            .where(User.last_credits_reset < boundary)
            .values(credits_remaining=self.weekly_allowance, last_credits_reset=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(
                "Weekly credit reset for account %s: %d credits (week of %s)",
                account_id,
                self.weekly_allowance,
                boundary.date().isoformat(),
                extra={"account_id": account_id},
            )
        return await self._load(account_id)

    async def provision(
        self,
        account_id: str,
        amount: Optional[int],
        extra: Optional[dict[str, Any]] = None,
    ) -> User:
        """
        Set the balance unconditionally.

        ``amount`` None stores the unlimited marker used by premium accounts.
        ``extra`` column values are written in the same UPDATE, which is how
        plan transitions change plan and credits together.

        Raises:
            ValueError: If amount is negative
            AccountNotFound: If the account does not exist
        """
        if amount is not None and amount < 0:
            raise ValueError(f"Cannot provision a negative balance: {amount}")

        values: dict[str, Any] = {"credits_remaining": amount}
        if extra:
            values.update(extra)

        result = await self.db.execute(
            update(User)
            .where(User.id == account_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AccountNotFound(account_id)

        logger.info(
            "Provisioned account %s with %s credits",
            account_id,
            "unlimited" if amount is None else amount,
            extra={"account_id": account_id},
        )
        return await self._load(account_id)

    async def _load(self, account_id: str) -> User:
        result = await self.db.execute(
            select(User)
            .where(User.id == account_id)
            .execution_options(populate_existing=True)
        )
        account = result.scalar_one_or_none()
        if account is None:
            raise AccountNotFound(account_id)
        return account
