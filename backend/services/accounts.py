"""
Account lookups and first-sight provisioning.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, system_clock, to_utc
from core.exceptions import AccountNotFound
from core.plans import SubscriptionPlan
from infrastructure.config.settings import settings
from infrastructure.database.models.user import User

logger = logging.getLogger(__name__)


class AccountRepository:
    """Point lookups by account id and by billing customer reference."""

    def __init__(self, db: AsyncSession, clock: Clock = system_clock):
        self.db = db
        self.clock = clock

    async def get(self, account_id: str, refresh: bool = False) -> Optional[User]:
        """Load an account, optionally discarding any stale in-session copy."""
        stmt = select(User).where(User.id == account_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_raise(self, account_id: str, refresh: bool = False) -> User:
        account = await self.get(account_id, refresh=refresh)
        if account is None:
            raise AccountNotFound(account_id)
        return account

    async def get_by_billing_customer(self, customer_ref: str) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .where(User.stripe_customer_id == customer_ref)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_or_create(
        self,
        account_id: str,
        email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> User:
        """
        Return the account, creating it on first authentication.

        New accounts start on the free plan with a full weekly allowance and
        ``last_credits_reset`` set to ``now``. Two first requests racing on
        the same id are resolved by the primary key: the loser re-reads.
        """
        existing = await self.get(account_id)
        if existing is not None:
            return existing

        account = User(
            id=account_id,
            email=email,
            subscription_plan=SubscriptionPlan.FREE.value,
            credits_remaining=settings.free_weekly_credits,
            last_credits_reset=to_utc(now or self.clock.now()),
        )
        self.db.add(account)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.get(account_id, refresh=True)
            if existing is None:
                raise
            return existing

        logger.info("Provisioned new free account %s", account_id, extra={"account_id": account_id})
        return account
