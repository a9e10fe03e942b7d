"""
Subscription plan transitions.

Plan and Stripe linkage are only ever changed through the three
transitions below. Each one is "set to target state", so applying it twice
leaves the account exactly as applying it once.

    Free --activate_premium--> Premium --downgrade_to_free--> Free
"""

import logging
from typing import Optional

from sqlalchemy import exists, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from core.plans import UNLIMITED_CREDITS, SubscriptionPlan
from infrastructure.database.models.user import User
from services.accounts import AccountRepository
from services.credit_ledger import CreditLedger

logger = logging.getLogger(__name__)


class SubscriptionState:
    """Owns ``subscription_plan`` and the Stripe customer/subscription refs."""

    def __init__(self, db: AsyncSession, ledger: Optional[CreditLedger] = None):
        self.db = db
        self.ledger = ledger or CreditLedger(db)
        self.accounts = AccountRepository(db)

    async def activate_premium(
        self,
        account_id: str,
        customer_ref: str,
        subscription_ref: Optional[str],
    ) -> User:
        """Move the account to premium and store both Stripe refs.

        The plan flip and the unlimited credit marker are written by one
        UPDATE, so no reader can see premium with a stale balance.
        """
        account = await self.ledger.provision(
            account_id,
            UNLIMITED_CREDITS,
            extra={
                "subscription_plan": SubscriptionPlan.PREMIUM.value,
                "stripe_customer_id": customer_ref,
                "stripe_subscription_id": subscription_ref,
            },
        )
        logger.info(
            "Account %s activated premium (subscription %s)",
            account_id,
            subscription_ref,
            extra={"account_id": account_id},
        )
        return account

    async def downgrade_to_free(
        self,
        account_id: str,
        customer_ref: Optional[str] = None,
    ) -> User:
        """Move the account to free, clear the subscription ref, refill credits.

        The Stripe customer persists across cancellations, so the customer
        ref is kept (or set, when given and not yet stored).
        """
        extra = {
            "subscription_plan": SubscriptionPlan.FREE.value,
            "stripe_subscription_id": None,
        }
        if customer_ref:
            extra["stripe_customer_id"] = customer_ref

        account = await self.ledger.provision(
            account_id,
            self.ledger.weekly_allowance,
            extra=extra,
        )
        logger.info(
            "Account %s downgraded to free with %d credits",
            account_id,
            self.ledger.weekly_allowance,
            extra={"account_id": account_id},
        )
        return account

    async def link_billing_customer(self, account_id: str, customer_ref: str) -> bool:
        """
        Record the Stripe customer for an account that has none yet.

        Returns:
            True if the account is now linked to ``customer_ref`` (newly or
            already), False if it is linked to a different customer or the
            customer already belongs to another account. Nothing is changed
            in either refused case.

        Raises:
            AccountNotFound: If the account does not exist
        """
        owner = aliased(User)
        result = await self.db.execute(
            update(User)
            .where(User.id == account_id)
            .where(User.stripe_customer_id.is_(None))
            .where(
                ~exists().where(
                    owner.stripe_customer_id == customer_ref,
                    owner.id != account_id,
                )
            )
            .values(stripe_customer_id=customer_ref)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(
                "Linked account %s to Stripe customer %s",
                account_id,
                customer_ref,
                extra={"account_id": account_id},
            )
            return True

        account = await self.accounts.get_or_raise(account_id, refresh=True)
        if account.stripe_customer_id == customer_ref:
            return True

        if account.stripe_customer_id is None:
            logger.warning(
                "Stripe customer %s already belongs to another account, not linking %s",
                customer_ref,
                account_id,
                extra={"account_id": account_id},
            )
        else:
            logger.warning(
                "Account %s already linked to Stripe customer %s, refusing to relink to %s",
                account_id,
                account.stripe_customer_id,
                customer_ref,
                extra={"account_id": account_id},
            )
        return False
