"""
Billing event reconciliation.

Turns provider events (already verified and mapped into ``BillingEvent``
variants by the webhook route) into SubscriptionState transitions. Every
transition sets a target state, so at-least-once redelivery is harmless.
"""

import logging
from enum import StrEnum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.billing import (
    BillingEvent,
    CheckoutCompleted,
    SubscriptionActivated,
    SubscriptionUpdated,
)
from core.exceptions import MalformedBillingEvent, UnresolvableBillingAccount
from infrastructure.database.models.user import User
from services.accounts import AccountRepository
from services.subscription_state import SubscriptionState

logger = logging.getLogger(__name__)


class ReconcileOutcome(StrEnum):
    """What ``handle`` did with an event."""

    APPLIED = "applied"
    IGNORED = "ignored"
    STALE = "stale"
    UNRESOLVED = "unresolved"


class BillingEventReconciler:
    """Drives subscription transitions from billing provider events."""

    def __init__(self, db: AsyncSession, state: Optional[SubscriptionState] = None):
        self.db = db
        self.state = state or SubscriptionState(db)
        self.accounts = AccountRepository(db)

    async def handle(self, event: BillingEvent) -> ReconcileOutcome:
        """
        Apply one billing event and commit the result.

        Args:
            event: A mapped and signature-verified billing event

        Returns:
            ReconcileOutcome describing what happened

        Raises:
            MalformedBillingEvent: If the event is missing the fields its
                variant requires. Raised before any account is touched.
        """
        self._validate(event)

        try:
            account = await self._resolve(event)
        except UnresolvableBillingAccount as e:
            logger.warning(
                "Dropping %s: %s",
                event.kind,
                e.message,
                extra={"event_type": event.kind},
            )
            return ReconcileOutcome.UNRESOLVED

        if isinstance(event, CheckoutCompleted):
            outcome = await self._apply_checkout(account, event)
        elif isinstance(event, (SubscriptionActivated, SubscriptionUpdated)):
            outcome = await self._apply_status(account, event)
        else:
            outcome = await self._apply_downgrade(account, event)

        await self.db.commit()
        logger.info(
            "Billing event %s for account %s: %s",
            event.kind,
            account.id,
            outcome.value,
            extra={"account_id": account.id, "event_type": event.kind},
        )
        return outcome

    def _validate(self, event: BillingEvent) -> None:
        if not isinstance(event, BillingEvent) or type(event) is BillingEvent:
            raise MalformedBillingEvent(f"Unsupported billing event: {event!r}")
        if not event.customer_ref:
            raise MalformedBillingEvent(
                f"{event.kind} is missing a customer reference",
                event_type=event.kind,
            )
        if isinstance(event, (SubscriptionActivated, SubscriptionUpdated)) and not event.subscription_ref:
            raise MalformedBillingEvent(
                f"{event.kind} is missing a subscription reference",
                event_type=event.kind,
            )
        if isinstance(event, CheckoutCompleted) and not event.account_id:
            raise MalformedBillingEvent(
                "CheckoutCompleted is missing the local account id",
                event_type=event.kind,
            )

    async def _resolve(self, event: BillingEvent) -> User:
        if isinstance(event, CheckoutCompleted):
            account = await self.accounts.get(event.account_id, refresh=True)
            if account is None:
                raise UnresolvableBillingAccount(event.customer_ref, event.account_id)
            return account

        account = await self.accounts.get_by_billing_customer(event.customer_ref)
        if account is None:
            raise UnresolvableBillingAccount(event.customer_ref)
        return account

    async def _apply_checkout(
        self, account: User, event: CheckoutCompleted
    ) -> ReconcileOutcome:
        linked = await self.state.link_billing_customer(account.id, event.customer_ref)
        if not linked:
            return ReconcileOutcome.IGNORED

        if event.paid and event.subscription_ref:
            await self.state.activate_premium(
                account.id, event.customer_ref, event.subscription_ref
            )
        return ReconcileOutcome.APPLIED

    async def _apply_status(
        self, account: User, event: SubscriptionActivated | SubscriptionUpdated
    ) -> ReconcileOutcome:
        if event.status.is_active:
            await self.state.activate_premium(
                account.id, event.customer_ref, event.subscription_ref
            )
            return ReconcileOutcome.APPLIED

        # A subscription that was never active (e.g. incomplete) has nothing to revoke
        if isinstance(event, SubscriptionActivated):
            logger.info(
                "Ignoring %s with status %s for account %s",
                event.kind,
                event.status.value,
                account.id,
                extra={"account_id": account.id, "event_type": event.kind},
            )
            return ReconcileOutcome.IGNORED

        return await self._apply_downgrade(account, event)

    async def _apply_downgrade(self, account: User, event: BillingEvent) -> ReconcileOutcome:
        current = account.stripe_subscription_id
        if current and event.subscription_ref and event.subscription_ref != current:
            logger.info(
                "Ignoring stale %s for subscription %s; account %s is on %s",
                event.kind,
                event.subscription_ref,
                account.id,
                current,
                extra={"account_id": account.id, "event_type": event.kind},
            )
            return ReconcileOutcome.STALE

        # Redelivered downgrade after credits were already spent must not refill them
        if not account.is_premium and not current:
            return ReconcileOutcome.IGNORED

        await self.state.downgrade_to_free(account.id, event.customer_ref)
        return ReconcileOutcome.APPLIED
