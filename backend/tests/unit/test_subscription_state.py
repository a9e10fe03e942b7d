"""
Unit tests for SubscriptionState transitions.
"""

from datetime import UTC

import pytest

from core.exceptions import AccountNotFound
from services.credit_ledger import CreditLedger
from services.subscription_state import SubscriptionState

pytestmark = pytest.mark.asyncio


@pytest.fixture
def state(db_session) -> SubscriptionState:
    return SubscriptionState(
        db_session, ledger=CreditLedger(db_session, weekly_allowance=3, reset_zone=UTC)
    )


class TestActivatePremium:
    async def test_sets_plan_refs_and_unlimited_credits(self, state, account_factory):
        account = await account_factory(credits=1)

        updated = await state.activate_premium(account.id, "cus_123", "sub_123")

        assert updated.subscription_plan == "premium"
        assert updated.is_premium
        assert updated.stripe_customer_id == "cus_123"
        assert updated.stripe_subscription_id == "sub_123"
        assert updated.credits_remaining is None

    async def test_is_idempotent(self, state, free_account):
        first = await state.activate_premium(free_account.id, "cus_123", "sub_123")
        snapshot = (
            first.subscription_plan,
            first.credits_remaining,
            first.stripe_customer_id,
            first.stripe_subscription_id,
        )

        second = await state.activate_premium(free_account.id, "cus_123", "sub_123")

        assert (
            second.subscription_plan,
            second.credits_remaining,
            second.stripe_customer_id,
            second.stripe_subscription_id,
        ) == snapshot

    async def test_unknown_account_raises(self, state):
        with pytest.raises(AccountNotFound):
            await state.activate_premium("missing", "cus_1", "sub_1")


class TestDowngradeToFree:
    async def test_clears_subscription_and_refills_credits(self, state, premium_account):
        updated = await state.downgrade_to_free(premium_account.id)

        assert updated.subscription_plan == "free"
        assert updated.stripe_subscription_id is None
        assert updated.credits_remaining == 3

    async def test_keeps_billing_customer(self, state, premium_account):
        updated = await state.downgrade_to_free(premium_account.id)
        assert updated.stripe_customer_id == "cus_123"

    async def test_is_idempotent(self, state, premium_account):
        await state.downgrade_to_free(premium_account.id, "cus_123")
        updated = await state.downgrade_to_free(premium_account.id, "cus_123")

        assert updated.subscription_plan == "free"
        assert updated.stripe_subscription_id is None
        assert updated.credits_remaining == 3


class TestLinkBillingCustomer:
    async def test_links_unlinked_account(self, db_session, state, free_account):
        assert await state.link_billing_customer(free_account.id, "cus_new") is True

        await db_session.refresh(free_account)
        assert free_account.stripe_customer_id == "cus_new"

    async def test_relinking_same_customer_is_accepted(self, state, premium_account):
        assert await state.link_billing_customer(premium_account.id, "cus_123") is True

    async def test_refuses_to_overwrite_a_different_customer(
        self, db_session, state, premium_account
    ):
        assert await state.link_billing_customer(premium_account.id, "cus_other") is False

        await db_session.refresh(premium_account)
        assert premium_account.stripe_customer_id == "cus_123"

    async def test_refuses_customer_owned_by_another_account(
        self, db_session, state, account_factory
    ):
        await account_factory(account_id="a", customer_ref="cus_X")
        other = await account_factory(account_id="b")

        assert await state.link_billing_customer("b", "cus_X") is False

        await db_session.refresh(other)
        assert other.stripe_customer_id is None

    async def test_does_not_change_plan(self, db_session, state, free_account):
        await state.link_billing_customer(free_account.id, "cus_new")

        await db_session.refresh(free_account)
        assert free_account.subscription_plan == "free"
        assert free_account.credits_remaining == 3

    async def test_unknown_account_raises(self, state):
        with pytest.raises(AccountNotFound):
            await state.link_billing_customer("missing", "cus_1")
