"""Errors raised by the entitlement and billing reconciliation services."""

from typing import Optional


class EntitlementError(Exception):
    """Base exception for metering and billing reconciliation errors."""

    code = "entitlement_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CreditsExhausted(EntitlementError):
    """A free account has no credits left this week.

    Expected and user-facing: recoverable by upgrading or waiting for the
    weekly reset. Never retried automatically.
    """

    code = "credits_exhausted"

    def __init__(self, account_id: str, plan: str = "free", remaining: int = 0):
        super().__init__(
            "You have used all your free generations for this week. "
            "Upgrade to Premium for unlimited content or wait for the weekly reset."
        )
        self.account_id = account_id
        self.plan = plan
        self.remaining = remaining


class AccountNotFound(EntitlementError):
    """Metering was requested for an account that does not exist (caller bug)."""

    code = "account_not_found"

    def __init__(self, account_id: str):
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class MalformedBillingEvent(EntitlementError):
    """A billing event payload could not be mapped onto a known event shape."""

    code = "malformed_billing_event"

    def __init__(self, message: str, event_type: Optional[str] = None):
        super().__init__(message)
        self.event_type = event_type


class UnresolvableBillingAccount(EntitlementError):
    """No local account matches the billing event's customer reference."""

    code = "unresolvable_billing_account"

    def __init__(self, customer_ref: Optional[str], account_id: Optional[str] = None):
        target = f"account {account_id}" if account_id else f"customer {customer_ref}"
        super().__init__(f"No local account for {target}")
        self.customer_ref = customer_ref
        self.account_id = account_id
