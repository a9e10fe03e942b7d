"""
Service layer for business logic.
"""

from services.accounts import AccountRepository
from services.billing_reconciler import BillingEventReconciler, ReconcileOutcome
from services.credit_ledger import ConsumeResult, CreditLedger
from services.entitlement_service import EntitlementService, EntitlementStatus
from services.generation_tracker import GenerationTracker
from services.subscription_state import SubscriptionState

__all__ = [
    "AccountRepository",
    "BillingEventReconciler",
    "ConsumeResult",
    "CreditLedger",
    "EntitlementService",
    "EntitlementStatus",
    "GenerationTracker",
    "ReconcileOutcome",
    "SubscriptionState",
]
