"""
API dependencies for authentication and collaborators.

Token verification happens at the auth gateway in front of this service;
it forwards the verified subject id in ``X-User-Id``.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.ai.content_gateway import AnthropicContentGateway
from adapters.payments.stripe_adapter import StripeAdapter, create_stripe_adapter
from core.clock import Clock, system_clock
from core.interfaces.services import ContentGenerationGateway
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User
from services.accounts import AccountRepository


def get_clock() -> Clock:
    """Time source for request handlers (overridden in tests)."""
    return system_clock


@lru_cache
def get_content_gateway() -> ContentGenerationGateway:
    return AnthropicContentGateway()


@lru_cache
def get_stripe_adapter() -> StripeAdapter:
    return create_stripe_adapter()


async def get_current_account(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
    x_user_email: Annotated[str | None, Header(alias="X-User-Email")] = None,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> User:
    """
    Dependency to get the current authenticated account.

    Accounts are provisioned on first sight: free plan, full weekly
    allowance, reset timestamp = now.
    """
    account_id = (x_user_id or "").strip()
    if not account_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    if len(account_id) > 255:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user id",
        )

    repo = AccountRepository(db, clock=clock)
    return await repo.get_or_create(account_id, email=x_user_email)
