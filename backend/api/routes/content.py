"""
Metered content generation route.
"""

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock, get_content_gateway, get_current_account
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.content import (
    EntitlementInfo,
    GenerateContentRequest,
    GenerateContentResponse,
)
from core.clock import Clock
from core.interfaces.services import (
    ContentGenerationGateway,
    GenerationRequest,
    NicheProfile,
)
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User
from services.entitlement_service import EntitlementService
from services.generation_tracker import GenerationTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["content"])


@router.post("/generate", response_model=GenerateContentResponse)
@limiter.limit(get_rate_limit("generate"))
async def generate_content(
    request: Request,
    body: GenerateContentRequest,
    current_account: Annotated[User, Depends(get_current_account)],
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    gateway: ContentGenerationGateway = Depends(get_content_gateway),
):
    """
    Generate one piece of content.

    The credit is charged (and committed) before the generator is called.
    Exhausted free accounts get a 402 and the generator is never invoked.
    """
    entitlement = EntitlementService(db, clock=clock)
    receipt = await entitlement.check_and_charge(current_account.id)

    tracker = GenerationTracker(db)
    log = await tracker.log_start(
        receipt,
        content_type=body.content_type.value,
        input_metadata={
            "niche_profile": body.niche_profile.name,
            "language": body.language,
        },
    )
    await db.commit()

    generation_request = GenerationRequest(
        content_type=body.content_type,
        niche_profile=NicheProfile(**body.niche_profile.model_dump()),
        input_data=body.input_data,
        language=body.language,
    )

    start_time = time.monotonic()
    try:
        result = await gateway.generate(generation_request)
    except Exception as e:
        duration_ms = int((time.monotonic() - start_time) * 1000)
        logger.error(
            "Content generation failed for account %s: %s",
            current_account.id,
            e,
            extra={"account_id": current_account.id},
        )
        await tracker.log_failure(log.id, str(e), duration_ms=duration_ms)
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Content generation failed. Please try again later.",
        )

    duration_ms = int((time.monotonic() - start_time) * 1000)
    await tracker.log_success(log.id, ai_model=result.model, duration_ms=duration_ms)
    await db.commit()

    return GenerateContentResponse(
        content=result.content,
        content_type=body.content_type,
        ai_model=result.model,
        generation_id=log.id,
        entitlement=EntitlementInfo(**receipt.to_dict()),
    )
