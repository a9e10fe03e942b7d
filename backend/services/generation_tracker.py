"""
Generation tracking service.
Logs every charged generation attempt. The credit is taken before the
generator runs, so failed attempts stay charged and are flagged for
manual refund.
"""

import logging
from typing import Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.entitlement import ChargeReceipt
from infrastructure.database.models.generation import GenerationLog

logger = logging.getLogger(__name__)


class GenerationTracker:
    """Tracks generation events against the charge that paid for them."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_start(
        self,
        receipt: ChargeReceipt,
        content_type: str,
        input_metadata: Optional[dict] = None,
    ) -> GenerationLog:
        """Log the start of a generation. Returns the log entry for later update."""
        metadata = dict(input_metadata or {})
        metadata["plan"] = receipt.plan.value

        log = GenerationLog(
            id=str(uuid4()),
            user_id=receipt.account_id,
            content_type=content_type,
            status="started",
            input_metadata=metadata,
            cost_credits=0 if receipt.unlimited else 1,
        )
        self.db.add(log)
        await self.db.flush()
        return log

    async def log_success(
        self,
        log_id: str,
        ai_model: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> None:
        """Mark generation as successful."""
        log = await self._get(log_id)
        if not log:
            logger.warning("Generation log %s not found for success update", log_id)
            return

        log.status = "success"
        log.ai_model = ai_model
        log.duration_ms = duration_ms
        await self.db.flush()

    async def log_failure(
        self,
        log_id: str,
        error_message: str,
        duration_ms: Optional[int] = None,
    ) -> None:
        """Mark generation as failed. The charge is kept."""
        log = await self._get(log_id)
        if not log:
            logger.warning("Generation log %s not found for failure update", log_id)
            return

        log.status = "failed"
        log.error_message = error_message[:2000] if error_message else None
        log.duration_ms = duration_ms
        await self.db.flush()

        if log.cost_credits:
            logger.warning(
                "Charged generation %s failed for account %s; eligible for manual refund",
                log.id,
                log.user_id,
                extra={"account_id": log.user_id},
            )

    async def _get(self, log_id: str) -> Optional[GenerationLog]:
        result = await self.db.execute(
            select(GenerationLog).where(GenerationLog.id == log_id)
        )
        return result.scalar_one_or_none()
