"""
Generation tracking database model.
"""

from typing import Optional
from uuid import uuid4

from sqlalchemy import ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class GenerationLog(Base, TimestampMixin):
    """Tracks each charged content generation attempt."""

    __tablename__ = "generation_logs"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Account that triggered (and paid for) the generation
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    content_type: Mapped[str] = mapped_column(String(50), nullable=False)
    """Values: 'facebook', 'instagram', 'product', 'blog', 'video'"""

    status: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    """Values: 'started', 'success', 'failed'"""

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Performance & cost tracking
    ai_model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    input_metadata: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    """
    Structure:
    {
        "niche_profile": "...",
        "language": "en",
        "plan": "free"
    }
    """

    cost_credits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    """Credits consumed by this attempt: 1 for a metered free-plan charge, 0 for premium."""

    __table_args__ = (
        Index("ix_generation_logs_user_type", "user_id", "content_type"),
        Index("ix_generation_logs_created", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<GenerationLog(id={self.id}, content_type={self.content_type}, "
            f"status={self.status}, user_id={self.user_id})>"
        )
