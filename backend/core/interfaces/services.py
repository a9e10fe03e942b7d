"""Service interfaces for external integrations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Optional


class ContentType(StrEnum):
    """Formats the content generator can produce."""

    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    PRODUCT = "product"
    BLOG = "blog"
    VIDEO = "video"


@dataclass
class NicheProfile:
    """Audience and voice the generated copy should target."""

    name: str
    target_audience: str
    content_goal: str
    tone_of_voice: str
    keywords: list[str] = field(default_factory=list)


@dataclass
class GenerationRequest:
    """Validated input for one content generation call."""

    content_type: ContentType
    niche_profile: NicheProfile
    input_data: dict[str, Any] = field(default_factory=dict)
    language: str = "en"


@dataclass
class GenerationResult:
    """Result of AI content generation."""

    content: str
    model: str
    generation_time: float
    tokens_used: Optional[int] = None


class ContentGenerationGateway(ABC):
    """Opaque collaborator that turns a validated request into copy.

    Callers must pass the entitlement check before invoking it.
    """

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate marketing copy for the request."""
        ...
