# Interfaces (Abstract Contracts)
# Adapters implement these interfaces
from .services import (
    ContentGenerationGateway,
    ContentType,
    GenerationRequest,
    GenerationResult,
    NicheProfile,
)

__all__ = [
    "ContentGenerationGateway",
    "ContentType",
    "GenerationRequest",
    "GenerationResult",
    "NicheProfile",
]
