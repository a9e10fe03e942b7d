# AI Adapters
# Anthropic content generation

from .content_gateway import (
    AnthropicContentGateway,
    ContentGenerationError,
)

__all__ = [
    "AnthropicContentGateway",
    "ContentGenerationError",
]
