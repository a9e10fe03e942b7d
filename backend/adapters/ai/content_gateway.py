"""
Anthropic Claude adapter for marketing copy generation.
"""

import asyncio
import logging
import random
import re
import time
from typing import Optional

import anthropic

from core.interfaces.services import (
    ContentGenerationGateway,
    ContentType,
    GenerationRequest,
    GenerationResult,
)
from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

TRANSIENT_MARKERS = (
    "rate_limit",
    "429",
    "500",
    "502",
    "503",
    "504",
    "overloaded",
    "connection",
    "timeout",
)


class ContentGenerationError(Exception):
    """The generator returned nothing usable."""


async def _retry_with_backoff(coro_factory, max_retries=3, base_delay=1.0):
    """Retry an async operation with exponential backoff + jitter."""
    for attempt in range(max_retries + 1):
        try:
            return await coro_factory()
        except Exception as e:
            error_str = str(e).lower()
            is_transient = any(k in error_str for k in TRANSIENT_MARKERS)
            if not is_transient or attempt == max_retries:
                raise
            delay = base_delay * (2 ** attempt) + random.uniform(0, 1)
            logger.warning(
                "Transient API error (attempt %d/%d), retrying in %.1fs: %s",
                attempt + 1,
                max_retries,
                delay,
                str(e),
            )
            await asyncio.sleep(delay)


class AnthropicContentGateway(ContentGenerationGateway):
    """Content generation via Anthropic Claude.

    Without an API key every call returns a deterministic mock, so local
    development and tests never reach the network.
    """

    LANGUAGE_NAMES = {
        "en": "English",
        "it": "Italian (italiano)",
        "es": "Spanish (español)",
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ):
        api_key = api_key or settings.anthropic_api_key
        if api_key:
            self._client = anthropic.AsyncAnthropic(
                api_key=api_key,
                timeout=float(settings.anthropic_timeout),
            )
        else:
            self._client = None
        self._model = model or settings.anthropic_model
        self._max_tokens = max_tokens or settings.anthropic_max_tokens

    @property
    def is_mock(self) -> bool:
        return self._client is None

    @staticmethod
    def _sanitize_prompt_input(text: Optional[str], max_length: int) -> str:
        """Strip control characters and limit length to prevent prompt injection."""
        if not text:
            return ""
        text = re.sub(r"[\r\n\t\x00-\x1f\x7f]", " ", str(text))
        text = re.sub(r" +", " ", text).strip()
        return text[:max_length]

    def _system_prompt(self, request: GenerationRequest) -> str:
        niche = request.niche_profile
        clean = self._sanitize_prompt_input
        language = self.LANGUAGE_NAMES.get(request.language, request.language)
        keywords = ", ".join(clean(k, 50) for k in niche.keywords if k)

        lines = [
            f"You are an expert copywriter specialized in the niche: {clean(niche.name, 200)}.",
            "",
            f"Target audience: {clean(niche.target_audience, 500)}",
            f"Main objective: {clean(niche.content_goal, 300)}",
            f"Tone of voice: {clean(niche.tone_of_voice, 100)}",
        ]
        if keywords:
            lines.append(f"Keywords to include: {keywords}")
        lines.append("")
        lines.append(
            f"Always write in {language} and create authentic, engaging content "
            "appropriate for the target audience."
        )
        return "\n".join(lines)

    def _user_prompt(self, request: GenerationRequest) -> str:
        data = {
            key: self._sanitize_prompt_input(value, 1000)
            for key, value in request.input_data.items()
        }
        cta = f"\nCall to action: {data['cta']}" if data.get("cta") else ""

        if request.content_type in (ContentType.FACEBOOK, ContentType.INSTAGRAM):
            hashtags = f"\nSuggested hashtags: {data['hashtags']}" if data.get("hashtags") else ""
            platform = request.content_type.value.capitalize()
            return (
                f"Create an engaging {platform} post based on:\n\n"
                f"Topic: {data.get('topic', '')}{cta}{hashtags}\n\n"
                "Include fitting emojis and make it optimized for engagement."
            )

        if request.content_type == ContentType.PRODUCT:
            return (
                "Write a persuasive e-commerce product description for:\n\n"
                f"Product name: {data.get('name', '')}\n"
                f"Features: {data.get('features', '')}\n"
                f"Benefits: {data.get('benefits', '')}{cta}\n\n"
                "Highlight emotional as well as practical benefits and end with a clear call to action."
            )

        if request.content_type == ContentType.BLOG:
            angle = f"\nAngle: {data['angle']}" if data.get("angle") else ""
            return (
                "Create a complete blog article idea with:\n\n"
                f"Topic: {data.get('topic', '')}{angle}\n\n"
                "Provide an SEO-friendly title, a detailed outline with subheadings, "
                "a short introduction, key points and a conclusion with a call to action."
            )

        platform = f"\nPlatform: {data['platform']}" if data.get("platform") else ""
        return (
            "Write a short video script (30-60 seconds) about:\n\n"
            f"Topic: {data.get('topic', '')}{platform}{cta}\n\n"
            "Hook the viewer in the first 3 seconds and include scene directions."
        )

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Generate marketing copy for a validated request.

        Raises:
            ContentGenerationError: If the model returned no text
            anthropic.APIError: If the API call failed after retries
        """
        start = time.monotonic()
        if not self._client:
            return self._mock_result(request, start)

        message = await _retry_with_backoff(
            lambda: self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=self._system_prompt(request),
                messages=[{"role": "user", "content": self._user_prompt(request)}],
            )
        )

        if not message.content:
            raise ContentGenerationError("Empty response from content model")
        text = message.content[0].text.strip()
        if not text:
            raise ContentGenerationError("Empty response from content model")

        usage = getattr(message, "usage", None)
        tokens = (usage.input_tokens + usage.output_tokens) if usage else None
        return GenerationResult(
            content=text,
            model=self._model,
            generation_time=time.monotonic() - start,
            tokens_used=tokens,
        )

    def _mock_result(self, request: GenerationRequest, start: float) -> GenerationResult:
        topic = request.input_data.get("topic") or request.input_data.get("name") or "your topic"
        content = (
            f"[{request.content_type.value}] {request.niche_profile.name}: {topic}\n\n"
            f"Mock content for {request.niche_profile.target_audience}. "
            "Configure ANTHROPIC_API_KEY to generate real copy."
        )
        return GenerationResult(
            content=content,
            model="mock",
            generation_time=time.monotonic() - start,
        )
