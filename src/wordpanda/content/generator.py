"""Generative text for the morning examples and evening review sections."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from google import genai

from wordpanda.config import Settings

logger = logging.getLogger(__name__)


class ContentGenerator(ABC):
    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return generated text, or an empty string when nothing was produced."""
        ...


class GeminiGenerator(ContentGenerator):
    """google-genai client, async surface."""

    def __init__(self, api_key: str, model: str, client: genai.Client | None = None) -> None:
        self.model = model
        self._client = client or genai.Client(api_key=api_key)

    async def generate(self, prompt: str) -> str:
        response = await self._client.aio.models.generate_content(model=self.model, contents=prompt)
        return (response.text or "").strip()


class NullGenerator(ContentGenerator):
    """Used when no API key is configured: sections are simply omitted."""

    async def generate(self, prompt: str) -> str:
        return ""


def create_generator(settings: Settings) -> ContentGenerator:
    if not settings.gemini_api_key:
        logger.info("No Gemini API key configured; generated sections disabled")
        return NullGenerator()
    return GeminiGenerator(api_key=settings.gemini_api_key, model=settings.gemini_model)
