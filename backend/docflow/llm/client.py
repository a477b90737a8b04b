"""Text-generation client for AI-suggested document revisions.

Security: Reads API key from environment only, never hardcoded.
Provides a deterministic generator when no key is present for testing.
"""

import logging
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from backend.docflow.config import Settings, get_settings
from backend.docflow.errors import GenerationError

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Protocol for text-generation implementations."""

    async def generate_revision(
        self,
        *,
        title: str,
        kind: str,
        content: str,
        description: str,
    ) -> str:
        """Produce the full revised content of a document.

        Args:
            title: Document title
            kind: Document kind (text, code, sheet, image)
            content: Current document content
            description: What the revision should do

        Returns:
            Complete new content (not a patch)

        Raises:
            GenerationError: If the provider fails or returns nothing
        """
        ...


class DeterministicStubGenerator:
    """Deterministic generator for testing (no API key required)."""

    async def generate_revision(
        self,
        *,
        title: str,
        kind: str,
        content: str,
        description: str,
    ) -> str:
        """Append the description as a trailing line."""
        if not content:
            return description
        return f"{content}\n{description}"


class OpenAIGenerator:
    """OpenAI-backed generator for real revisions."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", max_chars: int = 200_000):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use
            max_chars: Upper bound on accepted output length
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.max_chars = max_chars

    async def generate_revision(
        self,
        *,
        title: str,
        kind: str,
        content: str,
        description: str,
    ) -> str:
        """Generate revised content using the OpenAI API."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self._build_system_prompt(kind)},
                    {"role": "user", "content": self._build_context(title, content, description)},
                ],
                temperature=0.2,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI API call failed: {type(e).__name__}")
            raise GenerationError(f"Generation failed: {type(e).__name__}") from e

        revised = response.choices[0].message.content or ""

        if not revised.strip():
            raise GenerationError("Generation returned empty content")

        if len(revised) > self.max_chars:
            raise GenerationError(
                f"Generation returned {len(revised)} chars, limit is {self.max_chars}"
            )

        return revised

    def _build_system_prompt(self, kind: str) -> str:
        """Build system prompt for a document revision."""
        return f"""You revise {kind} documents. You receive the current content and a
description of the requested change.

Return the COMPLETE updated document and nothing else:
- No explanations, no preamble, no markdown fences around the whole output.
- Keep every part of the document the request does not touch exactly as it is.
- Preserve the existing structure, formatting and line breaks."""

    def _build_context(self, title: str, content: str, description: str) -> str:
        """Build user message from the document and the requested change."""
        lines = [
            f"## Title\n{title}",
            f"## Requested change\n{description}",
            f"## Current content\n{content}",
        ]
        return "\n\n".join(lines)


def get_text_generator(settings: Settings | None = None) -> TextGenerator:
    """Factory function to get appropriate generator based on config.

    Returns:
        OpenAIGenerator if API key is configured, DeterministicStubGenerator otherwise
    """
    settings = settings or get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI generator for revisions")
        return OpenAIGenerator(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
            max_chars=settings.generation_max_chars,
        )

    logger.warning("No OpenAI API key configured, using deterministic stub generator")
    return DeterministicStubGenerator()
