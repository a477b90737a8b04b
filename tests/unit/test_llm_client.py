"""Tests for the text-generation client.

All tests are deterministic and do not make real network calls.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError
from pydantic import SecretStr

from backend.docflow.config import Settings
from backend.docflow.errors import GenerationError
from backend.docflow.llm.client import (
    DeterministicStubGenerator,
    OpenAIGenerator,
    get_text_generator,
)


def mock_completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def generator_with(create: AsyncMock, max_chars: int = 200_000) -> OpenAIGenerator:
    generator = OpenAIGenerator(api_key="test_key", max_chars=max_chars)
    mock_openai_client = AsyncMock()
    mock_openai_client.chat.completions.create = create
    generator.client = mock_openai_client
    return generator


@pytest.mark.asyncio
async def test_stub_appends_description() -> None:
    stub = DeterministicStubGenerator()

    revised = await stub.generate_revision(
        title="Notes", kind="text", content="first", description="second"
    )

    assert revised == "first\nsecond"


@pytest.mark.asyncio
async def test_stub_on_empty_document() -> None:
    stub = DeterministicStubGenerator()

    revised = await stub.generate_revision(
        title="Notes", kind="text", content="", description="only line"
    )

    assert revised == "only line"


def test_context_includes_title_request_and_content() -> None:
    generator = OpenAIGenerator(api_key="test_key")

    context = generator._build_context("Roadmap", "Q1: ship", "Add Q2")

    assert "## Title\nRoadmap" in context
    assert "## Requested change\nAdd Q2" in context
    assert "## Current content\nQ1: ship" in context


def test_system_prompt_names_kind() -> None:
    generator = OpenAIGenerator(api_key="test_key")

    assert "code documents" in generator._build_system_prompt("code")


@pytest.mark.asyncio
async def test_openai_generator_returns_completion() -> None:
    """Test that the generator calls the API and returns its text (mocked)."""
    create = AsyncMock(return_value=mock_completion("revised body"))
    generator = generator_with(create)

    revised = await generator.generate_revision(
        title="Doc", kind="text", content="body", description="revise"
    )

    create.assert_called_once()
    assert create.call_args.kwargs["model"] == "gpt-4o-mini"
    assert revised == "revised body"


@pytest.mark.asyncio
async def test_openai_error_becomes_generation_error() -> None:
    generator = generator_with(AsyncMock(side_effect=OpenAIError("rate limited")))

    with pytest.raises(GenerationError):
        await generator.generate_revision(
            title="Doc", kind="text", content="body", description="revise"
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, "", "   \n"])
async def test_empty_completion_is_rejected(content: str | None) -> None:
    generator = generator_with(AsyncMock(return_value=mock_completion(content)))

    with pytest.raises(GenerationError, match="empty"):
        await generator.generate_revision(
            title="Doc", kind="text", content="body", description="revise"
        )


@pytest.mark.asyncio
async def test_oversized_completion_is_rejected() -> None:
    generator = generator_with(AsyncMock(return_value=mock_completion("x" * 11)), max_chars=10)

    with pytest.raises(GenerationError, match="limit is 10"):
        await generator.generate_revision(
            title="Doc", kind="text", content="body", description="revise"
        )


def test_factory_returns_stub_without_api_key() -> None:
    settings = Settings(openai_api_key=None)

    assert isinstance(get_text_generator(settings), DeterministicStubGenerator)


def test_factory_returns_stub_for_blank_api_key() -> None:
    settings = Settings(openai_api_key=SecretStr(""))

    assert isinstance(get_text_generator(settings), DeterministicStubGenerator)


def test_factory_returns_openai_when_api_key_present() -> None:
    settings = Settings(openai_api_key=SecretStr("test_key"), openai_model="gpt-4o")

    generator = get_text_generator(settings)

    assert isinstance(generator, OpenAIGenerator)
    assert generator.model == "gpt-4o"
