"""Tests for LLM service."""

import os
from unittest.mock import AsyncMock, patch

import pytest

from listing_ingest.ai.llm_service import LLMService, llm_service
from listing_ingest.ai.prompts import LISTING_ENRICHMENT_SCHEMA


@pytest.mark.asyncio
async def test_structured_reply_strips_markdown_fence():
    service = LLMService()
    fenced = '```json\n{"title": "2 BHK Flat", "price": 4500000}\n```'

    with patch.object(service, "call_llm", AsyncMock(return_value=fenced)) as call:
        parsed = await service.call_llm_structured("listing", LISTING_ENRICHMENT_SCHEMA)

    assert parsed == {"title": "2 BHK Flat", "price": 4500000}
    system_prompt = call.await_args.kwargs["system_prompt"]
    assert "Respond with valid JSON" in system_prompt


@pytest.mark.asyncio
async def test_structured_reply_rejects_non_json():
    service = LLMService()

    with patch.object(service, "call_llm", AsyncMock(return_value="Sorry, I can't help")):
        with pytest.raises(ValueError):
            await service.call_llm_structured("listing", LISTING_ENRICHMENT_SCHEMA)


@pytest.mark.asyncio
async def test_structured_reply_rejects_non_object():
    service = LLMService()

    with patch.object(service, "call_llm", AsyncMock(return_value='["not", "an", "object"]')):
        with pytest.raises(ValueError, match="JSON object"):
            await service.call_llm_structured("listing", LISTING_ENRICHMENT_SCHEMA)


def test_cost_estimate_by_model():
    service = LLMService()

    mini = service._estimate_cost("gpt-4o-mini", 1000, 1000)
    full = service._estimate_cost("gpt-4o", 1000, 1000)

    assert mini == pytest.approx(0.00075)
    assert full == pytest.approx(0.0125)


def test_cache_key_depends_on_model():
    service = LLMService()

    assert service._get_cache_key("p", "s", "gpt-4o-mini") != service._get_cache_key("p", "s", "gpt-4o")


@pytest.mark.asyncio
async def test_call_llm_structured_live():
    """Structured extraction against the real API (requires API key)."""
    if not os.getenv("OPENAI_API_KEY"):
        pytest.skip("OpenAI API key not configured")

    result = await llm_service.call_llm_structured(
        prompt="Listing title: 3 BHK Apartment for Sale in Powai. Price: ₹2.1 Cr",
        response_schema=LISTING_ENRICHMENT_SCHEMA,
        system_prompt="Extract listing fields.",
    )

    assert isinstance(result, dict)
