"""Tests for the Gemini client wrapper."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.genai import types

from fintable.core.exceptions import APIClientError, APITimeoutError
from fintable.core.llm_client import PERMISSIVE_SAFETY_SETTINGS, GeminiClient, image_part


def _client_with_response(mock_genai, response=None, side_effect=None):
    sdk_client = MagicMock()
    sdk_client.aio.models.generate_content = AsyncMock(return_value=response, side_effect=side_effect)
    mock_genai.Client.return_value = sdk_client
    return sdk_client


@pytest.mark.asyncio
async def test_generate_content_returns_text():
    with patch("fintable.core.llm_client.genai") as mock_genai:
        sdk_client = _client_with_response(mock_genai, response=MagicMock(text="<table></table>"))
        client = GeminiClient(api_key="test_key", model="gemini-2.5-flash")

        result = await client.generate_content(
            contents=["prompt", image_part(b"\xff\xd8jpeg")],
            generation_config={"temperature": 0.1},
        )

    assert result == "<table></table>"
    kwargs = sdk_client.aio.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-2.5-flash"
    assert kwargs["config"].temperature == 0.1
    assert kwargs["config"].safety_settings == PERMISSIVE_SAFETY_SETTINGS


@pytest.mark.asyncio
async def test_empty_response_returns_empty_string():
    with patch("fintable.core.llm_client.genai") as mock_genai:
        _client_with_response(mock_genai, response=MagicMock(text=None))
        client = GeminiClient(api_key="test_key")

        assert await client.generate_content("prompt") == ""


@pytest.mark.asyncio
async def test_single_attempt_by_default():
    with patch("fintable.core.llm_client.genai") as mock_genai:
        sdk_client = _client_with_response(mock_genai, side_effect=RuntimeError("quota exceeded"))
        client = GeminiClient(api_key="test_key")

        with pytest.raises(APIClientError, match="quota exceeded"):
            await client.generate_content("prompt")

    assert sdk_client.aio.models.generate_content.call_count == 1


@pytest.mark.asyncio
async def test_retries_when_configured():
    with patch("fintable.core.llm_client.genai") as mock_genai:
        sdk_client = _client_with_response(
            mock_genai, side_effect=[RuntimeError("transient"), MagicMock(text="ok")]
        )
        client = GeminiClient(api_key="test_key", max_retries=2, retry_delay=0)

        assert await client.generate_content("prompt") == "ok"

    assert sdk_client.aio.models.generate_content.call_count == 2


@pytest.mark.asyncio
async def test_timeout_raises_api_timeout_error():
    async def never_returns(**kwargs):
        await asyncio.sleep(10)

    with patch("fintable.core.llm_client.genai") as mock_genai:
        sdk_client = MagicMock()
        sdk_client.aio.models.generate_content = never_returns
        mock_genai.Client.return_value = sdk_client
        client = GeminiClient(api_key="test_key", timeout=0.01)

        with pytest.raises(APITimeoutError):
            await client.generate_content("prompt")


def test_build_config_passes_response_schema():
    with patch("fintable.core.llm_client.genai"):
        client = GeminiClient(api_key="test_key")

    schema = types.Schema(type=types.Type.OBJECT)
    config = client.build_config(
        {"response_mime_type": "application/json", "response_schema": schema},
        system_instruction="be precise",
    )

    assert config.response_mime_type == "application/json"
    assert config.response_schema == schema
    assert config.system_instruction == "be precise"
