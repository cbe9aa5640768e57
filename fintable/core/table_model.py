"""Capability interface for the generative-AI backend.

The pipeline only needs two things from a model: turn a page image into
table markup, and turn aggregated markup into the structured payload.
``TableModel`` captures exactly that so tests and alternate providers can be
plugged in without touching the services or the session state machine.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from fintable.core.config import Settings
from fintable.core.exceptions import ConfigurationError, StructuringError
from fintable.core.llm_client import GeminiClient, image_part
from fintable.models.page_image import PageImage
from fintable.prompts.table_prompts import (
    PAGE_TABLE_EXTRACTION_PROMPT,
    STRUCTURED_RESPONSE_SCHEMA,
)
from fintable.utils.json_parser import parse_json_safely
from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TableModel(ABC):
    """Abstract base class for table extraction backends."""

    @abstractmethod
    async def extract_tables_from_image(self, image: PageImage) -> str:
        """Return the model's raw text for one page image.

        The text may contain zero or more ``<table>...</table>`` fragments.

        Raises:
            APIClientError: If the request fails
        """
        pass

    @abstractmethod
    async def structure_tables_from_html(self, prompt: str) -> Dict[str, Any]:
        """Return the parsed JSON payload for the structuring prompt.

        Raises:
            APIClientError: If the request fails
            StructuringError: If the response is not a JSON object
        """
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        pass


class GeminiTableModel(TableModel):
    """TableModel backed by the Gemini API."""

    def __init__(self, client: GeminiClient, page_temperature: float = 0.1):
        self.client = client
        self.page_temperature = page_temperature

    def get_model_name(self) -> str:
        return self.client.model

    async def extract_tables_from_image(self, image: PageImage) -> str:
        LOGGER.debug(
            "Requesting table markup for page",
            extra={"page_number": image.page_number, "image_bytes": len(image.data)},
        )
        text = await self.client.generate_content(
            contents=[
                PAGE_TABLE_EXTRACTION_PROMPT,
                image_part(image.data, image.mime_type),
            ],
            generation_config={"temperature": self.page_temperature},
        )
        return text or ""

    async def structure_tables_from_html(self, prompt: str) -> Dict[str, Any]:
        text = await self.client.generate_content(
            contents=prompt,
            generation_config={
                "response_mime_type": "application/json",
                "response_schema": STRUCTURED_RESPONSE_SCHEMA,
            },
        )
        payload = parse_json_safely(text)
        if not isinstance(payload, dict):
            raise StructuringError("Model returned a response that is not a JSON object")
        return payload


def create_table_model_from_settings(settings: Settings, api_key: Optional[str] = None) -> GeminiTableModel:
    """Create the Gemini-backed table model from configuration settings.

    Raises:
        ConfigurationError: If no API key is configured
    """
    key = (api_key if api_key is not None else settings.llm.gemini_api_key).strip()
    if not key:
        raise ConfigurationError(
            "gemini_api_key is required. Please set GEMINI_API_KEY environment variable."
        )
    client = GeminiClient(
        api_key=key,
        model=settings.llm.gemini_model,
        timeout=settings.llm.timeout,
        max_retries=settings.llm.max_retries,
    )
    return GeminiTableModel(client, page_temperature=settings.llm.page_temperature)
