import asyncio
from typing import Any, Dict, List, Optional, Union

from google import genai
from google.genai import types

from fintable.core.exceptions import APIClientError, APITimeoutError
from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Every harm category unblocked for both page and structuring calls
PERMISSIVE_SAFETY_SETTINGS = [
    types.SafetySetting(
        category=types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        threshold=types.HarmBlockThreshold.BLOCK_NONE,
    ),
    types.SafetySetting(
        category=types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        threshold=types.HarmBlockThreshold.BLOCK_NONE,
    ),
    types.SafetySetting(
        category=types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        threshold=types.HarmBlockThreshold.BLOCK_NONE,
    ),
    types.SafetySetting(
        category=types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
        threshold=types.HarmBlockThreshold.BLOCK_NONE,
    ),
]


def image_part(data: bytes, mime_type: str = "image/jpeg") -> types.Part:
    """Wrap raw image bytes as an inline content part."""
    return types.Part.from_bytes(data=data, mime_type=mime_type)


class GeminiClient:
    """Wrapper for Google Gemini API client."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timeout: int = 120,
        max_retries: int = 1,
        retry_delay: float = 1.0,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name to use
            timeout: Per-request timeout in seconds
            max_retries: Total attempts per request (1 disables retrying)
            retry_delay: Base delay for exponential backoff between attempts
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

        try:
            self.client = genai.Client(api_key=self.api_key)
            LOGGER.info(f"Initialized Gemini client with model {self.model}")
        except Exception as e:
            LOGGER.error(f"Failed to initialize Gemini client: {e}")
            raise APIClientError(f"Failed to initialize Gemini client: {e}", original_error=e)

    def build_config(
        self,
        generation_config: Optional[Dict[str, Any]] = None,
        system_instruction: Optional[str] = None,
    ) -> types.GenerateContentConfig:
        """Translate a plain generation config dict into the SDK config object."""
        generation_config = generation_config or {}
        config = types.GenerateContentConfig(
            temperature=generation_config.get("temperature"),
            max_output_tokens=generation_config.get("max_output_tokens"),
            response_mime_type=generation_config.get("response_mime_type"),
            response_schema=generation_config.get("response_schema"),
            safety_settings=generation_config.get("safety_settings", PERMISSIVE_SAFETY_SETTINGS),
        )
        if system_instruction:
            config.system_instruction = system_instruction
        return config

    async def generate_content(
        self,
        contents: Union[str, List[Union[str, types.Part]]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate content using Gemini model.

        Args:
            contents: Prompt text, or a list of text and inline image parts
            system_instruction: Optional system instruction
            generation_config: Optional generation config (temperature,
                response_mime_type, response_schema, safety_settings)

        Returns:
            Generated text response ("" when the model returns no text)

        Raises:
            APITimeoutError: If the request exceeds the timeout on the last attempt
            APIClientError: If generation fails
        """
        config = self.build_config(generation_config, system_instruction)

        for attempt in range(self.max_retries):
            try:
                response = await asyncio.wait_for(
                    self.client.aio.models.generate_content(
                        model=self.model,
                        contents=contents,
                        config=config,
                    ),
                    timeout=self.timeout,
                )

                if not response.text:
                    LOGGER.warning("Empty response from Gemini")
                    return ""

                return response.text

            except asyncio.TimeoutError as e:
                LOGGER.warning(f"Gemini API timeout (Attempt {attempt + 1}/{self.max_retries})")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (2 ** attempt))
                else:
                    raise APITimeoutError(
                        f"Gemini request timed out after {self.timeout}s", original_error=e
                    ) from e

            except Exception as e:
                LOGGER.warning(
                    f"Gemini API error (Attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (2 ** attempt))
                else:
                    LOGGER.error(f"Gemini generation failed: {e}", exc_info=True)
                    raise APIClientError(f"Gemini generation failed: {e}", original_error=e) from e

        raise APIClientError("Gemini generation failed")
