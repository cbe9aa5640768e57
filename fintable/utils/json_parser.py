import json
import re
from typing import Any, Dict, List, Optional, Union

from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block (```json ... ```) if present."""
    return _CODE_FENCE.sub("", text.strip()).strip()


def parse_json_safely(text: Optional[str]) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from model output, handling common LLM formatting issues.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Leading/trailing whitespace
    - Prose before or after the JSON document

    Even with a response schema the model occasionally wraps its answer in a
    code block, so the structuring step always goes through this function.

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON object or None if parsing fails
    """
    if not text:
        return None

    cleaned_text = strip_code_fences(text)

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting repairs...")

    # Decode the first complete object or array, ignoring surrounding text
    decoder = json.JSONDecoder()
    for match in re.finditer(r"[\{\[]", cleaned_text):
        try:
            obj, _ = decoder.raw_decode(cleaned_text, match.start())
            LOGGER.info(f"Recovered JSON starting at position {match.start()}")
            return obj
        except json.JSONDecodeError:
            continue

    LOGGER.error("Failed to parse JSON from model response", extra={"length": len(cleaned_text)})
    return None
