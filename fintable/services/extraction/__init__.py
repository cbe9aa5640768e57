"""Step 1: page images to HTML table fragments."""

from fintable.services.extraction.html_extraction_service import (
    HtmlExtractionService,
    find_table_fragments,
)

__all__ = ["HtmlExtractionService", "find_table_fragments"]
