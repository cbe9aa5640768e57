"""Step 2: turn the extracted HTML fragments into structured tables.

All fragments are sent to the model in one request, each preceded by a page
marker comment. The model answers with JSON constrained to a fixed schema;
the payload is validated, then enriched locally with CSV, default
confidence, and the original HTML of each table.
"""

import time
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from fintable.core.exceptions import StructuringError
from fintable.core.table_model import TableModel
from fintable.models.extraction import (
    DocumentMetadata,
    ExtractionResult,
    HtmlResult,
    SourceType,
    TableData,
)
from fintable.models.structuring import StructuredTable, StructuredTablesPayload
from fintable.prompts.table_prompts import PAGE_MARKER, build_structuring_prompt
from fintable.services.export.csv_utils import rows_to_csv
from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)

HTML_PLACEHOLDER = "<table>...</table>"


def build_html_input(html_results: Sequence[HtmlResult]) -> str:
    """Concatenate fragments, each prefixed with its page marker, in input order."""
    return "\n\n".join(
        f"{PAGE_MARKER.format(page_number=result.page_number)}\n{result.html}"
        for result in html_results
    )


class OriginalHtmlIndex:
    """Hands out the original fragments of each page in extraction order.

    The n-th table the model reports for a page gets the n-th fragment of that
    page. Once a page's fragments are used up, its first fragment is reused.
    """

    def __init__(self, html_results: Sequence[HtmlResult]):
        self._by_page: Dict[int, List[str]] = defaultdict(list)
        for result in html_results:
            self._by_page[result.page_number].append(result.html)
        self._handed_out: Dict[int, int] = defaultdict(int)

    def take(self, page_number: int) -> Optional[str]:
        fragments = self._by_page.get(page_number)
        if not fragments:
            return None
        position = self._handed_out[page_number]
        self._handed_out[page_number] += 1
        return fragments[position] if position < len(fragments) else fragments[0]


class StructuringService:
    """Builds the final ExtractionResult from HTML fragments."""

    def __init__(
        self,
        table_model: TableModel,
        default_confidence: float = 0.98,
        not_specified_label: str = "לא צוין",
    ):
        self.table_model = table_model
        self.default_confidence = default_confidence
        self.not_specified_label = not_specified_label

    async def structure(self, html_results: Sequence[HtmlResult], document_name: str) -> ExtractionResult:
        """Structure the fragments of one document.

        Args:
            html_results: Non-empty fragments in page order
            document_name: Used for labeling the result only

        Returns:
            ExtractionResult with one TableData per table the model reported

        Raises:
            StructuringError: On empty input, a failed request, or an invalid payload
        """
        if not html_results:
            raise StructuringError("No HTML tables to structure")

        start_time = time.time()
        prompt = build_structuring_prompt(build_html_input(html_results))

        LOGGER.info(
            "Requesting structured data",
            extra={"document_name": document_name, "fragments": len(html_results), "prompt_chars": len(prompt)},
        )

        try:
            raw_payload = await self.table_model.structure_tables_from_html(prompt)
            payload = StructuredTablesPayload.model_validate(raw_payload)
        except StructuringError:
            raise
        except ValidationError as e:
            LOGGER.error(f"Structured payload failed validation: {e}")
            raise StructuringError(f"Model response does not match the expected schema: {e}", original_error=e) from e
        except Exception as e:
            LOGGER.error(f"Structuring request failed: {e}", exc_info=True)
            raise StructuringError(str(e), original_error=e) from e

        html_index = OriginalHtmlIndex(html_results)
        tables = [self._build_table(table, html_index) for table in payload.tables]

        metadata = payload.metadata
        result = ExtractionResult(
            document_name=document_name,
            total_pages=max(fragment.page_number for fragment in html_results),
            tables=tables,
            metadata=DocumentMetadata(
                currency=(metadata.currency if metadata else None) or self.not_specified_label,
                reporting_period=(metadata.reporting_period if metadata else None) or self.not_specified_label,
                source_type=SourceType.MIXED,
            ),
        )

        LOGGER.info(
            f"Structured {len(tables)} tables in {time.time() - start_time:.2f}s",
            extra={"document_name": document_name, "tables": len(tables), "total_pages": result.total_pages},
        )
        return result

    def _build_table(self, table: StructuredTable, html_index: OriginalHtmlIndex) -> TableData:
        original_html = html_index.take(table.page_number)
        if original_html is None:
            LOGGER.warning(
                f"No extracted fragment for page {table.page_number}",
                extra={"title": table.title, "page_number": table.page_number},
            )
        return TableData(
            title=table.title,
            html=original_html or table.html or HTML_PLACEHOLDER,
            raw_data=table.raw_data,
            columns=table.columns,
            confidence=self.default_confidence,
            errors=[],
            csv=rows_to_csv(table.columns, table.raw_data),
            page_number=table.page_number,
        )
