"""Step 1: page-by-page table extraction to HTML.

Every page is rendered to a JPEG and sent to the table model, which answers
with free text that may contain ``<table>`` fragments. Pages are processed in
order, one at a time, so that progress and page attribution stay
deterministic. A failed model call only loses that page; failing to open or
render the document aborts the whole run.
"""

import inspect
import re
import time
from typing import Awaitable, Callable, List, Optional, Union

from fintable.core.exceptions import ExtractionError, InvalidDocumentError
from fintable.core.table_model import TableModel
from fintable.models.extraction import HtmlResult, PageProgress
from fintable.services.pdf.page_rasterizer import PageRasterizer
from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)

TABLE_PATTERN = re.compile(r"<table[\s\S]*?</table>")

ProgressCallback = Callable[[PageProgress], Union[None, Awaitable[None]]]


def find_table_fragments(text: str) -> List[str]:
    """Return every ``<table>...</table>`` fragment in ``text``, in order."""
    content = (text or "").strip()
    if not content:
        return []
    return TABLE_PATTERN.findall(content)


class HtmlExtractionService:
    """Extracts table markup from every page of a PDF."""

    def __init__(self, table_model: TableModel, rasterizer: Optional[PageRasterizer] = None):
        self.table_model = table_model
        self.rasterizer = rasterizer or PageRasterizer()

    async def extract(
        self,
        pdf_bytes: bytes,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[HtmlResult]:
        """Extract HTML table fragments from all pages.

        Args:
            pdf_bytes: The PDF document
            on_progress: Called once per page, before the page is processed,
                with ``current`` running from 1 to ``total``. May be a coroutine function.

        Returns:
            Fragments in page order; empty when no page produced a table.

        Raises:
            ExtractionError: If the document cannot be opened or a page cannot be rendered
        """
        start_time = time.time()
        try:
            document = await self.rasterizer.open(pdf_bytes)
        except InvalidDocumentError as e:
            raise ExtractionError(str(e), original_error=e) from e

        results: List[HtmlResult] = []
        failed_pages: List[int] = []

        async with document:
            total = document.page_count
            LOGGER.info(f"Starting HTML extraction for {total} pages", extra={"total_pages": total})

            for page_number in range(1, total + 1):
                await self._report(on_progress, PageProgress(current=page_number, total=total))

                image = await document.render_page(page_number)

                try:
                    response_text = await self.table_model.extract_tables_from_image(image)
                except Exception as e:
                    LOGGER.error(
                        f"Error processing page {page_number}: {e}",
                        exc_info=True,
                        extra={"page_number": page_number, "error_type": type(e).__name__},
                    )
                    failed_pages.append(page_number)
                    continue

                fragments = find_table_fragments(response_text)
                results.extend(HtmlResult(page_number=page_number, html=html) for html in fragments)

                LOGGER.debug(
                    f"Page {page_number}/{total}: {len(fragments)} tables",
                    extra={
                        "page_number": page_number,
                        "tables_found": len(fragments),
                        "image_width": image.width,
                        "image_height": image.height,
                        "image_bytes": len(image.data),
                    },
                )

        LOGGER.info(
            f"HTML extraction complete: {len(results)} tables in {time.time() - start_time:.2f}s",
            extra={
                "total_pages": total,
                "tables_found": len(results),
                "failed_pages": failed_pages,
            },
        )
        return results

    @staticmethod
    async def _report(on_progress: Optional[ProgressCallback], progress: PageProgress) -> None:
        if on_progress is None:
            return
        outcome = on_progress(progress)
        if inspect.isawaitable(outcome):
            await outcome
