"""Page rasterizer built on pypdfium2.

Turns one PDF document into an ordered sequence of JPEG page images. pdfium
must never be entered from two threads at once, not even for different
documents, so every pdfium call (open, render, close) of every document in
the process runs on one dedicated worker thread. The event loop only awaits
that thread.
"""

import asyncio
import io
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Tuple, TypeVar

import pypdfium2 as pdfium

from fintable.core.exceptions import ExtractionError, InvalidDocumentError
from fintable.models.page_image import PageImage
from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)

PDF_MAGIC = b"%PDF-"

# Single worker: pdfium calls are serialized across all sessions
PDFIUM_EXECUTOR = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pdfium")

T = TypeVar("T")


async def run_in_pdfium_thread(func: Callable[..., T], *args: Any) -> T:
    """Run a pdfium-touching callable on the shared pdfium worker."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(PDFIUM_EXECUTOR, partial(func, *args))


def _open_sync(pdf_bytes: bytes) -> Tuple[pdfium.PdfDocument, int]:
    pdf = pdfium.PdfDocument(pdf_bytes)
    return pdf, len(pdf)


class RasterizedDocument:
    """An open PDF whose pages can be rendered on demand.

    Use as ``async with`` so the document is closed on the pdfium worker.
    """

    def __init__(self, pdf: pdfium.PdfDocument, page_count: int, scale: float, jpeg_quality: int):
        self._pdf = pdf
        self.page_count = page_count
        self.scale = scale
        self.jpeg_quality = jpeg_quality

    async def __aenter__(self) -> "RasterizedDocument":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._pdf is not None:
            pdf, self._pdf = self._pdf, None
            await run_in_pdfium_thread(pdf.close)

    def _render_sync(self, page_number: int) -> PageImage:
        page = self._pdf[page_number - 1]
        try:
            bitmap = page.render(scale=self.scale)
            image = bitmap.to_pil().convert("RGB")
            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=self.jpeg_quality)
            return PageImage(
                page_number=page_number,
                data=buffer.getvalue(),
                mime_type="image/jpeg",
                width=image.width,
                height=image.height,
            )
        finally:
            page.close()

    async def render_page(self, page_number: int) -> PageImage:
        """Render a 1-indexed page to a JPEG image.

        Raises:
            ExtractionError: If the page is out of range or rendering fails
        """
        if self._pdf is None:
            raise ExtractionError("Document is closed")
        if not 1 <= page_number <= self.page_count:
            raise ExtractionError(
                f"Page {page_number} out of range (document has {self.page_count} pages)"
            )
        try:
            return await run_in_pdfium_thread(self._render_sync, page_number)
        except Exception as e:
            raise ExtractionError(f"Failed to render page {page_number}: {e}", original_error=e) from e


class PageRasterizer:
    """Factory for RasterizedDocument with fixed render options."""

    def __init__(self, scale: float = 1.5, jpeg_quality: int = 90):
        self.scale = scale
        self.jpeg_quality = jpeg_quality

    async def open(self, pdf_bytes: bytes) -> RasterizedDocument:
        """Open a PDF from memory.

        Raises:
            InvalidDocumentError: If the bytes are not a readable PDF
        """
        if not pdf_bytes or not pdf_bytes.lstrip()[:5].startswith(PDF_MAGIC):
            raise InvalidDocumentError("File is not a PDF document")
        try:
            pdf, page_count = await run_in_pdfium_thread(_open_sync, pdf_bytes)
        except pdfium.PdfiumError as e:
            raise InvalidDocumentError(f"Unable to open PDF document: {e}", original_error=e) from e

        LOGGER.info(
            f"Opened PDF with {page_count} pages",
            extra={"size_bytes": len(pdf_bytes), "page_count": page_count, "scale": self.scale},
        )
        return RasterizedDocument(pdf, page_count, scale=self.scale, jpeg_quality=self.jpeg_quality)
