"""Tests for PDF page rendering."""

import asyncio
import threading
import time
from unittest.mock import patch

import pytest

from fintable.core.exceptions import ExtractionError, InvalidDocumentError
from fintable.services.extraction.html_extraction_service import HtmlExtractionService
from fintable.services.pdf import page_rasterizer
from fintable.services.pdf.page_rasterizer import PageRasterizer, RasterizedDocument

JPEG_MAGIC = b"\xff\xd8"


@pytest.mark.asyncio
async def test_renders_each_page_to_jpeg(make_pdf):
    rasterizer = PageRasterizer(scale=1.5, jpeg_quality=90)

    async with await rasterizer.open(make_pdf(2)) as document:
        assert document.page_count == 2
        image = await document.render_page(2)

    assert image.page_number == 2
    assert image.mime_type == "image/jpeg"
    assert image.data.startswith(JPEG_MAGIC)
    # 612x792pt at scale 1.5
    assert (image.width, image.height) == (918, 1188)


@pytest.mark.asyncio
async def test_page_out_of_range(make_pdf):
    async with await PageRasterizer().open(make_pdf(1)) as document:
        with pytest.raises(ExtractionError):
            await document.render_page(2)


@pytest.mark.asyncio
async def test_render_after_close_fails(make_pdf):
    document = await PageRasterizer().open(make_pdf(1))
    await document.close()

    with pytest.raises(ExtractionError):
        await document.render_page(1)


@pytest.mark.asyncio
async def test_rejects_non_pdf_bytes():
    with pytest.raises(InvalidDocumentError):
        await PageRasterizer().open(b"PK\x03\x04 not a pdf")


@pytest.mark.asyncio
async def test_rejects_truncated_pdf():
    with pytest.raises(InvalidDocumentError):
        await PageRasterizer().open(b"%PDF-1.7\n garbage")


@pytest.mark.asyncio
async def test_pdfium_calls_leave_the_event_loop_thread(make_pdf):
    threads = []
    real_open = page_rasterizer._open_sync

    def recording_open(pdf_bytes):
        threads.append(threading.current_thread().name)
        return real_open(pdf_bytes)

    with patch.object(page_rasterizer, "_open_sync", recording_open):
        document = await PageRasterizer().open(make_pdf(1))
    await document.close()

    assert threads and threads[0].startswith("pdfium")
    assert threads[0] != threading.current_thread().name


@pytest.mark.asyncio
async def test_concurrent_extractions_never_overlap_in_pdfium(make_pdf, make_table_model):
    lock = threading.Lock()
    active = {"now": 0, "peak": 0}

    def exclusive(func):
        def wrapper(*args, **kwargs):
            with lock:
                active["now"] += 1
                active["peak"] = max(active["peak"], active["now"])
            try:
                time.sleep(0.005)
                return func(*args, **kwargs)
            finally:
                with lock:
                    active["now"] -= 1

        return wrapper

    pdfs = [make_pdf(3) for _ in range(4)]
    services = [HtmlExtractionService(make_table_model()) for _ in pdfs]

    with patch.object(page_rasterizer, "_open_sync", exclusive(page_rasterizer._open_sync)), patch.object(
        RasterizedDocument, "_render_sync", exclusive(RasterizedDocument._render_sync)
    ):
        results = await asyncio.gather(*(service.extract(pdf) for service, pdf in zip(services, pdfs)))

    assert results == [[], [], [], []]
    assert all(service.table_model.pages_seen == [1, 2, 3] for service in services)
    assert active["peak"] == 1
