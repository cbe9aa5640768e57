"""Tests for page-by-page HTML table extraction."""

from unittest.mock import AsyncMock

import pytest

from fintable.core.exceptions import APIClientError, ExtractionError
from fintable.services.extraction.html_extraction_service import HtmlExtractionService, find_table_fragments


def test_find_table_fragments_in_order():
    text = "intro <table><tr><td>1</td></tr></table> middle <TABLE>x</TABLE><table class='b'>2</table>"

    assert find_table_fragments(text) == [
        "<table><tr><td>1</td></tr></table>",
        "<table class='b'>2</table>",
    ]


def test_find_table_fragments_empty_text():
    assert find_table_fragments("") == []
    assert find_table_fragments("   \n") == []


def test_find_table_fragments_spans_lines():
    text = "<table>\n<tr>\n<td>a</td>\n</tr>\n</table>"

    assert find_table_fragments(text) == [text]


@pytest.mark.asyncio
async def test_three_pages_only_second_has_table(three_page_pdf, fake_table_model, balance_sheet_html):
    service = HtmlExtractionService(fake_table_model)
    progress = []

    results = await service.extract(three_page_pdf, on_progress=progress.append)

    assert [(r.page_number, r.html) for r in results] == [(2, balance_sheet_html)]
    assert [(p.current, p.total) for p in progress] == [(1, 3), (2, 3), (3, 3)]
    assert fake_table_model.pages_seen == [1, 2, 3]


@pytest.mark.asyncio
async def test_async_progress_callback_is_awaited(make_pdf, make_table_model):
    service = HtmlExtractionService(make_table_model())
    on_progress = AsyncMock()

    await service.extract(make_pdf(2), on_progress=on_progress)

    assert on_progress.await_count == 2


@pytest.mark.asyncio
async def test_multiple_tables_on_one_page_keep_order(make_pdf, make_table_model):
    model = make_table_model(page_responses={1: "<table>A</table> text <table>B</table>"})

    results = await HtmlExtractionService(model).extract(make_pdf(1))

    assert [r.html for r in results] == ["<table>A</table>", "<table>B</table>"]
    assert all(r.page_number == 1 for r in results)


@pytest.mark.asyncio
async def test_failed_page_is_skipped(make_pdf, make_table_model):
    model = make_table_model(
        page_responses={
            1: "<table>first</table>",
            2: APIClientError("rate limited"),
            3: "<table>third</table>",
        }
    )

    results = await HtmlExtractionService(model).extract(make_pdf(3))

    assert [(r.page_number, r.html) for r in results] == [(1, "<table>first</table>"), (3, "<table>third</table>")]


@pytest.mark.asyncio
async def test_no_tables_returns_empty_list(make_pdf, make_table_model):
    results = await HtmlExtractionService(make_table_model()).extract(make_pdf(2))

    assert results == []


@pytest.mark.asyncio
async def test_unreadable_document_raises(make_table_model):
    with pytest.raises(ExtractionError):
        await HtmlExtractionService(make_table_model()).extract(b"not a pdf")
