"""Pytest configuration and shared fixtures."""

import io
import os
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

# Set required environment variables for testing BEFORE importing app
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ["DB_EXPORT_DELAY_SECONDS"] = "0"
os.environ["EXPORT_MESSAGE_TTL_SECONDS"] = "5"
os.environ["SSE_HEARTBEAT_SECONDS"] = "0.05"

import pypdfium2 as pdfium
from fastapi.testclient import TestClient

from fintable.core.table_model import TableModel
from fintable.dependencies import reset_session_manager
from fintable.main import app
from fintable.models.page_image import PageImage
from fintable.services.export.export_service import ExportService
from fintable.services.extraction.html_extraction_service import HtmlExtractionService
from fintable.services.session.state_machine import ExtractionSession
from fintable.services.structuring.structuring_service import StructuringService

BALANCE_SHEET_HTML = (
    "<table><tr><th>סעיף</th><th>2023</th></tr>"
    "<tr><td>מזומנים</td><td>1,200</td></tr></table>"
)

BALANCE_SHEET_PAYLOAD: Dict[str, Any] = {
    "tables": [
        {
            "title": "מאזן",
            "columns": ["סעיף", "2023"],
            "rawData": [["מזומנים", "1,200"]],
            "pageNumber": 2,
        }
    ],
    "metadata": {"currency": "ILS", "reportingPeriod": "2023"},
}


class FakeTableModel(TableModel):
    """Deterministic TableModel double.

    ``page_responses`` maps page numbers to the raw model text (or an
    exception to raise); pages not listed answer with no tables.
    """

    def __init__(
        self,
        page_responses: Optional[Dict[int, Union[str, Exception]]] = None,
        structured_payload: Optional[Dict[str, Any]] = None,
        structuring_error: Optional[Exception] = None,
    ):
        self.page_responses = page_responses or {}
        self.structured_payload = structured_payload
        self.structuring_error = structuring_error
        self.pages_seen: List[int] = []
        self.prompts: List[str] = []

    async def extract_tables_from_image(self, image: PageImage) -> str:
        self.pages_seen.append(image.page_number)
        response = self.page_responses.get(image.page_number, "No tables on this page.")
        if isinstance(response, Exception):
            raise response
        return response

    async def structure_tables_from_html(self, prompt: str) -> Dict[str, Any]:
        self.prompts.append(prompt)
        if self.structuring_error is not None:
            raise self.structuring_error
        return self.structured_payload or {"tables": [], "metadata": None}

    def get_model_name(self) -> str:
        return "fake-table-model"


def build_pdf(page_count: int) -> bytes:
    """Create an in-memory PDF with ``page_count`` blank pages."""
    pdf = pdfium.PdfDocument.new()
    for _ in range(page_count):
        page = pdf.new_page(612, 792)
        page.close()
    buffer = io.BytesIO()
    pdf.save(buffer)
    pdf.close()
    return buffer.getvalue()


@pytest.fixture
def make_pdf() -> Callable[[int], bytes]:
    return build_pdf


@pytest.fixture
def three_page_pdf() -> bytes:
    return build_pdf(3)


@pytest.fixture
def fake_table_model() -> FakeTableModel:
    """Three-page scenario: only page 2 holds a table."""
    return FakeTableModel(
        page_responses={2: f"Here is the table:\n```html\n{BALANCE_SHEET_HTML}\n```"},
        structured_payload=BALANCE_SHEET_PAYLOAD,
    )


@pytest.fixture
def make_session() -> Callable[..., ExtractionSession]:
    """Build a session wired to the given table model with no export delay."""

    def _make(table_model: TableModel, export_message_ttl: float = 5.0) -> ExtractionSession:
        return ExtractionSession(
            extraction_service=HtmlExtractionService(table_model),
            structuring_service=StructuringService(table_model),
            export_service=ExportService(db_export_delay_seconds=0),
            export_message_ttl=export_message_ttl,
        )

    return _make


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client.

    Returns:
        TestClient: FastAPI test client instance
    """
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    reset_session_manager()
    yield
    app.dependency_overrides = {}
    reset_session_manager()


@pytest.fixture
def make_table_model() -> Callable[..., FakeTableModel]:
    return FakeTableModel


@pytest.fixture
def balance_sheet_html() -> str:
    return BALANCE_SHEET_HTML


@pytest.fixture
def balance_sheet_payload() -> Dict[str, Any]:
    return BALANCE_SHEET_PAYLOAD
