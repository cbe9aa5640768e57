"""Domain models for the extraction pipeline.

Attributes are snake_case in Python; the JSON form (API responses and the
exported document) uses camelCase names such as ``documentName`` and
``rawData`` through the alias generator.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump with camelCase keys and JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)


class HtmlResult(CamelModel):
    """One table fragment detected on one page.

    Attributes:
        page_number: 1-indexed page the fragment was found on
        html: the ``<table>...</table>`` markup returned by the model
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    page_number: int = Field(..., ge=1)
    html: str


class PageProgress(BaseModel):
    """Progress of the per-page extraction loop (1-indexed)."""

    model_config = ConfigDict(frozen=True)

    current: int = Field(..., ge=1)
    total: int = Field(..., ge=1)

    @property
    def percent(self) -> float:
        return self.current / self.total * 100


class SourceType(str, Enum):
    """Kind of financial statement the tables were taken from."""

    BALANCE_SHEET = "balance_sheet"
    INCOME_STATEMENT = "income_statement"
    CASH_FLOW = "cash_flow"
    NOTES = "notes"
    MIXED = "mixed"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class TableData(CamelModel):
    """A structured table.

    ``raw_data`` rows are expected to match ``columns`` in length; this is
    not enforced since the model output is taken as-is.
    """

    title: str = ""
    html: str = ""
    raw_data: List[List[str]] = Field(default_factory=list)
    columns: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.98, ge=0.0, le=1.0)
    errors: List[str] = Field(default_factory=list)
    csv: str = ""
    page_number: int = Field(..., ge=1)


class DocumentMetadata(CamelModel):
    """Document-level information inferred by the model."""

    currency: str
    reporting_period: str
    source_type: SourceType = SourceType.MIXED
    processing_timestamp: str = Field(default_factory=utc_timestamp)


class ExtractionResult(CamelModel):
    """Root artifact of the pipeline; immutable once built."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    document_name: str
    total_pages: int = Field(..., ge=0)
    tables: List[TableData] = Field(default_factory=list)
    metadata: DocumentMetadata

    def get_table(self, index: int) -> Optional[TableData]:
        if 0 <= index < len(self.tables):
            return self.tables[index]
        return None
