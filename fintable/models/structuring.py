"""Shape of the structuring call's JSON payload."""

from typing import Any, List, Optional

from pydantic import Field, field_validator

from fintable.models.extraction import CamelModel


def _as_cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class StructuredTable(CamelModel):
    """A table as returned by the model, before post-processing."""

    title: str = ""
    columns: List[str] = Field(default_factory=list)
    raw_data: List[List[str]] = Field(default_factory=list)
    page_number: int = Field(..., ge=1)
    html: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        return _as_cell(v)

    @field_validator("columns", mode="before")
    @classmethod
    def coerce_columns(cls, v: Any) -> List[str]:
        if v is None:
            return []
        return [_as_cell(cell) for cell in v]

    @field_validator("raw_data", mode="before")
    @classmethod
    def coerce_rows(cls, v: Any) -> List[List[str]]:
        if v is None:
            return []
        return [[_as_cell(cell) for cell in (row or [])] for row in v]


class StructuredMetadata(CamelModel):
    currency: Optional[str] = None
    reporting_period: Optional[str] = None


class StructuredTablesPayload(CamelModel):
    """``{tables: [...], metadata: {currency, reportingPeriod}}``"""

    tables: List[StructuredTable] = Field(default_factory=list)
    metadata: Optional[StructuredMetadata] = None
