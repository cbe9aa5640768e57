"""Serializable views of an extraction session."""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from fintable.models.extraction import CamelModel, ExtractionResult, HtmlResult


class SessionState(str, Enum):
    UPLOAD = "upload"
    EXTRACTING = "extracting"
    PREVIEW = "preview"
    STRUCTURING = "structuring"
    RESULTS = "results"
    ERROR = "error"


BUSY_STATES = frozenset({SessionState.EXTRACTING, SessionState.STRUCTURING})


class ProgressView(CamelModel):
    message: str
    # None while the step has no measurable progress
    value: Optional[float] = Field(default=None, ge=0.0, le=100.0)


class ExportMessageView(CamelModel):
    success: bool
    message: str


class SessionSnapshot(CamelModel):
    """Everything a client needs to render the current step."""

    session_id: str
    state: SessionState
    file_name: Optional[str] = None
    progress: Optional[ProgressView] = None
    error: Optional[str] = None
    html_results: List[HtmlResult] = Field(default_factory=list)
    result: Optional[ExtractionResult] = None
    export_message: Optional[ExportMessageView] = None
    is_exporting: bool = False

    @property
    def is_busy(self) -> bool:
        return self.state in BUSY_STATES
