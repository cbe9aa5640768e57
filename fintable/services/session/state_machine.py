"""Orchestration of one document through the two-step pipeline.

upload -> extracting -> preview -> structuring -> results, with ``error``
reachable from both busy states. Each state is its own frozen dataclass
carrying only the data valid in that state, so a fragment list cannot exist
before extraction finished and a result cannot exist before structuring did.

Only one document is processed at a time: uploads, resets and confirmations
are rejected while a step is running. The way out of ``error`` (or any other
idle state) is ``reset`` or a new upload.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Set, Tuple, Union

from fintable.core.exceptions import InvalidDocumentError, InvalidTransitionError
from fintable.models.extraction import ExtractionResult, HtmlResult, PageProgress
from fintable.models.session import (
    BUSY_STATES,
    ExportMessageView,
    ProgressView,
    SessionSnapshot,
    SessionState,
)
from fintable.services.export.export_service import ExportFile, ExportOutcome, ExportService
from fintable.services.extraction.html_extraction_service import HtmlExtractionService
from fintable.services.messages import format_message, progress_message
from fintable.services.structuring.structuring_service import StructuringService
from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class Progress:
    message: str
    value: Optional[float] = None


@dataclass(frozen=True)
class Upload:
    name: ClassVar[SessionState] = SessionState.UPLOAD


@dataclass(frozen=True)
class Extracting:
    name: ClassVar[SessionState] = SessionState.EXTRACTING
    file_name: str
    progress: Progress = field(default_factory=lambda: Progress(message="", value=0.0))


@dataclass(frozen=True)
class Preview:
    name: ClassVar[SessionState] = SessionState.PREVIEW
    file_name: str
    html_results: Tuple[HtmlResult, ...]


@dataclass(frozen=True)
class Structuring:
    name: ClassVar[SessionState] = SessionState.STRUCTURING
    file_name: str
    html_results: Tuple[HtmlResult, ...]
    progress: Progress


@dataclass(frozen=True)
class Results:
    name: ClassVar[SessionState] = SessionState.RESULTS
    file_name: str
    html_results: Tuple[HtmlResult, ...]
    result: ExtractionResult


@dataclass(frozen=True)
class Failed:
    name: ClassVar[SessionState] = SessionState.ERROR
    file_name: Optional[str]
    message: str


Phase = Union[Upload, Extracting, Preview, Structuring, Results, Failed]


def is_pdf(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    return content_type.split(";", 1)[0].strip().lower() == PDF_CONTENT_TYPE


class ExtractionSession:
    """State machine for one user's document.

    Observers registered through ``subscribe`` receive a fresh snapshot on
    every transition and every progress change.
    """

    def __init__(
        self,
        extraction_service: HtmlExtractionService,
        structuring_service: StructuringService,
        export_service: ExportService,
        export_message_ttl: float = 5.0,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.extraction_service = extraction_service
        self.structuring_service = structuring_service
        self.export_service = export_service
        self.export_message_ttl = export_message_ttl

        self._phase: Phase = Upload()
        self._export_message: Optional[ExportOutcome] = None
        self._export_message_handle: Optional[asyncio.TimerHandle] = None
        self._exporting = False
        # Bumped on every upload or reset; exports from an older run are discarded
        self._run_id = 0
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def state(self) -> SessionState:
        return self._phase.name

    @property
    def is_busy(self) -> bool:
        return self.state in BUSY_STATES

    @property
    def export_message(self) -> Optional[ExportOutcome]:
        return self._export_message

    # Step 1

    def accept_file(self, file_name: str, content_type: Optional[str]) -> None:
        """Start a new run for ``file_name``, discarding any previous run.

        Raises:
            InvalidTransitionError: While a step is running
            InvalidDocumentError: If the file is not a PDF; the state is left untouched
        """
        self._require_idle("upload a document")
        if not is_pdf(content_type):
            LOGGER.warning(
                "Rejected non-PDF upload",
                extra={"session_id": self.session_id, "file_name": file_name, "content_type": content_type},
            )
            raise InvalidDocumentError(format_message("pdf_only"))

        self._start_new_run()
        self._set_phase(Extracting(file_name=file_name))
        LOGGER.info("Accepted document", extra={"session_id": self.session_id, "file_name": file_name})

    async def run_extraction(self, pdf_bytes: bytes) -> None:
        """Run step 1 for the accepted file. Never raises on pipeline failures."""
        phase = self._phase
        if not isinstance(phase, Extracting):
            raise InvalidTransitionError("run extraction", self.state.value)
        file_name = phase.file_name

        def on_progress(progress: PageProgress) -> None:
            self._set_phase(
                Extracting(
                    file_name=file_name,
                    progress=Progress(
                        message=progress_message(progress.current, progress.total),
                        value=progress.percent,
                    ),
                )
            )

        try:
            html_results = await self.extraction_service.extract(pdf_bytes, on_progress=on_progress)
        except Exception as e:
            LOGGER.error(
                f"Extraction failed: {e}",
                exc_info=True,
                extra={"session_id": self.session_id, "file_name": file_name},
            )
            self._set_phase(Failed(file_name=file_name, message=str(e) or format_message("extraction_failed")))
            return

        if not html_results:
            LOGGER.info("No tables found", extra={"session_id": self.session_id, "file_name": file_name})
            self._set_phase(Failed(file_name=file_name, message=format_message("no_tables_found")))
            return

        self._set_phase(Preview(file_name=file_name, html_results=tuple(html_results)))

    async def process_file(self, file_name: str, content_type: Optional[str], pdf_bytes: bytes) -> None:
        self.accept_file(file_name, content_type)
        await self.run_extraction(pdf_bytes)

    # Step 2

    def begin_structuring(self) -> None:
        phase = self._phase
        if not isinstance(phase, Preview):
            raise InvalidTransitionError("confirm", self.state.value)
        self._set_phase(
            Structuring(
                file_name=phase.file_name,
                html_results=phase.html_results,
                progress=Progress(message=format_message("structuring")),
            )
        )

    async def run_structuring(self) -> None:
        """Run step 2 on the previewed fragments. Never raises on pipeline failures."""
        phase = self._phase
        if not isinstance(phase, Structuring):
            raise InvalidTransitionError("run structuring", self.state.value)

        try:
            result = await self.structuring_service.structure(list(phase.html_results), phase.file_name)
        except Exception as e:
            LOGGER.error(
                f"Structuring failed: {e}",
                exc_info=True,
                extra={"session_id": self.session_id, "file_name": phase.file_name},
            )
            self._set_phase(Failed(file_name=phase.file_name, message=str(e) or format_message("structuring_failed")))
            return

        self._set_phase(Results(file_name=phase.file_name, html_results=phase.html_results, result=result))

    async def confirm(self) -> None:
        self.begin_structuring()
        await self.run_structuring()

    def reset(self) -> None:
        """Return to ``upload``, dropping the file, fragments, result and messages."""
        self._require_idle("reset")
        self._start_new_run()
        self._set_phase(Upload())

    # Export

    def export_json(self) -> ExportFile:
        return self.export_service.to_json(self._require_result("export JSON"))

    def export_csv(self) -> ExportFile:
        return self.export_service.to_csv(self._require_result("export CSV"))

    async def export_to_database(self) -> ExportOutcome:
        result = self._require_result("export to database")
        if self._exporting:
            raise InvalidTransitionError("export to database", "exporting")

        run_id = self._run_id
        self._exporting = True
        self._notify()
        try:
            outcome = await self.export_service.export_to_database(result)
        finally:
            if run_id == self._run_id:
                self._exporting = False

        if run_id != self._run_id:
            LOGGER.info(
                "Discarding database export outcome of a superseded run",
                extra={"session_id": self.session_id, "success": outcome.success},
            )
            return outcome

        self._show_export_message(outcome)
        return outcome

    def _start_new_run(self) -> None:
        self._run_id += 1
        self._exporting = False
        self._clear_export_message(notify=False)

    def _require_result(self, operation: str) -> ExtractionResult:
        phase = self._phase
        if not isinstance(phase, Results):
            raise InvalidTransitionError(operation, self.state.value)
        return phase.result

    def _show_export_message(self, outcome: ExportOutcome) -> None:
        self._clear_export_message(notify=False)
        self._export_message = outcome
        if self.export_message_ttl > 0:
            self._export_message_handle = asyncio.get_running_loop().call_later(
                self.export_message_ttl, self._clear_export_message
            )
        self._notify()

    def _clear_export_message(self, notify: bool = True) -> None:
        if self._export_message_handle is not None:
            self._export_message_handle.cancel()
            self._export_message_handle = None
        if self._export_message is None:
            return
        self._export_message = None
        if notify:
            self._notify()

    # Observation

    def snapshot(self) -> SessionSnapshot:
        phase = self._phase
        progress = getattr(phase, "progress", None)
        html_results: List[HtmlResult] = list(getattr(phase, "html_results", ()))
        outcome = self._export_message

        return SessionSnapshot(
            session_id=self.session_id,
            state=phase.name,
            file_name=getattr(phase, "file_name", None),
            progress=ProgressView(message=progress.message, value=progress.value) if progress else None,
            error=phase.message if isinstance(phase, Failed) else None,
            html_results=html_results,
            result=phase.result if isinstance(phase, Results) else None,
            export_message=ExportMessageView(success=outcome.success, message=outcome.message) if outcome else None,
            is_exporting=self._exporting,
        )

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def _require_idle(self, operation: str) -> None:
        if self.is_busy:
            raise InvalidTransitionError(operation, self.state.value)

    def _set_phase(self, phase: Phase) -> None:
        previous = self._phase.name
        self._phase = phase
        if previous != phase.name:
            LOGGER.debug(
                f"Session transition {previous.value} -> {phase.name.value}",
                extra={"session_id": self.session_id},
            )
        self._notify()

    def _notify(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for queue in list(self._subscribers):
            queue.put_nowait(snapshot)
