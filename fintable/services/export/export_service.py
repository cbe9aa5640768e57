"""Export of the final ExtractionResult.

JSON and CSV are produced as in-memory files that the API returns as
downloads. The database export is simulated: it waits a fixed delay and
reports success, marking where a real persistence integration would go.
"""

import asyncio
import json
from dataclasses import dataclass

from fintable.models.extraction import ExtractionResult
from fintable.services.export.csv_utils import UTF8_BOM
from fintable.services.messages import format_message
from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)

JSON_MEDIA_TYPE = "application/json;charset=utf-8"
CSV_MEDIA_TYPE = "text/csv;charset=utf-8"


@dataclass(frozen=True)
class ExportFile:
    filename: str
    content: str
    media_type: str

    def encode(self) -> bytes:
        return self.content.encode("utf-8")


@dataclass(frozen=True)
class ExportOutcome:
    success: bool
    message: str


def table_block_header(title: str, page_number: int) -> str:
    return f'"{title}" (Page {page_number})'


class ExportService:
    """Serializes results and runs the (mocked) database export."""

    def __init__(self, db_export_delay_seconds: float = 1.5):
        self.db_export_delay_seconds = db_export_delay_seconds

    def to_json(self, result: ExtractionResult) -> ExportFile:
        """Pretty-printed JSON of the whole result, camelCase keys."""
        content = json.dumps(result.to_json_dict(), indent=2, ensure_ascii=False)
        return ExportFile(
            filename=f"{result.document_name}.json",
            content=content,
            media_type=JSON_MEDIA_TYPE,
        )

    def to_csv(self, result: ExtractionResult) -> ExportFile:
        """All tables in one CSV file, each under a quoted title line.

        Tables are separated by a blank line and the file starts with a UTF-8
        BOM so spreadsheet applications detect the encoding.
        """
        blocks = [
            f"{table_block_header(table.title, table.page_number)}\n{table.csv}"
            for table in result.tables
        ]
        return ExportFile(
            filename=f"{result.document_name}.csv",
            content=UTF8_BOM + "\n\n".join(blocks),
            media_type=CSV_MEDIA_TYPE,
        )

    async def export_to_database(self, result: ExtractionResult) -> ExportOutcome:
        """Simulate exporting the result to a database.

        Never raises: failures are reported through the outcome message.
        """
        try:
            await self._write(result)
            LOGGER.info(
                "Database export completed",
                extra={"document_name": result.document_name, "tables": len(result.tables)},
            )
            return ExportOutcome(
                success=True,
                message=format_message("db_export_succeeded", {"document_name": result.document_name}),
            )
        except Exception as e:
            LOGGER.error(
                f"Database export failed: {e}",
                exc_info=True,
                extra={"document_name": result.document_name},
            )
            return ExportOutcome(success=False, message=format_message("db_export_failed"))

    async def _write(self, result: ExtractionResult) -> None:
        # No backing store yet; only the latency is simulated.
        await asyncio.sleep(self.db_export_delay_seconds)
