"""JSON, CSV and database export of extraction results."""

from fintable.services.export.export_service import ExportFile, ExportOutcome, ExportService

__all__ = ["ExportFile", "ExportOutcome", "ExportService"]
