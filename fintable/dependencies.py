"""Centralized dependency injection for the FastAPI application.

Services are built from settings; tests swap them through
``app.dependency_overrides``.
"""

from typing import Annotated, Optional

from fastapi import Depends

from fintable.core.config import Settings, settings
from fintable.core.table_model import TableModel, create_table_model_from_settings
from fintable.services.export.export_service import ExportService
from fintable.services.extraction.html_extraction_service import HtmlExtractionService
from fintable.services.pdf.page_rasterizer import PageRasterizer
from fintable.services.session.session_manager import SessionManager
from fintable.services.session.state_machine import ExtractionSession
from fintable.services.sse_manager import SSEManager
from fintable.services.structuring.structuring_service import StructuringService


def get_settings() -> Settings:
    return settings


def build_session_factory(app_settings: Settings, table_model: Optional[TableModel] = None):
    """Return a callable creating fully wired sessions.

    The table model is created on first use so that a missing API key only
    fails session creation, not application startup.
    """
    state = {"table_model": table_model}

    def factory() -> ExtractionSession:
        if state["table_model"] is None:
            state["table_model"] = create_table_model_from_settings(app_settings)
        model = state["table_model"]
        return ExtractionSession(
            extraction_service=HtmlExtractionService(
                model,
                rasterizer=PageRasterizer(
                    scale=app_settings.extraction.render_scale,
                    jpeg_quality=app_settings.extraction.jpeg_quality,
                ),
            ),
            structuring_service=StructuringService(
                model,
                default_confidence=app_settings.extraction.default_confidence,
                not_specified_label=app_settings.extraction.not_specified_label,
            ),
            export_service=ExportService(
                db_export_delay_seconds=app_settings.export.db_export_delay_seconds,
            ),
            export_message_ttl=app_settings.export.export_message_ttl_seconds,
        )

    return factory


_session_manager: Optional[SessionManager] = None


async def get_session_manager(
    app_settings: Annotated[Settings, Depends(get_settings)],
) -> SessionManager:
    """Process-wide session registry, built from the settings in effect on first use."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager(
            build_session_factory(app_settings),
            idle_ttl_seconds=app_settings.session.idle_ttl_seconds,
        )
    return _session_manager


def reset_session_manager() -> None:
    """Forget the registry so the next request builds a new one."""
    global _session_manager
    _session_manager = None


def get_sse_manager(
    app_settings: Annotated[Settings, Depends(get_settings)],
) -> SSEManager:
    return SSEManager(heartbeat_interval=app_settings.export.sse_heartbeat_seconds)
