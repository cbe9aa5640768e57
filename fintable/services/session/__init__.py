"""Per-document orchestration and the in-memory session registry."""

from fintable.services.session.session_manager import SessionManager
from fintable.services.session.state_machine import ExtractionSession

__all__ = ["ExtractionSession", "SessionManager"]
