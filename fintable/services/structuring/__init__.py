"""Step 2: HTML fragments to structured tables."""

from fintable.services.structuring.structuring_service import StructuringService, build_html_input

__all__ = ["StructuringService", "build_html_input"]
