"""User-facing (Hebrew) messages for the extraction flow."""

from typing import Any, Dict, Optional

MESSAGES: Dict[str, str] = {
    "pdf_only": "יש להעלות קובץ PDF בלבד.",
    "extracting_page": "מעבד עמוד {current} מתוך {total}...",
    "no_tables_found": "לא נמצאו טבלאות במסמך.",
    "extraction_failed": "אירעה שגיאה בחילוץ HTML",
    "structuring": "ממיר HTML לנתונים מובנים...",
    "structuring_failed": "אירעה שגיאה בהמרת הנתונים",
    "db_export_succeeded": "הנתונים מהמסמך {document_name} יוצאו בהצלחה למסד הנתונים.",
    "db_export_failed": "הייצוא נכשל. אנא נסה שוב.",
}


class _SafeFormatter(dict):
    def __missing__(self, key):
        return "{" + key + "}"


def format_message(key: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Format a message template, leaving unknown placeholders untouched."""
    template = MESSAGES.get(key, key)
    try:
        return template.format_map(_SafeFormatter(**(params or {})))
    except (ValueError, IndexError):
        return template


def progress_message(current: int, total: int) -> str:
    return format_message("extracting_page", {"current": current, "total": total})
