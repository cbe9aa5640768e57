import csv
import io
from typing import Any, Iterable, List, Sequence

UTF8_BOM = "\ufeff"


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def rows_to_csv(header: Sequence[Any], rows: Iterable[Sequence[Any]]) -> str:
    """Render a header and rows as CSV with every field quoted.

    Embedded quotes are doubled and rows are joined with ``\\n`` (no trailing
    newline), so the output can be concatenated into multi-table files.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([_cell(cell) for cell in header])
    for row in rows:
        writer.writerow([_cell(cell) for cell in row])
    value = buffer.getvalue()
    return value[:-1] if value.endswith("\n") else value


def parse_csv(text: str) -> List[List[str]]:
    """Parse CSV produced by rows_to_csv back into rows of strings."""
    return [row for row in csv.reader(io.StringIO(text.lstrip(UTF8_BOM)))]
