"""CSV helpers for bulk user and role import."""

import csv
import io
from dataclasses import dataclass
from typing import Dict, Iterator, List, Sequence

from core.exceptions import ValidationError

USER_TEMPLATE_HEADERS = [
    "first_name",
    "last_name",
    "user_email",
    "mobile_number",
    "password",
    "roles",
]
ROLE_TEMPLATE_HEADERS = ["role_name", "role_description", "permissions"]


@dataclass(frozen=True)
class CsvRow:
    row_number: int  # 1 = first data row
    line_number: int  # 1 = header line
    values: Dict[str, str]

    def get(self, name: str) -> str:
        return (self.values.get(name) or "").strip()


def template_csv(headers: Sequence[str]) -> str:
    """Header-only CSV used as a download template."""
    return ",".join(headers) + "\n"


def iter_csv_rows(file_bytes: bytes, required_headers: Sequence[str]) -> Iterator[CsvRow]:
    """Yield the non-empty data rows of an uploaded CSV file.

    Args:
        file_bytes: Raw upload; a UTF-8 BOM is tolerated.
        required_headers: Columns that must be present in the header row.

    Raises:
        ValidationError: If the file is not UTF-8, cannot be parsed, has no
            header or lacks required columns. Nothing is yielded in that case.
    """
    try:
        text = file_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV must be UTF-8 encoded")

    reader = csv.DictReader(io.StringIO(text))
    try:
        header = reader.fieldnames
    except csv.Error as e:
        raise ValidationError(f"Malformed CSV: {e}")
    if not header:
        raise ValidationError("CSV has no header row.")

    fieldnames = [(name or "").strip() for name in header]
    missing: List[str] = [name for name in required_headers if name not in fieldnames]
    if missing:
        raise ValidationError(f"CSV is missing required columns: {', '.join(missing)}")
    reader.fieldnames = fieldnames

    rows: List[CsvRow] = []
    row_number = 0
    try:
        for raw in reader:
            # Skip fully empty rows
            if not raw or all((v or "").strip() == "" for v in raw.values() if isinstance(v, str)):
                continue
            row_number += 1
            rows.append(CsvRow(row_number=row_number, line_number=reader.line_num, values=raw))
    except csv.Error as e:
        raise ValidationError(f"Malformed CSV: {e}")

    yield from rows


def split_list(value: str, separator: str) -> List[str]:
    """Split a delimited cell into trimmed, non-empty items."""
    return [item.strip() for item in value.split(separator) if item.strip()]
