"""Reading the student import workbook."""
import logging
from typing import Iterator

import openpyxl
from rest_framework.exceptions import ValidationError

logger = logging.getLogger(__name__)

COLUMNS = ('Name', 'RollNumber', 'Degree', 'Branch', 'Year', 'RoomNumber',
           'StudentPhone', 'ParentPhone', 'Gender', 'Email')


def _cell(value) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def read_student_rows(f) -> Iterator[dict]:
    """Yield one ``{column: text}`` dict per data row of the first sheet.

    Headers are matched by name, so column order does not matter and
    unknown columns are ignored.
    """
    try:
        wb = openpyxl.load_workbook(f, read_only=True, data_only=True)
    except Exception as e:
        raise ValidationError(f'Could not read spreadsheet: {e}')
    try:
        rows = wb.active.iter_rows(values_only=True)
        header = next(rows, None)
        if not header:
            raise ValidationError('Spreadsheet is empty')
        index = {_cell(h): i for i, h in enumerate(header) if _cell(h) in COLUMNS}
        missing = [c for c in ('Name', 'RollNumber') if c not in index]
        if missing:
            raise ValidationError(f'Missing columns: {", ".join(missing)}')
        for raw in rows:
            if raw is None or all(v is None for v in raw):
                continue
            yield {c: (_cell(raw[i]) if i < len(raw) else '') for c, i in index.items()}
    finally:
        wb.close()
