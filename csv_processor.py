"""
CSV Processor for Class Reassignment Uploads
Turns uploaded CSV/Excel files into plain text lines and writes CSV exports
"""
import csv
import io
from typing import Any, Dict, Iterable, List, Sequence

from openpyxl import load_workbook


REASSIGNMENT_HEADER = ('student_id', 'new_grade', 'new_class_name')

INVALID_FILE_TYPE = 'Invalid file type. Please upload a .csv file.'
UNREADABLE_FILE = 'Failed to read the file.'


class ReassignmentImportError(ValueError):
    """Base class for errors that make a whole import file unusable."""


class EmptyInputError(ReassignmentImportError):
    def __init__(self):
        super().__init__('CSV file is empty.')


class InvalidHeaderError(ReassignmentImportError):
    def __init__(self):
        super().__init__(
            'Invalid CSV header. Expected columns: ' + ', '.join(REASSIGNMENT_HEADER)
        )


def decode_csv_bytes(data: bytes) -> str:
    """
    Decode raw CSV upload bytes as UTF-8 (a leading BOM is dropped).

    Raises:
        ValueError: If the bytes are not valid UTF-8
    """
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError:
        raise ValueError(UNREADABLE_FILE)


def _cell_text(value) -> str:
    if value is None:
        return ''
    # openpyxl hands back numeric cells as floats when the sheet stored them so
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def excel_to_text(file_stream) -> str:
    """
    Flatten the active sheet of an Excel workbook into comma-separated lines.

    Uses openpyxl's read_only mode. Cells are not quoted, so a comma inside a
    cell ends up as an extra column, exactly like in a hand-written CSV.
    """
    try:
        workbook = load_workbook(file_stream, read_only=True, data_only=True)
    except Exception:
        raise ValueError(UNREADABLE_FILE)

    try:
        sheet = workbook.active
        lines = []
        for row_values in sheet.iter_rows(values_only=True):
            cells = [_cell_text(value) for value in row_values]
            # Trailing empty cells come from formatting, not data
            while cells and cells[-1] == '':
                cells.pop()
            lines.append(','.join(cells))
        return '\n'.join(lines)
    finally:
        workbook.close()


def read_upload_text(upload_file) -> str:
    """
    Automatically detect file type and return the upload as text.

    Args:
        upload_file: Flask FileStorage object from request.files

    Returns:
        The upload contents as a single string

    Raises:
        ValueError: If the file type is not supported or cannot be read
    """
    filename = (upload_file.filename or '').lower()

    if filename.endswith('.csv'):
        return decode_csv_bytes(upload_file.stream.read())
    elif filename.endswith('.xlsx'):
        return excel_to_text(io.BytesIO(upload_file.stream.read()))
    else:
        raise ValueError(INVALID_FILE_TYPE)


def split_rows(text: str):
    """
    Split raw upload text into a header line and the data lines after it.

    Lines are trimmed and blank lines are dropped before the header is picked,
    so leading blank lines and Windows line endings are harmless.

    Returns:
        Tuple of (header_line, data_lines)

    Raises:
        EmptyInputError: If there is no non-blank line at all
    """
    rows = [line.strip() for line in text.split('\n')]
    rows = [line for line in rows if line]
    if not rows:
        raise EmptyInputError()
    return rows[0], rows[1:]


def validate_header(header_line: str) -> List[str]:
    """
    Check the header against the reassignment contract.

    Raises:
        InvalidHeaderError: Unless the header is exactly
            student_id,new_grade,new_class_name (fields trimmed)
    """
    header = [field.strip() for field in header_line.strip().split(',')]
    if tuple(header) != REASSIGNMENT_HEADER:
        raise InvalidHeaderError()
    return header


def export_csv(records: Iterable[Dict[str, Any]], columns: Sequence[str]) -> str:
    """
    Render records as CSV text with a header row.

    Only the listed columns are written, in order. Values containing commas,
    quotes or newlines are quoted by the csv module.
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(columns)
    for record in records:
        writer.writerow(['' if record.get(col) is None else record.get(col) for col in columns])
    return output.getvalue()
