# ==============================================================================
# scheme_manager/ingest/parser.py
# ------------------------------------------------------------------------------
# Turns uploaded CSV text or Excel workbooks into a header row plus data rows
# of string cells. Nothing here knows what the columns mean.
# ==============================================================================

import io
import logging
import os
import re

import pandas as pd

from .errors import FileStructureError

_SURROUNDING_QUOTES = re.compile(r'^"|"$')


def parse_csv_line(line, delimiter=','):
    """
    Splits one CSV line into cells.

    A double quote toggles the "inside quotes" state; a delimiter seen while
    inside quotes is kept as data. Cells are trimmed and stripped of
    surrounding quotes.

    Example: 'a,"b,c",d' -> ['a', 'b,c', 'd']
    """
    cells = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            cells.append(_clean_cell(''.join(current)))
            current = []
        else:
            current.append(char)

    cells.append(_clean_cell(''.join(current)))
    return cells


def _clean_cell(value):
    return _SURROUNDING_QUOTES.sub('', value.strip())


def split_lines(text):
    """Normalizes CRLF and bare CR to LF, then drops lines that are blank."""
    normalized = text.replace('\r\n', '\n').replace('\r', '\n')
    return [line for line in normalized.split('\n') if line.strip()]


def parse_csv_text(text):
    """
    Parses CSV text into headers and data rows.

    Returns:
        tuple: (headers, rows) where rows is a list of lists of strings.

    Raises:
        FileStructureError: if there is no header row or no data row.
    """
    lines = split_lines(text)
    logging.debug(f"CSV content length {len(text)}, {len(lines)} non-blank lines")

    if len(lines) < 2:
        raise FileStructureError('CSV file must contain header row and at least one data row')

    headers = parse_csv_line(lines[0])
    rows = [parse_csv_line(line) for line in lines[1:]]
    rows = [row for row in rows if any(cell != '' for cell in row)]

    if not rows:
        raise FileStructureError('CSV file must contain header row and at least one data row')

    logging.info(f"Parsed CSV: {len(headers)} columns, {len(rows)} data rows")
    return headers, rows


def cell_to_str(value):
    """Coerces an Excel cell to a trimmed string; empty cells become ''."""
    if value is None:
        return ''
    if isinstance(value, float):
        if pd.isna(value):
            return ''
        if value.is_integer():
            return str(int(value))
    if value is pd.NaT:
        return ''
    return str(value).strip()


def parse_sheet_rows(sheet_rows):
    """
    Turns a 2D array of sheet cells into headers and data rows.

    Rows that are entirely empty after coercion are dropped, mirroring the
    blank-line handling of CSV files.
    """
    if not sheet_rows:
        raise FileStructureError('Excel file must contain header row and at least one data row')

    headers = [cell_to_str(cell) for cell in sheet_rows[0]]
    rows = []
    for raw_row in sheet_rows[1:]:
        row = [cell_to_str(cell) for cell in (raw_row or [])]
        if any(cell != '' for cell in row):
            rows.append(row)

    if not rows:
        raise FileStructureError('Excel file must contain header row and at least one data row')

    logging.info(f"Parsed Excel sheet: {len(headers)} columns, {len(rows)} data rows")
    return headers, rows


def parse_excel_bytes(data):
    """Reads the first worksheet of an .xlsx workbook into headers and data rows."""
    try:
        xls = pd.ExcelFile(io.BytesIO(data))
    except Exception as e:
        logging.warning(f"Unreadable Excel upload: {e}")
        raise FileStructureError(
            'Failed to parse Excel file. Please check the file format and try again.'
        ) from e

    if not xls.sheet_names:
        raise FileStructureError('Excel file contains no worksheets')

    sheet_name = xls.sheet_names[0]
    logging.info(f"Processing worksheet: {sheet_name}")
    df = pd.read_excel(xls, sheet_name=sheet_name, header=None, dtype=object, keep_default_na=False)
    return parse_sheet_rows(df.values.tolist())


def decode_text(data):
    """Decodes uploaded CSV bytes, dropping a UTF-8 byte order mark if present."""
    if isinstance(data, str):
        return data
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError:
        return data.decode('latin-1')


def read_tabular_file(data, filename):
    """
    Dispatches on the file extension and returns (headers, rows).

    Raises:
        FileStructureError: for unsupported extensions or malformed files.
    """
    extension = os.path.splitext(filename or '')[1].lower()
    if extension == '.csv':
        return parse_csv_text(decode_text(data))
    if extension == '.xlsx':
        return parse_excel_bytes(data)
    raise FileStructureError('Please upload a CSV or Excel (.xlsx) file')
