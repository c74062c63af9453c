# tests/test_parser.py

from io import BytesIO

import pytest
from openpyxl import Workbook

from scheme_manager.ingest.errors import FileStructureError
from scheme_manager.ingest.parser import (cell_to_str, parse_csv_line, parse_csv_text, parse_excel_bytes,
                                          parse_sheet_rows, read_tabular_file, split_lines)


def _workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def test_quoted_delimiter_is_kept_as_data():
    assert parse_csv_line('a,"b,c",d') == ['a', 'b,c', 'd']


def test_cells_are_trimmed_and_unquoted():
    assert parse_csv_line(' DIST001 , "ABC Ltd" ,,P1') == ['DIST001', 'ABC Ltd', '', 'P1']


def test_line_endings_are_normalized_and_blank_lines_dropped():
    text = "h1,h2\r\na,b\r\n   \rc,d\n\n"
    assert split_lines(text) == ['h1,h2', 'a,b', 'c,d']


def test_parse_csv_text_returns_headers_and_rows():
    headers, rows = parse_csv_text("Zone,State\r\nNorth1,Delhi\r\n,\r\nWest,Goa\r\n")

    assert headers == ['Zone', 'State']
    assert rows == [['North1', 'Delhi'], ['West', 'Goa']]


@pytest.mark.parametrize("text", ["", "Zone,State\n", "Zone,State\n\n  \n", "Zone,State\n,\n"])
def test_csv_without_data_rows_is_rejected(text):
    with pytest.raises(FileStructureError) as excinfo:
        parse_csv_text(text)
    assert 'must contain header row and at least one data row' in str(excinfo.value)


def test_cell_to_str_coerces_sheet_values():
    assert cell_to_str(None) == ''
    assert cell_to_str(float('nan')) == ''
    assert cell_to_str(10.0) == '10'
    assert cell_to_str(2.5) == '2.5'
    assert cell_to_str(' P1 ') == 'P1'


def test_parse_sheet_rows_drops_empty_rows():
    headers, rows = parse_sheet_rows([
        ['Distributor ID', 'Qty'],
        [None, ''],
        ['DIST001', 12.0],
        []
    ])

    assert headers == ['Distributor ID', 'Qty']
    assert rows == [['DIST001', '12']]


def test_parse_excel_bytes_reads_first_sheet():
    data = _workbook_bytes([
        ['Distributor ID', 'Distributor Name', 'Qty'],
        ['DIST001', 'ABC Ltd', 10],
        [None, None, None],
        ['DIST002', 'XYZ', 2.5]
    ])

    headers, rows = parse_excel_bytes(data)

    assert headers == ['Distributor ID', 'Distributor Name', 'Qty']
    assert rows == [['DIST001', 'ABC Ltd', '10'], ['DIST002', 'XYZ', '2.5']]


def test_excel_with_only_a_header_is_rejected():
    with pytest.raises(FileStructureError) as excinfo:
        parse_excel_bytes(_workbook_bytes([['Zone', 'State']]))
    assert str(excinfo.value) == 'Excel file must contain header row and at least one data row'


def test_unreadable_excel_is_rejected():
    with pytest.raises(FileStructureError):
        parse_excel_bytes(b'not a workbook')


def test_read_tabular_file_dispatches_on_extension():
    headers, rows = read_tabular_file('\ufeffZone,State\nWest,Goa\n'.encode('utf-8'), 'zones.CSV')
    assert headers == ['Zone', 'State']
    assert rows == [['West', 'Goa']]

    with pytest.raises(FileStructureError) as excinfo:
        read_tabular_file(b'data', 'zones.txt')
    assert str(excinfo.value) == 'Please upload a CSV or Excel (.xlsx) file'
