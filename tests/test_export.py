import io

import openpyxl
import pandas as pd

from finance_tracker import export
from finance_tracker.export import build_export_frame, export_filename, export_month_to_excel
from finance_tracker.models import Category

CATEGORIES = [Category(id='food', user_id='u1', name='Food')]


def _frame(make_frame):
    return make_frame([
        {'Date': '2024-03-20', 'Type': 'expense', 'Amount': 12.345, 'category_id': 'food', 'Notes': 'lunch'},
        {'Date': '2024-03-02', 'Type': 'income', 'Amount': 3000.0},
        {'Date': '2024-03-10', 'Type': 'expense', 'Amount': 8.0, 'category_id': 'deleted'},
        {'Date': '2024-04-01', 'Type': 'expense', 'Amount': 99.0, 'category_id': 'food'},
    ])


def test_export_frame_rows_for_month(make_frame):
    frame = build_export_frame(_frame(make_frame), CATEGORIES, '2024-03')

    assert list(frame.columns) == ['Date', 'Type', 'Category', 'Amount', 'Notes', 'Recurring']
    assert list(frame['Date']) == ['2024-03-02', '2024-03-10', '2024-03-20']
    assert list(frame['Type']) == ['INCOME', 'EXPENSE', 'EXPENSE']
    assert list(frame['Category']) == ['Uncategorized', 'Uncategorized', 'Food']
    assert frame['Amount'].iloc[2] == 12.345
    assert set(frame['Recurring']) == {'No'}


def test_export_to_buffer_reads_back(make_frame):
    buffer = export_month_to_excel(_frame(make_frame), CATEGORIES, '2024-03', io.BytesIO())

    assert buffer.tell() == 0
    data = pd.read_excel(buffer, sheet_name='2024-03')
    assert len(data) == 3
    assert data['Amount'].tolist() == [3000.0, 8.0, 12.345]


def test_export_column_widths(make_frame, tmp_path):
    path = export_month_to_excel(_frame(make_frame), CATEGORIES, '2024-03', tmp_path / 'out.xlsx')

    sheet = openpyxl.load_workbook(path)['2024-03']
    assert sheet.column_dimensions['C'].width == 20
    assert sheet.column_dimensions['E'].width == 40


def test_export_default_path(make_frame, tmp_path, monkeypatch):
    monkeypatch.setattr(export, 'EXPORTS_DIR', tmp_path / 'exports')

    path = export_month_to_excel(_frame(make_frame), CATEGORIES, '2024-03')
    assert path == tmp_path / 'exports' / export_filename('2024-03')
    assert path.exists()


def test_empty_month_writes_header_only(make_frame, tmp_path):
    path = export_month_to_excel(_frame(make_frame), CATEGORIES, '2023-01', tmp_path / 'empty.xlsx')
    data = pd.read_excel(path)
    assert data.empty
    assert list(data.columns) == ['Date', 'Type', 'Category', 'Amount', 'Notes', 'Recurring']
