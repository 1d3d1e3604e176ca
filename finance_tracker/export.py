"""Excel export of one month of transactions."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import pandas as pd
from openpyxl.utils import get_column_letter

from .config import APP_NAME, EXPORTS_DIR
from .models import Category

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ['Date', 'Type', 'Category', 'Amount', 'Notes', 'Recurring']
COLUMN_WIDTHS = {
    'Date': 12,
    'Type': 10,
    'Category': 20,
    'Amount': 12,
    'Notes': 40,
    'Recurring': 10,
}
EXCEL_MIME = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def export_filename(month: str) -> str:
    return f"{APP_NAME}_{month}.xlsx"


def build_export_frame(
    transactions: pd.DataFrame,
    categories: Optional[Iterable[Category]],
    month: str,
) -> pd.DataFrame:
    """Spreadsheet rows for every transaction dated within ``month``.

    Amounts are copied as-is; no rounding is applied.
    """
    if transactions.empty:
        return pd.DataFrame(columns=EXPORT_COLUMNS)

    names: Dict[str, str] = {c.id: c.name for c in (categories or [])}
    dates = pd.to_datetime(transactions['Date'])
    rows = transactions[dates.dt.strftime('%Y-%m') == month].copy()
    if rows.empty:
        return pd.DataFrame(columns=EXPORT_COLUMNS)

    rows_dates = pd.to_datetime(rows['Date'])
    frame = pd.DataFrame({
        'Date': rows_dates.dt.strftime('%Y-%m-%d'),
        'Type': rows['Type'].astype(str).str.upper(),
        'Category': rows['category_id'].map(names).fillna('Uncategorized'),
        'Amount': pd.to_numeric(rows['Amount'], errors='coerce'),
        'Notes': rows['Notes'].fillna('').astype(str),
        'Recurring': 'No',
    })
    return frame.sort_values('Date', kind='mergesort').reset_index(drop=True)[EXPORT_COLUMNS]


def write_workbook(frame: pd.DataFrame, target: Union[str, Path, io.BytesIO], sheet_name: str) -> None:
    with pd.ExcelWriter(target, engine='openpyxl') as writer:
        frame.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]
        for index, column in enumerate(frame.columns, start=1):
            worksheet.column_dimensions[get_column_letter(index)].width = COLUMN_WIDTHS.get(column, 12)


def export_month_to_excel(
    transactions: pd.DataFrame,
    categories: Optional[Iterable[Category]],
    month: str,
    target: Union[str, Path, io.BytesIO, None] = None,
) -> Union[Path, io.BytesIO]:
    """Write the month's transactions to an ``.xlsx`` workbook.

    Args:
        transactions: Transaction DataFrame for the user
        categories: Category records used to resolve names
        month: ``YYYY-MM`` key; also used as the sheet name
        target: File path or in-memory buffer.  Defaults to
            ``EXPORTS_DIR/<APP_NAME>_<month>.xlsx``.

    Returns:
        The path written, or the buffer rewound to its start.
    """
    frame = build_export_frame(transactions, categories, month)

    if isinstance(target, io.BytesIO):
        write_workbook(frame, target, month)
        target.seek(0)
        logger.info("Exported %d transactions for %s to buffer", len(frame), month)
        return target

    path = Path(target) if target is not None else EXPORTS_DIR / export_filename(month)
    path.parent.mkdir(parents=True, exist_ok=True)
    write_workbook(frame, path, month)
    logger.info("Exported %d transactions for %s to %s", len(frame), month, path)
    return path
