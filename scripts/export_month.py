#!/usr/bin/env python3
"""Export one month of a user's transactions to an Excel workbook."""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from finance_tracker import config
from finance_tracker.export import build_export_frame, export_month_to_excel
from finance_tracker.models import month_key
from finance_tracker.store import FinanceStore


def main(month: str, user_id: str, output: Path | None = None) -> None:
    config.configure_logging()
    config.ensure_data_directories()
    store = FinanceStore(user_id, seed_defaults=False).load()
    frame = store.transactions_frame()
    if build_export_frame(frame, store.categories, month).empty:
        print(f"No transactions found for {month}.")
        return
    path = export_month_to_excel(frame, store.categories, month, output)
    print(f"Wrote {path}")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--month', default=month_key(date.today()), help='Month to export (YYYY-MM)')
    parser.add_argument('--user', default=config.DEFAULT_USER_ID, help='User id to export')
    parser.add_argument('--output', type=Path, default=None, help='Destination .xlsx path')
    args = parser.parse_args()
    main(args.month, args.user, args.output)
