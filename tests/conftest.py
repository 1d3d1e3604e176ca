import pandas as pd
import pytest

from finance_tracker import db


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    path = tmp_path / 'finance.db'
    monkeypatch.setattr(db, 'DB_PATH', path)
    db.init_db()
    return path


def build_transactions(rows):
    """Transaction DataFrame from short dicts; id, user and notes are filled in."""
    records = []
    for index, row in enumerate(rows):
        record = {'id': f"t{index}", 'user_id': 'u1', 'category_id': None, 'Notes': None}
        record.update(row)
        records.append(record)
    return pd.DataFrame(records, columns=['id', 'user_id', 'Date', 'Type', 'Amount', 'category_id', 'Notes'])


@pytest.fixture
def make_frame():
    return build_transactions
