from finance_tracker import config


def test_ensure_data_directories_creates_exports(tmp_path, monkeypatch):
    monkeypatch.setattr(config, 'DATA_DIR', tmp_path / 'data')
    monkeypatch.setattr(config, 'EXPORTS_DIR', tmp_path / 'data' / 'exports')

    config.ensure_data_directories()
    config.ensure_data_directories()

    assert (tmp_path / 'data' / 'exports').is_dir()
