import json

from schoolyard.config import default_config, load_config, save_config


def test_missing_config_gives_defaults(tmp_path):
    cfg = load_config(str(tmp_path / "nope.json"))
    assert cfg == default_config()
    assert cfg['time_slots'][0] == '08:00'
    assert cfg['currency'] == 'DH'


def test_saved_values_override_defaults(tmp_path):
    path = str(tmp_path / "cfg.json")
    save_config({'currency': 'EUR', 'time_slots': ['09:00', '10:30']}, path)
    cfg = load_config(path)
    assert cfg['currency'] == 'EUR'
    assert cfg['time_slots'] == ['09:00', '10:30']
    assert cfg['expense_window'] == 'all'


def test_broken_config_falls_back(tmp_path, caplog):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding='utf-8')
    cfg = load_config(str(path))
    assert cfg == default_config()
    assert "Could not read config" in caplog.text


def test_save_config_writes_json(tmp_path):
    path = tmp_path / "out.json"
    save_config({'currency': 'MAD'}, str(path))
    assert json.loads(path.read_text(encoding='utf-8')) == {'currency': 'MAD'}
