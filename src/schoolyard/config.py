import json
import os
import logging

from schoolyard.calendar_logic import default_time_slots


def _config_path():
    base = os.path.join(os.path.expanduser('~'), '.schoolyard')
    os.makedirs(base, exist_ok=True)
    return os.path.join(base, 'schoolyard_config.json')


def default_config() -> dict:
    return {
        'time_slots': default_time_slots(),
        'currency': 'DH',
        'expense_window': 'all',
        'db_path': None,
    }


def load_config(path: str = None) -> dict:
    """Gespeicherte Werte überschreiben die Defaults; fehlende Schlüssel bleiben Default."""
    path = path or _config_path()
    cfg = default_config()
    if not os.path.exists(path):
        return cfg
    try:
        with open(path, 'r', encoding='utf-8') as f:
            stored = json.load(f)
    except (OSError, ValueError) as e:
        logging.warning(f"Could not read config {path}: {e}, using defaults")
        return cfg
    if isinstance(stored, dict):
        cfg.update(stored)
    return cfg


def save_config(cfg: dict, path: str = None):
    path = path or _config_path()
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(cfg, f, ensure_ascii=False, indent=2)
