# buildtrack/utils/config.py
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from .paths import config_dir

_log = logging.getLogger("buildtrack.config")

SETTINGS_FILE_NAME = "settings.json"

_DEFAULTS: Dict[str, Any] = {
    "hierarchy": {
        "path_separator": " > ",
    },
    "progress": {
        "reject_future_dates": False,
        "enforce_project_window": False,
    },
    "dashboard": {
        # ISO date; falls back to each project's own start_date when null
        "baseline_start_date": None,
        # ISO date; portfolio S-curve ends at the latest project end_date when null
        "baseline_end_date": None,
    },
    "offices": {
        "default_hierarchy": {
            "1": {"name": "Kodam", "description": "Komando Daerah Militer - tingkat provinsi"},
            "2": {"name": "Korem", "description": "Komando Resort Militer - tingkat beberapa kabupaten/kota"},
            "3": {"name": "Kodim", "description": "Komando Distrik Militer - tingkat kabupaten/kota"},
            "4": {"name": "Koramil", "description": "Komando Rayon Militer - tingkat kecamatan"},
        },
        "default_user_level": 4,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def settings_file() -> Path:
    return config_dir() / SETTINGS_FILE_NAME


def defaults() -> Dict[str, Any]:
    return copy.deepcopy(_DEFAULTS)


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    path = path or settings_file()
    if path.exists():
        try:
            return _merge(_DEFAULTS, json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as exc:
            _log.warning("Ignoring unreadable settings file %s: %s", path, exc)
            return defaults()
    return defaults()


def save_settings(data: Dict[str, Any], path: Optional[Path] = None) -> None:
    path = path or settings_file()
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
