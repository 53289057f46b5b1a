from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Dict

import yaml

from expense_calculator.core.models import EXPENSE_CATEGORIES

DEFAULT_CONFIG: Dict[str, object] = {
    "backend": "sqlite",
    "backends": {
        "memory": "expense_calculator.backends.memory.MemoryBackend",
        "sqlite": "expense_calculator.backends.sqlite.SQLiteBackend",
        "rest": "expense_calculator.backends.rest.RestBackend",
    },
    "db_path": "expenses.db",
    "rest": {
        "url": "",
        "api_key": "",
        "table": "expenses",
        "timeout": 10,
    },
    "auth": {
        "mode": "mock",
        "username": "admin",
        "password": "password",
    },
    "categories": list(EXPENSE_CATEGORIES),
    "restrict_categories": True,
    "currency_symbol": "$",
    "current_month_matches_year": False,
    "output_dir": "./data",
    "loaders": {
        "csv": "expense_calculator.loaders.spreadsheet.CSVLoader",
        "excel": "expense_calculator.loaders.spreadsheet.ExcelLoader",
    },
    "output_modules": {
        "csv": "expense_calculator.outputs.csv_output.CSVOutput",
        "excel": "expense_calculator.outputs.excel_output.ExcelOutput",
    },
    "session_secret": "change-me",
}

CONFIG_ENV = "EXPENSE_CALC_CONFIG"
DEFAULT_CONFIG_PATH = Path("config.yaml")

# Environment variables win over the YAML file
_ENV_OVERRIDES = {
    "EXPENSE_CALC_REST_URL": ("rest", "url"),
    "EXPENSE_CALC_REST_KEY": ("rest", "api_key"),
    "EXPENSE_CALC_SESSION_SECRET": ("session_secret",),
    "EXPENSE_CALC_BACKEND": ("backend",),
    "EXPENSE_CALC_DB": ("db_path",),
}


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def _apply_env(config: Dict[str, object]) -> Dict[str, object]:
    for env_name, keys in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        target = config
        for key in keys[:-1]:
            target = target.setdefault(key, {})  # type: ignore[assignment]
        target[keys[-1]] = value
    return config


def config_path_from_env() -> Path:
    return Path(os.environ.get(CONFIG_ENV) or DEFAULT_CONFIG_PATH)


def load_config(path: str | Path | None = None) -> Dict[str, object]:
    """Read the YAML config at ``path`` layered over the defaults.

    A missing file is not an error; the defaults (plus environment
    overrides) are returned instead.
    """
    target = Path(path) if path else config_path_from_env()
    data: Dict[str, object] = {}
    if target.exists():
        with target.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{target} must contain a YAML mapping")
    return _apply_env(_merge_defaults(data, DEFAULT_CONFIG))


def save_config(config: Dict[str, object], path: str | Path) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False)
