"""Persistent user preferences (currency, date format, theme, week start)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from .config import PREFERENCES_PATH

DEFAULT_PREFERENCES: Dict[str, Any] = {
    'currency': 'USD',
    'date_format': 'MM/DD/YYYY',
    'theme': 'system',
    'first_day_of_week': 0,
}

CURRENCY_SYMBOLS: Dict[str, str] = {
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'INR': '₹',
    'SAR': 'ر.س',
    'AED': 'د.إ',
    'EGP': 'ج.م',
}

THEMES = ('light', 'dark', 'system')
DATE_FORMATS = ('MM/DD/YYYY', 'DD/MM/YYYY', 'YYYY-MM-DD')


def load_preferences(path: Path | None = None) -> Dict[str, Any]:
    target = path or PREFERENCES_PATH
    if not target.exists():
        return DEFAULT_PREFERENCES.copy()
    try:
        with target.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except (json.JSONDecodeError, OSError):
        return DEFAULT_PREFERENCES.copy()
    if not isinstance(data, dict):
        return DEFAULT_PREFERENCES.copy()
    merged = DEFAULT_PREFERENCES.copy()
    merged.update({k: v for k, v in data.items() if k in DEFAULT_PREFERENCES})
    return merged


def save_preferences(preferences: Dict[str, Any], path: Path | None = None) -> None:
    target = path or PREFERENCES_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    cleaned = {k: v for k, v in preferences.items() if k in DEFAULT_PREFERENCES}
    with target.open('w', encoding='utf-8') as handle:
        json.dump(cleaned, handle, indent=2, sort_keys=True, ensure_ascii=False)


def currency_symbol(preferences: Dict[str, Any]) -> str:
    """Symbol for the preferred currency; unknown codes fall back to ``$``."""
    return CURRENCY_SYMBOLS.get(preferences.get('currency', 'USD'), '$')
