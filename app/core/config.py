"""
Runtime settings read from the environment.

Every value has a default so the service starts with no configuration.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


BASE_DIR: Path = Path(__file__).resolve().parent.parent


def _int_env(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _float_env(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _optional_int_env(key: str) -> Optional[int]:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


MEDICINE_CSV_PATH: Path = Path(
    os.getenv("MEDICINE_CSV_PATH", str(BASE_DIR / "data" / "medicine_dataset.csv"))
)

# None means a fresh random inventory on every start
INVENTORY_SEED: Optional[int] = _optional_int_env("INVENTORY_SEED")

DEFAULT_SEARCH_RADIUS_KM: float = _float_env("DEFAULT_SEARCH_RADIUS_KM", 10.0)

PRICE_TREND_DEFAULT_DAYS: int = _int_env("PRICE_TREND_DEFAULT_DAYS", 30)
PRICE_TREND_MAX_DAYS: int = _int_env("PRICE_TREND_MAX_DAYS", 365)

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


__all__ = [
    "BASE_DIR",
    "MEDICINE_CSV_PATH",
    "INVENTORY_SEED",
    "DEFAULT_SEARCH_RADIUS_KM",
    "PRICE_TREND_DEFAULT_DAYS",
    "PRICE_TREND_MAX_DAYS",
    "LOG_LEVEL",
]
