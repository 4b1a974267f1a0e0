"""Runtime settings read from the environment (and an optional .env file)."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

MIN_COMPETITOR_AMOUNT = 5000.0
MATCH_THRESHOLD = 85
HIGH_PRIORITY_THRESHOLD = 50000.0
MEDIUM_PRIORITY_THRESHOLD = 20000.0

DEFAULT_CATALOG_PATH = Path("data") / "Produits_Soprema_France_Final.json"
DEFAULT_CATALOG_FALLBACK_PATH = Path("data") / "Produits_Soprema_France.json"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    catalog_path: Path = DEFAULT_CATALOG_PATH
    catalog_fallback_path: Optional[Path] = DEFAULT_CATALOG_FALLBACK_PATH
    min_competitor_amount: float = MIN_COMPETITOR_AMOUNT
    match_threshold: float = MATCH_THRESHOLD

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            catalog_path=_env_path("RECONQUEST_CATALOG_PATH", DEFAULT_CATALOG_PATH),
            catalog_fallback_path=_env_path("RECONQUEST_CATALOG_FALLBACK_PATH", DEFAULT_CATALOG_FALLBACK_PATH),
            min_competitor_amount=_env_float("RECONQUEST_MIN_COMPETITOR_AMOUNT", MIN_COMPETITOR_AMOUNT),
            match_threshold=_env_float("RECONQUEST_MATCH_THRESHOLD", MATCH_THRESHOLD),
        )
