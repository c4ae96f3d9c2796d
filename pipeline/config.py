"""Runtime settings for the Afval monitor, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parent.parent

# Local overrides live in .env at the repo root; process env wins.
load_dotenv(ROOT / ".env", override=False)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    api_base_url: str = os.getenv("AFVAL_API_BASE_URL", "https://api.data.amsterdam.nl/v1")
    # Main category the report queries are scoped to
    category: str = os.getenv("AFVAL_CATEGORY", "Afval")
    timezone: str = os.getenv("AFVAL_TIMEZONE", "Europe/Amsterdam")

    http_timeout_s: float = float(os.getenv("AFVAL_HTTP_TIMEOUT_S", "20"))
    refresh_interval_s: float = float(os.getenv("AFVAL_REFRESH_INTERVAL_S", "30"))
    debounce_s: float = float(os.getenv("AFVAL_DEBOUNCE_S", "0.3"))
    refresh_on_startup: bool = _flag("AFVAL_REFRESH_ON_STARTUP", "true")

    hotspot_limit: int = int(os.getenv("AFVAL_HOTSPOT_LIMIT", "20"))
    neighbourhood_weight_limit: int = int(os.getenv("AFVAL_NEIGHBOURHOOD_WEIGHT_LIMIT", "15"))
    heatmap_sample: int = int(os.getenv("AFVAL_HEATMAP_SAMPLE", "2000"))
    over_time_days: int = int(os.getenv("AFVAL_OVER_TIME_DAYS", "5"))
    recent_limit: int = int(os.getenv("AFVAL_RECENT_LIMIT", "10"))

    raw_dir: str = os.getenv("AFVAL_RAW_DIR", str(ROOT / "data" / "raw"))
    log_level: str = os.getenv("AFVAL_LOG_LEVEL", "INFO")


settings = Settings()
