"""Central configuration loader for folio-analytics."""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

# Project root is the parent of the folio_analytics/ package
PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")


def load_settings() -> dict:
    """Load settings from configs/settings.yaml (empty when absent)."""
    settings_path = PROJECT_ROOT / "configs" / "settings.yaml"
    if not settings_path.exists():
        return {}
    with open(settings_path) as f:
        return yaml.safe_load(f) or {}


SETTINGS = load_settings()

_defaults = SETTINGS.get("defaults", {})
_optimizer = SETTINGS.get("optimizer", {})
_market = SETTINGS.get("market_data", {})


# --- Run defaults ---
class Defaults:
    RANGE = _defaults.get("range", "1y")
    BENCHMARK = _defaults.get("benchmark", "SPY")
    RISK_FREE_RATE = float(os.getenv("FOLIO_RISK_FREE_RATE", _defaults.get("risk_free_rate", 0.0)))
    ROLLING_WINDOW = int(_defaults.get("rolling_window", 21))
    EQUITY_BASE = float(_defaults.get("equity_base", 100.0))
    MAX_TICKERS = int(_defaults.get("max_tickers", 20))


# --- Optimizer knobs ---
class OptimizerConfig:
    RISK_PARITY_ITERATIONS = int(_optimizer.get("risk_parity_iterations", 200))
    RISK_PARITY_STEP = float(_optimizer.get("risk_parity_step", 0.5))
    MAX_CAP_PASSES = int(_optimizer.get("max_cap_passes", 50))


# --- Market data collaborator ---
class MarketDataConfig:
    MAX_RETRIES = int(_market.get("max_retries", 3))
    BACKOFF_SECONDS = float(_market.get("backoff_seconds", 0.5))


# --- Cache ---
class CacheConfig:
    TTL_HOURS = SETTINGS.get("cache", {}).get("ttl_hours", {})
    PRICES_TTL_SECONDS = int(float(TTL_HOURS.get("prices", 6)) * 3600)


# --- Paths ---
class Paths:
    ROOT = PROJECT_ROOT
    DATA_CACHE = Path(os.getenv("FOLIO_CACHE_DIR", PROJECT_ROOT / "data" / "cache"))
