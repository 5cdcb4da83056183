"""TTL caches for fetched price data.

Both caches satisfy the same small contract used by the market data client:
``get(key)`` returns the stored value or None once expired, and
``put(key, value, ttl_seconds)`` stores a value with its own time-to-live.
"""

from __future__ import annotations

import hashlib
import json
import time
from pathlib import Path
from typing import Any, Protocol

import pandas as pd

from folio_analytics.config import CacheConfig, Paths


class PriceCache(Protocol):
    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any, ttl_seconds: float | None = None) -> None: ...


class MemoryCache:
    """In-process cache with per-entry expiry."""

    def __init__(self, default_ttl: float = CacheConfig.PRICES_TTL_SECONDS, clock=time.time):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

    def put(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        self._entries[key] = (self._clock() + ttl, value)

    def __len__(self) -> int:
        return len(self._entries)


class DataCache:
    """File-based DataFrame cache (parquet) with TTL support."""

    def __init__(self, category: str = "prices", cache_dir: Path | None = None,
                 default_ttl: float = CacheConfig.PRICES_TTL_SECONDS):
        self.cache_dir = (cache_dir or Paths.DATA_CACHE) / category
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.default_ttl = default_ttl

    def _key_path(self, key: str, ext: str) -> Path:
        hashed = hashlib.md5(key.encode()).hexdigest()
        return self.cache_dir / f"{hashed}.{ext}"

    def get(self, key: str) -> pd.DataFrame | None:
        """Retrieve a cached DataFrame if not expired."""
        data_path = self._key_path(key, "parquet")
        meta_path = self._key_path(key, "json")
        if not data_path.exists() or not meta_path.exists():
            return None
        with open(meta_path) as f:
            expires_at = json.load(f).get("expires_at", 0)
        if time.time() >= expires_at:
            data_path.unlink(missing_ok=True)
            meta_path.unlink(missing_ok=True)
            return None
        return pd.read_parquet(data_path)

    def put(self, key: str, value: pd.DataFrame, ttl_seconds: float | None = None) -> None:
        """Store a DataFrame as parquet alongside its expiry timestamp."""
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        value.to_parquet(self._key_path(key, "parquet"))
        with open(self._key_path(key, "json"), "w") as f:
            json.dump({"key": key, "expires_at": time.time() + ttl}, f)
