"""Market data client - daily closes, caching, retry and date alignment.

Source: yfinance (adjusted closes). Prices are cached through an injected
``get/put`` cache so the analytics modules never touch shared state.
"""

from __future__ import annotations

import re
import time
from datetime import date

import pandas as pd
import yfinance as yf

from folio_analytics.config import CacheConfig, Defaults, MarketDataConfig
from folio_analytics.models import AlignedPrices
from folio_analytics.utils.cache import DataCache, PriceCache
from folio_analytics.utils.logger import setup_logger

logger = setup_logger("market_data")

_TICKER_RE = re.compile(r"^[A-Z.\-]{1,12}$")

# range label -> months to look back
_RANGE_MONTHS = {"3m": 3, "6m": 6, "1y": 12, "3y": 36}


class PriceFetchError(RuntimeError):
    """Price history could not be downloaded."""


def parse_tickers(raw: str | None) -> list[str]:
    """Split ``"aapl, msft"`` into valid upper-case symbols, dropping junk."""
    if not raw:
        return []
    symbols = (s.strip().upper() for s in raw.split(","))
    return [s for s in symbols if _TICKER_RE.match(s)]


def range_to_dates(range_label: str, today: date | None = None) -> tuple[str, str]:
    """Map a lookback label (3m, 6m, 1y, 3y) to ISO start/end dates; unknown labels mean 1y."""
    end = pd.Timestamp(today or date.today()).normalize()
    months = _RANGE_MONTHS.get(range_label.lower(), 12)
    start = end - pd.DateOffset(months=months)
    return start.strftime("%Y-%m-%d"), end.strftime("%Y-%m-%d")


def is_rate_limit_message(msg: str) -> bool:
    m = msg.lower()
    return "rate limit" in m or "too many" in m or "429" in m


def _clean_closes(df: pd.DataFrame | None, symbol: str) -> pd.Series:
    if df is None or df.empty or "Close" not in df.columns:
        raise ValueError(f"No data returned for {symbol}. Check if the ticker is valid.")
    closes = pd.to_numeric(df["Close"], errors="coerce")
    closes = closes[closes.notna() & (closes.abs() != float("inf"))]
    if closes.empty:
        raise ValueError(f"No usable data for {symbol}")
    if isinstance(closes.index, pd.DatetimeIndex):
        closes.index = closes.index.strftime("%Y-%m-%d")
    closes = closes[~closes.index.duplicated(keep="last")].sort_index()
    closes.name = "Close"
    return closes.astype(float)


class MarketDataClient:
    """Fetch daily close history with caching and exponential-backoff retries."""

    def __init__(
        self,
        cache: PriceCache | None = None,
        max_retries: int = MarketDataConfig.MAX_RETRIES,
        backoff_seconds: float = MarketDataConfig.BACKOFF_SECONDS,
        ttl_seconds: float = CacheConfig.PRICES_TTL_SECONDS,
        sleep=time.sleep,
    ):
        self.cache = cache if cache is not None else DataCache("prices")
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds
        self.ttl_seconds = ttl_seconds
        self._sleep = sleep

    def get_daily_closes(self, symbol: str, start: str, end: str) -> pd.Series:
        """Daily closes for *symbol* between *start* and *end* (inclusive).

        Raises:
            ValueError: the symbol returned no usable prices on every attempt.
            PriceFetchError: every download attempt failed.
        """
        cache_key = f"{symbol}:{start}:{end}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Cache hit: %s", cache_key)
            return cached["Close"]

        # yfinance treats end as exclusive
        period_end = (pd.Timestamp(end) + pd.Timedelta(days=1)).strftime("%Y-%m-%d")
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            if attempt > 0:
                self._sleep(self.backoff_seconds * 2 ** attempt)
            logger.info("Fetching closes: %s (%s -> %s, attempt %d)", symbol, start, end, attempt + 1)
            try:
                df = yf.Ticker(symbol).history(start=start, end=period_end, interval="1d",
                                               auto_adjust=True)
            except Exception as e:
                last_error = e
                kind = "rate limited" if is_rate_limit_message(str(e)) else "failed"
                logger.warning("yfinance history %s for %s: %s", kind, symbol, e)
                continue

            # yfinance answers throttled requests with an empty frame
            if df is None or df.empty:
                last_error = ValueError(f"No data returned for {symbol}. Check if the ticker is valid.")
                logger.warning("yfinance history empty for %s (possibly rate limited)", symbol)
                continue

            closes = _clean_closes(df, symbol)
            self.cache.put(cache_key, closes.to_frame("Close"), self.ttl_seconds)
            return closes

        if isinstance(last_error, ValueError):
            raise last_error
        raise PriceFetchError(
            f"Failed to fetch {symbol} after {self.max_retries} attempts: {last_error}"
        ) from last_error


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------


def align_by_intersection(
    series_by_ticker: dict[str, pd.Series],
) -> tuple[list[str], dict[str, list[float]]]:
    """Keep only the dates every ticker has, in ascending order."""
    if not series_by_ticker:
        return [], {}
    combined = pd.concat(series_by_ticker, axis=1, join="inner").sort_index()
    dates = [str(d) for d in combined.index]
    return dates, {t: combined[t].astype(float).tolist() for t in series_by_ticker}


def _unique_upper(tickers: list[str]) -> list[str]:
    return list(dict.fromkeys(t.strip().upper() for t in tickers if t.strip()))


def fetch_prices(
    tickers: list[str],
    range_label: str = Defaults.RANGE,
    client: MarketDataClient | None = None,
) -> AlignedPrices:
    """Fetch and align closes, tolerating per-ticker failures.

    Failed tickers are reported in ``AlignedPrices.errors``; only a total
    failure raises.
    """
    symbols = _unique_upper(tickers)
    if not symbols:
        raise ValueError("Provide at least one ticker (e.g. AAPL,MSFT,SPY)")
    if len(symbols) > Defaults.MAX_TICKERS:
        raise ValueError(f"Max {Defaults.MAX_TICKERS} tickers")

    client = client or MarketDataClient()
    start, end = range_to_dates(range_label)
    series: dict[str, pd.Series] = {}
    errors: dict[str, str] = {}

    for sym in symbols:
        try:
            series[sym] = client.get_daily_closes(sym, start, end)
        except (ValueError, PriceFetchError) as e:
            logger.warning("Skipping %s: %s", sym, e)
            errors[sym] = str(e)

    if not series:
        raise PriceFetchError("; ".join(errors.values()))

    dates, prices = align_by_intersection(series)
    return AlignedPrices(range=range_label, start=start, end=end, dates=dates,
                         prices_by_ticker=prices, errors=errors)


def fetch_aligned_closes(
    tickers: list[str],
    range_label: str = Defaults.RANGE,
    client: MarketDataClient | None = None,
) -> AlignedPrices:
    """Strict variant used for snapshots: any ticker failure aborts the run."""
    aligned = fetch_prices(tickers, range_label, client)
    if aligned.errors:
        details = "; ".join(f"{sym}: {msg}" for sym, msg in aligned.errors.items())
        raise PriceFetchError(f"Snapshot failed due to ticker fetch errors: {details}")
    if len(aligned.dates) < 2:
        raise ValueError("Not enough overlapping data points across tickers to compute snapshot.")
    return aligned
