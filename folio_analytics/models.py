"""Input specifications and output bundles passed between the analytics modules."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from folio_analytics.config import Defaults

HOLDINGS_MODES = ("weights", "shares")


@dataclass(frozen=True)
class HoldingsItem:
    ticker: str
    value: float

    def __post_init__(self):
        object.__setattr__(self, "ticker", self.ticker.strip().upper())
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class HoldingsInput:
    """What the portfolio holds and how to analyse it.

    ``mode`` decides how ``items`` values are read: fractions/amounts in
    ``"weights"`` mode, share counts in ``"shares"`` mode.
    """

    mode: str
    items: tuple[HoldingsItem, ...]
    range: str = Defaults.RANGE
    benchmark: str = Defaults.BENCHMARK
    risk_free_rate: float = Defaults.RISK_FREE_RATE
    shrinkage: float | None = None
    max_weight: float | None = None

    def __post_init__(self):
        if self.mode not in HOLDINGS_MODES:
            raise ValueError(f"mode must be one of {HOLDINGS_MODES}, got '{self.mode}'")
        items = tuple(
            i if isinstance(i, HoldingsItem) else HoldingsItem(i["ticker"], i["value"])
            for i in self.items
        )
        if not items:
            raise ValueError("Holdings must contain at least one ticker")
        tickers = [i.ticker for i in items]
        dupes = sorted({t for t in tickers if tickers.count(t) > 1})
        if dupes:
            raise ValueError(f"Duplicate tickers in holdings: {', '.join(dupes)}")
        for item in items:
            if not math.isfinite(item.value):
                raise ValueError(f"Holding value for {item.ticker} must be finite")
        object.__setattr__(self, "items", items)
        object.__setattr__(self, "benchmark", self.benchmark.strip().upper())

    @property
    def tickers(self) -> list[str]:
        return [i.ticker for i in self.items]

    @property
    def values(self) -> list[float]:
        return [i.value for i in self.items]

    @property
    def is_shares_mode(self) -> bool:
        return self.mode == "shares"


@dataclass
class AlignedPrices:
    """Close prices intersected on a common date axis."""

    range: str
    start: str
    end: str
    dates: list[str]
    prices_by_ticker: dict[str, list[float]]
    errors: dict[str, str] = field(default_factory=dict)

    def last_price(self, ticker: str) -> float:
        series = self.prices_by_ticker.get(ticker)
        if series is None or len(series) == 0:
            raise ValueError(f"Missing prices for {ticker}")
        return float(series[-1])


# ---------------------------------------------------------------------------
# Snapshot bundles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PortfolioMetrics:
    total_return: float
    cagr: float
    annualized_return: float
    annualized_volatility: float
    sharpe: float
    max_drawdown: float
    beta: float | None
    var_95: float
    cvar_95: float
    parametric_var_95: float
    concentration_hhi: float
    effective_n: float
    risk_contributions: dict[str, float]


@dataclass(frozen=True)
class SnapshotSeries:
    dates: tuple[str, ...]
    equity: tuple[float, ...]
    drawdown: tuple[float, ...]
    rolling_vol: tuple[float | None, ...]
    portfolio_returns: tuple[float | None, ...]


@dataclass(frozen=True)
class SnapshotRisk:
    tickers: tuple[str, ...]
    correlation: tuple[tuple[float, ...], ...]
    risk_contributions: dict[str, float]


@dataclass(frozen=True)
class HoldingUsed:
    ticker: str
    input_value: float
    last_price: float
    weight: float


@dataclass(frozen=True)
class Snapshot:
    portfolio_id: str
    range: str
    benchmark: str
    risk_free_rate: float
    shrinkage: float | None
    holdings_used: tuple[HoldingUsed, ...]
    metrics: PortfolioMetrics
    series: SnapshotSeries
    risk: SnapshotRisk
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data
