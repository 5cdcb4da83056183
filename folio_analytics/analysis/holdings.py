"""Turn a holdings specification into current portfolio weights."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from folio_analytics.analysis.stats import compute_returns, normalize_weights
from folio_analytics.models import AlignedPrices, HoldingsInput


@dataclass
class ResolvedHoldings:
    tickers: list[str]
    input_values: list[float]
    last_prices: list[float]
    weights: np.ndarray

    @property
    def weights_by_ticker(self) -> dict[str, float]:
        return {t: float(w) for t, w in zip(self.tickers, self.weights)}


def resolve_holdings(holdings: HoldingsInput, prices: AlignedPrices) -> ResolvedHoldings:
    """Look up last prices and derive normalised current weights.

    In shares mode each position is valued at its last close before
    normalising; in weights mode the raw values are normalised directly.

    Raises:
        ValueError: if the aligned table is shorter than two dates or a held
            ticker has no prices.
    """
    if len(prices.dates) < 2:
        raise ValueError("Not enough overlapping data points across tickers (need at least 2)")

    tickers = holdings.tickers
    last_prices = [prices.last_price(t) for t in tickers]
    values = holdings.values
    if holdings.is_shares_mode:
        raw = [shares * price for shares, price in zip(values, last_prices)]
    else:
        raw = values
    return ResolvedHoldings(
        tickers=tickers,
        input_values=values,
        last_prices=last_prices,
        weights=normalize_weights(raw),
    )


def returns_by_ticker(tickers: list[str], prices: AlignedPrices) -> dict[str, np.ndarray]:
    return {t: compute_returns(prices.prices_by_ticker[t]) for t in tickers}
