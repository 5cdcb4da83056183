"""Portfolio aggregation: weighted return series and benchmark beta."""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np


def portfolio_returns(
    returns_by_asset: Mapping[str, Sequence[float]],
    weights_by_asset: Mapping[str, float],
) -> np.ndarray:
    """Weighted sum of asset returns at each time index.

    Assets missing from *weights_by_asset* carry zero weight. All series are
    expected to share one length (the alignment step guarantees it).
    """
    tickers = list(returns_by_asset)
    if not tickers:
        return np.zeros(0)
    n = len(returns_by_asset[tickers[0]])
    out = np.zeros(n)
    for t in tickers:
        w = float(weights_by_asset.get(t, 0.0))
        out += w * np.asarray(returns_by_asset[t], dtype=float)[:n]
    return out


def beta_to_benchmark(
    portfolio: Sequence[float], benchmark: Sequence[float]
) -> float | None:
    """cov(portfolio, benchmark) / var(benchmark), None when undefined.

    Undefined means: empty series, mismatched lengths, or a flat benchmark.
    """
    p = np.asarray(portfolio, dtype=float)
    b = np.asarray(benchmark, dtype=float)
    if p.size == 0 or p.size != b.size:
        return None
    n = p.size
    if n <= 1:
        return None
    dp, db = p - p.mean(), b - b.mean()
    cov = float(np.dot(dp, db)) / (n - 1)
    var_b = float(np.dot(db, db)) / (n - 1)
    if var_b <= 0:
        return None
    return cov / var_b
