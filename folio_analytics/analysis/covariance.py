"""Sample covariance / correlation estimation and off-diagonal shrinkage."""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np


def covariance_matrix(
    returns_by_asset: Mapping[str, Sequence[float]],
) -> tuple[list[str], np.ndarray]:
    """Sample covariance (divisor n-1) of equal-length return series.

    Works on a plain ``{ticker: returns}`` dict or a returns DataFrame; the
    asset order of the result follows the mapping's key order. Fewer than two
    observations produce an all-zero matrix.
    """
    tickers = list(returns_by_asset)
    k = len(tickers)
    if k == 0:
        return [], np.zeros((0, 0))

    X = np.column_stack([np.asarray(returns_by_asset[t], dtype=float) for t in tickers])
    n = X.shape[0]
    if n <= 1:
        return tickers, np.zeros((k, k))

    demeaned = X - X.mean(axis=0)
    upper = np.triu(demeaned.T @ demeaned) / (n - 1)
    # computed once per unordered pair, mirrored below the diagonal
    cov = upper + np.triu(upper, 1).T
    return tickers, cov


def correlation_matrix(cov: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
    """Normalise covariance by per-asset std; 0 wherever a std is 0."""
    c = np.asarray(cov, dtype=float)
    if c.size == 0:
        return np.zeros((0, 0))
    std = np.sqrt(np.clip(np.diag(c), 0.0, None))
    denom = np.outer(std, std)
    corr = np.divide(c, denom, out=np.zeros_like(c), where=denom > 0)
    return np.clip(corr, -1.0, 1.0)


def shrink_covariance(cov: np.ndarray | Sequence[Sequence[float]], shrinkage: float) -> np.ndarray:
    """Damp off-diagonal covariances toward zero by a user-chosen factor.

    Shrinkage is clamped into [0, 1]; variances on the diagonal are left
    untouched. This is a fixed-intensity shrink toward the diagonal, not a
    statistically estimated (Ledoit-Wolf) intensity.
    """
    s = min(max(float(shrinkage), 0.0), 1.0)
    c = np.array(cov, dtype=float)
    if c.size == 0:
        return c.reshape(0, 0)
    out = c * (1.0 - s)
    np.fill_diagonal(out, np.diag(c))
    return out
