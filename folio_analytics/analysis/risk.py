"""Portfolio variance and per-asset risk decomposition."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from folio_analytics.analysis.stats import TRADING_DAYS


def portfolio_variance(weights: Sequence[float], cov: np.ndarray) -> float:
    w = np.asarray(weights, dtype=float)
    if w.size == 0:
        return 0.0
    return float(w @ np.asarray(cov, dtype=float) @ w)


def portfolio_volatility(weights: Sequence[float], cov: np.ndarray, annualize: bool = False) -> float:
    """sqrt(w'Cw), optionally scaled to annual units; 0 for non-positive variance."""
    var = portfolio_variance(weights, cov)
    vol = math.sqrt(var) if var > 0 else 0.0
    return vol * math.sqrt(TRADING_DAYS) if annualize else vol


def risk_contributions(weights: Sequence[float], cov: np.ndarray) -> np.ndarray:
    """Share of total variance owed to each asset.

    ``rc_i = w_i * (C w)_i / w'Cw``. By Euler's theorem on the quadratic form
    the shares sum to 1; a non-positive portfolio variance yields all zeros.
    """
    w = np.asarray(weights, dtype=float)
    port_var = portfolio_variance(w, cov)
    if port_var <= 0:
        return np.zeros_like(w)
    marginal = np.asarray(cov, dtype=float) @ w
    return w * marginal / port_var
