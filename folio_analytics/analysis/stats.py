"""Return, volatility, drawdown and tail-risk statistics.

Every function here is pure and total: empty or too-short inputs produce a
defined sentinel (0, an empty array, or None entries) instead of raising, so
callers can chain them over arbitrary portfolios without guarding each call.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from scipy.stats import norm

TRADING_DAYS = 252

ArrayLike = Sequence[float] | np.ndarray


def _as_array(values: ArrayLike) -> np.ndarray:
    return np.asarray(values, dtype=float).reshape(-1)


# ---------------------------------------------------------------------------
# Returns and weights
# ---------------------------------------------------------------------------


def compute_returns(prices: ArrayLike) -> np.ndarray:
    """Simple one-period returns; 0 for any step whose previous price is <= 0."""
    p = _as_array(prices)
    if p.size < 2:
        return np.zeros(0)
    prev, nxt = p[:-1], p[1:]
    valid = prev > 0
    ratio = np.divide(nxt, prev, out=np.ones_like(prev), where=valid)
    return np.where(valid, ratio - 1.0, 0.0)


def normalize_weights(values: ArrayLike) -> np.ndarray:
    """Scale by the sum of absolute values; all zeros when that sum is <= 0."""
    v = _as_array(values)
    total = float(np.abs(v).sum())
    if total <= 0:
        return np.zeros_like(v)
    return v / total


def equity_curve_from_returns(returns: ArrayLike, start_value: float = 1.0) -> np.ndarray:
    """Compound returns into a value path that starts at *start_value*."""
    r = _as_array(returns)
    curve = np.empty(r.size + 1)
    curve[0] = start_value
    curve[1:] = start_value * np.cumprod(1.0 + r)
    return curve


def total_return(returns: ArrayLike) -> float:
    r = _as_array(returns)
    if r.size == 0:
        return 0.0
    return float(np.prod(1.0 + r) - 1.0)


def cagr(returns: ArrayLike) -> float:
    """Compound annual growth rate; -1 on total wipeout."""
    r = _as_array(returns)
    if r.size == 0:
        return 0.0
    total = total_return(r)
    if total <= -1:
        return -1.0
    return float((1.0 + total) ** (TRADING_DAYS / r.size) - 1.0)


# ---------------------------------------------------------------------------
# Annualized moments
# ---------------------------------------------------------------------------


def annualized_return(returns: ArrayLike) -> float:
    r = _as_array(returns)
    if r.size == 0:
        return 0.0
    return float(r.mean() * TRADING_DAYS)


def annualized_volatility(returns: ArrayLike) -> float:
    """Population standard deviation (divisor n) scaled by sqrt(252)."""
    r = _as_array(returns)
    if r.size == 0:
        return 0.0
    return float(r.std(ddof=0) * math.sqrt(TRADING_DAYS))


def sharpe_ratio(returns: ArrayLike, risk_free_rate: float = 0.0) -> float:
    vol = annualized_volatility(returns)
    if vol <= 0:
        return 0.0
    return (annualized_return(returns) - risk_free_rate) / vol


def rolling_volatility(returns: ArrayLike, window: int) -> list[float | None]:
    """Trailing-window annualized volatility, None until *window* returns exist."""
    r = _as_array(returns)
    out: list[float | None] = []
    for i in range(r.size):
        if i + 1 < window:
            out.append(None)
            continue
        start = i + 1 - window if window > 0 else i + 1
        out.append(annualized_volatility(r[start:i + 1]))
    return out


# ---------------------------------------------------------------------------
# Drawdown
# ---------------------------------------------------------------------------


def drawdown_series(equity_curve: ArrayLike) -> np.ndarray:
    """Distance below the running peak, ``value / peak - 1`` (0 while peak <= 0)."""
    v = _as_array(equity_curve)
    if v.size == 0:
        return np.zeros(0)
    peak = np.maximum.accumulate(v)
    ratio = np.divide(v, peak, out=np.ones_like(v), where=peak > 0)
    return np.where(peak > 0, ratio - 1.0, 0.0)


def max_drawdown(equity_curve: ArrayLike) -> float:
    dd = drawdown_series(equity_curve)
    if dd.size == 0:
        return 0.0
    return float(dd.min())


# ---------------------------------------------------------------------------
# Tail risk
# ---------------------------------------------------------------------------


def var_cvar(returns: ArrayLike, alpha: float = 0.05) -> tuple[float, float]:
    """Historical VaR and CVaR, reported as positive losses.

    The quantile is the sorted return at rank ``floor(alpha * n)`` (clamped to
    the series); CVaR averages every return at or below it.
    """
    r = np.sort(_as_array(returns))
    n = r.size
    if n == 0:
        return 0.0, 0.0
    idx = min(max(math.floor(alpha * n), 0), n - 1)
    q = r[idx]
    tail = r[r <= q]
    return float(-q), float(-tail.mean())


def parametric_var(returns: ArrayLike, alpha: float = 0.05) -> float:
    """Gaussian VaR ``-(mu + z_alpha * sigma)`` from the sample moments."""
    r = _as_array(returns)
    if r.size < 2:
        return 0.0
    z = norm.ppf(alpha)
    return float(-(r.mean() + z * r.std(ddof=1)))


# ---------------------------------------------------------------------------
# Concentration
# ---------------------------------------------------------------------------


def concentration_hhi(weights: ArrayLike) -> float:
    """Herfindahl index: sum of squared weights."""
    w = _as_array(weights)
    return float(np.sum(w * w))


def effective_n(weights: ArrayLike) -> float:
    hhi = concentration_hhi(weights)
    return 1.0 / hhi if hhi > 0 else 0.0
