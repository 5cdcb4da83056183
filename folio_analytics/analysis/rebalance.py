"""Turnover-controlled rebalancing: weight blending, turnover and share trades."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Sequence

import numpy as np

from folio_analytics.analysis.covariance import covariance_matrix, shrink_covariance
from folio_analytics.analysis.holdings import resolve_holdings, returns_by_ticker
from folio_analytics.analysis.optimizer import min_variance_weights, risk_parity_weights
from folio_analytics.analysis.risk import portfolio_volatility
from folio_analytics.models import AlignedPrices, HoldingsInput
from folio_analytics.utils.logger import setup_logger

logger = setup_logger("rebalance")

OBJECTIVES = ("min-variance", "risk-parity")


def _pad(values: Sequence[float], n: int) -> np.ndarray:
    v = np.asarray(values, dtype=float).reshape(-1)[:n]
    return np.pad(v, (0, n - v.size))


# ---------------------------------------------------------------------------
# Blending and turnover
# ---------------------------------------------------------------------------


def blend_weights(current: Sequence[float], target: Sequence[float], gamma: float) -> np.ndarray:
    """``(1 - gamma) * current + gamma * target``, renormalised when positive.

    *gamma* is clamped into [0, 1]; 0 keeps the current book and 1 jumps
    straight to the target. Target entries missing at the tail count as 0.
    """
    g = min(max(float(gamma), 0.0), 1.0)
    cur = np.asarray(current, dtype=float).reshape(-1)
    tgt = _pad(target, cur.size)
    blended = (1.0 - g) * cur + g * tgt
    total = blended.sum()
    return blended / total if total > 0 else blended


def estimated_turnover(current: Sequence[float], final: Sequence[float]) -> float:
    """One-way turnover: half the sum of absolute weight changes."""
    n = max(len(current), len(final))
    return float(np.abs(_pad(final, n) - _pad(current, n)).sum() / 2.0)


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TradeDetail:
    ticker: str
    current_weight: float
    final_weight: float
    current_shares: float
    target_shares: int
    trade_shares: float
    trade_value: float


def compute_trades(
    assets: Sequence[str],
    current_shares: Sequence[float],
    last_prices: Sequence[float],
    final_weights: Sequence[float],
) -> tuple[list[TradeDetail], float]:
    """Whole-share orders that move a share-denominated book to *final_weights*.

    Target share counts are floored, so the residual value that cannot buy a
    whole share is returned as leftover cash.
    """
    total_value = sum(s * p for s, p in zip(current_shares, last_prices))
    used_value = 0.0
    trades: list[TradeDetail] = []

    for ticker, shares, price, weight in zip(assets, current_shares, last_prices, final_weights):
        current_weight = shares * price / total_value if total_value > 0 else 0.0
        target_value = total_value * weight
        target_shares = math.floor(target_value / (price or 1))
        trade_shares = target_shares - shares
        used_value += target_shares * price
        trades.append(TradeDetail(
            ticker=ticker,
            current_weight=current_weight,
            final_weight=float(weight),
            current_shares=shares,
            target_shares=target_shares,
            trade_shares=trade_shares,
            trade_value=trade_shares * price,
        ))

    return trades, total_value - used_value


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RebalanceRow:
    ticker: str
    current_weight: float
    target_weight: float
    final_weight: float
    current_shares: float | None = None
    target_shares: int | None = None
    trade_shares: float | None = None
    trade_value: float | None = None


@dataclass(frozen=True)
class RebalancePlan:
    objective: str
    gamma: float
    max_weight: float | None
    rows: tuple[RebalanceRow, ...]
    turnover: float
    current_vol: float
    target_vol: float
    final_vol: float
    shares_mode: bool
    cash_leftover: float | None = None
    tickers: tuple[str, ...] = field(default=())


def _usable_cap(max_weight: float | None) -> float | None:
    if max_weight is None or not math.isfinite(max_weight):
        return None
    return max_weight if 0 < max_weight <= 1 else None


def plan_rebalance(
    holdings: HoldingsInput,
    prices: AlignedPrices,
    objective: str = "min-variance",
    gamma: float = 1.0,
    max_weight: float | None = None,
) -> RebalancePlan:
    """Solve the target allocation and blend it with the current book.

    Raises:
        ValueError: on an unknown objective or non-finite gamma, or when the
            price table cannot support the holdings (see ``resolve_holdings``).
    """
    if objective not in OBJECTIVES:
        raise ValueError(f"objective must be one of {OBJECTIVES}, got '{objective}'")
    if gamma is None or not math.isfinite(gamma):
        raise ValueError("gamma must be a finite number")

    resolved = resolve_holdings(holdings, prices)
    tickers = resolved.tickers
    current = resolved.weights

    _, cov = covariance_matrix(returns_by_ticker(tickers, prices))
    if holdings.shrinkage is not None:
        cov = shrink_covariance(cov, holdings.shrinkage)

    cap = _usable_cap(max_weight if max_weight is not None else holdings.max_weight)
    if objective == "min-variance":
        target = min_variance_weights(cov, cap)
    else:
        target = risk_parity_weights(cov, cap)

    final = blend_weights(current, target, gamma)
    turnover = estimated_turnover(current, final)
    logger.info("Rebalance %s: %d assets, gamma=%.2f, turnover=%.4f",
                objective, len(tickers), gamma, turnover)

    trades: list[TradeDetail] | None = None
    cash_leftover = None
    if holdings.is_shares_mode:
        trades, cash_leftover = compute_trades(
            tickers, resolved.input_values, resolved.last_prices, final)

    rows = []
    for i, t in enumerate(tickers):
        row = RebalanceRow(
            ticker=t,
            current_weight=float(current[i]),
            target_weight=float(target[i]),
            final_weight=float(final[i]),
        )
        if trades is not None:
            trade = trades[i]
            row = replace(row, current_shares=trade.current_shares, target_shares=trade.target_shares,
                          trade_shares=trade.trade_shares, trade_value=trade.trade_value)
        rows.append(row)

    return RebalancePlan(
        objective=objective,
        gamma=gamma,
        max_weight=cap,
        rows=tuple(rows),
        turnover=turnover,
        current_vol=portfolio_volatility(current, cov, annualize=True),
        target_vol=portfolio_volatility(target, cov, annualize=True),
        final_vol=portfolio_volatility(final, cov, annualize=True),
        shares_mode=holdings.is_shares_mode,
        cash_leftover=cash_leftover,
        tickers=tuple(tickers),
    )
