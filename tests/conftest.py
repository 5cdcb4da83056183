"""Shared pytest fixtures for the folio-analytics test suite.

Provides synthetic aligned price tables with a fixed random seed for
reproducibility. Nothing here touches the network.
"""

import numpy as np
import pandas as pd
import pytest

from folio_analytics.models import AlignedPrices, HoldingsInput, HoldingsItem


def make_aligned_prices(tickers=("AAA", "BBB", "CCC", "SPY"), n=253, seed=42,
                        vols=None, start_price=100.0):
    """Geometric Brownian motion closes on a shared business-day axis.

    Every ticker is partly driven by a common market factor so the
    covariance matrix has realistic positive off-diagonal entries.
    """
    np.random.seed(seed)
    k = len(tickers)
    vols = vols or [0.010 + 0.004 * i for i in range(k)]
    market = np.random.normal(0.0003, 0.008, n - 1)
    dates = [d.strftime("%Y-%m-%d") for d in pd.bdate_range(start="2023-01-02", periods=n)]
    prices = {}
    for t, vol in zip(tickers, vols):
        idio = np.random.normal(0.0002, vol, n - 1)
        rets = 0.6 * market + idio
        path = start_price * np.concatenate([[1.0], np.cumprod(1 + rets)])
        prices[t] = path.tolist()
    return AlignedPrices(range="1y", start=dates[0], end=dates[-1], dates=dates,
                         prices_by_ticker=prices)


# ---------------------------------------------------------------------------
# 1. Aligned price table
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_prices():
    """Four tickers (three holdings + SPY benchmark), 253 aligned closes."""
    return make_aligned_prices()


# ---------------------------------------------------------------------------
# 2. Holdings
# ---------------------------------------------------------------------------

@pytest.fixture
def weight_holdings():
    return HoldingsInput(
        mode="weights",
        items=(HoldingsItem("AAA", 0.5), HoldingsItem("BBB", 0.3), HoldingsItem("CCC", 0.2)),
        benchmark="SPY",
        risk_free_rate=0.02,
    )


@pytest.fixture
def share_holdings():
    return HoldingsInput(
        mode="shares",
        items=(HoldingsItem("AAA", 40), HoldingsItem("BBB", 25), HoldingsItem("CCC", 10)),
        benchmark="SPY",
    )


# ---------------------------------------------------------------------------
# 3. Daily returns
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_returns():
    """Daily returns with 252 observations, seeded at 42."""
    np.random.seed(42)
    return np.random.normal(0.0004, 0.015, 252)


@pytest.fixture
def prices_factory():
    """Build custom aligned price tables: ``prices_factory(tickers=..., n=..., seed=...)``."""
    return make_aligned_prices
