"""Assemble a point-in-time snapshot: metrics, time series and risk breakdown."""

from __future__ import annotations

from folio_analytics.analysis import stats
from folio_analytics.analysis.covariance import (
    correlation_matrix,
    covariance_matrix,
    shrink_covariance,
)
from folio_analytics.analysis.holdings import resolve_holdings, returns_by_ticker
from folio_analytics.analysis.portfolio import beta_to_benchmark, portfolio_returns
from folio_analytics.analysis.risk import risk_contributions
from folio_analytics.config import Defaults
from folio_analytics.models import (
    AlignedPrices,
    HoldingsInput,
    HoldingUsed,
    PortfolioMetrics,
    Snapshot,
    SnapshotRisk,
    SnapshotSeries,
)
from folio_analytics.utils.logger import setup_logger

logger = setup_logger("snapshot")

TAIL_ALPHA = 0.05


def _floats(values) -> tuple[float, ...]:
    return tuple(float(v) for v in values)


def compute_snapshot(
    portfolio_id: str,
    holdings: HoldingsInput,
    prices: AlignedPrices,
    rolling_window: int = Defaults.ROLLING_WINDOW,
    equity_base: float = Defaults.EQUITY_BASE,
) -> Snapshot:
    """Compute every snapshot bundle from aligned prices.

    Structural problems (too few dates, a held ticker without prices) raise
    ``ValueError`` before any computation starts. Numeric degeneracies inside
    the computation fall back to the sentinels documented in ``stats``.
    """
    resolved = resolve_holdings(holdings, prices)
    tickers = resolved.tickers
    weights = resolved.weights

    asset_returns = returns_by_ticker(tickers, prices)
    port_returns = portfolio_returns(asset_returns, resolved.weights_by_ticker)
    equity = stats.equity_curve_from_returns(port_returns, equity_base)
    drawdown = stats.drawdown_series(equity)
    rolling_vol = stats.rolling_volatility(port_returns, rolling_window)

    beta = None
    bench_prices = prices.prices_by_ticker.get(holdings.benchmark)
    if bench_prices is not None and len(bench_prices) > 0:
        bench_returns = stats.compute_returns(bench_prices)
        if bench_returns.size == port_returns.size:
            beta = beta_to_benchmark(port_returns, bench_returns)
    else:
        logger.warning("No prices for benchmark %s, beta left undefined", holdings.benchmark)

    order, cov = covariance_matrix(asset_returns)
    if holdings.shrinkage is not None:
        cov = shrink_covariance(cov, holdings.shrinkage)
    corr = correlation_matrix(cov)
    rc = risk_contributions(weights, cov)
    rc_by_ticker = {t: float(rc[i]) for i, t in enumerate(order)}

    var_95, cvar_95 = stats.var_cvar(port_returns, TAIL_ALPHA)

    metrics = PortfolioMetrics(
        total_return=stats.total_return(port_returns),
        cagr=stats.cagr(port_returns),
        annualized_return=stats.annualized_return(port_returns),
        annualized_volatility=stats.annualized_volatility(port_returns),
        sharpe=stats.sharpe_ratio(port_returns, holdings.risk_free_rate),
        max_drawdown=stats.max_drawdown(equity),
        beta=beta,
        var_95=var_95,
        cvar_95=cvar_95,
        parametric_var_95=stats.parametric_var(port_returns, TAIL_ALPHA),
        concentration_hhi=stats.concentration_hhi(weights),
        effective_n=stats.effective_n(weights),
        risk_contributions=rc_by_ticker,
    )

    # returns and rolling vol start one step after the first date
    series = SnapshotSeries(
        dates=tuple(prices.dates),
        equity=_floats(equity),
        drawdown=_floats(drawdown),
        rolling_vol=(None, *rolling_vol),
        portfolio_returns=(None, *_floats(port_returns)),
    )

    risk = SnapshotRisk(
        tickers=tuple(order),
        correlation=tuple(_floats(row) for row in corr),
        risk_contributions=dict(rc_by_ticker),
    )

    holdings_used = tuple(
        HoldingUsed(ticker=t, input_value=v, last_price=p, weight=float(w))
        for t, v, p, w in zip(tickers, resolved.input_values, resolved.last_prices, weights)
    )

    logger.info("Snapshot %s: %d assets over %d dates, vol=%.4f, max_dd=%.4f",
                portfolio_id, len(tickers), len(prices.dates),
                metrics.annualized_volatility, metrics.max_drawdown)

    return Snapshot(
        portfolio_id=portfolio_id,
        range=holdings.range,
        benchmark=holdings.benchmark,
        risk_free_rate=holdings.risk_free_rate,
        shrinkage=holdings.shrinkage,
        holdings_used=holdings_used,
        metrics=metrics,
        series=series,
        risk=risk,
    )
