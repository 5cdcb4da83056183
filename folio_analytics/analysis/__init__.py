from .stats import (
    TRADING_DAYS,
    annualized_return,
    annualized_volatility,
    cagr,
    compute_returns,
    concentration_hhi,
    drawdown_series,
    effective_n,
    equity_curve_from_returns,
    max_drawdown,
    normalize_weights,
    parametric_var,
    rolling_volatility,
    sharpe_ratio,
    total_return,
    var_cvar,
)
from .covariance import covariance_matrix, correlation_matrix, shrink_covariance
from .portfolio import portfolio_returns, beta_to_benchmark
from .risk import portfolio_variance, portfolio_volatility, risk_contributions
from .optimizer import invert_matrix, min_variance_weights, risk_parity_weights
from .rebalance import blend_weights, estimated_turnover, compute_trades, plan_rebalance
from .snapshot import compute_snapshot
from .alerts import AlertRule, check_alerts
