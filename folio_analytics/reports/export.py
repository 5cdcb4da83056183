"""Export snapshots and rebalance plans as JSON-ready dicts or CSV text."""

from __future__ import annotations

from dataclasses import asdict

import pandas as pd

from folio_analytics.analysis.rebalance import RebalancePlan
from folio_analytics.models import Snapshot

SERIES_COLUMNS = ["date", "equity", "drawdown", "rolling_vol", "portfolio_return"]
WEIGHT_COLUMNS = ["ticker", "current_weight", "target_weight", "final_weight"]
TRADE_COLUMNS = ["current_shares", "target_shares", "trade_shares", "trade_value"]


def snapshot_to_dict(snapshot: Snapshot) -> dict:
    return snapshot.to_dict()


def snapshot_to_csv(snapshot: Snapshot) -> str:
    """One row per date; cells with no value (warm-up, first date) are empty."""
    s = snapshot.series
    df = pd.DataFrame({
        "date": list(s.dates),
        "equity": list(s.equity),
        "drawdown": list(s.drawdown),
        "rolling_vol": list(s.rolling_vol),
        "portfolio_return": list(s.portfolio_returns),
    }, columns=SERIES_COLUMNS)
    return df.to_csv(index=False, na_rep="", lineterminator="\n")


def rebalance_to_dict(plan: RebalancePlan) -> dict:
    data = asdict(plan)
    if not plan.shares_mode:
        for row in data["rows"]:
            for col in TRADE_COLUMNS:
                row.pop(col, None)
    return data


def rebalance_to_csv(plan: RebalancePlan) -> str:
    """Per-asset weights, plus share and trade columns in shares mode."""
    columns = WEIGHT_COLUMNS + (TRADE_COLUMNS if plan.shares_mode else [])
    df = pd.DataFrame([asdict(row) for row in plan.rows])
    if df.empty:
        df = pd.DataFrame(columns=columns)
    return df[columns].to_csv(index=False, na_rep="", lineterminator="\n")
