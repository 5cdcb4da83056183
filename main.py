#!/usr/bin/env python3
"""folio-analytics: portfolio risk, performance and rebalancing analytics.

Usage:
    python main.py prices AAPL,MSFT,SPY --range 1y                 # aligned closes
    python main.py snapshot AAPL=0.6 MSFT=0.4                      # metrics + series + risk
    python main.py snapshot AAPL=10 MSFT=5 --mode shares --format csv
    python main.py rebalance AAPL=10 MSFT=5 --mode shares --objective risk-parity --gamma 0.5
    python main.py rebalance AAPL=0.7 MSFT=0.3 --max-weight 0.6 --format csv
    python main.py alerts AAPL=0.5 MSFT=0.5 --rule vol_gt:0.25 --rule maxdd_lt:-0.2
"""

import argparse
import json
import sys
from dataclasses import asdict

from folio_analytics.analysis.alerts import AlertRule, check_alerts
from folio_analytics.analysis.rebalance import OBJECTIVES, plan_rebalance
from folio_analytics.analysis.snapshot import compute_snapshot
from folio_analytics.config import SETTINGS, Defaults
from folio_analytics.data_sources.market_data import (
    PriceFetchError,
    fetch_aligned_closes,
    fetch_prices,
    parse_tickers,
)
from folio_analytics.models import HoldingsInput, HoldingsItem
from folio_analytics.reports.export import (
    rebalance_to_csv,
    rebalance_to_dict,
    snapshot_to_csv,
    snapshot_to_dict,
)
from folio_analytics.utils.logger import setup_logger

logger = setup_logger("main", SETTINGS.get("app", {}).get("log_level", "INFO"))


def _parse_items(raw_items: list[str]) -> list[HoldingsItem]:
    items = []
    for raw in raw_items:
        ticker, sep, value = raw.partition("=")
        if not sep:
            raise ValueError(f"Holding must look like TICKER=VALUE, got '{raw}'")
        try:
            items.append(HoldingsItem(ticker, float(value)))
        except ValueError:
            raise ValueError(f"Holding value for {ticker} is not a number: '{value}'") from None
    return items


def _build_holdings(args) -> HoldingsInput:
    return HoldingsInput(
        mode=args.mode,
        items=tuple(_parse_items(args.holdings)),
        range=args.range,
        benchmark=args.benchmark,
        risk_free_rate=args.rf,
        shrinkage=args.shrinkage,
        max_weight=getattr(args, "max_weight", None),
    )


def _fetch_for(holdings: HoldingsInput):
    tickers = holdings.tickers + [holdings.benchmark]
    return fetch_aligned_closes(tickers, holdings.range)


def _dump(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


# ============================================================
# COMMANDS
# ============================================================

def cmd_prices(args):
    """Aligned close prices for comma-separated tickers."""
    tickers = parse_tickers(args.tickers)
    aligned = fetch_prices(tickers, args.range)
    _dump(asdict(aligned))


def cmd_snapshot(args):
    """Full snapshot for a set of holdings."""
    holdings = _build_holdings(args)
    snapshot = compute_snapshot(args.portfolio_id, holdings, _fetch_for(holdings))
    if args.format == "csv":
        sys.stdout.write(snapshot_to_csv(snapshot))
    else:
        _dump(snapshot_to_dict(snapshot))


def cmd_rebalance(args):
    """Target weights, blend and trades."""
    holdings = _build_holdings(args)
    plan = plan_rebalance(holdings, _fetch_for(holdings), objective=args.objective,
                          gamma=args.gamma, max_weight=args.max_weight)
    if args.format == "csv":
        sys.stdout.write(rebalance_to_csv(plan))
    else:
        _dump(rebalance_to_dict(plan))


def cmd_alerts(args):
    """Evaluate alert rules against a fresh snapshot."""
    rules = [AlertRule.parse(r) for r in args.rule]
    if not rules:
        raise ValueError("Provide at least one --rule type:threshold")
    holdings = _build_holdings(args)
    snapshot = compute_snapshot(args.portfolio_id, holdings, _fetch_for(holdings))
    triggered = check_alerts(rules, snapshot.metrics)
    _dump({
        "portfolio_id": snapshot.portfolio_id,
        "snapshot_created_at": snapshot.created_at.isoformat(),
        "triggered": [asdict(t) for t in triggered],
    })


def _add_holdings_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("holdings", nargs="+", help="Holdings as TICKER=VALUE")
    p.add_argument("--mode", default="weights", choices=["weights", "shares"],
                   help="How holding values are read (default: weights)")
    p.add_argument("--range", default=Defaults.RANGE, help="Lookback: 3m, 6m, 1y, 3y")
    p.add_argument("--benchmark", default=Defaults.BENCHMARK)
    p.add_argument("--rf", type=float, default=Defaults.RISK_FREE_RATE, help="Annual risk-free rate")
    p.add_argument("--shrinkage", type=float, default=None,
                   help="Off-diagonal covariance shrinkage in [0, 1]")
    p.add_argument("--portfolio-id", default="cli")


def main():
    parser = argparse.ArgumentParser(
        description="folio-analytics: portfolio risk and rebalancing analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", help="Commands")

    # prices
    p = sub.add_parser("prices", help="Aligned daily closes")
    p.add_argument("tickers", help="Comma-separated tickers, e.g. AAPL,MSFT,SPY")
    p.add_argument("--range", default=Defaults.RANGE)
    p.set_defaults(func=cmd_prices)

    # snapshot
    p = sub.add_parser("snapshot", help="Metrics, series and risk breakdown")
    _add_holdings_args(p)
    p.add_argument("--format", default="json", choices=["json", "csv"])
    p.set_defaults(func=cmd_snapshot)

    # rebalance
    p = sub.add_parser("rebalance", help="Optimise and blend target weights")
    _add_holdings_args(p)
    p.add_argument("--objective", default="min-variance", choices=list(OBJECTIVES))
    p.add_argument("--gamma", type=float, default=1.0,
                   help="0 keeps current weights, 1 moves fully to target")
    p.add_argument("--max-weight", type=float, default=None, help="Per-asset weight cap")
    p.add_argument("--format", default="json", choices=["json", "csv"])
    p.set_defaults(func=cmd_rebalance)

    # alerts
    p = sub.add_parser("alerts", help="Check alert rules against a snapshot")
    _add_holdings_args(p)
    p.add_argument("--rule", action="append", default=[],
                   help="type:threshold with type in vol_gt, maxdd_lt, var_gt")
    p.set_defaults(func=cmd_alerts)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)
    try:
        args.func(args)
    except (ValueError, PriceFetchError) as e:
        logger.error("%s failed: %s", args.command, e)
        _dump({"error": str(e)})
        sys.exit(1)


if __name__ == "__main__":
    main()
